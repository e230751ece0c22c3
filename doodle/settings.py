from __future__ import annotations

from pydantic import BaseModel
import os


class Settings(BaseModel):
    APP_NAME: str = "doodle-exchange"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    GAME_TTL_SEC: int = 86400

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Dev
    LOG_LEVEL: str = "INFO"

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Rounds
    ROUND_COUNTDOWN_SEC: int = 60
    ROUND_TICK_SEC: float = 1.0

    # Classifier
    OPENAI_API_KEY: str = ""
    CLASSIFIER_MODEL: str = "gpt-4o"
    CLASSIFIER_TIMEOUT_SEC: float = 30.0

    # Client-local storage
    STATE_DIR: str = ".doodle"


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "doodle-exchange"),
        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        GAME_TTL_SEC=int(os.getenv("GAME_TTL_SEC", "86400")),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ),
        ROUND_COUNTDOWN_SEC=int(os.getenv("ROUND_COUNTDOWN_SEC", "60")),
        ROUND_TICK_SEC=float(os.getenv("ROUND_TICK_SEC", "1.0")),
        OPENAI_API_KEY=os.getenv("OPENAI_API_KEY", ""),
        CLASSIFIER_MODEL=os.getenv("CLASSIFIER_MODEL", "gpt-4o"),
        CLASSIFIER_TIMEOUT_SEC=float(os.getenv("CLASSIFIER_TIMEOUT_SEC", "30")),
        STATE_DIR=os.getenv("STATE_DIR", ".doodle"),
    )
