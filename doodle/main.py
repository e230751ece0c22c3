from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis

from doodle.settings import get_settings
from doodle.store.redis_repo import RedisRepo
from doodle.transport.channels import Relay, RedisRelay
from doodle.transport.protocols import TOPICS
from doodle.transport.routes import archive_router, router as games_router
from doodle.transport.ws import make_forwarder, router as ws_router
from doodle.transport.ws_manager import WSManager


def create_app(*, repo=None, relay: Optional[Relay] = None) -> FastAPI:
    """
    Build the API. Without overrides, Redis backs both the game store and
    the broadcast relay.
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        r: Optional[Redis] = None
        if repo is None or relay is None:
            r = Redis.from_url(settings.REDIS_URL, decode_responses=False)
            await r.ping()
        app.state.redis = r
        app.state.repo = repo if repo is not None else RedisRepo(r, game_ttl_sec=settings.GAME_TTL_SEC)
        app.state.relay = relay if relay is not None else RedisRelay(r)
        app.state.wsman = WSManager()
        for topic in TOPICS:
            await app.state.relay.subscribe(topic, make_forwarder(app.state.wsman, topic))
        yield
        await app.state.relay.close()
        if r is not None:
            await r.aclose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        r: Optional[Redis] = app.state.redis
        if r is None:
            return {"ok": True, "redis": "disabled"}
        pong = await r.ping()
        return {"ok": True, "redis": str(pong)}

    app.include_router(games_router)
    app.include_router(archive_router)
    app.include_router(ws_router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("doodle.main:app", host=settings.HOST, port=settings.PORT, factory=False)


app = create_app()
