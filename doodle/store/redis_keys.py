from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GK:
    """
    Redis key builder for game-scoped keys.
    """
    game_id: str

    def game(self) -> str:
        return f"game:{self.game_id}"  # STRING full JSON document

    @staticmethod
    def invite(invite_code: str) -> str:
        return f"invite:{invite_code.upper()}"  # STRING -> game id

    @staticmethod
    def drawings() -> str:
        return "drawings"  # LIST DrawingRecord JSON

    @staticmethod
    def channel(topic: str) -> str:
        return f"doodle:{topic}"  # PUBSUB channel per topic
