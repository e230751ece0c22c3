from __future__ import annotations

from typing import Protocol

from doodle.store.models import DrawingRecord
from doodle.util.timeutil import now_ts


class ArchiveStore(Protocol):
    async def store(self, word: str, guess: str, address: str, image: str) -> None: ...


class RedisArchive:
    """Audit trail of every classified attempt, kept in the repo's drawings list."""

    def __init__(self, repo) -> None:
        self.repo = repo

    async def store(self, word: str, guess: str, address: str, image: str) -> None:
        await self.repo.archive_drawing(
            DrawingRecord(word=word, guess=guess, address=address, image=image, ts=now_ts())
        )
