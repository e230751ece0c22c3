from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from doodle.domain.common.errors import PersistenceFailure
from doodle.store.models import DrawingRecord, GameStore
from doodle.store.redis_keys import GK


class RedisRepo:
    """
    Game documents are whole-JSON strings: save() is a full overwrite with no
    version check, find() returns None when the key is gone.
    """

    def __init__(self, r: Redis, game_ttl_sec: int = 86400):
        self.r = r
        self.game_ttl_sec = game_ttl_sec

    def _dec(self, x):
        if x is None:
            return None
        if isinstance(x, bytes):
            return x.decode("utf-8")
        return x

    # ----------------------------
    # Games
    # ----------------------------
    async def find(self, game_id: str) -> Optional[GameStore]:
        try:
            raw = await self.r.get(GK(game_id).game())
        except RedisError as e:
            raise PersistenceFailure(f"read game {game_id}: {e}") from e
        if not raw:
            return None
        return GameStore.model_validate_json(self._dec(raw))

    async def find_by_invite(self, invite_code: str) -> Optional[GameStore]:
        try:
            game_id = await self.r.get(GK.invite(invite_code))
        except RedisError as e:
            raise PersistenceFailure(f"read invite {invite_code}: {e}") from e
        if not game_id:
            return None
        return await self.find(self._dec(game_id))

    async def invite_exists(self, invite_code: str) -> bool:
        try:
            return bool(await self.r.exists(GK.invite(invite_code)))
        except RedisError as e:
            raise PersistenceFailure(f"read invite {invite_code}: {e}") from e

    async def save(self, game: GameStore) -> GameStore:
        try:
            pipe = self.r.pipeline()
            pipe.set(GK(game.id).game(), game.model_dump_json(), ex=self.game_ttl_sec)
            pipe.set(GK.invite(game.invite_code), game.id, ex=self.game_ttl_sec)
            await pipe.execute()
        except RedisError as e:
            raise PersistenceFailure(f"save game {game.id}: {e}") from e
        return game

    # ----------------------------
    # Drawing archive
    # ----------------------------
    async def archive_drawing(self, record: DrawingRecord, max_items: int = 10000) -> None:
        try:
            pipe = self.r.pipeline()
            pipe.rpush(GK.drawings(), record.model_dump_json())
            pipe.ltrim(GK.drawings(), -max_items, -1)
            await pipe.execute()
        except RedisError as e:
            raise PersistenceFailure(f"archive drawing: {e}") from e
