from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Dict

from fastapi import WebSocket

logger = logging.getLogger(__name__)

_conn_ids = itertools.count(1)


@dataclass
class Conn:
    conn_id: int
    ws: WebSocket


class WSManager:
    """
    In-memory connection registry.
    - game_id -> conn_id -> websocket
    Transport-only: no Redis, no game rules.
    """
    def __init__(self) -> None:
        self._games: Dict[str, Dict[int, Conn]] = {}
        self._lock = asyncio.Lock()

    async def add(self, game_id: str, ws: WebSocket) -> int:
        conn = Conn(conn_id=next(_conn_ids), ws=ws)
        async with self._lock:
            self._games.setdefault(game_id, {})[conn.conn_id] = conn
        return conn.conn_id

    async def remove(self, game_id: str, conn_id: int) -> None:
        async with self._lock:
            conns = self._games.get(game_id)
            if not conns:
                return
            conns.pop(conn_id, None)
            if not conns:
                self._games.pop(game_id, None)

    async def broadcast(self, game_id: str, event: dict) -> None:
        # copy conns under lock, send outside lock
        async with self._lock:
            conns = list(self._games.get(game_id, {}).values())

        for c in conns:
            try:
                await c.ws.send_json(event)
            except Exception:
                # dead socket; ws.py removes it on disconnect
                logger.debug("send to conn %s in game %s failed", c.conn_id, game_id)
