from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from doodle.settings import get_settings
from doodle.transport.protocols import message_game_id, parse_message
from doodle.transport.ws_manager import WSManager

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings = get_settings()
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}

    origin = websocket.headers.get("origin")
    if origin is not None and "*" not in allowed and origin not in allowed:
        await websocket.close(code=1008)
        return False
    return True


def make_forwarder(wsman: WSManager, topic: str):
    """
    Relay handler that pushes every message for a game to the browsers
    watching it, as {"topic": ..., "data": ...}.
    """
    async def _forward(payload: Dict[str, Any]) -> None:
        try:
            msg = parse_message(topic, payload)
        except ValidationError:
            logger.warning("not forwarding malformed %s payload", topic)
            return
        await wsman.broadcast(message_game_id(msg), {"topic": topic, "data": payload})

    return _forward


@router.websocket("/ws/{game_id}")
async def ws_game(websocket: WebSocket, game_id: str):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    wsman: WSManager = websocket.app.state.wsman
    conn_id = await wsman.add(game_id, websocket)

    try:
        while True:
            # Read-only feed; inbound frames are only keep-alives.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await wsman.remove(game_id, conn_id)
