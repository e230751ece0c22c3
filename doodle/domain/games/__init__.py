from __future__ import annotations

from .handlers import (
    advance_round,
    create_game,
    join_game,
    request_round_update,
    update_game_status,
    update_player_round,
    update_player_status,
)
from .results import leaderboard

__all__ = [
    "advance_round",
    "create_game",
    "join_game",
    "request_round_update",
    "update_game_status",
    "update_player_round",
    "update_player_status",
    "leaderboard",
]
