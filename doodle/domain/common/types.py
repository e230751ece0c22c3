from __future__ import annotations

from enum import Enum
from typing import Literal

GameStatus = Literal["lobby", "active", "finished"]
PlayerStatus = Literal["waiting", "drawing", "classifying"]

Topic = Literal["gameUpdate", "playerUpdate", "updateRound"]


class Role(str, Enum):
    HOST = "host"
    PLAYER = "player"
    SPECTATOR = "spectator"
