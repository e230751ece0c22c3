from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from doodle.domain.common.types import GameStatus, PlayerStatus
from doodle.store.models import GameStore, PlayerStore


# =========================
# Topics
# =========================

GAME_UPDATE = "gameUpdate"
PLAYER_UPDATE = "playerUpdate"
UPDATE_ROUND = "updateRound"

TOPICS = (GAME_UPDATE, PLAYER_UPDATE, UPDATE_ROUND)


# =========================
# Broadcast messages (server -> every client)
# =========================

class MsgBase(BaseModel):
    type: str


class MsgGameUpdate(MsgBase):
    type: Literal["gameUpdate"] = "gameUpdate"
    game: GameStore


class MsgPlayerUpdate(MsgBase):
    type: Literal["playerUpdate"] = "playerUpdate"
    game_id: str
    player: PlayerStore


class MsgUpdateRound(MsgBase):
    """Signal only: carries the game identifier and the round it was raised in."""
    type: Literal["updateRound"] = "updateRound"
    id: str
    round_no: int = 0


BroadcastMessage = Union[MsgGameUpdate, MsgPlayerUpdate, MsgUpdateRound]

_MESSAGE_BY_TOPIC = {
    GAME_UPDATE: MsgGameUpdate,
    PLAYER_UPDATE: MsgPlayerUpdate,
    UPDATE_ROUND: MsgUpdateRound,
}


def parse_message(topic: str, payload: Dict[str, Any]) -> BroadcastMessage:
    """
    Convert raw relay payload -> validated message model.
    Raises ValueError for an unknown topic, ValidationError if invalid.
    """
    cls = _MESSAGE_BY_TOPIC.get(topic)
    if cls is None:
        raise ValueError(f"Unknown topic: {topic}")
    return cls.model_validate(payload)


def message_game_id(message: BroadcastMessage) -> str:
    if isinstance(message, MsgGameUpdate):
        return message.game.id
    if isinstance(message, MsgPlayerUpdate):
        return message.game_id
    return message.id


# =========================
# HTTP bodies (client -> server)
# =========================

class InCreateGame(BaseModel):
    host_address: str = Field(min_length=1, max_length=128)
    words_list: List[str] = Field(min_length=1)
    total_rounds: int = Field(default=3, ge=1, le=50)


class InJoinGame(BaseModel):
    invite_code: str = Field(min_length=1, max_length=16)
    address: str = Field(min_length=1, max_length=128)
    user_name: str = Field(default="", max_length=24)


class InAdvanceRound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # legacy clients also send the game id in the body; the path wins
    id: Optional[str] = None
    new_round: int = Field(alias="newRound")
    address: Optional[str] = None


class InGameStatus(BaseModel):
    status: GameStatus
    address: str


class InPlayerStatus(BaseModel):
    status: PlayerStatus


class InPlayerRound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_round: int = Field(alias="newRound", ge=0)
    won: bool = False


class InDrawing(BaseModel):
    word: str
    guess: str
    address: str
    image: str


# =========================
# HTTP responses
# =========================

class OutGame(BaseModel):
    game: GameStore


class OutAdvanced(BaseModel):
    message: str
    game: GameStore


class OutError(BaseModel):
    error: str
    code: str = ""


class OutResultRow(BaseModel):
    address: str
    user_name: str
    total_points: int


class OutResults(BaseModel):
    game_id: str
    status: GameStatus
    results: List[OutResultRow]
