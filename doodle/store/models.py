from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field

from doodle.domain.common.types import GameStatus, PlayerStatus


class RoundScore(BaseModel):
    round: int
    points: int = 0


class PlayerStore(BaseModel):
    address: str
    user_name: str
    current_round: int = 0
    status: PlayerStatus = "waiting"
    rounds: List[RoundScore] = Field(default_factory=list)
    joined_at: int = 0

    def total_points(self) -> int:
        return sum(r.points for r in self.rounds)


class GameStore(BaseModel):
    """
    Full game document. Saved as one JSON blob and broadcast as-is.
    """
    id: str
    invite_code: str
    host_address: str
    status: GameStatus = "lobby"
    current_round: int = 0
    total_rounds: int
    words_list: List[str]
    players: List[PlayerStore] = Field(default_factory=list)
    created_at: int
    updated_at: int

    def get_player(self, address: Optional[str]) -> Optional[PlayerStore]:
        if not address:
            return None
        for p in self.players:
            if p.address == address:
                return p
        return None

    def word_for(self, round_no: int) -> str:
        if 0 <= round_no < len(self.words_list):
            return self.words_list[round_no]
        return ""


class DrawingRecord(BaseModel):
    word: str
    guess: str
    address: str
    image: str
    ts: int
