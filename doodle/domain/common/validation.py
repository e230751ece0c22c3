from __future__ import annotations

from typing import Optional
from doodle.store.models import GameStore, PlayerStore


def is_host(address: Optional[str], game: GameStore) -> bool:
    """Check if address is the game host."""
    return bool(address) and game.host_address == address


def is_finished(game: GameStore) -> bool:
    return game.status == "finished"


def is_valid_round(game: GameStore, round_no: int) -> bool:
    """Rounds are 0-based: 0 .. total_rounds - 1."""
    return 0 <= round_no < game.total_rounds


def is_last_round(game: GameStore, round_no: int) -> bool:
    return round_no >= game.total_rounds - 1


def can_submit(player: Optional[PlayerStore], game: GameStore) -> bool:
    """A player may submit only for the round the game is currently on."""
    if player is None or game.status != "active":
        return False
    if player.status == "classifying":
        return False
    return player.current_round == game.current_round
