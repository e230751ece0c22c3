from __future__ import annotations

from typing import Optional

from doodle.domain.common.types import Role
from doodle.store.models import GameStore


def derive_role(game: Optional[GameStore], address: Optional[str]) -> Role:
    """
    Compute a session's role once, from the game it loaded.
    Host wins over player if the host also joined as a player.
    """
    if game is None or not address:
        return Role.SPECTATOR
    if game.host_address == address:
        return Role.HOST
    if game.get_player(address) is not None:
        return Role.PLAYER
    return Role.SPECTATOR
