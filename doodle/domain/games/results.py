from __future__ import annotations

from typing import List

from doodle.store.models import GameStore
from doodle.transport.protocols import OutResultRow


def leaderboard(game: GameStore) -> List[OutResultRow]:
    """Players by total points, highest first; ties keep join order."""
    rows = [
        OutResultRow(address=p.address, user_name=p.user_name, total_points=p.total_points())
        for p in game.players
    ]
    return sorted(rows, key=lambda r: r.total_points, reverse=True)
