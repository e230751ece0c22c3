from __future__ import annotations

from doodle.domain.common.types import GameStatus, PlayerStatus


def can_transition_to(current: GameStatus, target: GameStatus) -> bool:
    """
    Validate game status transitions. Status never moves backwards.
    """
    transitions: dict[GameStatus, list[GameStatus]] = {
        "lobby": ["active", "finished"],
        "active": ["finished"],
        "finished": [],
    }
    return target in transitions.get(current, [])


def can_transition_player(current: PlayerStatus, target: PlayerStatus) -> bool:
    """
    Validate per-player status transitions (one submission per cycle).
    """
    transitions: dict[PlayerStatus, list[PlayerStatus]] = {
        "waiting": ["drawing", "classifying", "waiting"],
        "drawing": ["classifying", "waiting"],
        "classifying": ["waiting"],
    }
    return target in transitions.get(current, [])
