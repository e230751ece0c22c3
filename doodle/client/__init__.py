from __future__ import annotations

from .api import GameApi, HttpGameApi, LocalGameApi
from .coordinator import CountdownHandle, CoordinatorState, RoundCoordinator
from .gate import ClassificationGate, Verdict, guess_matches
from .session import GameSession, build_session
from .state import GameStateStore, SessionState

__all__ = [
    "GameApi",
    "HttpGameApi",
    "LocalGameApi",
    "CountdownHandle",
    "CoordinatorState",
    "RoundCoordinator",
    "ClassificationGate",
    "Verdict",
    "guess_matches",
    "GameSession",
    "build_session",
    "GameStateStore",
    "SessionState",
]
