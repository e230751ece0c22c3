from __future__ import annotations


class GameError(Exception):
    """Base for every failure scoped to a single game or player action."""

    code = "GAME_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFound(GameError):
    code = "NOT_FOUND"


class InvalidTransition(GameError):
    code = "INVALID_TRANSITION"


class ClassifierUnavailable(GameError):
    code = "CLASSIFIER_UNAVAILABLE"


class PersistenceFailure(GameError):
    code = "PERSISTENCE_FAILURE"


class SubmitRejected(GameError):
    code = "SUBMIT_REJECTED"
