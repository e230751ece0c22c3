from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from doodle.domain.common.roles import derive_role
from doodle.domain.common.types import Role
from doodle.store.models import GameStore, PlayerStore

logger = logging.getLogger(__name__)


class SessionState(BaseModel):
    """What one client knows: its identity, the cached game and its own player."""
    address: str
    role: Role = Role.SPECTATOR
    token: str = ""
    game: Optional[GameStore] = None
    player: Optional[PlayerStore] = None


class GameStateStore:
    """
    Single funnel for every update to a session's cached game/player.
    Snapshots are applied whole; applying the same one twice is a no-op.
    The state is mirrored to a JSON file so a restarted client resumes.
    """

    def __init__(self, address: str, path: Optional[Path] = None) -> None:
        self.path = path
        self._state = SessionState(address=address)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def game(self) -> Optional[GameStore]:
        return self._state.game

    @property
    def player(self) -> Optional[PlayerStore]:
        return self._state.player

    @property
    def role(self) -> Role:
        return self._state.role

    # ----------------------------
    # Local storage
    # ----------------------------
    def load(self, game_ref: Optional[str] = None) -> bool:
        """
        Restore from disk. With game_ref (game id or invite code), only a
        matching saved game is restored.
        """
        if self.path is None or not self.path.exists():
            return False
        try:
            saved = SessionState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError):
            logger.warning("ignoring unreadable client state at %s", self.path)
            return False
        if saved.address != self._state.address or saved.game is None:
            return False
        if game_ref and game_ref not in (saved.game.id, saved.game.invite_code):
            return False
        self._state = saved
        self._state.role = derive_role(saved.game, saved.address)
        self._state.player = saved.game.get_player(saved.address)
        return True

    def persist(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self._state.model_dump_json(), encoding="utf-8")

    # ----------------------------
    # Updates
    # ----------------------------
    def start(self, game: GameStore, token: str = "") -> Role:
        """Adopt a game for this session and fix the role for its lifetime."""
        self._state.game = game
        self._state.token = token
        self._state.role = derive_role(game, self._state.address)
        self._state.player = game.get_player(self._state.address)
        self.persist()
        return self._state.role

    def apply_game(self, game: GameStore) -> bool:
        """
        Apply a full game snapshot. Returns False when it belongs to another
        game or changes nothing.
        """
        current = self._state.game
        if current is None or current.id != game.id:
            return False
        if current == game:
            return False
        self._state.game = game
        # joining is the only way a session's role changes after start()
        if self._state.role is Role.SPECTATOR and game.get_player(self._state.address) is not None:
            self._state.role = Role.PLAYER
        self._state.player = game.get_player(self._state.address)
        self.persist()
        return True

    def apply_player(self, game_id: str, player: PlayerStore) -> bool:
        current = self._state.game
        if current is None or current.id != game_id:
            return False
        if player.address != self._state.address:
            return False
        if self._state.player == player:
            return False
        self._state.player = player
        self.persist()
        return True
