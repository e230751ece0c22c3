from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

from doodle.client.api import GameApi
from doodle.client.state import GameStateStore, SessionState
from doodle.domain.common.errors import GameError
from doodle.domain.common.types import Role
from doodle.domain.common.validation import is_valid_round
from doodle.transport.protocols import MsgUpdateRound

logger = logging.getLogger(__name__)

DEFAULT_COUNTDOWN_SEC = 60

CountdownListener = Callable[[int], None]


class CoordinatorState(str, Enum):
    IDLE = "idle"
    COUNTING_DOWN = "counting_down"


class CountdownHandle:
    """
    Returned by start_countdown(). Cancelling it stops the tick loop and
    invalidates the deferred expiry action, which checks the flag right
    before it runs.
    """

    def __init__(self, round_no: int = 0) -> None:
        self.round_no = round_no
        self.cancelled = False
        self.task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        self.cancelled = True
        if self.task is not None and not self.task.done():
            self.task.cancel()

    async def wait(self) -> None:
        if self.task is None:
            return
        try:
            await self.task
        except asyncio.CancelledError:
            pass


class RoundCoordinator:
    """
    Per-client round-advance state machine.

    IDLE -> COUNTING_DOWN on an updateRound for the held game.
    COUNTING_DOWN -> IDLE when the countdown reaches zero; a host instance
    commits current_round + 1 first. A newer updateRound restarts the
    countdown (last message wins).
    """

    def __init__(
        self,
        store: GameStateStore,
        api: GameApi,
        *,
        countdown_sec: int = DEFAULT_COUNTDOWN_SEC,
        tick_sec: float = 1.0,
    ) -> None:
        self.store = store
        self.api = api
        self.countdown_sec = countdown_sec
        self.tick_sec = tick_sec
        self.phase = CoordinatorState.IDLE
        self.countdown = countdown_sec
        self._handle: Optional[CountdownHandle] = None
        self._listeners: List[CountdownListener] = []

    def add_listener(self, listener: CountdownListener) -> None:
        self._listeners.append(listener)

    def _emit(self) -> None:
        for fn in self._listeners:
            fn(self.countdown)

    @property
    def handle(self) -> Optional[CountdownHandle]:
        return self._handle

    # ----------------------------
    # Inbound
    # ----------------------------
    async def on_update_round(self, state: SessionState, msg: MsgUpdateRound) -> None:
        if state.game is None or state.game.id != msg.id:
            return
        if msg.round_no < state.game.current_round:
            logger.info("game %s: ignoring stale updateRound for round %d", msg.id, msg.round_no)
            return
        logger.info("moving to the next round in %ds (game %s)", self.countdown_sec, msg.id)
        self.start_countdown(msg.round_no)

    def start_countdown(self, round_no: Optional[int] = None) -> CountdownHandle:
        """Count down from the start value; round_no is the round being closed."""
        if self._handle is not None:
            self._handle.cancel()

        if round_no is None:
            game = self.store.game
            round_no = game.current_round if game is not None else 0
        handle = CountdownHandle(round_no)
        self._handle = handle
        self.phase = CoordinatorState.COUNTING_DOWN
        self.countdown = self.countdown_sec
        self._emit()
        handle.task = asyncio.create_task(self._run(handle))
        return handle

    async def _run(self, handle: CountdownHandle) -> None:
        while self.countdown > 0:
            await asyncio.sleep(self.tick_sec)
            if handle.cancelled:
                return
            self.countdown -= 1
            self._emit()

        if handle.cancelled:
            return
        await self._expire(handle)

    async def _expire(self, handle: CountdownHandle) -> None:
        try:
            if self.store.role is Role.HOST:
                await self._commit_advance(handle.round_no)
        finally:
            if self._handle is handle:
                self._handle = None
                self.phase = CoordinatorState.IDLE
                self.countdown = self.countdown_sec
                self._emit()

    async def _commit_advance(self, round_no: int) -> None:
        game = self.store.game
        if game is None:
            return
        # at-most-once per round: a redelivered updateRound must not skip one
        if game.current_round != round_no:
            logger.info("game %s: round %d already closed, not advancing", game.id, round_no)
            return
        new_round = game.current_round + 1
        if not is_valid_round(game, new_round):
            logger.warning("game %s: round %d is past the last round, not advancing", game.id, new_round)
            return
        try:
            updated = await self.api.advance_round(game.id, new_round)
        except GameError as e:
            logger.warning("game %s: round advance rejected: %s", game.id, e.message)
            return
        self.store.apply_game(updated)

    # ----------------------------
    # Outbound
    # ----------------------------
    async def request_advance(self) -> None:
        """Ask every client (this one included) to start the next-round countdown."""
        game = self.store.game
        if game is None or self.store.role is Role.SPECTATOR:
            return
        await self.api.request_round_update(game.id)

    async def close(self) -> None:
        if self._handle is not None:
            handle = self._handle
            handle.cancel()
            await handle.wait()
            self._handle = None
        self.phase = CoordinatorState.IDLE
        self.countdown = self.countdown_sec
