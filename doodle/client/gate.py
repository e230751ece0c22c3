from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal, Optional, Set

from doodle.client.api import GameApi
from doodle.client.coordinator import RoundCoordinator
from doodle.client.state import GameStateStore
from doodle.domain.common.errors import ClassifierUnavailable, GameError, SubmitRejected
from doodle.domain.common.types import Role
from doodle.domain.common.validation import can_submit, is_last_round
from doodle.services.classifier import Classifier
from doodle.store.archive import ArchiveStore

logger = logging.getLogger(__name__)

Outcome = Literal["matched", "try_again", "unavailable"]


@dataclass
class Verdict:
    outcome: Outcome
    word: str
    guess: Optional[str] = None
    finished: bool = False

    @property
    def matched(self) -> bool:
        return self.outcome == "matched"


def guess_matches(guess: Optional[str], word: Optional[str]) -> bool:
    """Exact match, ignoring case only."""
    if not guess or not word:
        return False
    return guess.casefold() == word.casefold()


class ClassificationGate:
    """
    Turns one submitted drawing into at most one round transition for the
    session's player.
    """

    def __init__(
        self,
        store: GameStateStore,
        api: GameApi,
        coordinator: RoundCoordinator,
        classifier: Classifier,
        archive: ArchiveStore,
    ) -> None:
        self.store = store
        self.api = api
        self.coordinator = coordinator
        self.classifier = classifier
        self.archive = archive
        self._archive_tasks: Set[asyncio.Task] = set()

    async def mark_drawing(self) -> None:
        """First stroke of the round: waiting -> drawing, once."""
        game, player = self.store.game, self.store.player
        if game is None or player is None or player.status != "waiting":
            return
        if not can_submit(player, game):
            return
        updated = await self.api.update_player_status(game.id, "drawing")
        self.store.apply_player(game.id, updated)

    async def submit(self, image: str) -> Verdict:
        game, player = self.store.game, self.store.player
        if self.store.role is not Role.PLAYER or game is None or player is None:
            raise SubmitRejected("Only players can submit drawings")
        if not can_submit(player, game):
            raise SubmitRejected(
                f"Cannot submit: player round {player.current_round}, game round {game.current_round}, "
                f"status {player.status}"
            )

        round_no = player.current_round
        word = game.word_for(round_no)
        updated = await self.api.update_player_status(game.id, "classifying")
        self.store.apply_player(game.id, updated)

        committed = False
        try:
            try:
                guess = await self.classifier.classify(image)
            except ClassifierUnavailable as e:
                logger.warning("classification failed for %s: %s", player.address, e.message)
                guess = None

            if not guess:
                logger.warning("no classification result for %s in game %s", player.address, game.id)
                await self._back_to_waiting(game.id)
                return Verdict(outcome="unavailable", word=word)

            self._archive(word, guess, player.address, image)

            if not guess_matches(guess, word):
                await self._back_to_waiting(game.id)
                return Verdict(outcome="try_again", word=word, guess=guess)

            # the round commit also moves the player back to waiting
            updated_game = await self.api.update_player_round(game.id, round_no + 1, won=True)
            committed = True
            self.store.apply_game(updated_game)

            if is_last_round(game, round_no):
                finished = await self.api.update_game_status(game.id, "finished")
                self.store.apply_game(finished)
                return Verdict(outcome="matched", word=word, guess=guess, finished=True)

            await self.coordinator.request_advance()
            return Verdict(outcome="matched", word=word, guess=guess)
        except Exception:
            if not committed:
                await self._recover(game.id)
            raise

    async def _back_to_waiting(self, game_id: str) -> None:
        updated = await self.api.update_player_status(game_id, "waiting")
        self.store.apply_player(game_id, updated)

    async def _recover(self, game_id: str) -> None:
        """Leave the player able to resubmit after a failed attempt."""
        try:
            await self._back_to_waiting(game_id)
        except GameError as e:
            logger.warning("could not reset %s to waiting in game %s: %s", self.store.state.address, game_id, e.message)
            player = self.store.player
            if player is not None:
                self.store.apply_player(game_id, player.model_copy(update={"status": "waiting"}))

    def _archive(self, word: str, guess: str, address: str, image: str) -> None:
        task = asyncio.create_task(self._store(word, guess, address, image))
        self._archive_tasks.add(task)
        task.add_done_callback(self._archive_tasks.discard)

    async def _store(self, word: str, guess: str, address: str, image: str) -> None:
        try:
            await self.archive.store(word, guess, address, image)
        except Exception:
            logger.exception("archiving drawing for %s failed", address)

    async def drain(self) -> None:
        """Wait for pending archive writes (shutdown, tests)."""
        if self._archive_tasks:
            await asyncio.gather(*list(self._archive_tasks))
