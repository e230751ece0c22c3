from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError
from redis.asyncio import Redis

from doodle.client.api import GameApi, HttpGameApi
from doodle.client.coordinator import RoundCoordinator
from doodle.client.gate import ClassificationGate, Verdict
from doodle.client.state import GameStateStore, SessionState
from doodle.domain.common.errors import NotFound
from doodle.domain.common.roles import derive_role
from doodle.domain.common.types import Role
from doodle.services.classifier import Classifier, OpenAIClassifier
from doodle.settings import Settings, get_settings
from doodle.store.archive import ArchiveStore
from doodle.store.models import GameStore
from doodle.transport.channels import RedisRelay, Relay, Subscription
from doodle.transport.protocols import (
    GAME_UPDATE,
    PLAYER_UPDATE,
    TOPICS,
    UPDATE_ROUND,
    BroadcastMessage,
    MsgGameUpdate,
    MsgPlayerUpdate,
    parse_message,
)

logger = logging.getLogger(__name__)

MessageHandler = Callable[[SessionState, Any], Awaitable[None]]


class GameSession:
    """
    One client session: owns the state store and the round coordinator,
    and is the only subscriber it registers on the relay. Handlers get the
    state as it is at dispatch time, never a copy taken at subscribe time.
    """

    def __init__(
        self,
        *,
        address: str,
        api: GameApi,
        relay: Relay,
        classifier: Classifier,
        archive: ArchiveStore,
        state_path: Optional[Path] = None,
        countdown_sec: int = 60,
        tick_sec: float = 1.0,
    ) -> None:
        self.api = api
        self.relay = relay
        self.store = GameStateStore(address, path=state_path)
        self.coordinator = RoundCoordinator(self.store, api, countdown_sec=countdown_sec, tick_sec=tick_sec)
        self.gate = ClassificationGate(self.store, api, self.coordinator, classifier, archive)
        self._handlers: Dict[str, List[MessageHandler]] = {t: [] for t in TOPICS}
        self._subs: List[Subscription] = []

        self.on(GAME_UPDATE, self._on_game_update)
        self.on(PLAYER_UPDATE, self._on_player_update)
        self.on(UPDATE_ROUND, self.coordinator.on_update_round)

    @property
    def role(self) -> Role:
        return self.store.role

    def on(self, topic: str, handler: MessageHandler) -> None:
        self._handlers[topic].append(handler)

    # ----------------------------
    # Lifecycle
    # ----------------------------
    async def open(self, game_ref: str, *, token: str = "", user_name: str = "") -> Role:
        """
        Resume from local storage when it holds this game, otherwise fetch it
        (game id) or join it (invite code). Subscribes to every topic.
        """
        if not self.store.load(game_ref):
            game = await self._fetch_or_join(game_ref, user_name)
            self.store.start(game, token=token)

        for topic in TOPICS:
            self._subs.append(await self.relay.subscribe(topic, self._make_dispatch(topic)))
        logger.info("session %s opened game %s as %s", self.store.state.address, self.store.game.id, self.role.value)
        return self.role

    async def _fetch_or_join(self, game_ref: str, user_name: str) -> GameStore:
        try:
            game = await self.api.get_game(game_ref)
        except NotFound:
            return await self.api.join_game(game_ref, user_name)
        if derive_role(game, self.api.address) is Role.SPECTATOR and game.status != "finished":
            game = await self.api.join_game(game.invite_code, user_name)
        return game

    async def close(self) -> None:
        for sub in self._subs:
            await self.relay.unsubscribe(sub)
        self._subs.clear()
        await self.coordinator.close()
        await self.gate.drain()

    # ----------------------------
    # Dispatch
    # ----------------------------
    def _make_dispatch(self, topic: str):
        async def _dispatch(payload: Dict[str, Any]) -> None:
            await self.dispatch(topic, payload)

        return _dispatch

    async def dispatch(self, topic: str, payload: Dict[str, Any]) -> None:
        try:
            msg: BroadcastMessage = parse_message(topic, payload)
        except ValidationError as e:
            logger.warning("bad %s payload: %s", topic, e)
            return
        for handler in list(self._handlers[topic]):
            await handler(self.store.state, msg)

    async def _on_game_update(self, state: SessionState, msg: MsgGameUpdate) -> None:
        self.store.apply_game(msg.game)

    async def _on_player_update(self, state: SessionState, msg: MsgPlayerUpdate) -> None:
        self.store.apply_player(msg.game_id, msg.player)

    # ----------------------------
    # Player actions
    # ----------------------------
    async def start_drawing(self) -> None:
        await self.gate.mark_drawing()

    async def submit(self, image: str) -> Verdict:
        return await self.gate.submit(image)


def build_session(address: str, *, base_url: str, settings: Optional[Settings] = None) -> GameSession:
    """
    Wire a networked client: HTTP for writes and archive, Redis pub/sub for
    broadcasts, OpenAI for classification, local state under STATE_DIR.
    """
    settings = settings or get_settings()
    api = HttpGameApi(base_url, address)
    return GameSession(
        address=address,
        api=api,
        relay=RedisRelay(Redis.from_url(settings.REDIS_URL, decode_responses=False)),
        classifier=OpenAIClassifier(
            settings.OPENAI_API_KEY,
            model=settings.CLASSIFIER_MODEL,
            timeout=settings.CLASSIFIER_TIMEOUT_SEC,
        ),
        archive=api,
        state_path=Path(settings.STATE_DIR) / f"{address}.json",
        countdown_sec=settings.ROUND_COUNTDOWN_SEC,
        tick_sec=settings.ROUND_TICK_SEC,
    )
