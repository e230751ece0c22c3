from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import httpx

from doodle.domain import games
from doodle.domain.common.errors import InvalidTransition, NotFound, PersistenceFailure
from doodle.domain.common.types import GameStatus, PlayerStatus
from doodle.store.archive import RedisArchive
from doodle.store.models import GameStore, PlayerStore
from doodle.transport.channels import Relay


class GameApi(Protocol):
    """
    Write path as seen from one client session. Every call acts as `address`.
    """

    address: str

    async def get_game(self, game_id: str) -> GameStore: ...

    async def join_game(self, invite_code: str, user_name: str = "") -> GameStore: ...

    async def advance_round(self, game_id: str, new_round: int) -> GameStore: ...

    async def update_game_status(self, game_id: str, status: GameStatus) -> GameStore: ...

    async def update_player_status(self, game_id: str, status: PlayerStatus) -> PlayerStore: ...

    async def update_player_round(self, game_id: str, new_round: int, won: bool) -> GameStore: ...

    async def request_round_update(self, game_id: str) -> None: ...

    async def store(self, word: str, guess: str, address: str, image: str) -> None: ...


class LocalGameApi:
    """Calls the game service in-process. Used by bots, tests and single-process play."""

    def __init__(self, *, repo, relay: Relay, address: str) -> None:
        self.repo = repo
        self.relay = relay
        self.address = address
        self._archive = RedisArchive(repo)

    async def get_game(self, game_id: str) -> GameStore:
        game = await self.repo.find(game_id)
        if game is None:
            raise NotFound(f"Game {game_id} not found")
        return game

    async def join_game(self, invite_code: str, user_name: str = "") -> GameStore:
        return await games.join_game(
            repo=self.repo, relay=self.relay, invite_code=invite_code, address=self.address, user_name=user_name
        )

    async def advance_round(self, game_id: str, new_round: int) -> GameStore:
        return await games.advance_round(
            repo=self.repo, relay=self.relay, game_id=game_id, new_round=new_round, address=self.address
        )

    async def update_game_status(self, game_id: str, status: GameStatus) -> GameStore:
        return await games.update_game_status(
            repo=self.repo, relay=self.relay, game_id=game_id, status=status, address=self.address
        )

    async def update_player_status(self, game_id: str, status: PlayerStatus) -> PlayerStore:
        return await games.update_player_status(
            repo=self.repo, relay=self.relay, game_id=game_id, address=self.address, status=status
        )

    async def update_player_round(self, game_id: str, new_round: int, won: bool) -> GameStore:
        return await games.update_player_round(
            repo=self.repo, relay=self.relay, game_id=game_id, address=self.address, new_round=new_round, won=won
        )

    async def request_round_update(self, game_id: str) -> None:
        await games.request_round_update(repo=self.repo, relay=self.relay, game_id=game_id)

    async def store(self, word: str, guess: str, address: str, image: str) -> None:
        await self._archive.store(word, guess, address, image)


class HttpGameApi:
    """Same operations over the HTTP surface in doodle.transport.routes."""

    def __init__(self, base_url: str, address: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self.address = address
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=10.0)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _call(self, method: str, url: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = await self.client.request(method, url, json=body)
        except httpx.HTTPError as e:
            raise PersistenceFailure(f"{method} {url}: {e}") from e

        data: Dict[str, Any] = {}
        if resp.content:
            try:
                data = resp.json()
            except ValueError:
                data = {}
        if resp.status_code == 404:
            raise NotFound(data.get("error", "Not found"))
        if resp.status_code in (400, 403, 422):
            raise InvalidTransition(data.get("error", f"Rejected ({resp.status_code})"))
        if resp.status_code >= 400:
            raise PersistenceFailure(data.get("error", f"Server error ({resp.status_code})"))
        return data

    async def get_game(self, game_id: str) -> GameStore:
        data = await self._call("GET", f"/games/{game_id}")
        return GameStore.model_validate(data["game"])

    async def join_game(self, invite_code: str, user_name: str = "") -> GameStore:
        data = await self._call(
            "POST", "/games/join", {"invite_code": invite_code, "address": self.address, "user_name": user_name}
        )
        return GameStore.model_validate(data["game"])

    async def advance_round(self, game_id: str, new_round: int) -> GameStore:
        data = await self._call("PATCH", f"/games/{game_id}", {"newRound": new_round, "address": self.address})
        return GameStore.model_validate(data["game"])

    async def update_game_status(self, game_id: str, status: GameStatus) -> GameStore:
        data = await self._call("PATCH", f"/games/{game_id}/status", {"status": status, "address": self.address})
        return GameStore.model_validate(data["game"])

    async def update_player_status(self, game_id: str, status: PlayerStatus) -> PlayerStore:
        data = await self._call("PATCH", f"/games/{game_id}/players/{self.address}/status", {"status": status})
        return PlayerStore.model_validate(data["player"])

    async def update_player_round(self, game_id: str, new_round: int, won: bool) -> GameStore:
        data = await self._call(
            "PATCH", f"/games/{game_id}/players/{self.address}/round", {"newRound": new_round, "won": won}
        )
        return GameStore.model_validate(data["game"])

    async def request_round_update(self, game_id: str) -> None:
        await self._call("POST", f"/games/{game_id}/round-updates")

    async def store(self, word: str, guess: str, address: str, image: str) -> None:
        await self._call("POST", "/drawings", {"word": word, "guess": guess, "address": address, "image": image})
