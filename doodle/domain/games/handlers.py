from __future__ import annotations

import logging
import random
import string
import uuid
from typing import List, Optional

from doodle.domain.common.errors import InvalidTransition, NotFound
from doodle.domain.common.fsm import can_transition_player, can_transition_to
from doodle.domain.common.types import GameStatus, PlayerStatus
from doodle.domain.common.validation import is_finished, is_host, is_valid_round
from doodle.store.models import GameStore, PlayerStore, RoundScore
from doodle.transport.channels import Relay
from doodle.transport.protocols import (
    GAME_UPDATE,
    PLAYER_UPDATE,
    UPDATE_ROUND,
    MsgGameUpdate,
    MsgPlayerUpdate,
    MsgUpdateRound,
)
from doodle.util.timeutil import now_ts

logger = logging.getLogger(__name__)

FIRST_FINISH_POINTS = 3
FINISH_POINTS = 1


def _gen_invite_code(n: int = 6) -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(random.choice(alphabet) for _ in range(n))


async def _load(repo, game_id: str) -> GameStore:
    game = await repo.find(game_id)
    if game is None:
        raise NotFound(f"Game {game_id} not found")
    return game


def _ensure_open(game: GameStore) -> None:
    if is_finished(game):
        raise InvalidTransition(f"Game {game.id} has finished")


def _completed_all(game: GameStore, address: str) -> bool:
    # a player who closed the last round may end the game from their client
    player = game.get_player(address)
    return player is not None and player.current_round >= game.total_rounds


async def _commit(repo, relay: Relay, game: GameStore) -> GameStore:
    game.updated_at = now_ts()
    saved = await repo.save(game)
    await relay.publish(GAME_UPDATE, MsgGameUpdate(game=saved).model_dump())
    return saved


# -------------------------
# Operations
# -------------------------

async def create_game(*, repo, host_address: str, words_list: List[str], total_rounds: int) -> GameStore:
    words = [w.strip() for w in words_list if w and w.strip()]
    if total_rounds < 1:
        raise InvalidTransition("total_rounds must be at least 1")
    if len(words) < total_rounds:
        raise InvalidTransition(f"Need {total_rounds} words, got {len(words)}")

    code = _gen_invite_code()
    for _ in range(5):
        if not await repo.invite_exists(code):
            break
        code = _gen_invite_code()

    ts = now_ts()
    game = GameStore(
        id=uuid.uuid4().hex,
        invite_code=code,
        host_address=host_address,
        status="lobby",
        current_round=0,
        total_rounds=total_rounds,
        words_list=words,
        players=[],
        created_at=ts,
        updated_at=ts,
    )
    await repo.save(game)
    logger.info("game %s created by %s (%d rounds)", game.id, host_address, total_rounds)
    return game


async def join_game(*, repo, relay: Relay, invite_code: str, address: str, user_name: str = "") -> GameStore:
    game = await repo.find_by_invite(invite_code)
    if game is None:
        raise NotFound(f"No game for invite code {invite_code}")
    _ensure_open(game)

    if game.get_player(address) is not None:
        return game

    game.players.append(
        PlayerStore(
            address=address,
            user_name=user_name or address[:8],
            current_round=game.current_round,
            status="waiting",
            joined_at=now_ts(),
        )
    )
    return await _commit(repo, relay, game)


async def update_game_status(*, repo, relay: Relay, game_id: str, status: GameStatus, address: str) -> GameStore:
    game = await _load(repo, game_id)
    _ensure_open(game)
    if not is_host(address, game) and not (status == "finished" and _completed_all(game, address)):
        raise InvalidTransition("Only the host can change game status")
    if not can_transition_to(game.status, status):
        raise InvalidTransition(f"Cannot move game from {game.status} to {status}")

    game.status = status
    logger.info("game %s -> %s", game.id, status)
    return await _commit(repo, relay, game)


async def advance_round(*, repo, relay: Relay, game_id: str, new_round: int, address: Optional[str] = None) -> GameStore:
    """
    Authoritative round commit. Read-modify-write on the full document,
    no compare-and-swap: concurrent writers race and the last save wins.
    """
    game = await _load(repo, game_id)
    _ensure_open(game)
    if address is not None and not is_host(address, game):
        raise InvalidTransition("Only the host can advance rounds")
    if not is_valid_round(game, new_round):
        raise InvalidTransition(f"Round {new_round} is outside 0..{game.total_rounds - 1}")

    game.current_round = new_round
    logger.info("game %s advanced to round %d", game.id, new_round)
    return await _commit(repo, relay, game)


async def update_player_status(*, repo, relay: Relay, game_id: str, address: str, status: PlayerStatus) -> PlayerStore:
    game = await _load(repo, game_id)
    _ensure_open(game)
    player = game.get_player(address)
    if player is None:
        raise NotFound(f"Player {address} not in game {game_id}")
    if not can_transition_player(player.status, status):
        raise InvalidTransition(f"Cannot move player from {player.status} to {status}")

    player.status = status
    game.updated_at = now_ts()
    await repo.save(game)
    await relay.publish(PLAYER_UPDATE, MsgPlayerUpdate(game_id=game.id, player=player).model_dump())
    return player


async def update_player_round(
    *,
    repo,
    relay: Relay,
    game_id: str,
    address: str,
    new_round: int,
    won: bool,
) -> GameStore:
    """
    Close the player's current round and move their pointer to new_round.
    First finisher of a round scores FIRST_FINISH_POINTS, later ones FINISH_POINTS.
    """
    game = await _load(repo, game_id)
    _ensure_open(game)
    player = game.get_player(address)
    if player is None:
        raise NotFound(f"Player {address} not in game {game_id}")
    if new_round != player.current_round + 1:
        raise InvalidTransition(f"Player round must move by one, got {player.current_round} -> {new_round}")

    completed = player.current_round
    points = 0
    if won:
        already = any(
            r.round == completed and r.points > 0
            for p in game.players
            if p.address != address
            for r in p.rounds
        )
        points = FINISH_POINTS if already else FIRST_FINISH_POINTS

    player.rounds.append(RoundScore(round=completed, points=points))
    player.current_round = new_round
    player.status = "waiting"
    return await _commit(repo, relay, game)


async def request_round_update(*, repo, relay: Relay, game_id: str) -> MsgUpdateRound:
    game = await _load(repo, game_id)
    _ensure_open(game)
    msg = MsgUpdateRound(id=game.id, round_no=game.current_round)
    await relay.publish(UPDATE_ROUND, msg.model_dump())
    return msg
