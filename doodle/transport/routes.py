from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from doodle.domain import games
from doodle.domain.common.errors import GameError, InvalidTransition, NotFound
from doodle.store.archive import RedisArchive
from doodle.transport.protocols import (
    InAdvanceRound,
    InCreateGame,
    InDrawing,
    InGameStatus,
    InJoinGame,
    InPlayerRound,
    InPlayerStatus,
    OutAdvanced,
    OutError,
    OutGame,
    OutResults,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])
archive_router = APIRouter(tags=["archive"])


def _error(status_code: int, e: Exception) -> JSONResponse:
    code = e.code if isinstance(e, GameError) else "INTERNAL"
    message = e.message if isinstance(e, GameError) else str(e)
    return JSONResponse(status_code=status_code, content=OutError(error=message, code=code).model_dump())


def _status_for(e: GameError) -> int:
    if isinstance(e, NotFound):
        return 404
    if isinstance(e, InvalidTransition):
        return 403
    return 500


@router.post("", status_code=201)
async def create_game(body: InCreateGame, request: Request):
    repo = request.app.state.repo
    try:
        game = await games.create_game(
            repo=repo, host_address=body.host_address, words_list=body.words_list, total_rounds=body.total_rounds
        )
    except GameError as e:
        return _error(_status_for(e), e)
    return OutGame(game=game).model_dump()


@router.post("/join")
async def join_game(body: InJoinGame, request: Request):
    state = request.app.state
    try:
        game = await games.join_game(
            repo=state.repo, relay=state.relay, invite_code=body.invite_code, address=body.address, user_name=body.user_name
        )
    except GameError as e:
        return _error(_status_for(e), e)
    return OutGame(game=game).model_dump()


@router.get("/{game_id}")
async def get_game(game_id: str, request: Request):
    try:
        game = await request.app.state.repo.find(game_id)
    except GameError as e:
        return _error(_status_for(e), e)
    if game is None:
        return _error(404, NotFound(f"Game {game_id} not found"))
    return OutGame(game=game).model_dump()


@router.patch("/{game_id}")
async def advance_round(game_id: str, body: InAdvanceRound, request: Request):
    """
    Authoritative round advance. 403 when the game is missing, finished or the
    round is out of range; 500 on anything else.
    """
    state = request.app.state
    try:
        game = await games.advance_round(
            repo=state.repo, relay=state.relay, game_id=game_id, new_round=body.new_round, address=body.address
        )
    except (NotFound, InvalidTransition) as e:
        return _error(403, e)
    except Exception as e:
        logger.exception("advance_round failed for game %s", game_id)
        return _error(500, e)
    return OutAdvanced(message=f"Updated current game round to {body.new_round}", game=game).model_dump()


@router.patch("/{game_id}/status")
async def update_game_status(game_id: str, body: InGameStatus, request: Request):
    state = request.app.state
    try:
        game = await games.update_game_status(
            repo=state.repo, relay=state.relay, game_id=game_id, status=body.status, address=body.address
        )
    except GameError as e:
        return _error(_status_for(e), e)
    return OutGame(game=game).model_dump()


@router.patch("/{game_id}/players/{address}/status")
async def update_player_status(game_id: str, address: str, body: InPlayerStatus, request: Request):
    state = request.app.state
    try:
        player = await games.update_player_status(
            repo=state.repo, relay=state.relay, game_id=game_id, address=address, status=body.status
        )
    except GameError as e:
        return _error(_status_for(e), e)
    return {"player": player.model_dump()}


@router.patch("/{game_id}/players/{address}/round")
async def update_player_round(game_id: str, address: str, body: InPlayerRound, request: Request):
    state = request.app.state
    try:
        game = await games.update_player_round(
            repo=state.repo, relay=state.relay, game_id=game_id, address=address, new_round=body.new_round, won=body.won
        )
    except GameError as e:
        return _error(_status_for(e), e)
    return OutGame(game=game).model_dump()


@router.post("/{game_id}/round-updates", status_code=202)
async def request_round_update(game_id: str, request: Request):
    state = request.app.state
    try:
        msg = await games.request_round_update(repo=state.repo, relay=state.relay, game_id=game_id)
    except GameError as e:
        return _error(_status_for(e), e)
    return msg.model_dump()


@router.get("/{game_id}/results")
async def results(game_id: str, request: Request):
    try:
        game = await request.app.state.repo.find(game_id)
    except GameError as e:
        return _error(_status_for(e), e)
    if game is None:
        return _error(404, NotFound(f"Game {game_id} not found"))
    return OutResults(game_id=game.id, status=game.status, results=games.leaderboard(game)).model_dump()


@archive_router.post("/drawings", status_code=202)
async def store_drawing(body: InDrawing, request: Request):
    try:
        await RedisArchive(request.app.state.repo).store(body.word, body.guess, body.address, body.image)
    except GameError as e:
        return _error(_status_for(e), e)
    return {"ok": True}
