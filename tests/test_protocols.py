import pytest
from pydantic import ValidationError

from doodle.transport.protocols import (
    InAdvanceRound,
    MsgGameUpdate,
    MsgUpdateRound,
    message_game_id,
    parse_message,
)


GAME = {
    "id": "g1",
    "invite_code": "ABC123",
    "host_address": "host",
    "status": "lobby",
    "current_round": 0,
    "total_rounds": 2,
    "words_list": ["cat", "dog"],
    "players": [],
    "created_at": 0,
    "updated_at": 0,
}


def test_parse_game_update():
    msg = parse_message("gameUpdate", {"type": "gameUpdate", "game": GAME})
    assert isinstance(msg, MsgGameUpdate)
    assert msg.game.invite_code == "ABC123"
    assert message_game_id(msg) == "g1"


def test_parse_update_round_needs_id():
    msg = parse_message("updateRound", {"type": "updateRound", "id": "g1"})
    assert isinstance(msg, MsgUpdateRound)
    assert message_game_id(msg) == "g1"

    with pytest.raises(ValidationError):
        parse_message("updateRound", {"type": "updateRound"})


def test_parse_player_update_game_id():
    msg = parse_message(
        "playerUpdate",
        {"type": "playerUpdate", "game_id": "g1", "player": {"address": "p1", "user_name": "P1"}},
    )
    assert message_game_id(msg) == "g1"
    assert msg.player.status == "waiting"


def test_parse_unknown_topic():
    with pytest.raises(ValueError):
        parse_message("chat", {"type": "chat"})


def test_advance_body_accepts_camel_case():
    body = InAdvanceRound.model_validate({"id": "g1", "newRound": 5})
    assert body.new_round == 5
    assert body.address is None

    body = InAdvanceRound.model_validate({"new_round": 2, "address": "host"})
    assert body.new_round == 2
