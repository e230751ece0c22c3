import httpx
import pytest

from doodle.client.api import HttpGameApi
from doodle.client.session import build_session
from doodle.domain.common.errors import InvalidTransition, NotFound, PersistenceFailure
from doodle.settings import Settings

GAME = {
    "id": "g1",
    "invite_code": "ABC123",
    "host_address": "host",
    "status": "active",
    "current_round": 1,
    "total_rounds": 3,
    "words_list": ["cat", "dog", "sun"],
    "players": [],
    "created_at": 0,
    "updated_at": 0,
}


def _api(handler):
    client = httpx.AsyncClient(base_url="http://test", transport=httpx.MockTransport(handler))
    return HttpGameApi("http://test", "host", client=client)


@pytest.mark.asyncio
async def test_advance_sends_new_round_and_address():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json={"message": "ok", "game": GAME})

    api = _api(handler)
    game = await api.advance_round("g1", 1)
    await api.aclose()

    assert game.current_round == 1
    assert seen["method"] == "PATCH"
    assert seen["path"] == "/games/g1"
    assert b'"newRound":1' in seen["body"].replace(b" ", b"")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,exc",
    [(403, InvalidTransition), (404, NotFound), (500, PersistenceFailure)],
)
async def test_status_codes_map_to_errors(status, exc):
    api = _api(lambda request: httpx.Response(status, json={"error": "nope"}))
    with pytest.raises(exc):
        await api.advance_round("g1", 5)
    await api.aclose()


@pytest.mark.asyncio
async def test_transport_error_is_persistence_failure():
    def handler(request):
        raise httpx.ConnectError("refused")

    api = _api(handler)
    with pytest.raises(PersistenceFailure):
        await api.request_round_update("g1")
    await api.aclose()


def test_build_session_uses_settings(tmp_path):
    settings = Settings(
        OPENAI_API_KEY="test",
        STATE_DIR=str(tmp_path),
        ROUND_COUNTDOWN_SEC=15,
        ROUND_TICK_SEC=0.5,
    )
    session = build_session("p1", base_url="http://test", settings=settings)

    assert session.coordinator.countdown_sec == 15
    assert session.coordinator.tick_sec == 0.5
    assert session.store.path == tmp_path / "p1.json"
    assert session.gate.archive is session.api
