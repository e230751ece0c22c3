from fastapi.testclient import TestClient

from doodle.main import create_app
from doodle.store.models import GameStore, PlayerStore
from doodle.transport.channels import InMemoryRelay


class FakeRepo:
    def __init__(self, *seed):
        self.games = {g.id: g.model_copy(deep=True) for g in seed}
        self.drawings = []

    async def find(self, game_id):
        g = self.games.get(game_id)
        return g.model_copy(deep=True) if g else None

    async def find_by_invite(self, invite_code):
        for g in self.games.values():
            if g.invite_code == invite_code.upper():
                return g.model_copy(deep=True)
        return None

    async def invite_exists(self, invite_code):
        return await self.find_by_invite(invite_code) is not None

    async def save(self, game):
        self.games[game.id] = game.model_copy(deep=True)
        return game

    async def archive_drawing(self, record):
        self.drawings.append(record)


def _game(**kw):
    base = dict(
        id="g1",
        invite_code="ABC123",
        host_address="host",
        status="active",
        current_round=0,
        total_rounds=3,
        words_list=["cat", "dog", "sun"],
        players=[PlayerStore(address="p1", user_name="P1")],
        created_at=0,
        updated_at=0,
    )
    base.update(kw)
    return GameStore(**base)


def _client(repo, relay):
    return TestClient(create_app(repo=repo, relay=relay))


def test_patch_finished_game_is_forbidden():
    repo = FakeRepo(_game(status="finished", current_round=2))
    relay = InMemoryRelay()

    with _client(repo, relay) as client:
        resp = client.patch("/games/g1", json={"id": "g1", "newRound": 5})

    assert resp.status_code == 403
    assert "error" in resp.json()
    assert repo.games["g1"].current_round == 2
    assert relay.published == []


def test_patch_unknown_game_is_forbidden():
    with _client(FakeRepo(), InMemoryRelay()) as client:
        resp = client.patch("/games/missing", json={"newRound": 1})
    assert resp.status_code == 403


def test_patch_advances_round():
    repo = FakeRepo(_game())
    relay = InMemoryRelay()

    with _client(repo, relay) as client:
        resp = client.patch("/games/g1", json={"newRound": 1})

    assert resp.status_code == 200
    body = resp.json()
    assert body["game"]["current_round"] == 1
    assert "message" in body
    assert [t for t, _ in relay.published] == ["gameUpdate"]


def test_patch_store_failure_is_500():
    class BrokenRepo(FakeRepo):
        async def save(self, game):
            raise RuntimeError("disk on fire")

    with _client(BrokenRepo(_game()), InMemoryRelay()) as client:
        resp = client.patch("/games/g1", json={"newRound": 1})
    assert resp.status_code == 500


def test_create_join_and_results():
    repo = FakeRepo()
    relay = InMemoryRelay()

    with _client(repo, relay) as client:
        resp = client.post("/games", json={"host_address": "host", "words_list": ["cat", "dog"], "total_rounds": 2})
        assert resp.status_code == 201
        game = resp.json()["game"]

        resp = client.post("/games/join", json={"invite_code": game["invite_code"], "address": "p1", "user_name": "P1"})
        assert resp.status_code == 200

        resp = client.patch(f"/games/{game['id']}/status", json={"status": "active", "address": "host"})
        assert resp.json()["game"]["status"] == "active"

        resp = client.patch(f"/games/{game['id']}/players/p1/round", json={"newRound": 1, "won": True})
        assert resp.status_code == 200

        resp = client.get(f"/games/{game['id']}/results")
        assert resp.json()["results"][0] == {"address": "p1", "user_name": "P1", "total_points": 3}

        assert client.get("/games/nope").status_code == 404


def test_join_unknown_invite_is_404():
    with _client(FakeRepo(), InMemoryRelay()) as client:
        resp = client.post("/games/join", json={"invite_code": "ZZZ999", "address": "p1"})
    assert resp.status_code == 404


def test_round_update_request_and_archive():
    repo = FakeRepo(_game())
    relay = InMemoryRelay()

    with _client(repo, relay) as client:
        resp = client.post("/games/g1/round-updates")
        assert resp.status_code == 202
        resp = client.post("/drawings", json={"word": "cat", "guess": "dog", "address": "p1", "image": "data:x"})
        assert resp.status_code == 202

    assert relay.published[-1][0] == "updateRound"
    assert repo.drawings[0].guess == "dog"


def test_health_without_redis():
    with _client(FakeRepo(), InMemoryRelay()) as client:
        assert client.get("/health").json() == {"ok": True, "redis": "disabled"}
