from doodle.client.state import GameStateStore
from doodle.domain.common.types import Role
from doodle.store.models import GameStore, PlayerStore


def _game(**kw):
    base = dict(
        id="g1",
        invite_code="ABC123",
        host_address="host",
        status="active",
        current_round=0,
        total_rounds=2,
        words_list=["cat", "dog"],
        players=[PlayerStore(address="p1", user_name="P1")],
        created_at=0,
        updated_at=0,
    )
    base.update(kw)
    return GameStore(**base)


def test_start_fixes_role():
    store = GameStateStore("p1")
    assert store.start(_game()) is Role.PLAYER
    assert store.player.address == "p1"

    host = GameStateStore("host")
    assert host.start(_game()) is Role.HOST
    assert host.player is None


def test_same_snapshot_twice_is_noop():
    store = GameStateStore("p1")
    store.start(_game())

    snap = _game(current_round=1)
    assert store.apply_game(snap) is True
    before = store.state.model_copy(deep=True)

    assert store.apply_game(snap.model_copy(deep=True)) is False
    assert store.state == before


def test_other_game_snapshot_ignored():
    store = GameStateStore("p1")
    store.start(_game())
    assert store.apply_game(_game(id="g2", current_round=1)) is False
    assert store.game.current_round == 0


def test_player_update_only_for_self():
    store = GameStateStore("p1")
    store.start(_game())

    assert store.apply_player("g1", PlayerStore(address="p2", user_name="P2", status="drawing")) is False
    assert store.apply_player("g1", PlayerStore(address="p1", user_name="P1", status="drawing")) is True
    assert store.player.status == "drawing"
    assert store.apply_player("g1", PlayerStore(address="p1", user_name="P1", status="drawing")) is False


def test_spectator_becomes_player_after_join_snapshot():
    store = GameStateStore("p2")
    assert store.start(_game()) is Role.SPECTATOR

    joined = _game(players=[PlayerStore(address="p1", user_name="P1"), PlayerStore(address="p2", user_name="P2")])
    store.apply_game(joined)
    assert store.role is Role.PLAYER


def test_persist_and_resume(tmp_path):
    path = tmp_path / "state.json"
    store = GameStateStore("p1", path=path)
    store.start(_game(), token="tok")
    store.apply_game(_game(current_round=1))

    resumed = GameStateStore("p1", path=path)
    assert resumed.load("ABC123") is True
    assert resumed.game.current_round == 1
    assert resumed.state.token == "tok"
    assert resumed.role is Role.PLAYER

    assert GameStateStore("p1", path=path).load("other") is False
    assert GameStateStore("p9", path=path).load() is False


def test_load_ignores_garbage(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    assert GameStateStore("p1", path=path).load() is False
