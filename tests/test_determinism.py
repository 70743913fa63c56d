from geocoins.content.config import GameConfig
from geocoins.sim.core import GameSession
from geocoins.sim.hash import session_hash, world_hash


def _walk(session: GameSession) -> None:
    session.start()
    for direction in ["north", "north", "east", "east", "south"]:
        session.step(direction)
        session.collect(session.player_coord)
    session.set_player_position(0.0042, -0.0017)
    session.deposit(session.player_coord)


def test_same_walk_produces_identical_hashes() -> None:
    session_a = GameSession(config=GameConfig(visibility_radius=2, spawn_probability=0.4))
    session_b = GameSession(config=GameConfig(visibility_radius=2, spawn_probability=0.4))

    _walk(session_a)
    _walk(session_b)

    assert world_hash(session_a.store) == world_hash(session_b.store)
    assert session_hash(session_a) == session_hash(session_b)


def test_world_hash_changes_after_a_transfer() -> None:
    session = GameSession(config=GameConfig(visibility_radius=1, spawn_probability=1.0))
    session.start()
    before = world_hash(session.store)

    session.collect(session.player_coord)

    assert world_hash(session.store) != before


def test_spawn_probability_changes_world_contents() -> None:
    sparse = GameSession(config=GameConfig(visibility_radius=3, spawn_probability=0.0))
    dense = GameSession(config=GameConfig(visibility_radius=3, spawn_probability=1.0))
    sparse.start()
    dense.start()

    assert sparse.store.total_item_count() == 0
    assert dense.store.total_item_count() >= 49
    assert world_hash(sparse.store) != world_hash(dense.store)
