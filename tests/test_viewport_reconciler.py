import pytest

from geocoins.sim.memento import MementoCache
from geocoins.sim.spawn import SpawnPolicy
from geocoins.sim.viewport import TileRenderer, ViewportReconciler, resolve_cell, visible_coords
from geocoins.sim.world import Cell, CellStore, GridCoord


class RecordingRenderer(TileRenderer):
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.tiles: set[str] = set()

    def materialize(self, coord: GridCoord, cell: Cell) -> None:
        self.calls.append(("materialize", coord.key))
        self.tiles.add(coord.key)

    def dematerialize(self, coord: GridCoord) -> None:
        self.calls.append(("dematerialize", coord.key))
        self.tiles.discard(coord.key)


def _make_reconciler(
    radius: int = 2,
    *,
    probability: float = 0.1,
    policy: str = "latest",
    max_resident_cells: int | None = None,
) -> tuple[ViewportReconciler, RecordingRenderer]:
    renderer = RecordingRenderer()
    reconciler = ViewportReconciler(
        store=CellStore(),
        memento=MementoCache(policy=policy),
        spawn_policy=SpawnPolicy(spawn_probability=probability, max_items=10),
        radius=radius,
        renderer=renderer,
        max_resident_cells=max_resident_cells,
    )
    return reconciler, renderer


def _window_keys(center: GridCoord, radius: int) -> set[str]:
    return {
        GridCoord(i, j).key
        for i in range(center.i - radius, center.i + radius + 1)
        for j in range(center.j - radius, center.j + radius + 1)
    }


def test_visible_coords_cover_the_chebyshev_window() -> None:
    coords = visible_coords(GridCoord(5, -5), 2)

    assert len(coords) == 25
    assert {coord.key for coord in coords} == _window_keys(GridCoord(5, -5), 2)


def test_reconcile_materializes_exactly_the_visible_window() -> None:
    reconciler, renderer = _make_reconciler(radius=2)

    diff = reconciler.reconcile(GridCoord(0, 0))

    assert reconciler.store.materialized_keys() == _window_keys(GridCoord(0, 0), 2)
    assert renderer.tiles == _window_keys(GridCoord(0, 0), 2)
    assert len(diff.entered) == 25
    assert diff.exited == ()


def test_reconcile_twice_is_idempotent() -> None:
    reconciler, renderer = _make_reconciler(radius=2)
    reconciler.reconcile(GridCoord(3, 3))
    calls_after_first = len(renderer.calls)

    diff = reconciler.reconcile(GridCoord(3, 3))

    assert diff.is_empty
    assert len(renderer.calls) == calls_after_first


def test_one_step_moves_one_row_in_and_one_row_out() -> None:
    reconciler, renderer = _make_reconciler(radius=2)
    reconciler.reconcile(GridCoord(0, 0))

    diff = reconciler.reconcile(GridCoord(1, 0))

    assert {coord.key for coord in diff.entered} == {f"3:{j}" for j in range(-2, 3)}
    assert {coord.key for coord in diff.exited} == {f"-2:{j}" for j in range(-2, 3)}
    assert reconciler.store.materialized_keys() == _window_keys(GridCoord(1, 0), 2)
    assert renderer.tiles == _window_keys(GridCoord(1, 0), 2)


def test_jump_replaces_the_whole_window() -> None:
    reconciler, _ = _make_reconciler(radius=1)
    reconciler.reconcile(GridCoord(0, 0))

    diff = reconciler.reconcile(GridCoord(100, 100))

    assert len(diff.entered) == 9
    assert len(diff.exited) == 9
    assert reconciler.store.materialized_keys() == _window_keys(GridCoord(100, 100), 1)


def test_exited_cells_keep_their_contents_in_the_store() -> None:
    reconciler, _ = _make_reconciler(radius=1, probability=1.0)
    reconciler.reconcile(GridCoord(0, 0))
    cell = reconciler.store.get_cell(GridCoord(-1, 0))
    assert cell is not None
    cell.items.pop()
    remaining = list(cell.items)

    reconciler.reconcile(GridCoord(5, 0))
    reconciler.reconcile(GridCoord(0, 0))

    assert reconciler.store.get_cell(GridCoord(-1, 0)) is cell
    assert cell.items == remaining
    assert cell.materialized is True


def test_dematerialize_snapshots_latest_contents() -> None:
    reconciler, _ = _make_reconciler(radius=0, probability=1.0)
    reconciler.reconcile(GridCoord(0, 0))
    cell = reconciler.store.get_cell(GridCoord(0, 0))
    cell.items.pop()

    reconciler.reconcile(GridCoord(0, 1))

    snapshot = reconciler.memento.snapshot("0:0")
    assert snapshot is not None
    assert snapshot.items == tuple(cell.items)


def test_resolve_prefers_live_then_snapshot_then_spawn() -> None:
    store = CellStore()
    memento = MementoCache()
    policy = SpawnPolicy(spawn_probability=1.0, max_items=5)
    coord = GridCoord(2, 2)

    spawned = resolve_cell(store, memento, policy, coord)
    assert spawned.decided is True
    assert "2:2" in memento
    assert resolve_cell(store, memento, policy, coord) is spawned

    spawned.items.pop()
    memento.save(coord.key, spawned)
    store.evict(coord)

    restored = resolve_cell(store, memento, policy, coord)
    assert restored is not spawned
    assert restored.items == spawned.items
    assert store.get_cell(coord) is restored


def test_resident_bound_evicts_and_restores_through_snapshots() -> None:
    reconciler, _ = _make_reconciler(radius=1, probability=1.0, max_resident_cells=9)
    reconciler.reconcile(GridCoord(0, 0))
    west = reconciler.store.get_cell(GridCoord(0, -1))
    west.items.pop()
    remaining = list(west.items)

    reconciler.reconcile(GridCoord(0, 1))

    assert len(reconciler.store) == 9
    assert GridCoord(0, -1) not in reconciler.store

    reconciler.reconcile(GridCoord(0, 0))

    revived = reconciler.store.get_cell(GridCoord(0, -1))
    assert revived is not None
    assert revived is not west
    assert revived.items == remaining
    assert revived.materialized is True


def test_resident_bound_must_fit_a_viewport() -> None:
    with pytest.raises(ValueError, match="at least one full viewport"):
        _make_reconciler(radius=1, max_resident_cells=8)


def test_negative_radius_is_rejected() -> None:
    with pytest.raises(ValueError, match="radius must be a non-negative integer"):
        _make_reconciler(radius=-1)
