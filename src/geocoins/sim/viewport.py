from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass

from geocoins.sim.memento import MementoCache
from geocoins.sim.spawn import SpawnPolicy
from geocoins.sim.world import Cell, CellStore, GridCoord

log = logging.getLogger(__name__)


class TileRenderer:
    """Rendering collaborator driven by the reconciler.

    Implementations draw or dispose tiles; return values are ignored and the
    reconciler never depends on renderer state.
    """

    def materialize(self, coord: GridCoord, cell: Cell) -> None:
        """Called once when ``coord`` enters the visible window."""

    def dematerialize(self, coord: GridCoord) -> None:
        """Called once when ``coord`` leaves the visible window."""


@dataclass(frozen=True)
class ViewportDiff:
    center: GridCoord
    entered: tuple[GridCoord, ...]
    exited: tuple[GridCoord, ...]

    @property
    def is_empty(self) -> bool:
        return not self.entered and not self.exited

    def to_dict(self) -> dict[str, object]:
        return {
            "center": self.center.to_dict(),
            "entered": [coord.key for coord in self.entered],
            "exited": [coord.key for coord in self.exited],
        }


def visible_coords(center: GridCoord, radius: int) -> list[GridCoord]:
    coords: list[GridCoord] = []
    for i in range(center.i - radius, center.i + radius + 1):
        for j in range(center.j - radius, center.j + radius + 1):
            coords.append(GridCoord(i, j))
    return coords


def resolve_cell(store: CellStore, memento: MementoCache, spawn_policy: SpawnPolicy, coord: GridCoord) -> Cell:
    """Authoritative cell for ``coord``: live, restored, or freshly spawned."""
    cell = store.get_cell(coord)
    if cell is not None:
        return cell
    restored = memento.restore(coord.key)
    if restored is not None:
        log.debug("restored %s from snapshot", coord.key)
        return store.adopt(restored)
    cell = store.get_or_create_cell(coord)
    spawn_policy.spawn(store, cell)
    memento.save(coord.key, cell)
    return cell


class ViewportReconciler:
    def __init__(
        self,
        *,
        store: CellStore,
        memento: MementoCache,
        spawn_policy: SpawnPolicy,
        radius: int,
        renderer: TileRenderer | None = None,
        max_resident_cells: int | None = None,
    ) -> None:
        if isinstance(radius, bool) or not isinstance(radius, int) or radius < 0:
            raise ValueError("radius must be a non-negative integer")
        if max_resident_cells is not None and max_resident_cells < (2 * radius + 1) ** 2:
            raise ValueError("max_resident_cells must hold at least one full viewport")
        self.store = store
        self.memento = memento
        self.spawn_policy = spawn_policy
        self.radius = radius
        self.renderer = renderer if renderer is not None else TileRenderer()
        self.max_resident_cells = max_resident_cells
        self.center: GridCoord | None = None
        self._dematerialized_order: OrderedDict[str, GridCoord] = OrderedDict()

    def reconcile(self, center: GridCoord) -> ViewportDiff:
        visible = visible_coords(center, self.radius)
        visible_keys = {coord.key for coord in visible}
        materialized_keys = self.store.materialized_keys()

        entered: list[GridCoord] = []
        for coord in visible:
            if coord.key in materialized_keys:
                continue
            cell = resolve_cell(self.store, self.memento, self.spawn_policy, coord)
            self.store.set_materialized(cell, True)
            self._dematerialized_order.pop(coord.key, None)
            self.renderer.materialize(coord, cell)
            entered.append(coord)

        exited: list[GridCoord] = []
        for key in sorted(materialized_keys - visible_keys, key=GridCoord.parse_key):
            coord = GridCoord.parse_key(key)
            cell = self.store.get_cell(coord)
            if cell is None:
                continue
            self.memento.save(key, cell)
            self.store.set_materialized(cell, False)
            self._dematerialized_order[key] = coord
            self.renderer.dematerialize(coord)
            exited.append(coord)

        self.center = center
        self._enforce_resident_bound()
        diff = ViewportDiff(center=center, entered=tuple(sorted(entered)), exited=tuple(exited))
        if not diff.is_empty:
            log.debug(
                "reconciled around %s: %d entered, %d exited",
                center.key,
                len(diff.entered),
                len(diff.exited),
            )
        return diff

    def _enforce_resident_bound(self) -> None:
        if self.max_resident_cells is None:
            return
        while len(self.store) > self.max_resident_cells and self._dematerialized_order:
            key, coord = self._dematerialized_order.popitem(last=False)
            cell = self.store.get_cell(coord)
            if cell is None or cell.materialized:
                continue
            self.memento.save(key, cell)
            self.store.evict(coord)
            log.debug("evicted %s from resident store", key)
