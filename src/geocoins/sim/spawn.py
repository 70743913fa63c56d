from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from geocoins.sim.luck import luck
from geocoins.sim.world import Cell, CellStore, GridCoord

DEFAULT_SPAWN_PROBABILITY = 0.1
DEFAULT_MAX_ITEMS = 10
INITIAL_COUNT_SUFFIX = ":initial"

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpawnPolicy:
    """One-time content decision for a newly discovered coordinate."""

    spawn_probability: float = DEFAULT_SPAWN_PROBABILITY
    max_items: int = DEFAULT_MAX_ITEMS

    def __post_init__(self) -> None:
        if not isinstance(self.spawn_probability, (int, float)) or isinstance(self.spawn_probability, bool):
            raise ValueError("spawn_probability must be numeric")
        if self.spawn_probability < 0.0 or self.spawn_probability > 1.0:
            raise ValueError("spawn_probability must be within [0.0, 1.0]")
        if isinstance(self.max_items, bool) or not isinstance(self.max_items, int) or self.max_items < 1:
            raise ValueError("max_items must be an integer >= 1")

    def should_spawn(self, coord: GridCoord) -> bool:
        return luck(coord.key) < self.spawn_probability

    def initial_item_count(self, coord: GridCoord) -> int:
        return math.floor(luck(coord.key + INITIAL_COUNT_SUFFIX) * self.max_items) + 1

    def spawn(self, store: CellStore, cell: Cell) -> int:
        """Populate ``cell`` on first discovery and mark it decided.

        Returns the number of items created; an already decided cell is left
        alone and yields 0.
        """
        if cell.decided:
            return 0
        created = 0
        if self.should_spawn(cell.coord):
            for _ in range(self.initial_item_count(cell.coord)):
                store.create_item(cell)
                created += 1
        cell.decided = True
        if created:
            log.debug("spawned %d items at %s", created, cell.key)
        return created
