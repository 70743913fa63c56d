from __future__ import annotations

import logging

from geocoins.sim.world import Cell, CellSnapshot

SNAPSHOT_POLICY_LATEST = "latest"
SNAPSHOT_POLICY_FIRST_WRITE = "first_write"
SNAPSHOT_POLICIES = {SNAPSHOT_POLICY_LATEST, SNAPSHOT_POLICY_FIRST_WRITE}

log = logging.getLogger(__name__)


class MementoCache:
    """Snapshots of cell contents keyed by coordinate key.

    With the ``latest`` policy every save overwrites the stored snapshot.
    With ``first_write`` only the first save for a key is kept. Once the cell
    is evicted and restored, mutations made after that save are rolled back:
    deposited items vanish, and collected items reappear in the cell while
    still sitting in the inventory.
    """

    def __init__(self, policy: str = SNAPSHOT_POLICY_LATEST) -> None:
        if policy not in SNAPSHOT_POLICIES:
            raise ValueError(f"unsupported snapshot policy: {policy}")
        self.policy = policy
        self._snapshots: dict[str, CellSnapshot] = {}

    def save(self, key: str, cell: Cell) -> bool:
        if key != cell.key:
            raise ValueError(f"snapshot key {key} does not match cell {cell.key}")
        if self.policy == SNAPSHOT_POLICY_FIRST_WRITE and key in self._snapshots:
            return False
        self._snapshots[key] = cell.snapshot()
        log.debug("snapshot saved for %s (%d items)", key, len(cell.items))
        return True

    def restore(self, key: str) -> Cell | None:
        snapshot = self._snapshots.get(key)
        if snapshot is None:
            return None
        return snapshot.to_cell()

    def snapshot(self, key: str) -> CellSnapshot | None:
        return self._snapshots.get(key)

    def snapshots(self) -> list[CellSnapshot]:
        return [self._snapshots[key] for key in sorted(self._snapshots)]

    def __contains__(self, key: object) -> bool:
        return key in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)
