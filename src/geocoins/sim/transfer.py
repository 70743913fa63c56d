from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from geocoins.sim.world import Cell, Inventory, Item


class TransferOutcome(str, Enum):
    COLLECTED = "collected"
    DEPOSITED = "deposited"
    NOTHING_TO_COLLECT = "nothing_to_collect"
    NOTHING_TO_DEPOSIT = "nothing_to_deposit"
    CELL_NOT_VISIBLE = "cell_not_visible"


@dataclass(frozen=True)
class TransferResult:
    outcome: TransferOutcome
    item: Item | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in {TransferOutcome.COLLECTED, TransferOutcome.DEPOSITED}

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "item": self.item.identity if self.item is not None else None,
        }


def collect(cell: Cell, inventory: Inventory) -> TransferResult:
    """Move the cell's newest item into the inventory."""
    if not cell.items:
        return TransferResult(TransferOutcome.NOTHING_TO_COLLECT)
    item = cell.items.pop()
    inventory.push(item)
    return TransferResult(TransferOutcome.COLLECTED, item)


def deposit(cell: Cell, inventory: Inventory) -> TransferResult:
    """Move the inventory's newest item onto the cell."""
    item = inventory.pop()
    if item is None:
        return TransferResult(TransferOutcome.NOTHING_TO_DEPOSIT)
    cell.items.append(item)
    return TransferResult(TransferOutcome.DEPOSITED, item)
