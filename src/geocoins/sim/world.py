from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterator

COORD_KEY_SEPARATOR = ":"
ITEM_SERIAL_SEPARATOR = "#"


@dataclass(frozen=True, order=True)
class GridCoord:
    """Integer grid cell coordinate (i, j); i follows latitude, j longitude."""

    i: int
    j: int

    @property
    def key(self) -> str:
        return f"{self.i}{COORD_KEY_SEPARATOR}{self.j}"

    def offset(self, di: int, dj: int) -> "GridCoord":
        return GridCoord(self.i + di, self.j + dj)

    def origin_position(self, tile_size: float) -> tuple[float, float]:
        return (self.i * tile_size, self.j * tile_size)

    def center_position(self, tile_size: float) -> tuple[float, float]:
        return ((self.i + 0.5) * tile_size, (self.j + 0.5) * tile_size)

    def to_dict(self) -> dict[str, int]:
        return {"i": self.i, "j": self.j}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GridCoord":
        return cls(i=int(data["i"]), j=int(data["j"]))

    @classmethod
    def from_position(cls, lat: float, lng: float, tile_size: float) -> "GridCoord":
        if tile_size <= 0:
            raise ValueError("tile_size must be > 0")
        return cls(i=math.floor(lat / tile_size), j=math.floor(lng / tile_size))

    @classmethod
    def parse_key(cls, key: str) -> "GridCoord":
        parts = key.split(COORD_KEY_SEPARATOR)
        if len(parts) != 2:
            raise ValueError(f"invalid coordinate key: {key!r}")
        try:
            return cls(i=int(parts[0]), j=int(parts[1]))
        except ValueError as exc:
            raise ValueError(f"invalid coordinate key: {key!r}") from exc


@dataclass(frozen=True)
class Item:
    """A collectible coin; where it was spawned and in which order."""

    origin: GridCoord
    serial: int

    def __post_init__(self) -> None:
        if isinstance(self.serial, bool) or not isinstance(self.serial, int) or self.serial < 0:
            raise ValueError("item serial must be a non-negative integer")

    @property
    def identity(self) -> str:
        return f"{self.origin.key}{ITEM_SERIAL_SEPARATOR}{self.serial}"

    def to_dict(self) -> dict[str, Any]:
        return {"origin": self.origin.to_dict(), "serial": self.serial}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Item":
        return cls(origin=GridCoord.from_dict(data["origin"]), serial=int(data["serial"]))


@dataclass(frozen=True)
class CellSnapshot:
    """Immutable copy of a cell's contents captured for later restoration."""

    coord: GridCoord
    items: tuple[Item, ...]
    decided: bool = True

    @property
    def key(self) -> str:
        return self.coord.key

    def to_cell(self) -> "Cell":
        return Cell(coord=self.coord, items=list(self.items), decided=self.decided)


@dataclass(eq=False)
class Cell:
    """Canonical content container for one grid coordinate.

    Items are kept in arrival order; the last entry is the next one collected.
    Cells compare by identity so the flyweight guarantee is observable.
    """

    coord: GridCoord
    items: list[Item] = field(default_factory=list)
    decided: bool = False
    materialized: bool = False

    @property
    def key(self) -> str:
        return self.coord.key

    def snapshot(self) -> CellSnapshot:
        return CellSnapshot(coord=self.coord, items=tuple(self.items), decided=self.decided)

    def to_dict(self) -> dict[str, Any]:
        return {
            "coord": self.coord.to_dict(),
            "decided": self.decided,
            "items": [item.identity for item in self.items],
        }


class Inventory:
    """The player's coins, last-in first-out."""

    def __init__(self, items: list[Item] | None = None) -> None:
        self._items: list[Item] = list(items) if items else []

    def push(self, item: Item) -> None:
        self._items.append(item)

    def pop(self) -> Item | None:
        if not self._items:
            return None
        return self._items.pop()

    def peek(self) -> Item | None:
        return self._items[-1] if self._items else None

    @property
    def items(self) -> tuple[Item, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(tuple(self._items))

    def to_dict(self) -> dict[str, Any]:
        return {"items": [item.identity for item in self._items]}


class CellStore:
    """Flyweight registry mapping coordinate keys to their single Cell."""

    def __init__(self) -> None:
        self._cells: dict[str, Cell] = {}
        self._materialized_keys: set[str] = set()

    def get_or_create_cell(self, coord: GridCoord) -> Cell:
        cell = self._cells.get(coord.key)
        if cell is None:
            cell = Cell(coord=coord)
            self._cells[coord.key] = cell
        return cell

    def get_cell(self, coord: GridCoord) -> Cell | None:
        return self._cells.get(coord.key)

    def create_item(self, cell: Cell) -> Item:
        if cell.decided:
            raise ValueError(f"cell {cell.key} has already spawned; items are only created during spawn")
        if self._cells.get(cell.key) is not cell:
            raise ValueError(f"cell {cell.key} is not the canonical instance for its coordinate")
        item = Item(origin=cell.coord, serial=len(cell.items))
        cell.items.append(item)
        return item

    def adopt(self, cell: Cell) -> Cell:
        existing = self._cells.get(cell.key)
        if existing is not None and existing is not cell:
            raise ValueError(f"cell {cell.key} already has a live instance")
        self._cells[cell.key] = cell
        if cell.materialized:
            self._materialized_keys.add(cell.key)
        return cell

    def evict(self, coord: GridCoord) -> Cell | None:
        cell = self._cells.get(coord.key)
        if cell is None:
            return None
        if cell.materialized:
            raise ValueError(f"cell {cell.key} is materialized and cannot be evicted")
        del self._cells[coord.key]
        return cell

    def set_materialized(self, cell: Cell, materialized: bool) -> None:
        cell.materialized = materialized
        if materialized:
            self._materialized_keys.add(cell.key)
        else:
            self._materialized_keys.discard(cell.key)

    def materialized_keys(self) -> set[str]:
        return set(self._materialized_keys)

    def cells(self) -> list[Cell]:
        return [self._cells[key] for key in sorted(self._cells, key=lambda k: GridCoord.parse_key(k))]

    def total_item_count(self) -> int:
        return sum(len(cell.items) for cell in self._cells.values())

    def __contains__(self, coord: object) -> bool:
        return isinstance(coord, GridCoord) and coord.key in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cells": [cell.to_dict() for cell in self.cells()],
            "materialized": sorted(self._materialized_keys, key=GridCoord.parse_key),
        }
