from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from geocoins.sim.memento import SNAPSHOT_POLICIES, SNAPSHOT_POLICY_LATEST
from geocoins.sim.spawn import DEFAULT_MAX_ITEMS, DEFAULT_SPAWN_PROBABILITY

GAME_CONFIG_SCHEMA_VERSION = 1
DEFAULT_GAME_CONFIG_PATH = "content/config/default_game.json"

DEFAULT_TILE_SIZE = 1e-4
DEFAULT_VISIBILITY_RADIUS = 8

_KNOWN_FIELDS = {
    "tile_size",
    "visibility_radius",
    "spawn_probability",
    "max_items",
    "start_lat",
    "start_lng",
    "snapshot_policy",
    "max_resident_cells",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class GameConfig:
    tile_size: float = DEFAULT_TILE_SIZE
    visibility_radius: int = DEFAULT_VISIBILITY_RADIUS
    spawn_probability: float = DEFAULT_SPAWN_PROBABILITY
    max_items: int = DEFAULT_MAX_ITEMS
    start_lat: float = 0.0
    start_lng: float = 0.0
    snapshot_policy: str = SNAPSHOT_POLICY_LATEST
    max_resident_cells: int | None = None

    def __post_init__(self) -> None:
        if not _is_number(self.tile_size) or self.tile_size <= 0.0:
            raise ValueError("tile_size must be a number > 0")
        if not _is_int(self.visibility_radius) or self.visibility_radius < 0:
            raise ValueError("visibility_radius must be an integer >= 0")
        if not _is_number(self.spawn_probability):
            raise ValueError("spawn_probability must be numeric")
        if self.spawn_probability < 0.0 or self.spawn_probability > 1.0:
            raise ValueError("spawn_probability must be within [0.0, 1.0]")
        if not _is_int(self.max_items) or self.max_items < 1:
            raise ValueError("max_items must be an integer >= 1")
        if not _is_number(self.start_lat) or not _is_number(self.start_lng):
            raise ValueError("start_lat and start_lng must be numeric")
        if self.snapshot_policy not in SNAPSHOT_POLICIES:
            raise ValueError(f"snapshot_policy must be one of: {', '.join(sorted(SNAPSHOT_POLICIES))}")
        if self.max_resident_cells is not None:
            if not _is_int(self.max_resident_cells):
                raise ValueError("max_resident_cells must be an integer or null")
            if self.max_resident_cells < self.viewport_cell_count:
                raise ValueError("max_resident_cells must be >= the number of cells in one viewport")

    @property
    def viewport_cell_count(self) -> int:
        return (2 * self.visibility_radius + 1) ** 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "tile_size": self.tile_size,
            "visibility_radius": self.visibility_radius,
            "spawn_probability": self.spawn_probability,
            "max_items": self.max_items,
            "start_lat": self.start_lat,
            "start_lng": self.start_lng,
            "snapshot_policy": self.snapshot_policy,
            "max_resident_cells": self.max_resident_cells,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameConfig":
        if not isinstance(data, dict):
            raise ValueError("game config must be an object")
        unknown = sorted(set(data) - _KNOWN_FIELDS)
        if unknown:
            raise ValueError(f"unknown game config fields: {', '.join(unknown)}")
        return cls(**data)


def load_game_config_json(path: str | Path) -> GameConfig:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return _config_from_payload(payload)


def _config_from_payload(payload: dict[str, Any]) -> GameConfig:
    if not isinstance(payload, dict):
        raise ValueError("game config payload must be an object")

    schema_version = payload.get("schema_version")
    if not _is_int(schema_version):
        raise ValueError("game config must contain integer field: schema_version")
    if schema_version != GAME_CONFIG_SCHEMA_VERSION:
        raise ValueError(f"unsupported game config schema_version: {schema_version}")

    game = payload.get("game", {})
    if not isinstance(game, dict):
        raise ValueError("game config field game must be an object")
    return GameConfig.from_dict(game)
