from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from geocoins.content.config import GameConfig
from geocoins.sim.memento import MementoCache
from geocoins.sim.movement import chebyshev_distance, position_to_coord, step_coord
from geocoins.sim.spawn import SpawnPolicy
from geocoins.sim.transfer import TransferOutcome, TransferResult, collect, deposit
from geocoins.sim.viewport import TileRenderer, ViewportDiff, ViewportReconciler
from geocoins.sim.world import CellStore, GridCoord, Inventory

MAX_EVENT_TRACE = 256
VIEWPORT_RECONCILED_EVENT_TYPE = "viewport_reconciled"
TRANSFER_OUTCOME_EVENT_TYPE = "transfer_outcome"
GEOLOCATION_FAILED_EVENT_TYPE = "geolocation_failed"
SESSION_COMMAND_TYPES = {"step", "set_position", "geolocation", "collect", "deposit"}

log = logging.getLogger(__name__)


def _is_json_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def _validate_json_value(value: Any, *, field_name: str) -> None:
    if _is_json_primitive(value):
        return
    if isinstance(value, list):
        for item in value:
            _validate_json_value(item, field_name=field_name)
        return
    if isinstance(value, dict):
        for key, nested_value in value.items():
            if not isinstance(key, str):
                raise ValueError(f"{field_name} keys must be strings")
            _validate_json_value(nested_value, field_name=field_name)
        return
    raise ValueError(f"{field_name} must contain only canonical JSON primitives")


def _require_number(params: dict[str, Any], name: str) -> float:
    value = params.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"command param {name} must be numeric")
    if not math.isfinite(value):
        raise ValueError(f"command param {name} must be finite")
    return float(value)


def _require_int(params: dict[str, Any], name: str) -> int:
    value = params.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"command param {name} must be an integer")
    return value


@dataclass
class SessionCommand:
    command_type: str
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.command_type, str) or not self.command_type:
            raise ValueError("command_type must be a non-empty string")
        if not isinstance(self.params, dict):
            raise ValueError("params must be a dict")
        _validate_json_value(self.params, field_name="params")

    def to_dict(self) -> dict[str, Any]:
        return {"command_type": self.command_type, "params": self.params}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionCommand":
        return cls(command_type=str(data["command_type"]), params=dict(data.get("params", {})))


@dataclass(frozen=True)
class GeolocationFix:
    """Result handed over by the geolocation collaborator.

    Either a position or an ``error`` such as ``denied``, ``unavailable`` or
    ``timeout``.
    """

    lat: float | None = None
    lng: float | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.error is None and (self.lat is None or self.lng is None):
            raise ValueError("a successful geolocation fix requires lat and lng")
        if self.error is None and not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError("geolocation fix lat and lng must be finite")

    @property
    def ok(self) -> bool:
        return self.error is None


class GameSession:
    """The world aggregate: cell cache, viewport, inventory and player.

    Every mutation goes through a method on this object; nothing is shared
    through module state, so two sessions never observe each other.
    """

    def __init__(self, config: GameConfig | None = None, renderer: TileRenderer | None = None) -> None:
        self.config = config if config is not None else GameConfig()
        self.store = CellStore()
        self.memento = MementoCache(policy=self.config.snapshot_policy)
        self.spawn_policy = SpawnPolicy(
            spawn_probability=self.config.spawn_probability,
            max_items=self.config.max_items,
        )
        self.inventory = Inventory()
        self.reconciler = ViewportReconciler(
            store=self.store,
            memento=self.memento,
            spawn_policy=self.spawn_policy,
            radius=self.config.visibility_radius,
            renderer=renderer,
            max_resident_cells=self.config.max_resident_cells,
        )
        self.player_position: tuple[float, float] = (float(self.config.start_lat), float(self.config.start_lng))
        self.player_coord = position_to_coord(*self.player_position, self.config.tile_size)
        self.movement_history: list[tuple[float, float]] = []
        self.input_log: list[SessionCommand] = []
        self.event_trace: list[dict[str, Any]] = []
        self.started = False

    @property
    def renderer(self) -> TileRenderer:
        return self.reconciler.renderer

    def attach_renderer(self, renderer: TileRenderer) -> None:
        """Swap the rendering collaborator and replay the current visible set to it."""
        self.reconciler.renderer = renderer
        for key in sorted(self.store.materialized_keys(), key=GridCoord.parse_key):
            coord = GridCoord.parse_key(key)
            cell = self.store.get_cell(coord)
            if cell is not None:
                renderer.materialize(coord, cell)

    def start(self) -> ViewportDiff:
        if self.started:
            return self.reconciler.reconcile(self.player_coord)
        self.started = True
        return self._move_to(self.player_position)

    def step(self, direction: str) -> ViewportDiff:
        destination = step_coord(self.player_coord, direction)
        return self._move_to(destination.center_position(self.config.tile_size))

    def step_by(self, di: int, dj: int) -> ViewportDiff:
        """Move exactly one tile; the player comes to rest at the cell center."""
        destination = self.player_coord.offset(di, dj)
        if chebyshev_distance(self.player_coord, destination) != 1:
            raise ValueError("a step moves exactly one tile")
        return self._move_to(destination.center_position(self.config.tile_size))

    def set_player_position(self, lat: float, lng: float) -> ViewportDiff:
        return self._move_to((float(lat), float(lng)))

    def apply_geolocation(self, fix: GeolocationFix) -> ViewportDiff | None:
        if not fix.ok:
            log.warning("geolocation unavailable: %s", fix.error)
            self._append_event_trace_entry(
                GEOLOCATION_FAILED_EVENT_TYPE,
                {"error": fix.error, "player_coord": self.player_coord.to_dict()},
            )
            return None
        return self.set_player_position(float(fix.lat), float(fix.lng))

    def collect(self, coord: GridCoord) -> TransferResult:
        cell = self.store.get_cell(coord)
        if cell is None or not cell.materialized:
            result = TransferResult(TransferOutcome.CELL_NOT_VISIBLE)
        else:
            result = collect(cell, self.inventory)
        self._append_transfer_outcome("collect", coord, result)
        return result

    def deposit(self, coord: GridCoord) -> TransferResult:
        cell = self.store.get_cell(coord)
        if cell is None or not cell.materialized:
            result = TransferResult(TransferOutcome.CELL_NOT_VISIBLE)
        else:
            result = deposit(cell, self.inventory)
        self._append_transfer_outcome("deposit", coord, result)
        return result

    def execute(self, command: SessionCommand | dict[str, Any]) -> ViewportDiff | TransferResult | None:
        """Validate ``command``, record it in the input log, then apply it.

        A command that fails validation raises before anything is logged or
        mutated.
        """
        normalized = command if isinstance(command, SessionCommand) else SessionCommand.from_dict(command)
        command_type = normalized.command_type
        if command_type not in SESSION_COMMAND_TYPES:
            raise ValueError(f"unsupported command_type: {command_type}")
        params = normalized.params

        if command_type == "step":
            destination = step_coord(self.player_coord, str(params.get("direction", "")))
            self.input_log.append(normalized)
            return self._move_to(destination.center_position(self.config.tile_size))
        if command_type == "set_position":
            position = (_require_number(params, "lat"), _require_number(params, "lng"))
            self.input_log.append(normalized)
            return self._move_to(position)
        if command_type == "geolocation":
            error = params.get("error")
            if error is not None:
                fix = GeolocationFix(error=str(error))
            else:
                fix = GeolocationFix(lat=_require_number(params, "lat"), lng=_require_number(params, "lng"))
            self.input_log.append(normalized)
            return self.apply_geolocation(fix)
        coord = GridCoord(_require_int(params, "i"), _require_int(params, "j"))
        self.input_log.append(normalized)
        if command_type == "collect":
            return self.collect(coord)
        return self.deposit(coord)

    def total_item_count(self) -> int:
        """Items in resident cells, evicted cells (via their snapshots) and the inventory."""
        evicted = sum(len(snapshot.items) for snapshot in self.memento.snapshots() if snapshot.coord not in self.store)
        return self.store.total_item_count() + evicted + len(self.inventory)

    def visible_cell_count(self) -> int:
        return len(self.store.materialized_keys())

    def get_event_trace(self) -> list[dict[str, Any]]:
        return [dict(entry) for entry in self.event_trace]

    def to_dict(self) -> dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "player_position": [self.player_position[0], self.player_position[1]],
            "player_coord": self.player_coord.to_dict(),
            "movement_history": [[lat, lng] for lat, lng in self.movement_history],
            "inventory": self.inventory.to_dict(),
            "world": self.store.to_dict(),
            "snapshot_count": len(self.memento),
            "input_log": [command.to_dict() for command in self.input_log],
        }

    def _move_to(self, position: tuple[float, float]) -> ViewportDiff:
        if not (math.isfinite(position[0]) and math.isfinite(position[1])):
            raise ValueError("player position must be finite")
        coord = position_to_coord(position[0], position[1], self.config.tile_size)
        self.started = True
        self.player_position = position
        self.player_coord = coord
        self.movement_history.append(position)
        diff = self.reconciler.reconcile(self.player_coord)
        if not diff.is_empty:
            self._append_event_trace_entry(
                VIEWPORT_RECONCILED_EVENT_TYPE,
                {
                    "center": self.player_coord.to_dict(),
                    "entered": len(diff.entered),
                    "exited": len(diff.exited),
                },
            )
        return diff

    def _append_transfer_outcome(self, action: str, coord: GridCoord, result: TransferResult) -> None:
        if not result.ok:
            log.info("%s at %s rejected: %s", action, coord.key, result.outcome.value)
        self._append_event_trace_entry(
            TRANSFER_OUTCOME_EVENT_TYPE,
            {"action": action, "coord": coord.to_dict(), **result.to_dict()},
        )

    def _append_event_trace_entry(self, event_type: str, params: dict[str, Any]) -> None:
        self.event_trace.append({"event_type": event_type, "params": params})
        if len(self.event_trace) > MAX_EVENT_TRACE:
            del self.event_trace[:-MAX_EVENT_TRACE]
