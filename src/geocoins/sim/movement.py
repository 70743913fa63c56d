from __future__ import annotations

from geocoins.sim.world import GridCoord

COMPASS_STEPS: dict[str, tuple[int, int]] = {
    "north": (1, 0),
    "south": (-1, 0),
    "east": (0, 1),
    "west": (0, -1),
}


def position_to_coord(lat: float, lng: float, tile_size: float) -> GridCoord:
    """Continuous (lat, lng) to the grid cell containing it."""
    return GridCoord.from_position(lat, lng, tile_size)


def step_coord(current: GridCoord, direction: str) -> GridCoord:
    if direction not in COMPASS_STEPS:
        raise ValueError(f"unknown direction: {direction}")
    di, dj = COMPASS_STEPS[direction]
    return current.offset(di, dj)


def chebyshev_distance(a: GridCoord, b: GridCoord) -> int:
    return max(abs(a.i - b.i), abs(a.j - b.j))
