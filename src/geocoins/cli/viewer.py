from __future__ import annotations

import argparse
import logging
from typing import Sequence, cast

from geocoins.content.config import DEFAULT_GAME_CONFIG_PATH, load_game_config_json
from geocoins.sim.core import GameSession, SessionCommand
from geocoins.sim.transfer import TransferResult
from geocoins.sim.viewport import TileRenderer
from geocoins.sim.world import Cell, GridCoord

PLAYER_GLYPH = "@"
EMPTY_GLYPH = "."
MANY_GLYPH = "+"
MISSING_GLYPH = " "


def cell_glyph(cell: Cell | None) -> str:
    if cell is None:
        return MISSING_GLYPH
    count = len(cell.items)
    if count == 0:
        return EMPTY_GLYPH
    if count > 9:
        return MANY_GLYPH
    return str(count)


class AsciiViewer(TileRenderer):
    """Terminal projection of the visible window.

    Only coordinates are tracked; cell contents are re-read from the session
    on every render.
    """

    def __init__(self) -> None:
        self.tiles: set[GridCoord] = set()

    def materialize(self, coord: GridCoord, cell: Cell) -> None:
        self.tiles.add(coord)

    def dematerialize(self, coord: GridCoord) -> None:
        self.tiles.discard(coord)

    def render(self, session: GameSession) -> str:
        center = session.player_coord
        radius = session.config.visibility_radius
        lines = [
            f"cell={center.key} inventory={len(session.inventory)} visible={len(self.tiles)}",
        ]
        for i in range(center.i + radius, center.i - radius - 1, -1):
            row: list[str] = []
            for j in range(center.j - radius, center.j + radius + 1):
                coord = GridCoord(i, j)
                if coord == center:
                    row.append(PLAYER_GLYPH)
                elif coord in self.tiles:
                    row.append(cell_glyph(session.store.get_cell(coord)))
                else:
                    row.append(MISSING_GLYPH)
            lines.append(" ".join(row))
        here = session.store.get_cell(center)
        if here is not None and here.items:
            lines.append("here: " + ", ".join(item.identity for item in here.items))
        if len(session.inventory):
            lines.append("carrying: " + ", ".join(item.identity for item in session.inventory))
        return "\n".join(lines)


class SessionController:
    """Small command adapter; issues commands to the session but owns no state."""

    def __init__(self, session: GameSession) -> None:
        self.session = session

    def step(self, direction: str) -> None:
        self.session.execute(SessionCommand("step", {"direction": direction}))

    def collect_here(self) -> TransferResult:
        coord = self.session.player_coord
        return cast(TransferResult, self.session.execute(SessionCommand("collect", {"i": coord.i, "j": coord.j})))

    def deposit_here(self) -> TransferResult:
        coord = self.session.player_coord
        return cast(TransferResult, self.session.execute(SessionCommand("deposit", {"i": coord.i, "j": coord.j})))

    def jump_to(self, lat: float, lng: float) -> None:
        self.session.execute(SessionCommand("set_position", {"lat": lat, "lng": lng}))


DIRECTION_ALIASES = {
    "n": "north",
    "s": "south",
    "e": "east",
    "w": "west",
    "north": "north",
    "south": "south",
    "east": "east",
    "west": "west",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m geocoins.cli.viewer", description="Terminal geocoins demo.")
    parser.add_argument("--config", default=DEFAULT_GAME_CONFIG_PATH, help="Path to game config JSON.")
    return parser


def run_demo(config_path: str = DEFAULT_GAME_CONFIG_PATH) -> None:
    session = GameSession(config=load_game_config_json(config_path))
    view = AsciiViewer()
    session.attach_renderer(view)
    session.start()
    controller = SessionController(session)

    print("geocoins demo. Commands: n | s | e | w | collect | deposit | goto <lat> <lng> | show | quit")
    print(view.render(session))

    while True:
        raw = input("> ").strip().lower()
        if raw in {"quit", "exit"}:
            break
        if raw == "show":
            print(view.render(session))
            continue
        if raw in DIRECTION_ALIASES:
            controller.step(DIRECTION_ALIASES[raw])
            print(view.render(session))
            continue
        if raw in {"collect", "c"}:
            result = controller.collect_here()
            print(result.item.identity if result.ok and result.item else result.outcome.value)
            continue
        if raw in {"deposit", "d"}:
            result = controller.deposit_here()
            print(result.item.identity if result.ok and result.item else result.outcome.value)
            continue

        parts = raw.split()
        if len(parts) == 3 and parts[0] == "goto":
            try:
                controller.jump_to(float(parts[1]), float(parts[2]))
            except ValueError:
                print("goto expects two numbers")
                continue
            print(view.render(session))
            continue

        print("unknown command")


def main(argv: Sequence[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    run_demo(args.config)


if __name__ == "__main__":
    main()
