from __future__ import annotations

import argparse
import importlib.metadata
import logging
import os
import platform
import sys
from typing import Any

from geocoins.content.config import DEFAULT_GAME_CONFIG_PATH, GameConfig, load_game_config_json
from geocoins.sim.core import GameSession, GeolocationFix, SessionCommand
from geocoins.sim.hash import world_hash
from geocoins.sim.viewport import TileRenderer
from geocoins.sim.world import Cell, GridCoord

TILE_PIXELS = 32
WINDOW_SIZE = (1200, 760)
PANEL_WIDTH = 360
VIEWPORT_MARGIN = 12
HUD_LINE_HEIGHT = 22
INVENTORY_PANEL_LINES = 20
GEOLOCATION_ENV_VAR = "GEOCOINS_GEOLOCATION"
HEADLESS_ENV_VAR = "GEOCOINS_HEADLESS"

EMPTY_TILE_COLOR = (46, 52, 60)
COIN_TILE_COLOR = (214, 176, 60)
GRID_LINE_COLOR = (28, 30, 36)
PLAYER_COLOR = (110, 200, 255)
TEXT_COLOR = (236, 238, 244)
BACKGROUND_COLOR = (17, 18, 25)

pygame: Any | None = None


class PygameTileLayer(TileRenderer):
    """Tiles the reconciler has materialized, in grid offsets from the player.

    Drawing re-reads each cell from the session, so the layer never holds on
    to cell contents.
    """

    def __init__(self) -> None:
        self.tiles: set[GridCoord] = set()

    def materialize(self, coord: GridCoord, cell: Cell) -> None:
        self.tiles.add(coord)

    def dematerialize(self, coord: GridCoord) -> None:
        self.tiles.discard(coord)

    def __len__(self) -> int:
        return len(self.tiles)


def _coord_to_pixel(coord: GridCoord, center: GridCoord, origin: tuple[float, float]) -> tuple[int, int]:
    x = origin[0] + (coord.j - center.j) * TILE_PIXELS
    y = origin[1] - (coord.i - center.i) * TILE_PIXELS
    return (int(x), int(y))


def _pixel_to_coord(pixel_x: int, pixel_y: int, center: GridCoord, origin: tuple[float, float]) -> GridCoord:
    dj = round((pixel_x - origin[0]) / TILE_PIXELS)
    di = round((origin[1] - pixel_y) / TILE_PIXELS)
    return center.offset(di, dj)


def _viewport_origin() -> tuple[float, float]:
    width = WINDOW_SIZE[0] - PANEL_WIDTH - VIEWPORT_MARGIN * 2
    return (VIEWPORT_MARGIN + width / 2.0, WINDOW_SIZE[1] / 2.0)


def _geolocation_from_env() -> GeolocationFix:
    raw = os.environ.get(GEOLOCATION_ENV_VAR, "").strip()
    if not raw:
        return GeolocationFix(error="unavailable")
    parts = raw.split(",")
    if len(parts) != 2:
        return GeolocationFix(error=f"malformed {GEOLOCATION_ENV_VAR}")
    try:
        return GeolocationFix(lat=float(parts[0]), lng=float(parts[1]))
    except ValueError:
        return GeolocationFix(error=f"malformed {GEOLOCATION_ENV_VAR}")


def _hud_lines(session: GameSession, status_message: str | None) -> list[str]:
    lat, lng = session.player_position
    lines = [
        f"cell={session.player_coord.key} lat={lat:.6f} lng={lng:.6f}",
        f"coins carried={len(session.inventory)} visible cells={session.visible_cell_count()}",
        "WASD/arrows move | C collect | V deposit | G geolocate | LMB collect | RMB deposit | ESC quit",
    ]
    if status_message:
        lines.append(f"status: {status_message}")
    return lines


def _inventory_lines(session: GameSession) -> list[str]:
    items = list(session.inventory)
    lines = [f"Inventory ({len(items)})"]
    for item in reversed(items[-INVENTORY_PANEL_LINES:]):
        lines.append(f"  {item.identity}")
    return lines


def _draw_tiles(screen: Any, session: GameSession, layer: PygameTileLayer, font: Any) -> None:
    origin = _viewport_origin()
    half = TILE_PIXELS // 2
    for coord in sorted(layer.tiles):
        x, y = _coord_to_pixel(coord, session.player_coord, origin)
        rect = pygame.Rect(x - half, y - half, TILE_PIXELS, TILE_PIXELS)
        cell = session.store.get_cell(coord)
        count = len(cell.items) if cell is not None else 0
        pygame.draw.rect(screen, COIN_TILE_COLOR if count else EMPTY_TILE_COLOR, rect)
        pygame.draw.rect(screen, GRID_LINE_COLOR, rect, 1)
        if count:
            label = font.render(str(count), True, BACKGROUND_COLOR)
            screen.blit(label, label.get_rect(center=rect.center))
    pygame.draw.circle(screen, PLAYER_COLOR, (int(origin[0]), int(origin[1])), TILE_PIXELS // 4)


def _draw_text_block(screen: Any, font: Any, lines: list[str], x: int, y: int) -> None:
    for line in lines:
        screen.blit(font.render(line, True, TEXT_COLOR), (x, y))
        y += HUD_LINE_HEIGHT


def _transfer_status(action: str, result: Any) -> str:
    if result.ok and result.item is not None:
        return f"{action} {result.item.identity}"
    return result.outcome.value.replace("_", " ")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m geocoins.cli.pygame_viewer",
        description="Run the geocoins pygame viewer.",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_GAME_CONFIG_PATH,
        help="Path to game config JSON.",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Force SDL dummy video driver for CI/testing and exit without opening a real window.",
    )
    return parser


def _env_flag_enabled(var_name: str) -> bool:
    return os.environ.get(var_name, "").strip().lower() in {"1", "true", "yes", "on"}


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[geocoins.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )
    for name in ("SDL_VIDEODRIVER", GEOLOCATION_ENV_VAR):
        value = os.environ.get(name, "<unset>")
        print(f"[geocoins.viewer] env {name}={value}")


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def _build_viewer_session(config: GameConfig) -> tuple[GameSession, PygameTileLayer]:
    session = GameSession(config=config)
    layer = PygameTileLayer()
    session.attach_renderer(layer)
    session.start()
    return session, layer


def run_pygame_viewer(config_path: str = DEFAULT_GAME_CONFIG_PATH, *, headless: bool = False) -> int:
    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[geocoins.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()

    try:
        config = load_game_config_json(config_path)
    except (OSError, ValueError) as exc:
        print(f"[geocoins.viewer] failed to load config {config_path}: {exc}", file=sys.stderr)
        return 1

    pygame_module = _ensure_pygame_imported()
    try:
        pygame_module.init()
    except Exception as exc:
        print(
            "[geocoins.viewer] failed during pygame.init(): "
            f"{exc}. Hint: verify a working SDL video driver (set SDL_VIDEODRIVER=dummy for headless mode).",
            file=sys.stderr,
        )
        return 1

    session, layer = _build_viewer_session(config)

    try:
        pygame_module.display.set_caption("geocoins")
        screen = pygame_module.display.set_mode(WINDOW_SIZE)
    except Exception as exc:
        print(
            "[geocoins.viewer] failed during pygame.display.set_mode(...): "
            f"{exc}. Hint: use --headless or {HEADLESS_ENV_VAR}=1 without a display.",
            file=sys.stderr,
        )
        pygame_module.quit()
        return 1

    print(
        "[geocoins.viewer] session started "
        f"cell={session.player_coord.key} visible={len(layer)} world_hash={world_hash(session.store)}"
    )

    if headless:
        pygame_module.quit()
        return 0

    step_keys = {
        pygame_module.K_w: "north",
        pygame_module.K_UP: "north",
        pygame_module.K_s: "south",
        pygame_module.K_DOWN: "south",
        pygame_module.K_d: "east",
        pygame_module.K_RIGHT: "east",
        pygame_module.K_a: "west",
        pygame_module.K_LEFT: "west",
    }

    clock = pygame_module.time.Clock()
    font = pygame_module.font.SysFont("consolas", 18)
    tile_font = pygame_module.font.SysFont("consolas", 14)
    origin = _viewport_origin()
    status_message: str | None = None
    running = True

    while running:
        clock.tick(30)
        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_ESCAPE:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key in step_keys:
                session.execute(SessionCommand("step", {"direction": step_keys[event.key]}))
                status_message = None
            elif event.type == pygame_module.KEYDOWN and event.key in (pygame_module.K_c, pygame_module.K_v):
                action = "collect" if event.key == pygame_module.K_c else "deposit"
                coord = session.player_coord
                result = session.execute(SessionCommand(action, {"i": coord.i, "j": coord.j}))
                status_message = _transfer_status(action, result)
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_g:
                fix = _geolocation_from_env()
                params: dict[str, Any] = {"error": fix.error} if not fix.ok else {"lat": fix.lat, "lng": fix.lng}
                session.execute(SessionCommand("geolocation", params))
                status_message = "geolocated" if fix.ok else f"geolocation failed: {fix.error}"
            elif event.type == pygame_module.MOUSEBUTTONDOWN and event.button in (1, 3):
                coord = _pixel_to_coord(event.pos[0], event.pos[1], session.player_coord, origin)
                action = "collect" if event.button == 1 else "deposit"
                result = session.execute(SessionCommand(action, {"i": coord.i, "j": coord.j}))
                status_message = f"{coord.key}: {_transfer_status(action, result)}"

        screen.fill(BACKGROUND_COLOR)
        _draw_tiles(screen, session, layer, tile_font)
        _draw_text_block(screen, font, _hud_lines(session, status_message), 12, 12)
        _draw_text_block(screen, font, _inventory_lines(session), WINDOW_SIZE[0] - PANEL_WIDTH, 12)
        pygame_module.display.flip()

    pygame_module.quit()
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    headless = args.headless or _env_flag_enabled(HEADLESS_ENV_VAR)
    raise SystemExit(run_pygame_viewer(config_path=args.config, headless=headless))


if __name__ == "__main__":
    main()
