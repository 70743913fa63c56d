from __future__ import annotations

import argparse
import logging
from typing import Sequence

from geocoins.cli.pygame_viewer import HEADLESS_ENV_VAR, _env_flag_enabled, run_pygame_viewer
from geocoins.cli.viewer import run_demo
from geocoins.content.config import DEFAULT_GAME_CONFIG_PATH


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="geocoins", description="Canonical geocoins launcher.")
    parser.add_argument("--config", default=DEFAULT_GAME_CONFIG_PATH, help="Path to game config JSON.")
    parser.add_argument("--ascii", action="store_true", help="Play in the terminal instead of the pygame window.")
    parser.add_argument("--headless", action="store_true", help="Run startup path in headless mode.")
    parser.add_argument("--log-level", default="INFO", help="Logging level for the geocoins loggers.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))
    if args.ascii:
        run_demo(args.config)
        return 0
    headless = args.headless or _env_flag_enabled(HEADLESS_ENV_VAR)
    return run_pygame_viewer(config_path=args.config, headless=headless)


if __name__ == "__main__":
    raise SystemExit(main())
