"""CLI entrypoint for the TimeTally terminal host."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace

from timetally.console.config import load_app_config
from timetally.console.host import AppHost


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the TimeTally interval timer in a terminal")
    parser.add_argument("--env-file", default=".env", help="Path to env file")
    parser.add_argument("--data-dir", help="Directory holding the persisted state file")
    parser.add_argument(
        "--no-sync",
        action="store_true",
        help="Do not watch for changes made by other instances",
    )
    parser.add_argument(
        "--disable-timers",
        action="store_true",
        help="Disable tick, save, and sync timers",
    )
    parser.add_argument("--no-bell", action="store_true", help="Do not ring the terminal bell")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    config = load_app_config(args.env_file)
    if args.data_dir:
        config = replace(config, data_dir=args.data_dir)
    if args.no_sync:
        config = replace(config, sync_mode="none")
    if args.disable_timers:
        config = replace(config, enable_timers=False)
    if args.no_bell:
        config = replace(config, enable_bell=False)

    try:
        host = AppHost(config)
    except (ValueError, OSError) as exc:
        raise SystemExit(str(exc)) from exc
    try:
        host.start()
    except KeyboardInterrupt:
        pass
    finally:
        host.stop()


if __name__ == "__main__":
    main()
