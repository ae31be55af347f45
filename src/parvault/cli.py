"""parvault CLI — command-line interface for the vault engine.

Usage:
    parvault check-config
    parvault --config path/to/config check-config --deployed 2026-12-01T00:00:00Z
    parvault simulate scenarios/basic.json
    parvault simulate scenarios/basic.json --stop-on-error --no-persist

Environment (read from .env in the working directory if present):
    PARVAULT_CONFIG_DIR   default config directory
    PARVAULT_DATA_DIR     where simulate writes events.jsonl
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

from parvault.config import VaultConfig, parse_utc
from parvault.errors import VaultError
from parvault.persistence.event_log import EventLog
from parvault.simulation import Simulation

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"


def _config_dir(args: argparse.Namespace) -> Path:
    if args.config is not None:
        return args.config
    return Path(os.getenv("PARVAULT_CONFIG_DIR", str(DEFAULT_CONFIG)))


def _data_dir() -> Path:
    return Path(os.getenv("PARVAULT_DATA_DIR", str(DEFAULT_DATA)))


def cmd_check_config(args: argparse.Namespace) -> int:
    """Validate the vault parameter file."""
    config_dir = _config_dir(args)
    try:
        config = VaultConfig.from_config_dir(config_dir)
        deployed = (
            parse_utc(args.deployed) if args.deployed
            else datetime.now(timezone.utc)
        )
        config.validate(deployed)
    except (OSError, KeyError, ValueError) as e:
        print(f"Invalid config in {config_dir}: {e}", file=sys.stderr)
        return 1
    print(json.dumps(config.to_dict(), indent=2))
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    """Replay a scripted scenario against in-memory reserves."""
    try:
        base = VaultConfig.from_config_dir(_config_dir(args))
        script = json.loads(args.script.read_text(encoding="utf-8"))
    except (OSError, KeyError, ValueError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1

    event_log = None
    if not args.no_persist:
        data_dir = _data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        event_log = EventLog(storage_path=data_dir / "events.jsonl")

    try:
        sim = Simulation.from_script(script, base, event_log=event_log)
    except (VaultError, KeyError, ValueError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1

    report = sim.run(stop_on_error=args.stop_on_error)
    print(json.dumps(report.to_dict(), indent=2, default=str))
    return 1 if (args.stop_on_error and report.failures) else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parvault",
        description="parvault — redeemable vault reserve-accounting engine",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config directory (default: $PARVAULT_CONFIG_DIR or config/)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # check-config
    p_check = sub.add_parser("check-config", help="Validate vault_params.json")
    p_check.add_argument(
        "--deployed",
        help="Deployment timestamp to validate against (default: now)",
    )

    # simulate
    p_sim = sub.add_parser("simulate", help="Run a scripted scenario")
    p_sim.add_argument("script", type=Path, help="Scenario JSON file")
    p_sim.add_argument("--stop-on-error", action="store_true")
    p_sim.add_argument(
        "--no-persist", action="store_true",
        help="Keep the event log in memory only",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(Path.cwd() / ".env")
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "check-config": cmd_check_config,
        "simulate": cmd_simulate,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
