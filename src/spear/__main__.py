"""SPEAR CLI entry point.

Usage:
    python -m spear                              # Default scenario
    python -m spear --config custom.yaml         # Custom scenario
    python -m spear --seed 42 --time-step 0.5    # Override seed / step
    python -m spear --trace                      # Print one snapshot per step
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from spear.core.config import SpearConfig
from spear.core.errors import ConfigurationError
from spear.engagement.config import ScenarioConfig
from spear.engagement.scenario import build_coordinator
from spear.radar.attenuation import AttenuationTable
from spear.utils.logging import setup_logging

logger = logging.getLogger("spear.cli")


def _load_table(path: str | None) -> AttenuationTable | None:
    """Packaged table unless *path* is given. ``None`` if it cannot be read."""
    try:
        return AttenuationTable.from_csv(path) if path else AttenuationTable.default()
    except (OSError, ValueError) as e:
        logger.warning("Attenuation table unavailable, using free-space ranges: %s", e)
        return None


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="spear",
        description="SPEAR - radar / missile engagement simulator",
    )
    parser.add_argument(
        "--config",
        "-c",
        default="config/default.yaml",
        help="Path to scenario YAML file (default: config/default.yaml)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override the random seed for unguided missile drift",
    )
    parser.add_argument(
        "--time-step",
        type=float,
        default=None,
        help="Override the simulation time step in seconds",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        default=False,
        help="Print a JSON snapshot after every step",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level",
    )
    parser.add_argument(
        "--validate-config",
        action="store_true",
        default=False,
        help="Validate config against Pydantic schema before starting",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Path to log file (default: no file logging)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=False,
        help="Output logs as JSON instead of human-readable",
    )
    args = parser.parse_args()

    # Load config
    config = SpearConfig(args.config)
    try:
        cfg = config.load(validate=args.validate_config)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: Config validation failed:\n{e}", file=sys.stderr)
        return 1

    if "spear" not in cfg:
        print(f"Error: {args.config} has no top-level 'spear' key", file=sys.stderr)
        return 1

    # Apply CLI overrides
    if args.seed is not None:
        config.override("spear.system.seed", args.seed)
    if args.time_step is not None:
        config.override("spear.scenario.time_step_s", args.time_step)

    # Setup logging
    system = cfg.spear.get("system", {})
    log_level = args.log_level or system.get("log_level", "INFO")
    log_file = args.log_file or system.get("log_file", None)
    log_json = args.log_json or system.get("log_json", False)
    setup_logging(log_level, log_file=log_file, log_json=log_json)

    try:
        scenario = ScenarioConfig.from_omegaconf(cfg.spear.get("scenario"))
        table = _load_table(cfg.spear.get("attenuation", {}).get("path"))
        coordinator = build_coordinator(scenario, table=table, seed=system.get("seed"))
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Error: Invalid scenario: {e}", file=sys.stderr)
        return 1

    if args.trace:
        while not coordinator.advance():
            print(json.dumps(coordinator.snapshot().to_dict()))
        print(json.dumps(coordinator.snapshot().to_dict()))
        result = coordinator.result()
    else:
        result = coordinator.run()

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
