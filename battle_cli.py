"""
CLI for the flagship duel.

Pits your Command Center against the enemy's over many trials and reports
your wins to enemy's wins ratio.

Usage: python battle_cli.py [--you bayesian] [--enemy decoy] [--trials 100000]
"""

import argparse
import json
import logging
import math
import sys

from simulation import RatioUndefinedError, SimulationResult, run_simulation
from state import load_config
from strategies import STRATEGY_MAP, UnknownStrategyError


def build_parser(config: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simulate the flagship duel between two Command Centers.")
    parser.add_argument("--you", default="bayesian", choices=sorted(STRATEGY_MAP),
                        help="Your strategy; fires first (default: bayesian)")
    parser.add_argument("--enemy", default="decoy", choices=sorted(STRATEGY_MAP),
                        help="Enemy strategy; fires second (default: decoy)")
    parser.add_argument("--trials", type=int, default=config["trials"],
                        help=f"Number of trials (default: {config['trials']})")
    parser.add_argument("--seed", type=int, default=config["seed"], help="Random seed (default: none)")
    parser.add_argument("--workers", type=int, default=config["workers"],
                        help=f"Worker processes (default: {config['workers']})")
    parser.add_argument("--log-level", default=config["log_level"], help="Logging level (default: WARNING)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    return parser


def render_result(result: SimulationResult) -> str:
    """The two-line report: ratio, then verdict message."""
    ratio = "Infinity" if math.isinf(result.ratio) else f"{result.ratio}"
    return f"Your wins to enemy's wins ratio is {ratio}\n{result.message}"


def main(argv=None) -> int:
    config = load_config()
    args = build_parser(config).parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.trials <= 0:
        print("--trials must be positive", file=sys.stderr)
        return 2

    try:
        result = run_simulation(args.you, args.enemy, trials=args.trials, seed=args.seed,
                                workers=args.workers, config=config)
    except (RatioUndefinedError, UnknownStrategyError) as e:
        print(f"Simulation failed: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(render_result(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
