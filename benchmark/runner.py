"""
Batch evaluation runner for Command Center strategies.

Runs every ordered pair of strategies (each pair plays once with each side
firing first), computes win rates and ratio intervals, and writes reports.

Usage:
    python -m benchmark.runner --help
"""

from __future__ import annotations

import argparse
import itertools
import json
import logging
import math
import os
from dataclasses import dataclass, field
from typing import Any

from benchmark.metrics import compute_run_metrics, flagship_disclosure_rate, impact_distribution
from benchmark.telemetry import SimulationTelemetry
from models import SLOT_COUNT
from simulation import SimulationResult, SimulationRunner, Verdict
from state import RandomSource, load_config
from strategies import STRATEGY_MAP, create_strategy

logger = logging.getLogger(__name__)


@dataclass
class ExperimentConfig:
    """Configuration for a round-robin experiment."""

    strategies: list[str] = field(default_factory=lambda: sorted(STRATEGY_MAP))
    trials_per_matchup: int = 20000
    seed: int = 0
    telemetry_records: int = 0  # per-trial records kept per matchup (0 = none)
    include_mirror: bool = False  # also play each strategy against itself
    output_dir: str = "benchmark_results"


@dataclass
class MatchupResult:
    """Result of one ordered matchup (side A fires first)."""

    result: SimulationResult
    metrics: dict[str, float]
    telemetry: SimulationTelemetry | None = None

    @property
    def strategy_a(self) -> str:
        return self.result.strategy_a

    @property
    def strategy_b(self) -> str:
        return self.result.strategy_b

    def to_dict(self) -> dict:
        d = self.result.to_dict()
        d["metrics"] = {k: (v if math.isfinite(v) else None) for k, v in self.metrics.items()}
        return d


@dataclass
class ExperimentReport:
    """Aggregate results from a round-robin experiment."""

    matchups: list[MatchupResult] = field(default_factory=list)
    standings: dict[str, dict[str, float]] = field(default_factory=dict)


class TournamentRunner:
    """Runs round-robin experiments between registered strategies."""

    def __init__(self, config: ExperimentConfig, game_config: dict[str, Any] | None = None):
        unknown = [name for name in config.strategies if name not in STRATEGY_MAP]
        if unknown:
            raise ValueError(f"Unknown strategies: {unknown}. Available: {sorted(STRATEGY_MAP)}")
        self.config = config
        self._game_config = game_config if game_config is not None else load_config()

    def run_matchup(self, strategy_a: str, strategy_b: str, seed: int) -> MatchupResult:
        """Run one ordered matchup with fresh strategy instances."""
        telemetry = None
        on_trial = None
        if self.config.telemetry_records > 0:
            telemetry = SimulationTelemetry(
                strategy_a=strategy_a,
                strategy_b=strategy_b,
                seed=seed,
                max_records=self.config.telemetry_records,
            )
            on_trial = telemetry.add_trial

        runner = SimulationRunner(
            create_strategy(strategy_a),
            create_strategy(strategy_b),
            rng=RandomSource(seed),
            trials=self.config.trials_per_matchup,
            config=self._game_config,
            on_trial=on_trial,
        )
        result = runner.run()
        tally = result.tally
        metrics = compute_run_metrics(tally.wins_a, tally.wins_b, tally.trials, tally.both_hit)
        if telemetry is not None and telemetry.records:
            metrics["disclosure_rate_a"] = flagship_disclosure_rate(telemetry.records, "a")
            metrics["disclosure_rate_b"] = flagship_disclosure_rate(telemetry.records, "b")
            metrics["off_board_rate_a"] = sum(
                share for slot, share in impact_distribution(telemetry.records, "a").items() if not 0 <= slot < SLOT_COUNT
            )
        return MatchupResult(result=result, metrics=metrics, telemetry=telemetry)

    def run_tournament(self) -> ExperimentReport:
        """Run every ordered pair of strategies."""
        report = ExperimentReport()
        names = self.config.strategies
        pairs = list(itertools.permutations(names, 2))
        if self.config.include_mirror:
            pairs += [(n, n) for n in names]

        for i, (a, b) in enumerate(pairs):
            logger.info("Matchup %d/%d: %s vs %s", i + 1, len(pairs), a, b)
            report.matchups.append(self.run_matchup(a, b, seed=self.config.seed + i * 1000))

        report.standings = self._aggregate_standings(report.matchups)
        return report

    def _aggregate_standings(self, matchups: list[MatchupResult]) -> dict[str, dict[str, float]]:
        """Average win rate per strategy over all seats and opponents."""
        totals: dict[str, dict[str, float]] = {}
        for m in matchups:
            for name, wins, lost_to in (
                (m.strategy_a, m.result.wins_a, m.result.wins_b),
                (m.strategy_b, m.result.wins_b, m.result.wins_a),
            ):
                entry = totals.setdefault(name, {"trials": 0, "wins": 0, "hits_taken": 0, "decisive_wins": 0})
                entry["trials"] += m.result.trials
                entry["wins"] += wins
                entry["hits_taken"] += lost_to
            if m.result.verdict is Verdict.DECISIVE_WIN:
                totals[m.strategy_a]["decisive_wins"] += 1

        standings = {}
        for name, entry in totals.items():
            trials = entry["trials"]
            standings[name] = {
                "win_rate": entry["wins"] / trials if trials else 0.0,
                "hit_rate_against": entry["hits_taken"] / trials if trials else 0.0,
                "decisive_wins": entry["decisive_wins"],
                "trials": trials,
            }
        return standings

    def generate_report(self, experiment: ExperimentReport) -> str:
        """Generate human-readable summary report."""
        lines = [
            "=" * 70,
            "  COMMAND CENTER TOURNAMENT REPORT",
            "=" * 70,
            "",
            "MATCHUPS (side A fires first):",
            "-" * 70,
        ]
        for m in experiment.matchups:
            r = m.result
            ratio = f"{r.ratio:.4f}" if math.isfinite(r.ratio) else "inf"
            lines.append(
                f"  {r.strategy_a:<10} vs {r.strategy_b:<10} "
                f"{r.wins_a:>7} - {r.wins_b:<7} "
                f"ratio {ratio:>8} "
                f"[{m.metrics['ratio_ci_lower']:.3f}, {m.metrics['ratio_ci_upper']:.3f}]  "
                f"{r.verdict.value}"
            )

        lines.append("\n\nSTANDINGS:")
        lines.append("-" * 70)
        ranked = sorted(experiment.standings.items(), key=lambda kv: kv[1]["win_rate"], reverse=True)
        for name, stats in ranked:
            lines.append(
                f"  {name:<10} win rate {stats['win_rate']:.4f}  "
                f"hit against {stats['hit_rate_against']:.4f}  "
                f"decisive wins {int(stats['decisive_wins'])}"
            )

        lines.append("\n" + "=" * 70)
        return "\n".join(lines)

    def write_results(self, experiment: ExperimentReport, output_dir: str | None = None) -> None:
        """Write all results to disk."""
        out = output_dir or self.config.output_dir
        os.makedirs(out, exist_ok=True)

        # Summary report
        with open(os.path.join(out, "summary_report.txt"), "w") as f:
            f.write(self.generate_report(experiment))

        # Per-matchup results as JSONL
        with open(os.path.join(out, "matchups.jsonl"), "w") as f:
            for m in experiment.matchups:
                f.write(json.dumps(m.to_dict()) + "\n")

        # Standings
        with open(os.path.join(out, "standings.json"), "w") as f:
            json.dump(experiment.standings, f, indent=2)

        # Per-matchup telemetry
        telemetry_dir = os.path.join(out, "telemetry")
        for i, m in enumerate(experiment.matchups):
            if m.telemetry is None:
                continue
            m.telemetry.write_jsonl(os.path.join(telemetry_dir, f"matchup_{i:03d}_{m.strategy_a}_vs_{m.strategy_b}.jsonl"))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Round-robin tournament between Command Center strategies.")
    parser.add_argument("--strategies", nargs="+", default=sorted(STRATEGY_MAP), help="Strategy names to include")
    parser.add_argument("--trials", type=int, default=20000, help="Trials per matchup (default: 20000)")
    parser.add_argument("--seed", type=int, default=0, help="Base seed (default: 0)")
    parser.add_argument("--telemetry", type=int, default=0, help="Per-trial records kept per matchup")
    parser.add_argument("--mirror", action="store_true", help="Also play each strategy against itself")
    parser.add_argument("--output-dir", default="benchmark_results", help="Where to write results")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = ExperimentConfig(
        strategies=args.strategies,
        trials_per_matchup=args.trials,
        seed=args.seed,
        telemetry_records=args.telemetry,
        include_mirror=args.mirror,
        output_dir=args.output_dir,
    )
    runner = TournamentRunner(config)
    experiment = runner.run_tournament()
    runner.write_results(experiment)
    print(runner.generate_report(experiment))


if __name__ == "__main__":
    main()
