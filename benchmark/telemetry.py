"""
Telemetry schemas for simulation runs.

Captures one record per trial so runs can be inspected after the fact:
where each flagship was, what each side declared, how each torpedo was
corrected and where it landed. All schemas are JSON-serializable for JSONL
output.

Usage:
    telemetry = SimulationTelemetry(strategy_a="bayesian", strategy_b="decoy", seed=7)
    runner = SimulationRunner(a, b, rng=RandomSource(7), on_trial=telemetry.add_trial)
    runner.run()
    telemetry.write_jsonl("runs/bayesian_vs_decoy.jsonl")
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any

from models import SLOT_COUNT, RoundOutcome


@dataclass
class TrialRecord:
    """One trial as seen by an observer with full information."""

    trial: int
    flagship_a: int
    flagship_b: int
    source_a: int
    target_a: int
    correction_a: int
    source_b: int
    target_b: int
    correction_b: int
    a_wins: bool
    b_wins: bool

    @property
    def impact_a(self) -> int:
        return self.target_a + self.correction_a

    @property
    def impact_b(self) -> int:
        return self.target_b + self.correction_b

    @property
    def a_revealed_flagship(self) -> bool:
        """Side A fired from its own flagship."""
        return self.source_a == self.flagship_a

    @property
    def b_revealed_flagship(self) -> bool:
        return self.source_b == self.flagship_b

    @staticmethod
    def from_outcome(trial: int, outcome: RoundOutcome) -> "TrialRecord":
        return TrialRecord(
            trial=trial,
            flagship_a=outcome.flagship_a,
            flagship_b=outcome.flagship_b,
            source_a=outcome.attack_a.source,
            target_a=outcome.attack_a.target,
            correction_a=outcome.correction_a,
            source_b=outcome.attack_b.source,
            target_b=outcome.attack_b.target,
            correction_b=outcome.correction_b,
            a_wins=outcome.a_wins,
            b_wins=outcome.b_wins,
        )

    def to_dict(self) -> dict:
        return {
            "trial": self.trial,
            "flagship_a": self.flagship_a,
            "flagship_b": self.flagship_b,
            "attack_a": {"source": self.source_a, "target": self.target_a},
            "attack_b": {"source": self.source_b, "target": self.target_b},
            "correction_a": self.correction_a,
            "correction_b": self.correction_b,
            "impact_a": self.impact_a,
            "impact_b": self.impact_b,
            "a_wins": self.a_wins,
            "b_wins": self.b_wins,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class SimulationTelemetry:
    """Per-trial records for a single run.

    Pass add_trial as the runner's on_trial hook. max_records caps memory
    for long runs; trials beyond the cap are counted but not stored.
    """

    strategy_a: str = ""
    strategy_b: str = ""
    seed: int | None = None
    max_records: int | None = None
    records: list[TrialRecord] = field(default_factory=list)
    trials_seen: int = 0

    def add_trial(self, outcome: RoundOutcome) -> None:
        self.trials_seen += 1
        if self.max_records is None or len(self.records) < self.max_records:
            self.records.append(TrialRecord.from_outcome(self.trials_seen, outcome))

    def summary(self) -> dict[str, Any]:
        """Counts over the stored records."""
        n = len(self.records)
        return {
            "trials_seen": self.trials_seen,
            "records": n,
            "wins_a": sum(1 for r in self.records if r.a_wins),
            "wins_b": sum(1 for r in self.records if r.b_wins),
            "a_revealed_flagship": sum(1 for r in self.records if r.a_revealed_flagship),
            "b_revealed_flagship": sum(1 for r in self.records if r.b_revealed_flagship),
            "a_off_board": sum(1 for r in self.records if not 0 <= r.impact_a < SLOT_COUNT),
            "b_off_board": sum(1 for r in self.records if not 0 <= r.impact_b < SLOT_COUNT),
        }

    def to_jsonl(self) -> str:
        """Serialize as JSONL (one JSON object per line)."""
        header = {
            "type": "run_header",
            "strategy_a": self.strategy_a,
            "strategy_b": self.strategy_b,
            "seed": self.seed,
            "trials_seen": self.trials_seen,
        }
        lines = [json.dumps(header)]
        for record in self.records:
            entry = {"type": "trial"}
            entry.update(record.to_dict())
            lines.append(json.dumps(entry))
        return "\n".join(lines)

    def write_jsonl(self, filepath: str) -> None:
        """Write telemetry to a JSONL file."""
        os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
        with open(filepath, "w") as f:
            f.write(self.to_jsonl())
            f.write("\n")
