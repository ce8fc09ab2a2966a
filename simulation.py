"""
Simulation runner for the flagship duel.

Plays the round protocol many times between two long-lived strategies,
tallies wins for each side and classifies the win ratio:

    ratio < 1.0          -> lost
    1.0 <= ratio < 1.25  -> narrow win
    ratio >= 1.25        -> decisive win

Usage:
    result = run_simulation('bayesian', 'decoy', trials=100000, seed=7)
    print(result.ratio, result.verdict.value)
"""

from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from models import RoundOutcome
from resolution import play_round
from state import RandomSource, load_config
from strategies import Strategy, create_strategy

logger = logging.getLogger(__name__)

ZERO_DIVISION_POLICIES = ('infinite', 'raise')


class Verdict(Enum):
    LOST = "lost"
    NARROW_WIN = "narrow win"
    DECISIVE_WIN = "decisive win"


VERDICT_MESSAGES = {
    Verdict.LOST: "You lost! Improve your battle logic!",
    Verdict.NARROW_WIN: "You won by a small margin! Can you do better?",
    Verdict.DECISIVE_WIN: "Congratulations! Your victory is undeniable. Good job!",
}


class RatioUndefinedError(Exception):
    """Exception raised when the win ratio cannot be computed."""
    pass


def compute_ratio(wins_a: int, wins_b: int, zero_division: str = 'infinite') -> float:
    """
    Side A's wins divided by side B's wins.

    Args:
        wins_a: Trials side A won
        wins_b: Trials side B won
        zero_division: 'infinite' returns math.inf when only side B never won;
            'raise' raises RatioUndefinedError whenever side B never won

    Returns:
        The win ratio

    Raises:
        RatioUndefinedError: if neither side ever won, or wins_b is zero under 'raise'
    """
    if zero_division not in ZERO_DIVISION_POLICIES:
        raise ValueError(f"Unknown zero_division policy: {zero_division!r}")
    if wins_b:
        return wins_a / wins_b
    if not wins_a:
        raise RatioUndefinedError("Neither side scored a single hit; the win ratio is undefined")
    if zero_division == 'raise':
        raise RatioUndefinedError(f"Side B never won ({wins_a} wins for side A); the win ratio is unbounded")
    logger.warning("Side B never won in %d trials; reporting an infinite ratio", wins_a)
    return math.inf


def classify_ratio(ratio: float, win_threshold: float = 1.0, narrow_win_threshold: float = 1.25) -> Verdict:
    """Map a win ratio onto lost / narrow win / decisive win."""
    if math.isnan(ratio):
        raise RatioUndefinedError("Cannot classify an undefined ratio")
    if ratio < win_threshold:
        return Verdict.LOST
    if ratio < narrow_win_threshold:
        return Verdict.NARROW_WIN
    return Verdict.DECISIVE_WIN


@dataclass
class TrialTally:
    """Win counts over a batch of trials."""
    trials: int = 0
    wins_a: int = 0
    wins_b: int = 0
    both_hit: int = 0
    neither_hit: int = 0

    def add(self, outcome: RoundOutcome) -> None:
        self.trials += 1
        if outcome.a_wins:
            self.wins_a += 1
        if outcome.b_wins:
            self.wins_b += 1
        if outcome.a_wins and outcome.b_wins:
            self.both_hit += 1
        elif not outcome.a_wins and not outcome.b_wins:
            self.neither_hit += 1

    def merge(self, other: TrialTally) -> None:
        self.trials += other.trials
        self.wins_a += other.wins_a
        self.wins_b += other.wins_b
        self.both_hit += other.both_hit
        self.neither_hit += other.neither_hit


@dataclass
class SimulationResult:
    """Outcome of a full run: the ratio and its verdict are the headline."""
    strategy_a: str
    strategy_b: str
    tally: TrialTally
    ratio: float
    verdict: Verdict
    seed: Optional[int] = None
    duration_seconds: float = 0.0

    @property
    def trials(self) -> int:
        return self.tally.trials

    @property
    def wins_a(self) -> int:
        return self.tally.wins_a

    @property
    def wins_b(self) -> int:
        return self.tally.wins_b

    @property
    def message(self) -> str:
        return VERDICT_MESSAGES[self.verdict]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strategy_a': self.strategy_a,
            'strategy_b': self.strategy_b,
            'trials': self.tally.trials,
            'wins_a': self.tally.wins_a,
            'wins_b': self.tally.wins_b,
            'both_hit': self.tally.both_hit,
            'neither_hit': self.tally.neither_hit,
            # JSON has no infinity
            'ratio': self.ratio if math.isfinite(self.ratio) else None,
            'ratio_infinite': math.isinf(self.ratio),
            'verdict': self.verdict.value,
            'message': self.message,
            'seed': self.seed,
            'duration_seconds': round(self.duration_seconds, 3),
        }


class SimulationRunner:
    """Runs the round protocol repeatedly with the same two strategy instances."""

    def __init__(self, strategy_a: Strategy, strategy_b: Strategy,
                 rng: Optional[RandomSource] = None, trials: Optional[int] = None,
                 config: Optional[Dict[str, Any]] = None,
                 on_trial: Optional[Callable[[RoundOutcome], None]] = None):
        self.config = config if config is not None else load_config()
        self.strategy_a = strategy_a
        self.strategy_b = strategy_b
        self.rng = rng if rng is not None else RandomSource(self.config.get('seed'))
        self.trials = trials if trials is not None else self.config['trials']
        if self.trials <= 0:
            raise ValueError(f"trials must be positive, got {self.trials}")
        self.on_trial = on_trial

    def run_trials(self, count: int) -> TrialTally:
        """Play count rounds and tally the outcomes."""
        tally = TrialTally()
        for _ in range(count):
            outcome = play_round(self.strategy_a, self.strategy_b, self.rng)
            tally.add(outcome)
            if self.on_trial is not None:
                self.on_trial(outcome)
        return tally

    def run(self) -> SimulationResult:
        """Play every trial, then compute and classify the ratio."""
        logger.info("Simulating %d trials: %s vs %s", self.trials, self.strategy_a.name, self.strategy_b.name)
        start = time.time()
        tally = self.run_trials(self.trials)
        result = build_result(self.strategy_a.name, self.strategy_b.name, tally, self.config,
                              seed=self.rng.seed)
        result.duration_seconds = time.time() - start
        logger.info("%s vs %s: %d-%d, ratio %.4f (%s)", result.strategy_a, result.strategy_b,
                    tally.wins_a, tally.wins_b, result.ratio, result.verdict.value)
        return result


def build_result(strategy_a: str, strategy_b: str, tally: TrialTally,
                 config: Dict[str, Any], seed: Optional[int] = None) -> SimulationResult:
    """Turn raw counts into a ratio and verdict using the configured thresholds."""
    ratio = compute_ratio(tally.wins_a, tally.wins_b, config.get('zero_division', 'infinite'))
    verdict = classify_ratio(ratio, config.get('win_threshold', 1.0), config.get('narrow_win_threshold', 1.25))
    return SimulationResult(strategy_a=strategy_a, strategy_b=strategy_b, tally=tally,
                            ratio=ratio, verdict=verdict, seed=seed)


def split_trials(trials: int, batches: int) -> List[int]:
    """Split trials into near-equal positive batch sizes."""
    batches = max(1, min(batches, trials))
    base, extra = divmod(trials, batches)
    return [base + (1 if i < extra else 0) for i in range(batches)]


def _run_batch(strategy_a: str, strategy_b: str, trials: int, seed: int) -> TrialTally:
    """Run one independent batch in a worker process with its own strategies and random source."""
    runner = SimulationRunner(create_strategy(strategy_a), create_strategy(strategy_b),
                              rng=RandomSource(seed), trials=trials, config={'trials': trials})
    return runner.run_trials(trials)


def run_simulation(strategy_a: str, strategy_b: str, trials: Optional[int] = None,
                   seed: Optional[int] = None, workers: Optional[int] = None,
                   config: Optional[Dict[str, Any]] = None) -> SimulationResult:
    """
    Run a full simulation between two registered strategies.

    Args:
        strategy_a: Registry name of the side that fires first
        strategy_b: Registry name of the side that fires second
        trials: Number of trials (default: config 'trials')
        seed: Master seed (default: config 'seed', None = nondeterministic)
        workers: Worker processes (default: config 'workers'); with more than
            one, each batch gets fresh strategies and its own seeded source

    Returns:
        SimulationResult with ratio and verdict
    """
    config = dict(config if config is not None else load_config())
    trials = trials if trials is not None else config['trials']
    seed = seed if seed is not None else config.get('seed')
    workers = workers if workers is not None else config.get('workers', 1)
    if trials <= 0:
        raise ValueError(f"trials must be positive, got {trials}")
    if workers <= 1:
        runner = SimulationRunner(create_strategy(strategy_a), create_strategy(strategy_b),
                                  rng=RandomSource(seed), trials=trials, config=config)
        return runner.run()

    # Fail on unknown names before spawning workers
    create_strategy(strategy_a)
    create_strategy(strategy_b)

    master = RandomSource(seed)
    sizes = split_trials(trials, workers)
    seeds = [master.spawn().seed for _ in sizes]
    logger.info("Simulating %d trials in %d batches: %s vs %s", trials, len(sizes), strategy_a, strategy_b)

    start = time.time()
    tally = TrialTally()
    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_run_batch, strategy_a, strategy_b, size, batch_seed)
                   for size, batch_seed in zip(sizes, seeds)]
        # Merge in submission order so the totals do not depend on completion order
        for i, future in enumerate(futures):
            batch = future.result()
            logger.info("Batch %d/%d done: %d-%d over %d trials", i + 1, len(futures),
                        batch.wins_a, batch.wins_b, batch.trials)
            tally.merge(batch)

    result = build_result(strategy_a, strategy_b, tally, config, seed=seed)
    result.duration_seconds = time.time() - start
    return result
