"""
Benchmark metrics for comparing Command Center strategies.

Computes per-run statistics from win counts and trial telemetry:
- Win rate: fraction of trials a side hit the enemy flagship
- Wilson interval: confidence interval for a win rate
- Ratio interval (delta method): confidence interval for wins_a / wins_b
- Bootstrap ratio interval: resampled interval from per-trial records
- Impact distribution: where torpedoes landed, including off the board
"""

import math

import numpy as np

from benchmark.telemetry import TrialRecord
from models import SLOT_COUNT

Z_95 = 1.959963984540054


def win_rate(wins: int, trials: int) -> float:
    """Fraction of trials won. Zero trials gives 0.0."""
    if trials <= 0:
        return 0.0
    return wins / trials


def wilson_interval(wins: int, trials: int, z: float = Z_95) -> tuple[float, float]:
    """
    Wilson score interval for a binomial proportion.

    Stays inside [0, 1] and behaves at 0 or all wins, unlike the normal
    approximation.

    Args:
        wins: successes
        trials: attempts
        z: normal quantile (default 95%)

    Returns:
        (lower, upper) bounds; (0.0, 1.0) when trials is zero.
    """
    if trials <= 0:
        return 0.0, 1.0
    p = wins / trials
    denom = 1 + z * z / trials
    centre = (p + z * z / (2 * trials)) / denom
    margin = z * math.sqrt(p * (1 - p) / trials + z * z / (4 * trials * trials)) / denom
    return max(0.0, centre - margin), min(1.0, centre + margin)


def ratio_confidence_interval(
    wins_a: int, wins_b: int, trials: int, both_hit: int = 0, z: float = Z_95
) -> tuple[float, float]:
    """
    Delta-method interval for the ratio wins_a / wins_b.

    Both counts come from the same trials, so the covariance term uses the
    number of trials where both sides scored.

    Returns:
        (lower, upper); (0.0, inf) when wins_b is zero.
    """
    if wins_b <= 0 or trials <= 0:
        return 0.0, math.inf
    pa = wins_a / trials
    pb = wins_b / trials
    pab = both_hit / trials
    ratio = pa / pb
    var_a = pa * (1 - pa) / trials
    var_b = pb * (1 - pb) / trials
    cov = (pab - pa * pb) / trials
    var_ratio = (var_a / pb**2) + (pa**2 * var_b / pb**4) - (2 * pa * cov / pb**3)
    margin = z * math.sqrt(max(var_ratio, 0.0))
    return max(0.0, ratio - margin), ratio + margin


def bootstrap_ratio_interval(
    records: list[TrialRecord], n_resamples: int = 1000, confidence: float = 0.95, seed: int | None = None
) -> tuple[float, float]:
    """
    Percentile bootstrap interval for wins_a / wins_b over per-trial records.

    Resamples whose side-B win count is zero are dropped.

    Returns:
        (lower, upper); (nan, nan) when no resample has a defined ratio.
    """
    if not records:
        return math.nan, math.nan
    a = np.fromiter((r.a_wins for r in records), dtype=np.int64, count=len(records))
    b = np.fromiter((r.b_wins for r in records), dtype=np.int64, count=len(records))
    rng = np.random.default_rng(seed)
    idx = rng.integers(0, len(records), size=(n_resamples, len(records)))
    wins_a = a[idx].sum(axis=1)
    wins_b = b[idx].sum(axis=1)
    defined = wins_b > 0
    if not defined.any():
        return math.nan, math.nan
    ratios = wins_a[defined] / wins_b[defined]
    alpha = (1 - confidence) / 2
    lower, upper = np.quantile(ratios, [alpha, 1 - alpha])
    return float(lower), float(upper)


def impact_distribution(records: list[TrialRecord], side: str = "a") -> dict[int, float]:
    """
    Share of torpedoes landing on each slot.

    Keys run from -1 to SLOT_COUNT so the two off-board landings a
    correction can produce are visible next to the board slots.
    """
    if side not in ("a", "b"):
        raise ValueError(f"side must be 'a' or 'b', got {side!r}")
    slots = list(range(-1, SLOT_COUNT + 1))
    if not records:
        return {s: 0.0 for s in slots}
    impacts = np.array([r.impact_a if side == "a" else r.impact_b for r in records], dtype=np.int64)
    counts = np.bincount(impacts + 1, minlength=len(slots))
    shares = counts / len(records)
    return {s: float(shares[s + 1]) for s in slots}


def flagship_disclosure_rate(records: list[TrialRecord], side: str = "a") -> float:
    """How often a side fired from its own flagship, giving it away."""
    if not records:
        return 0.0
    if side == "a":
        return sum(1 for r in records if r.a_revealed_flagship) / len(records)
    return sum(1 for r in records if r.b_revealed_flagship) / len(records)


def compute_run_metrics(wins_a: int, wins_b: int, trials: int, both_hit: int = 0) -> dict[str, float]:
    """Win rates and 95% intervals for one run."""
    a_low, a_high = wilson_interval(wins_a, trials)
    b_low, b_high = wilson_interval(wins_b, trials)
    r_low, r_high = ratio_confidence_interval(wins_a, wins_b, trials, both_hit)
    return {
        "win_rate_a": win_rate(wins_a, trials),
        "win_rate_a_ci_lower": a_low,
        "win_rate_a_ci_upper": a_high,
        "win_rate_b": win_rate(wins_b, trials),
        "win_rate_b_ci_lower": b_low,
        "win_rate_b_ci_upper": b_high,
        "ratio_ci_lower": r_low,
        "ratio_ci_upper": r_high,
    }
