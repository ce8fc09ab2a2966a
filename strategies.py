"""
Command Center strategies for the flagship duel.

A strategy fires one torpedo per trial and gets one course correction.
The ladder runs from the random baseline to a Bayesian reader of the
opponent's declared launch slot:

1. RandomStrategy: fires from its own flagship, random target, random
   correction. The minimal legal behaviour and the reference opponent.
2. DecoyStrategy: hides its flagship by firing from a decoy slot that is
   neither the flagship nor the slot it last saw attacked. Holds course at
   the board edges so the torpedo always hits some ship.
3. EvasiveStrategy: aims at the centre and steers away from the enemy's
   declared source, which a decoy never uses for its flagship.
4. BayesianStrategy: weighs the competing explanations of the enemy's
   declared source against the observed history and steers toward the most
   probable flagship slot.

Strategy instances live for a whole run, so any memory kept in observe()
carries over from one trial to the next.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Type

from models import Attack, Board, CORRECTIONS, SLOT_COUNT
from state import RandomSource

# Targets whose neighbours are both on the board
CENTRE_SLOTS = list(range(1, SLOT_COUNT - 1))


class UnknownStrategyError(ValueError):
    """Raised when a strategy name is not in the registry."""
    pass


# ---------------------------------------------------------------------------
# Strategy interface
# ---------------------------------------------------------------------------

class Strategy:
    """Base class for Command Center strategies."""
    name: str = "base"

    def launch(self, board: Board, rng: RandomSource) -> Attack:
        """Fire a torpedo. Source and target must both be slots on the board."""
        raise NotImplementedError

    def guide(self, attack: Attack, rng: RandomSource) -> int:
        """Return -1, 0 or 1 to nudge our own torpedo off its locked target."""
        raise NotImplementedError

    def observe(self, enemy_attack: Attack) -> None:
        """Triggered when the opponent fires its torpedo."""
        pass

    def reset(self) -> None:
        """Forget everything learned so far."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


def _decoy_slots(board: Board, *excluded: Optional[int]) -> List[int]:
    """Slots that are neither the flagship nor any of the excluded slots."""
    skip = {board.flagship, *excluded}
    return [s for s in range(SLOT_COUNT) if s not in skip]


def _reachable_corrections(target: int) -> List[int]:
    """Corrections that keep the torpedo on the board."""
    return [c for c in CORRECTIONS if 0 <= target + c < SLOT_COUNT]


class RandomStrategy(Strategy):
    """Fires from the flagship at a random target, then corrects at random.

    Its declared source always gives its flagship away.
    """
    name = "random"

    def launch(self, board: Board, rng: RandomSource) -> Attack:
        return Attack(source=board.flagship, target=rng.next_int(SLOT_COUNT))

    def guide(self, attack: Attack, rng: RandomSource) -> int:
        return rng.next_correction()


class DecoyStrategy(Strategy):
    """Fires from a decoy slot and never from the slot the enemy last targeted.

    The torpedo is corrected only when the target has neighbours on both
    sides, so it never sways off the board.
    """
    name = "decoy"

    def __init__(self):
        self.attacked_slot: Optional[int] = None

    def launch(self, board: Board, rng: RandomSource) -> Attack:
        source = rng.choice(_decoy_slots(board, self.attacked_slot))
        return Attack(source=source, target=rng.next_int(SLOT_COUNT))

    def guide(self, attack: Attack, rng: RandomSource) -> int:
        if attack.target in CENTRE_SLOTS:
            return rng.next_correction()
        return 0

    def observe(self, enemy_attack: Attack) -> None:
        self.attacked_slot = enemy_attack.target

    def reset(self) -> None:
        self.attacked_slot = None


class EvasiveStrategy(Strategy):
    """Treats the enemy's declared source as a decoy and steers away from it.

    Aiming at a centre slot means either correction still hits a ship, and a
    decoy source is the one slot known not to hold the flagship.
    """
    name = "evasive"

    def __init__(self):
        self.enemy_source: Optional[int] = None

    def launch(self, board: Board, rng: RandomSource) -> Attack:
        return Attack(source=rng.choice(_decoy_slots(board)), target=rng.choice(CENTRE_SLOTS))

    def guide(self, attack: Attack, rng: RandomSource) -> int:
        if self.enemy_source is None:
            return rng.choice(_reachable_corrections(attack.target))
        if attack.target > self.enemy_source:
            return 1
        if attack.target < self.enemy_source:
            return -1
        return rng.next_correction()

    def observe(self, enemy_attack: Attack) -> None:
        self.enemy_source = enemy_attack.source

    def reset(self) -> None:
        self.enemy_source = None


# Explanations for the enemy's declared source
HONEST = "honest"        # fires from its flagship
UNIFORM_DECOY = "decoy"  # fires from any other ship
AVOIDING_DECOY = "avoiding_decoy"  # fires from any other ship except the one we last targeted


class BayesianStrategy(Strategy):
    """Steers toward the slot most likely to hold the enemy flagship.

    Three explanations compete for the enemy's declared source: honest,
    uniform decoy and avoiding decoy. An honest or uniform-decoy source lands
    on the slot we had targeted before the enemy launched one time in five;
    an avoiding decoy never does. The overlap history gives each explanation
    a posterior weight and the current source gives a flagship distribution
    under each one. Honest and uniform decoys cannot be told apart from the
    enemy's attacks alone, so their split is left to the prior.

    On side B the enemy's attack is already known at launch time, so the
    target is locked next to the most probable slot straight away.
    """
    name = "bayesian"

    def __init__(self, priors: Optional[Dict[str, float]] = None):
        self.priors = dict(priors or {HONEST: 1 / 3, UNIFORM_DECOY: 1 / 3, AVOIDING_DECOY: 1 / 3})
        unknown = set(self.priors) - {HONEST, UNIFORM_DECOY, AVOIDING_DECOY}
        if unknown:
            raise ValueError(f"Unknown source explanations: {sorted(unknown)}")
        if any(p < 0 for p in self.priors.values()) or sum(self.priors.values()) <= 0:
            raise ValueError(f"Priors must be non-negative with a positive sum: {self.priors}")
        self.reset()

    def reset(self) -> None:
        self.samples = 0   # trials where the enemy had seen one of our targets before launching
        self.overlaps = 0  # ...and fired from that very slot anyway
        self.belief: Optional[List[float]] = None  # flagship distribution for the current trial
        self._last_target: Optional[int] = None
        self._current_target: Optional[int] = None

    def model_weights(self) -> Dict[str, float]:
        """Posterior weight of each explanation given the overlap history."""
        honest = self.priors.get(HONEST, 0.0)
        uniform = self.priors.get(UNIFORM_DECOY, 0.0)
        avoiding = self.priors.get(AVOIDING_DECOY, 0.0)
        if self.overlaps:
            avoiding = 0.0
        else:
            # Shared P(no overlap) factor, (4/5)^n, for honest and uniform decoy
            decay = (1 - 1 / SLOT_COUNT) ** self.samples
            if avoiding > 0 and decay > 0:
                honest, uniform = honest * decay, uniform * decay
            elif avoiding > 0:
                honest = uniform = 0.0
        total = honest + uniform + avoiding
        if total <= 0:
            # An overlap ruled out the only explanation with prior mass
            return {HONEST: 0.0, UNIFORM_DECOY: 1.0, AVOIDING_DECOY: 0.0}
        return {HONEST: honest / total, UNIFORM_DECOY: uniform / total, AVOIDING_DECOY: avoiding / total}

    def flagship_distribution(self, source: int, seen: Optional[int]) -> List[float]:
        """P(flagship = slot | declared source) mixed over the explanations."""
        weights = self.model_weights()
        scores = []
        for slot in range(SLOT_COUNT):
            score = weights[HONEST] * (1.0 if slot == source else 0.0)
            if slot != source:
                score += weights[UNIFORM_DECOY] / (SLOT_COUNT - 1)
                avoided = {slot} if seen is None else {slot, seen}
                if source not in avoided:
                    score += weights[AVOIDING_DECOY] / (SLOT_COUNT - len(avoided))
            scores.append(score)
        total = sum(scores)
        if total <= 0:
            return [1 / SLOT_COUNT] * SLOT_COUNT
        return [s / total for s in scores]

    def launch(self, board: Board, rng: RandomSource) -> Attack:
        if self.belief is not None:
            best = _best_slots(self.belief, range(SLOT_COUNT))
            target = min(max(rng.choice(best), CENTRE_SLOTS[0]), CENTRE_SLOTS[-1])
        else:
            target = rng.choice(CENTRE_SLOTS)
        self._current_target = target
        return Attack(source=rng.choice(_decoy_slots(board)), target=target)

    def observe(self, enemy_attack: Attack) -> None:
        # Side A already launched this trial; side B is known only by last trial's target
        seen = self._current_target if self._current_target is not None else self._last_target
        self.belief = self.flagship_distribution(enemy_attack.source, seen)
        if seen is not None:
            self.samples += 1
            if enemy_attack.source == seen:
                self.overlaps += 1

    def guide(self, attack: Attack, rng: RandomSource) -> int:
        corrections = _reachable_corrections(attack.target)
        if self.belief is not None:
            impacts = _best_slots(self.belief, [attack.target + c for c in corrections])
            corrections = [i - attack.target for i in impacts]
        correction = rng.choice(corrections)
        # guide() is the last call of a trial for both sides
        self._last_target = attack.target
        self._current_target = None
        self.belief = None
        return correction


def _best_slots(belief: List[float], slots) -> List[int]:
    """Slots sharing the highest probability."""
    slots = list(slots)
    top = max(belief[s] for s in slots)
    return [s for s in slots if abs(belief[s] - top) < 1e-12]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

STRATEGY_MAP: Dict[str, Type[Strategy]] = {
    cls.name: cls
    for cls in (RandomStrategy, DecoyStrategy, EvasiveStrategy, BayesianStrategy)
}


def get_strategy(name: str) -> Type[Strategy]:
    """Look up a strategy class by registry name."""
    try:
        return STRATEGY_MAP[name]
    except KeyError:
        raise UnknownStrategyError(
            f"Unknown strategy: {name}. Available: {sorted(STRATEGY_MAP)}"
        ) from None


def create_strategy(name: str) -> Strategy:
    """Fresh instance of the named strategy."""
    return get_strategy(name)()
