from typing import Optional
import logging
from models import Attack, Board, CORRECTIONS, RoundOutcome, SLOT_COUNT
from state import RandomSource, create_board
from strategies import Strategy

logger = logging.getLogger(__name__)


class RoundError(Exception):
    """Exception raised when a strategy breaks the round protocol."""
    pass


class AttackValidationError(RoundError):
    """Exception raised when a launched attack is not aimed from and at board slots."""
    pass


class CorrectionValidationError(RoundError):
    """Exception raised when a course correction is not -1, 0 or 1."""
    pass


def _is_slot(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < SLOT_COUNT


def validate_attack(attack: Attack, strategy_name: str = "strategy") -> Attack:
    """Reject attacks whose source or target is not a slot on the board."""
    if not isinstance(attack, Attack):
        raise AttackValidationError(f"{strategy_name} launched {attack!r} instead of an Attack")
    if not _is_slot(attack.source):
        raise AttackValidationError(f"{strategy_name} fired from slot {attack.source!r}, outside 0..{SLOT_COUNT - 1}")
    if not _is_slot(attack.target):
        raise AttackValidationError(f"{strategy_name} locked on slot {attack.target!r}, outside 0..{SLOT_COUNT - 1}")
    return attack


def validate_correction(correction, strategy_name: str = "strategy") -> int:
    """Reject anything but -1, 0 or 1."""
    if not isinstance(correction, int) or isinstance(correction, bool) or correction not in CORRECTIONS:
        raise CorrectionValidationError(f"{strategy_name} returned course correction {correction!r}, expected one of {CORRECTIONS}")
    return correction


def is_hit(board: Board, impact_slot: int) -> bool:
    """True if the torpedo lands on the flagship. Off the board is a plain miss."""
    return board.is_flagship(impact_slot)


def play_round(strategy_a: Strategy, strategy_b: Strategy, rng: RandomSource,
               board_a: Optional[Board] = None, board_b: Optional[Board] = None) -> RoundOutcome:
    """Play one trial between side A and side B.

    A fires first and B sees A's torpedo before firing its own; A then sees
    B's torpedo, and both correct course in turn. Boards are drawn from rng
    unless given. Both sides may win the same trial.
    """
    board_a = board_a if board_a is not None else create_board(rng)
    board_b = board_b if board_b is not None else create_board(rng)

    # Side A fires first
    attack_a = validate_attack(strategy_a.launch(board_a, rng), strategy_a.name)
    strategy_b.observe(attack_a)

    # Side B fires second
    attack_b = validate_attack(strategy_b.launch(board_b, rng), strategy_b.name)
    strategy_a.observe(attack_b)

    # Course corrections, A then B
    correction_a = validate_correction(strategy_a.guide(attack_a, rng), strategy_a.name)
    correction_b = validate_correction(strategy_b.guide(attack_b, rng), strategy_b.name)

    outcome = RoundOutcome(
        flagship_a=board_a.flagship,
        flagship_b=board_b.flagship,
        attack_a=attack_a,
        attack_b=attack_b,
        correction_a=correction_a,
        correction_b=correction_b,
        a_wins=is_hit(board_b, attack_a.target + correction_a),
        b_wins=is_hit(board_a, attack_b.target + correction_b),
    )
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Round %s vs %s: %s", strategy_a.name, strategy_b.name, outcome.to_dict())
    return outcome
