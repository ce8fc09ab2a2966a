# Models for the flagship duel: boards, torpedo attacks and round outcomes

from dataclasses import dataclass
from typing import Dict, Any, Tuple

SLOT_COUNT = 5  # Ships per side, one of which is the flagship
CORRECTIONS = (-1, 0, 1)  # Legal course corrections after target lock


@dataclass(frozen=True)
class Attack:
    """A launched torpedo: the slot it was fired from and the slot it is locked on."""
    source: int  # Declared launch slot (may be a decoy)
    target: int  # Initially locked target slot

    def to_dict(self) -> Dict[str, int]:
        return {'source': self.source, 'target': self.target}


@dataclass(frozen=True)
class Board:
    """
    One side's row of ships for a single trial.

    Exactly one slot holds the flagship (True); the other four are ordinary
    battleships (False). Boards are read-only once created.
    """
    slots: Tuple[bool, ...]

    def __post_init__(self):
        if len(self.slots) != SLOT_COUNT:
            raise ValueError(f"Board must have {SLOT_COUNT} slots, got {len(self.slots)}")
        if sum(1 for s in self.slots if s) != 1:
            raise ValueError(f"Board must hold exactly one flagship: {self.slots}")

    @classmethod
    def with_flagship(cls, slot: int) -> 'Board':
        """Build a board with the flagship at the given slot."""
        if not 0 <= slot < SLOT_COUNT:
            raise ValueError(f"Flagship slot {slot} is outside 0..{SLOT_COUNT - 1}")
        return cls(slots=tuple(i == slot for i in range(SLOT_COUNT)))

    @property
    def flagship(self) -> int:
        """Index of the flagship."""
        return self.slots.index(True)

    def is_flagship(self, slot: int) -> bool:
        """True if the slot holds the flagship. Slots off the board are never hit."""
        return 0 <= slot < SLOT_COUNT and self.slots[slot]

    def __len__(self) -> int:
        return len(self.slots)


@dataclass(frozen=True)
class RoundOutcome:
    """Everything that happened in one trial, from side A's and side B's point of view."""
    flagship_a: int
    flagship_b: int
    attack_a: Attack
    attack_b: Attack
    correction_a: int
    correction_b: int
    a_wins: bool  # A's torpedo hit B's flagship
    b_wins: bool  # B's torpedo hit A's flagship

    @property
    def impact_a(self) -> int:
        return self.attack_a.target + self.correction_a

    @property
    def impact_b(self) -> int:
        return self.attack_b.target + self.correction_b

    @property
    def winners(self) -> Tuple[bool, bool]:
        return self.a_wins, self.b_wins

    def to_dict(self) -> Dict[str, Any]:
        return {
            'flagship_a': self.flagship_a,
            'flagship_b': self.flagship_b,
            'attack_a': self.attack_a.to_dict(),
            'attack_b': self.attack_b.to_dict(),
            'correction_a': self.correction_a,
            'correction_b': self.correction_b,
            'impact_a': self.impact_a,
            'impact_b': self.impact_b,
            'a_wins': self.a_wins,
            'b_wins': self.b_wins,
        }
