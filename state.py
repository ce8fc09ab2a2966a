"""
Simulation state for the flagship duel.
Implements configuration loading, the shared random source and per-trial
board creation.

Each trial both sides get a fresh Board with the flagship placed uniformly
at random. All randomness flows through a single RandomSource owned by the
simulation so runs can be seeded and tests can substitute a scripted source.
"""

from __future__ import annotations
import json
import logging
import os
import random
from typing import Any, Dict, Optional, Tuple
from models import Board, SLOT_COUNT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'trials': 100000,
    'win_threshold': 1.0,
    'narrow_win_threshold': 1.25,
    'zero_division': 'infinite',
    'seed': None,
    'workers': 1,
    'log_level': 'WARNING',
}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load simulation settings from config.json, falling back to defaults.

    Args:
        path: Optional explicit config path (default: config.json next to this module)

    Returns:
        Dict with every key of DEFAULT_CONFIG present
    """
    config_path = path or os.path.join(os.path.dirname(__file__), 'config.json')
    config = dict(DEFAULT_CONFIG)
    try:
        with open(config_path, 'r') as f:
            loaded = json.load(f)
        if isinstance(loaded, dict):
            config.update({k: v for k, v in loaded.items() if k in DEFAULT_CONFIG})
        else:
            logger.warning("Ignoring %s: expected a JSON object", config_path)
    except (FileNotFoundError, json.JSONDecodeError):
        # Use defaults if config file is missing or invalid
        pass
    return config


class RandomSource:
    """Uniform random integers for strategies and the round protocol."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def next_int(self, bound: int) -> int:
        """Uniform integer in [0, bound)."""
        if bound <= 0:
            raise ValueError(f"bound must be positive, got {bound}")
        return self._rng.randrange(bound)

    def next_correction(self) -> int:
        """Uniform course correction in {-1, 0, +1}."""
        return self.next_int(3) - 1

    def choice(self, options):
        """Uniform pick from a non-empty sequence."""
        if not options:
            raise ValueError("cannot choose from an empty sequence")
        return options[self.next_int(len(options))]

    def spawn(self) -> RandomSource:
        """Independently seeded child source, one per parallel batch."""
        return RandomSource(self.next_int(2 ** 63))

    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed!r})"


def create_board(rng: RandomSource) -> Board:
    """Place the flagship uniformly at random among SLOT_COUNT slots."""
    return Board.with_flagship(rng.next_int(SLOT_COUNT))


def create_boards(rng: RandomSource) -> Tuple[Board, Board]:
    """Boards for side A and side B, drawn independently."""
    return create_board(rng), create_board(rng)
