"""
Random number generation utilities.

There is no module-level generator: callers build an :class:`AleaPRNG` with
:func:`make_prng` and pass it into every randomized operation. Python's random
and NumPy's random are not used so that a seed reproduces a map exactly.
"""

import time
from typing import Optional, Union

from ..core.alea_prng import AleaPRNG, RandomSource

Seed = Union[str, int, float]

__all__ = ["RandomSource", "Seed", "make_prng"]


def make_prng(seed: Optional[Seed] = None) -> AleaPRNG:
    """
    Build a seeded Alea PRNG.

    Args:
        seed: Seed string or number. ``None`` seeds from the current time,
            which is what an interactive caller wants for variety.

    Returns:
        AleaPRNG instance
    """
    if seed is None:
        seed = str(time.time_ns())
    return AleaPRNG(seed)
