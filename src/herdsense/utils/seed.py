"""Random source handling for the randomized clustering algorithms.

k-means++ seeding and isolation-forest construction take an explicit
generator so that callers can fix the seed for reproducible output.
"""

from __future__ import annotations

import numpy as np


def get_rng(seed: int | np.random.Generator | None = None) -> np.random.Generator:
    """Get a NumPy random number generator.

    Args:
        seed: Seed, existing generator (returned as-is), or None for system entropy.

    Returns:
        NumPy random number generator.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)
