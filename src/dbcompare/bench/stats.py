"""Averaging for benchmark timings.

The comparison reports arithmetic means only; this module keeps that
one calculation in a single place so every caller treats the empty
case the same way.
"""

from __future__ import annotations

import math
from typing import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean of *values*; ``0.0`` for an empty sequence.

    Uses :func:`math.fsum` so long runs of small durations do not
    accumulate rounding error.
    """
    if not values:
        return 0.0
    return math.fsum(values) / len(values)
