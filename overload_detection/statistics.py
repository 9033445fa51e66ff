"""Dispersion statistics over utilization histories."""

from __future__ import annotations

from itertools import takewhile
from typing import List, Sequence

import numpy as np

# Hyndman & Fan type 7. Held fixed across dimensions.
QUARTILE_METHOD = "linear"


def quartiles(samples: Sequence[float]) -> tuple[float, float]:
    """Return (Q1, Q3) of ``samples``."""

    if len(samples) == 0:
        raise ValueError("cannot compute quartiles of an empty history")
    q1, q3 = np.percentile(np.asarray(samples, dtype=float), [25, 75], method=QUARTILE_METHOD)
    return float(q1), float(q3)


def iqr(samples: Sequence[float]) -> float:
    """Interquartile range ``Q3 - Q1``."""

    q1, q3 = quartiles(samples)
    return q3 - q1


def count_non_zero_beginning(samples: Sequence[float]) -> int:
    """Count the run of non-zero samples at the start of ``samples``."""

    return sum(1 for _ in takewhile(lambda value: value != 0, samples))


def has_sufficient_history(samples: Sequence[float], minimum: int) -> bool:
    return count_non_zero_beginning(samples) >= minimum


def trim_zero_tail(samples: Sequence[float]) -> List[float]:
    """Drop the trailing run of zero samples."""

    end = len(samples)
    while end > 0 and samples[end - 1] == 0:
        end -= 1
    return list(samples[:end])
