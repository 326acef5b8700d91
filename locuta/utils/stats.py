import math
from typing import Iterable
import numpy as np


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float, digits: int = 0) -> float:
    # Half-way cases round toward +inf, unlike round()'s banker's rounding
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def mean_and_std(values: Iterable[float]):
    """Population mean and standard deviation, (0, 0) for no values."""
    arr = np.fromiter(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0, 0.0
    return float(arr.mean()), float(arr.std())
