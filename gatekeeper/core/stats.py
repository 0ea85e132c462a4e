"""Small numeric helpers shared by the metrics aggregator and cost rollups."""

import math
from collections.abc import Iterable


def finite_values(values: Iterable[float | int | None]) -> list[float]:
    """Keep only real, finite numbers (bools and None are dropped)."""
    out: list[float] = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            continue
        if math.isfinite(v):
            out.append(float(v))
    return out


def percentile(values: Iterable[float | int | None], q: float) -> float | None:
    """
    Linear-interpolated percentile.

    ``idx = q * (n - 1)`` over the sorted values, interpolating between the
    floor and ceil ranks. Non-finite entries are ignored.

    Args:
        values: Sample values
        q: Quantile in [0, 1]

    Returns:
        The percentile, or None when there is no usable data
    """
    data = sorted(finite_values(values))
    if not data:
        return None

    q = min(1.0, max(0.0, q))
    idx = q * (len(data) - 1)
    lower = math.floor(idx)
    upper = math.ceil(idx)

    if lower == upper:
        return data[lower]

    weight = idx - lower
    return data[lower] + (data[upper] - data[lower]) * weight


def p95(values: Iterable[float | int | None]) -> float | None:
    """95th percentile, or None when empty."""
    return percentile(values, 0.95)


def mean(values: Iterable[float | int | None]) -> float | None:
    """Arithmetic mean of the finite values, or None when empty."""
    data = finite_values(values)
    if not data:
        return None
    return sum(data) / len(data)


def safe_rate(numerator: int | float, denominator: int | float) -> float:
    """Ratio that is exactly 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator
