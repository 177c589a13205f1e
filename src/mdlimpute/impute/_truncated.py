"""Truncated normal draws shared by the QRILC initializer and the Gibbs step."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats

__all__ = ['draw_truncated_normal']


def draw_truncated_normal(
    mean: NDArray[np.float64] | float,
    sd: float,
    lower: float,
    upper: float,
    rng: np.random.Generator,
    size: int | None = None,
) -> NDArray[np.float64]:
    """
    Draw from Normal(mean, sd) restricted to [lower, upper].

    ``mean`` may be a vector (one draw per element) or a scalar with ``size``.
    All randomness comes from ``rng``. A zero or non-finite ``sd`` degenerates
    to the mean clipped into the interval.
    """
    mean = np.asarray(mean, dtype=np.float64)
    if size is not None:
        mean = np.broadcast_to(mean, (size,))
    if mean.size == 0:
        return np.empty(0, dtype=np.float64)

    if not np.isfinite(sd) or sd <= 0:
        return np.clip(mean, lower, upper).astype(np.float64)

    a = (lower - mean) / sd
    b = (upper - mean) / sd
    draws = stats.truncnorm.rvs(a, b, loc=mean, scale=sd, size=mean.shape, random_state=rng)

    # truncnorm can land a hair outside the interval in extreme tails
    return np.clip(np.asarray(draws, dtype=np.float64), lower, upper)
