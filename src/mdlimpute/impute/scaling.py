"""
Invertible per-column centering and scaling.

The Gibbs imputation runs in standardized log space so that every chemical
enters the per-column regressions on the same footing. ``scale`` records the
per-column mean and spread; ``recover`` consumes them once to undo the
transform on output.

Missing (censored) cells are ignored when estimating the parameters and stay
NaN in the scaled matrix.

Examples:
    >>> import numpy as np
    >>> from mdlimpute.impute.scaling import scale, recover
    >>> X = np.array([[1.0, 10.0], [2.0, 20.0], [3.0, 30.0]])
    >>> scaled, params = scale(X)
    >>> np.allclose(recover(scaled, params), X)
    True
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mdlimpute.exceptions import DegenerateColumnError, InsufficientDataError

logger = logging.getLogger(__name__)

__all__ = ['ScaleParams', 'scale', 'recover']

# Spreads below this are treated as zero
_SPREAD_EPS = 1e-12


@dataclass(frozen=True)
class ScaleParams:
    """Per-column centering/scaling parameters from one ``scale`` call.

    Attributes:
        mean: Column means over observed cells
        spread: Column standard deviations (ddof=1), fallback applied
        degenerate: Columns whose own spread was zero or undefined
    """

    mean: NDArray[np.float64]
    spread: NDArray[np.float64]
    degenerate: NDArray[np.bool_]

    @property
    def n_columns(self) -> int:
        return len(self.mean)


def scale(
    matrix: NDArray[np.float64],
    fallback_spread: float | None = 1.0,
) -> tuple[NDArray[np.float64], ScaleParams]:
    """
    Center each column on its mean and divide by its standard deviation.

    Args:
        matrix: 2D array (samples × columns), NaN allowed.
        fallback_spread: Spread used for columns whose standard deviation is
            zero or undefined. If None, such columns raise instead.

    Returns:
        (scaled matrix, ScaleParams). The input is not modified.

    Raises:
        DegenerateColumnError: If a column has zero spread and
            ``fallback_spread`` is None.
        InsufficientDataError: If a column has no observed value.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError(f"matrix must be 2D, got shape {matrix.shape}")

    observed = ~np.isnan(matrix)
    n_obs = observed.sum(axis=0)

    empty = np.where(n_obs == 0)[0]
    if len(empty) > 0:
        raise InsufficientDataError(
            "column has no observed values to center on",
            column=int(empty[0]),
            stage="scale",
        )

    mean = np.nanmean(matrix, axis=0)
    spread = np.full(matrix.shape[1], np.nan)
    multi = n_obs > 1
    if np.any(multi):
        spread[multi] = np.nanstd(matrix[:, multi], axis=0, ddof=1)

    degenerate = ~(spread > _SPREAD_EPS)
    if np.any(degenerate):
        if fallback_spread is None:
            raise DegenerateColumnError(
                "column has zero spread and no fallback spread is configured",
                column=int(np.where(degenerate)[0][0]),
                stage="scale",
            )
        logger.warning(
            "Using fallback spread %s for %d degenerate column(s): %s",
            fallback_spread, int(degenerate.sum()), np.where(degenerate)[0].tolist(),
        )
        spread = np.where(degenerate, fallback_spread, spread)

    scaled = (matrix - mean) / spread
    return scaled, ScaleParams(mean=mean, spread=spread, degenerate=degenerate)


def recover(scaled: NDArray[np.float64], params: ScaleParams) -> NDArray[np.float64]:
    """
    Undo ``scale``: multiply by the recorded spread and add back the mean.

    Raises:
        ValueError: If the column count does not match ``params``.
    """
    scaled = np.asarray(scaled, dtype=np.float64)
    if scaled.ndim != 2 or scaled.shape[1] != params.n_columns:
        raise ValueError(
            f"scaled matrix has shape {scaled.shape}, expected {params.n_columns} columns"
        )
    return scaled * params.spread + params.mean
