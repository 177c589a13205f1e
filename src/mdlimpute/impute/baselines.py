"""
Substitution baselines for below-MDL values.

Simple left-censored substitutions used to benchmark GSimp. Each replaces the
censored cells of a column with a value derived from that column alone:

- MEAN / MEDIAN: observed column mean / median. Biased upward; values land
  above the MDL, which the true values cannot.
- HALF_MIN: half the smallest observed value per column.
- HALF_MDL: half the detection limit per column (common in exposure science).
- ZERO: zero.
- QRILC: the quantile-regression left-tail draw on log concentrations, the
  same procedure that seeds GSimp, without the Gibbs refinement.

Also provides ``summarize_censoring`` for per-chemical detection frequencies.

References:
    - Lazar et al. (2016) J Proteome Res 15(4):1116-1125
    - Wei et al. (2018) Sci Rep 8:663
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from mdlimpute.exceptions import InsufficientDataError, NonPositiveValueError
from mdlimpute.impute.qrilc import qrilc_initialize
from mdlimpute.impute.result import LeftCensoredImputationResult

__all__ = [
    'BaselineMethod',
    'CensoringSummary',
    'summarize_censoring',
    'impute_left_censored',
]


class BaselineMethod(Enum):
    """Substitution methods for below-MDL values."""

    MEAN = "mean"
    MEDIAN = "median"
    HALF_MIN = "half_min"
    HALF_MDL = "half_mdl"
    ZERO = "zero"
    QRILC = "qrilc"


@dataclass(frozen=True)
class CensoringSummary:
    """Below-MDL pattern of an exposure matrix.

    Attributes:
        n_censored: Total number of censored cells
        censored_rate: Overall censored fraction
        censored_per_chemical: Censored count per column
        censored_per_sample: Censored count per row
        detection_frequency: Observed fraction per column
    """

    n_censored: int
    censored_rate: float
    censored_per_chemical: NDArray[np.int_]
    censored_per_sample: NDArray[np.int_]
    detection_frequency: NDArray[np.float64]

    def chemicals_detected_in(self, min_frequency: float) -> NDArray[np.bool_]:
        """Mask of chemicals detected in at least ``min_frequency`` of samples."""
        return self.detection_frequency >= min_frequency


def summarize_censoring(data: NDArray[np.float64]) -> CensoringSummary:
    """Summarize which cells are below MDL (NaN)."""
    mask = np.isnan(data)
    censored_per_chemical = mask.sum(axis=0).astype(np.int_)
    return CensoringSummary(
        n_censored=int(mask.sum()),
        censored_rate=float(mask.mean()) if mask.size else 0.0,
        censored_per_chemical=censored_per_chemical,
        censored_per_sample=mask.sum(axis=1).astype(np.int_),
        detection_frequency=1.0 - censored_per_chemical / data.shape[0],
    )


def _column_fill(data: NDArray[np.float64], method: BaselineMethod, mdl: NDArray[np.float64] | None) -> NDArray[np.float64]:
    """Per-column substitution value for the deterministic methods."""
    n_columns = data.shape[1]
    n_observed = (~np.isnan(data)).sum(axis=0)

    if method == BaselineMethod.ZERO:
        return np.zeros(n_columns)
    if method == BaselineMethod.HALF_MDL:
        return mdl / 2.0

    empty = np.where(n_observed == 0)[0]
    if len(empty) > 0:
        raise InsufficientDataError(
            f"{method.value} substitution needs at least one observed value",
            column=int(empty[0]),
            stage=method.value,
        )

    if method == BaselineMethod.MEAN:
        return np.nanmean(data, axis=0)
    if method == BaselineMethod.MEDIAN:
        return np.nanmedian(data, axis=0)
    if method == BaselineMethod.HALF_MIN:
        return np.nanmin(data, axis=0) / 2.0

    raise ValueError(f"Unknown substitution method: {method}")


def impute_left_censored(
    data: NDArray[np.float64],
    method: BaselineMethod | str = BaselineMethod.HALF_MIN,
    mdl: NDArray[np.float64] | None = None,
    seed: int | np.random.Generator | None = None,
    tune_sigma: float = 1.0,
) -> LeftCensoredImputationResult:
    """
    Impute below-MDL (NaN) cells with a substitution baseline.

    Args:
        data: Raw concentrations (samples × chemicals), NaN = below MDL.
        method: Substitution method.
        mdl: Detection limit per chemical. Required for HALF_MDL; for QRILC
            it caps the draws.
        seed: RNG seed or generator (QRILC only).
        tune_sigma: Spread multiplier for QRILC draws.

    Returns:
        LeftCensoredImputationResult with imputed data.

    Raises:
        ValueError: Unknown method, or HALF_MDL without ``mdl``.
        NonPositiveValueError: QRILC on data or MDL values <= 0.
        InsufficientDataError: A censored column without enough observed values.
    """
    if isinstance(method, str):
        method = BaselineMethod(method)

    data = np.asarray(data, dtype=np.float64)
    if data.ndim != 2:
        raise ValueError(f"data must be 2D, got shape {data.shape}")
    if mdl is not None:
        mdl = np.asarray(mdl, dtype=np.float64)
        if mdl.shape != (data.shape[1],):
            raise ValueError(f"mdl must have shape ({data.shape[1]},), got {mdl.shape}")
    if method == BaselineMethod.HALF_MDL and mdl is None:
        raise ValueError("half_mdl substitution requires the mdl vector")

    missing_mask = np.isnan(data)
    imputed = data.copy()
    diagnostics: dict = {}

    if method == BaselineMethod.QRILC:
        observed = data[~missing_mask]
        if np.any(observed <= 0) or (mdl is not None and np.any(mdl <= 0)):
            raise NonPositiveValueError(
                "QRILC runs on log concentrations; all observed values and MDLs must be > 0",
                stage="log",
            )
        log_bounds = np.log(mdl) if mdl is not None else None
        fit = qrilc_initialize(np.log(data), bounds=log_bounds, tune_sigma=tune_sigma, rng=seed)
        imputed = np.exp(fit.data)
        imputed[~missing_mask] = data[~missing_mask]
        diagnostics = {"log_mean": fit.mean, "log_sd": fit.sd, "tune_sigma": tune_sigma}
    else:
        fill = _column_fill(data, method, mdl)
        cols = np.where(missing_mask)[1]
        imputed[missing_mask] = fill[cols]
        diagnostics = {"fill_values": fill}

    return LeftCensoredImputationResult(
        data=imputed,
        censor_mask=missing_mask,
        method=method.value,
        n_imputed=int(missing_mask.sum()),
        bounds=None if mdl is None else mdl.copy(),
        diagnostics=diagnostics,
    )
