"""
Conditional refit-and-redraw of one censored chemical (the Gibbs step).

For a target column ``j``:

1. Every other column, over all rows, is the design matrix; the current
   estimate of column ``j`` is the response. Constant predictor columns are
   dropped.
2. A regularized predictor (elastic net by default) is fit and its in-sample
   predictions ``y_hat`` are taken as the conditional means.
3. The residual standard deviation ``sqrt(mean((y - y_hat)^2))`` is the
   conditional spread.
4. Each censored cell of column ``j`` is redrawn from
   ``Normal(y_hat, sd)`` truncated to ``[lower, bound]``. The true value is
   only known to lie below the detection limit, so ``bound`` is its ceiling.

Observed cells are never written. The working state is mutated in place,
only at the censored cells of the target column.

References:
    - Wei et al. (2018) Sci Rep 8:663 "GSimp: A Gibbs sampler based left-censored
      missing value imputation approach for metabolomics studies"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mdlimpute.exceptions import FitError
from mdlimpute.impute._truncated import draw_truncated_normal
from mdlimpute.impute.predictors import ElasticNetPredictor, Predictor

logger = logging.getLogger(__name__)

__all__ = ['ConditionalImputer', 'ColumnFit']

# Predictor columns with a standard deviation below this are dropped
_DEGENERATE_SD = 1e-12
# KFold needs at least two folds with one row each, plus one left to fit
_MIN_ROWS = 3


@dataclass(frozen=True)
class ColumnFit:
    """Diagnostics of the latest refit of one column."""

    column: int
    n_predictors: int
    residual_sd: float


class ConditionalImputer:
    """
    Redraw a column's censored cells conditional on all other columns.

    Args:
        predictor: Regression capability used for the refit. Defaults to
            ``ElasticNetPredictor()``.
        rng: Generator or seed. All draws (CV folds included) come from it.

    Examples:
        >>> imputer = ConditionalImputer(rng=np.random.default_rng(7))
        >>> new_col = imputer.refine(working, target_column=0, mask=mask, bound=-0.4)
    """

    def __init__(
        self,
        predictor: Predictor | None = None,
        rng: np.random.Generator | int | None = None,
    ):
        self.predictor = predictor if predictor is not None else ElasticNetPredictor()
        self.rng = np.random.default_rng(rng)
        self.last_fit: ColumnFit | None = None

    def refine(
        self,
        working_state: NDArray[np.float64],
        target_column: int,
        mask: NDArray[np.bool_],
        bound: float,
        lower: float = -np.inf,
    ) -> NDArray[np.float64]:
        """
        Refit column ``target_column`` and redraw its censored cells in place.

        Args:
            working_state: Complete matrix (samples × columns), mutated in place.
            target_column: Index of the column to refine.
            mask: Censoring mask (same shape as ``working_state``).
            bound: Ceiling for the redrawn values (the column's MDL in
                working-state space).
            lower: Floor for the redrawn values.

        Returns:
            Copy of the updated target column.

        Raises:
            FitError: If the regression cannot be fit.
            ValueError: If the inputs are malformed.
        """
        j = target_column
        if mask.shape != working_state.shape:
            raise ValueError(
                f"mask shape {mask.shape} must match working state shape {working_state.shape}"
            )
        if not lower < bound:
            raise ValueError(f"lower ({lower}) must be below bound ({bound}) for column {j}")

        censored_rows = mask[:, j]
        if not np.any(censored_rows):
            return working_state[:, j].copy()

        if np.isnan(working_state).any():
            raise FitError(
                "working state contains NaN; initialize censored cells before refining",
                column=j,
                stage="gibbs",
            )

        y = working_state[:, j]
        X = np.delete(working_state, j, axis=1)
        X = X[:, X.std(axis=0) > _DEGENERATE_SD]

        n_rows, n_predictors = X.shape
        if n_predictors == 0:
            raise FitError("no non-degenerate predictor columns", column=j, stage="gibbs")
        if n_rows < n_predictors:
            raise FitError(
                f"fewer rows ({n_rows}) than predictors ({n_predictors})",
                column=j,
                stage="gibbs",
            )
        if n_rows < _MIN_ROWS:
            raise FitError(
                f"need at least {_MIN_ROWS} rows for cross-validated fit, got {n_rows}",
                column=j,
                stage="gibbs",
            )

        try:
            y_hat = np.asarray(self.predictor.fit_predict(X, y, self.rng), dtype=np.float64)
        except (ValueError, np.linalg.LinAlgError, FloatingPointError) as e:
            raise FitError(
                f"{self.predictor.name} fit failed: {type(e).__name__}: {e}",
                column=j,
                stage="gibbs",
            ) from e

        if y_hat.shape != y.shape or not np.all(np.isfinite(y_hat)):
            raise FitError(
                f"{self.predictor.name} returned non-finite or misshapen predictions",
                column=j,
                stage="gibbs",
            )

        residual_sd = float(np.sqrt(np.mean((y - y_hat) ** 2)))

        working_state[censored_rows, j] = draw_truncated_normal(
            y_hat[censored_rows], residual_sd, lower, bound, self.rng
        )

        self.last_fit = ColumnFit(column=j, n_predictors=n_predictors, residual_sd=residual_sd)
        return working_state[:, j].copy()
