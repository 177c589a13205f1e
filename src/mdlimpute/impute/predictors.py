"""
Regularized predictors for the per-chemical Gibbs refit.

The conditional imputation step only needs one capability: given a design
matrix and a target vector, fit a predictor and return in-sample predictions.
This module defines that capability as the ``Predictor`` protocol so that the
scheduling logic never depends on a particular regression family.

Implementations:
    ElasticNetPredictor (default):
        - L1 + L2 penalized linear regression (scikit-learn ElasticNetCV)
        - Penalty mix chosen from ``penalty_mix``, strength from an
          automatic path of ``n_alphas`` values, both by K-fold CV
        - Folds are shuffled with a seed drawn from the run's generator
    RandomForestPredictor:
        - Non-linear alternative (scikit-learn RandomForestRegressor)
        - Seeded from the run's generator

Both draw every random number from the ``numpy.random.Generator`` passed to
``fit_predict``; nothing touches global random state.
"""

from __future__ import annotations

import warnings
from typing import Protocol, Sequence, runtime_checkable

import numpy as np
from numpy.typing import NDArray

__all__ = [
    'Predictor',
    'ElasticNetPredictor',
    'RandomForestPredictor',
    'make_predictor',
    'PREDICTORS',
    'DEFAULT_PENALTY_MIX',
]

DEFAULT_PENALTY_MIX: tuple[float, ...] = (0.1, 0.5, 0.7, 0.9, 0.95, 1.0)

_MAX_SEED = 2**31 - 1


@runtime_checkable
class Predictor(Protocol):
    """
    Protocol for predictors used by ConditionalImputer.

    Implementations must:
        1. Have a ``name`` attribute
        2. Fit on (X, y) and return predictions for every row of X
        3. Take all randomness from ``rng``
    """

    name: str

    def fit_predict(
        self,
        X: NDArray[np.float64],
        y: NDArray[np.float64],
        rng: np.random.Generator,
    ) -> NDArray[np.float64]:
        ...


class ElasticNetPredictor:
    """
    Cross-validated elastic-net regression.

    Args:
        penalty_mix: Candidate L1/L2 balances (``l1_ratio``), each in (0, 1].
        n_alphas: Number of penalty strengths on the automatic path.
        cv_folds: Folds for internal CV (capped at the number of rows).
        max_iter: Coordinate-descent iteration cap.
    """

    name = "elastic_net"

    def __init__(
        self,
        penalty_mix: Sequence[float] = DEFAULT_PENALTY_MIX,
        n_alphas: int = 20,
        cv_folds: int = 5,
        max_iter: int = 5000,
    ):
        penalty_mix = tuple(float(r) for r in penalty_mix)
        if not penalty_mix:
            raise ValueError("penalty_mix must contain at least one value")
        if any(not (0.0 < r <= 1.0) for r in penalty_mix):
            raise ValueError(f"penalty_mix values must be in (0, 1], got {penalty_mix}")
        if n_alphas < 1:
            raise ValueError(f"n_alphas must be >= 1, got {n_alphas}")
        if cv_folds < 2:
            raise ValueError(f"cv_folds must be >= 2, got {cv_folds}")

        self.penalty_mix = penalty_mix
        self.n_alphas = n_alphas
        self.cv_folds = cv_folds
        self.max_iter = max_iter

    def fit_predict(
        self,
        X: NDArray[np.float64],
        y: NDArray[np.float64],
        rng: np.random.Generator,
    ) -> NDArray[np.float64]:
        from sklearn.exceptions import ConvergenceWarning
        from sklearn.linear_model import ElasticNetCV
        from sklearn.model_selection import KFold

        folds = KFold(
            n_splits=min(self.cv_folds, len(y)),
            shuffle=True,
            random_state=int(rng.integers(_MAX_SEED)),
        )
        model = ElasticNetCV(
            l1_ratio=list(self.penalty_mix),
            alphas=self.n_alphas,
            cv=folds,
            max_iter=self.max_iter,
        )

        # A slow path on the weakest penalties is expected and harmless here
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=ConvergenceWarning)
            model.fit(X, y)

        return model.predict(X)

    def __repr__(self) -> str:
        return (
            f"ElasticNetPredictor(penalty_mix={self.penalty_mix}, "
            f"n_alphas={self.n_alphas}, cv_folds={self.cv_folds})"
        )


class RandomForestPredictor:
    """
    Random-forest regression predictor.

    Args:
        n_estimators: Number of trees.
        min_samples_leaf: Minimum samples per leaf.
    """

    name = "random_forest"

    def __init__(self, n_estimators: int = 100, min_samples_leaf: int = 1):
        if n_estimators < 1:
            raise ValueError(f"n_estimators must be >= 1, got {n_estimators}")
        self.n_estimators = n_estimators
        self.min_samples_leaf = min_samples_leaf

    def fit_predict(
        self,
        X: NDArray[np.float64],
        y: NDArray[np.float64],
        rng: np.random.Generator,
    ) -> NDArray[np.float64]:
        from sklearn.ensemble import RandomForestRegressor

        model = RandomForestRegressor(
            n_estimators=self.n_estimators,
            min_samples_leaf=self.min_samples_leaf,
            random_state=int(rng.integers(_MAX_SEED)),
            n_jobs=1,
        )
        model.fit(X, y)
        return model.predict(X)

    def __repr__(self) -> str:
        return f"RandomForestPredictor(n_estimators={self.n_estimators})"


PREDICTORS: dict[str, type] = {
    ElasticNetPredictor.name: ElasticNetPredictor,
    RandomForestPredictor.name: RandomForestPredictor,
}


def make_predictor(name: str, **kwargs) -> Predictor:
    """
    Build a predictor by name.

    Raises:
        ValueError: If ``name`` is not a known predictor.
    """
    if name not in PREDICTORS:
        raise ValueError(
            f"Unknown predictor: '{name}'. Must be one of {sorted(PREDICTORS)}"
        )
    return PREDICTORS[name](**kwargs)
