"""
Tests for ConditionalImputer (the per-column Gibbs refit-and-redraw).

Validates that:
1. Only the target column's censored cells change
2. Redrawn values respect the [lower, bound] interval
3. Degenerate designs and predictor failures raise FitError
4. Any object satisfying the Predictor protocol can be substituted
"""

import numpy as np
import pytest

from mdlimpute.exceptions import FitError
from mdlimpute.impute.conditional import ConditionalImputer
from mdlimpute.impute.predictors import (
    ElasticNetPredictor,
    Predictor,
    RandomForestPredictor,
    make_predictor,
)


@pytest.fixture
def working_state():
    """30 × 4 correlated matrix; 6 censored cells in column 1."""
    rng = np.random.default_rng(21)
    z = rng.normal(size=(30, 1))
    W = z + rng.normal(0.0, 0.3, size=(30, 4))
    mask = np.zeros_like(W, dtype=bool)
    mask[np.argsort(W[:, 1])[:6], 1] = True
    bound = float(np.sort(W[:, 1])[6])
    return W, mask, bound


def _fast_imputer(seed=0):
    return ConditionalImputer(
        ElasticNetPredictor(penalty_mix=(0.5, 1.0), n_alphas=5, cv_folds=3), rng=seed
    )


class _ConstantPredictor:
    name = "constant"

    def __init__(self, value):
        self.value = value
        self.calls = 0

    def fit_predict(self, X, y, rng):
        self.calls += 1
        return np.full(len(y), self.value)


class _BrokenPredictor:
    name = "broken"

    def fit_predict(self, X, y, rng):
        raise ValueError("singular design")


class TestRefine:

    def test_only_target_censored_cells_change(self, working_state):
        W, mask, bound = working_state
        before = W.copy()

        _fast_imputer().refine(W, 1, mask, bound)

        np.testing.assert_array_equal(W[~mask], before[~mask])
        assert not np.array_equal(W[mask], before[mask])

    def test_draws_respect_bound(self, working_state):
        W, mask, bound = working_state
        imputer = _fast_imputer()
        for _ in range(10):
            imputer.refine(W, 1, mask, bound)
            assert np.all(W[mask[:, 1], 1] <= bound)

    def test_draws_respect_lower(self, working_state):
        W, mask, bound = working_state
        _fast_imputer().refine(W, 1, mask, bound, lower=bound - 0.1)
        values = W[mask[:, 1], 1]
        assert np.all((values >= bound - 0.1) & (values <= bound))

    def test_returns_updated_column(self, working_state):
        W, mask, bound = working_state
        column = _fast_imputer().refine(W, 1, mask, bound)
        np.testing.assert_array_equal(column, W[:, 1])

    def test_zero_residual_draws_prediction_clipped(self, working_state):
        W, mask, _ = working_state
        W[:, 1] = 0.25
        imputer = ConditionalImputer(_ConstantPredictor(0.25), rng=0)
        imputer.refine(W, 1, mask, bound=0.1)

        np.testing.assert_array_equal(W[mask[:, 1], 1], 0.1)
        assert imputer.last_fit.residual_sd == 0.0

    def test_uncensored_column_is_noop(self, working_state):
        W, mask, bound = working_state
        predictor = _ConstantPredictor(0.0)
        before = W.copy()

        ConditionalImputer(predictor, rng=0).refine(W, 0, mask, bound)

        np.testing.assert_array_equal(W, before)
        assert predictor.calls == 0

    def test_same_seed_same_draws(self, working_state):
        W, mask, bound = working_state
        a, b = W.copy(), W.copy()
        _fast_imputer(seed=9).refine(a, 1, mask, bound)
        _fast_imputer(seed=9).refine(b, 1, mask, bound)
        np.testing.assert_array_equal(a, b)

    def test_last_fit_recorded(self, working_state):
        W, mask, bound = working_state
        imputer = _fast_imputer()
        imputer.refine(W, 1, mask, bound)

        assert imputer.last_fit.column == 1
        assert imputer.last_fit.n_predictors == 3
        assert imputer.last_fit.residual_sd > 0


class TestFitErrors:

    def test_fewer_rows_than_predictors(self):
        rng = np.random.default_rng(0)
        W = rng.normal(size=(4, 8))
        mask = np.zeros_like(W, dtype=bool)
        mask[0, 0] = True

        with pytest.raises(FitError, match="fewer rows"):
            _fast_imputer().refine(W, 0, mask, bound=0.0)

    def test_no_usable_predictors(self):
        W = np.column_stack([np.linspace(-1, 1, 10), np.ones(10), np.full(10, 3.0)])
        mask = np.zeros_like(W, dtype=bool)
        mask[0, 0] = True

        with pytest.raises(FitError, match="no non-degenerate") as exc_info:
            _fast_imputer().refine(W, 0, mask, bound=0.0)
        assert exc_info.value.column == 0

    def test_nan_in_working_state(self, working_state):
        W, mask, bound = working_state
        W[mask] = np.nan
        with pytest.raises(FitError, match="contains NaN"):
            _fast_imputer().refine(W, 1, mask, bound)

    def test_predictor_failure_wrapped(self, working_state):
        W, mask, bound = working_state
        with pytest.raises(FitError, match="broken fit failed") as exc_info:
            ConditionalImputer(_BrokenPredictor(), rng=0).refine(W, 1, mask, bound)
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_non_finite_predictions(self, working_state):
        W, mask, bound = working_state
        with pytest.raises(FitError, match="non-finite"):
            ConditionalImputer(_ConstantPredictor(np.inf), rng=0).refine(W, 1, mask, bound)

    def test_lower_above_bound_rejected(self, working_state):
        W, mask, bound = working_state
        with pytest.raises(ValueError, match="must be below bound"):
            _fast_imputer().refine(W, 1, mask, bound, lower=bound + 1.0)


class TestPredictors:

    def test_protocol_conformance(self):
        assert isinstance(ElasticNetPredictor(), Predictor)
        assert isinstance(RandomForestPredictor(), Predictor)
        assert isinstance(_ConstantPredictor(0.0), Predictor)

    def test_random_forest_substitution(self, working_state):
        W, mask, bound = working_state
        imputer = ConditionalImputer(RandomForestPredictor(n_estimators=10), rng=4)
        imputer.refine(W, 1, mask, bound)
        assert np.all(W[mask[:, 1], 1] <= bound)

    def test_make_predictor(self):
        assert isinstance(make_predictor("elastic_net", n_alphas=3), ElasticNetPredictor)
        assert isinstance(make_predictor("random_forest"), RandomForestPredictor)
        with pytest.raises(ValueError, match="Unknown predictor"):
            make_predictor("svd")

    @pytest.mark.parametrize("mix", [(), (0.0,), (1.5,)])
    def test_invalid_penalty_mix(self, mix):
        with pytest.raises(ValueError):
            ElasticNetPredictor(penalty_mix=mix)

    def test_elastic_net_tracks_linear_signal(self):
        rng = np.random.default_rng(2)
        X = rng.normal(size=(40, 3))
        y = 2.0 * X[:, 0] - X[:, 1] + rng.normal(0.0, 0.05, size=40)

        y_hat = ElasticNetPredictor(n_alphas=10, cv_folds=3).fit_predict(X, y, rng)
        assert np.corrcoef(y, y_hat)[0, 1] > 0.99
