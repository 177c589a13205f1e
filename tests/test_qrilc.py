"""
Tests for the QRILC left-censored initializer.

Validates that:
1. Censored cells are filled and never exceed the column bound
2. Observed cells and fully observed columns are untouched
3. Columns without enough observed values raise InsufficientDataError
4. Draws are reproducible given a seed
5. The quantile regression recovers the parameters of a censored normal
"""

import numpy as np
import pytest

from mdlimpute.exceptions import InsufficientDataError
from mdlimpute.impute.qrilc import fit_left_tail, qrilc_initialize


@pytest.fixture
def censored_normal():
    """60 × 3 normal matrix, lowest 20% of columns 0 and 1 censored."""
    rng = np.random.default_rng(11)
    X = rng.normal(0.0, 1.0, size=(60, 3))
    thresholds = np.quantile(X, 0.2, axis=0)
    censored = X.copy()
    for j in (0, 1):
        censored[X[:, j] < thresholds[j], j] = np.nan
    return censored, thresholds


class TestQRILCDraws:

    def test_fills_all_censored_cells(self, censored_normal):
        X, thresholds = censored_normal
        result = qrilc_initialize(X, bounds=thresholds, rng=0)
        assert not np.isnan(result.data).any()

    def test_bound_respected(self, censored_normal):
        X, thresholds = censored_normal
        mask = np.isnan(X)
        result = qrilc_initialize(X, bounds=thresholds, rng=0)

        for j in range(X.shape[1]):
            assert np.all(result.data[mask[:, j], j] <= thresholds[j])

    def test_tighter_bound_caps_draws(self, censored_normal):
        X, _ = censored_normal
        bounds = np.full(3, -3.0)
        result = qrilc_initialize(X, bounds=bounds, rng=0)
        assert np.all(result.data[np.isnan(X)] <= -3.0)
        assert np.all(result.upper[:2] == -3.0)

    def test_observed_cells_untouched(self, censored_normal):
        X, thresholds = censored_normal
        observed = ~np.isnan(X)
        result = qrilc_initialize(X, bounds=thresholds, rng=0)
        np.testing.assert_array_equal(result.data[observed], X[observed])

    def test_uncensored_column_unchanged(self, censored_normal):
        X, thresholds = censored_normal
        result = qrilc_initialize(X, bounds=thresholds, rng=0)
        np.testing.assert_array_equal(result.data[:, 2], X[:, 2])
        assert np.isnan(result.mean[2])

    def test_input_not_modified(self, censored_normal):
        X, thresholds = censored_normal
        before = X.copy()
        qrilc_initialize(X, bounds=thresholds, rng=0)
        np.testing.assert_array_equal(X, before)

    def test_seed_reproducible(self, censored_normal):
        X, thresholds = censored_normal
        a = qrilc_initialize(X, bounds=thresholds, rng=5).data
        b = qrilc_initialize(X, bounds=thresholds, rng=5).data
        c = qrilc_initialize(X, bounds=thresholds, rng=6).data

        np.testing.assert_array_equal(a, b)
        assert not np.array_equal(a, c)


class TestQRILCErrors:

    def test_all_censored_column_raises(self):
        X = np.array([[1.0, np.nan], [2.0, np.nan], [3.0, np.nan], [np.nan, np.nan]])
        with pytest.raises(InsufficientDataError) as exc_info:
            qrilc_initialize(X, rng=0)
        assert exc_info.value.column == 1
        assert exc_info.value.stage == "qrilc"

    def test_single_observation_raises(self):
        X = np.array([[np.nan], [np.nan], [2.0]])
        with pytest.raises(InsufficientDataError):
            qrilc_initialize(X, rng=0)

    def test_constant_observations_raise(self):
        X = np.array([[np.nan], [2.0], [2.0], [2.0]])
        with pytest.raises(InsufficientDataError, match="no spread"):
            qrilc_initialize(X, rng=0)

    def test_bounds_shape_checked(self, censored_normal):
        X, _ = censored_normal
        with pytest.raises(ValueError, match="bounds must have shape"):
            qrilc_initialize(X, bounds=np.zeros(2), rng=0)


class TestLeftTailFit:

    def test_recovers_censored_normal_parameters(self):
        rng = np.random.default_rng(3)
        full = rng.normal(5.0, 2.0, size=4000)
        cut = np.quantile(full, 0.3)
        observed = full[full >= cut]

        mean, sd = fit_left_tail(observed, censored_fraction=0.3)
        assert mean == pytest.approx(5.0, abs=0.2)
        assert sd == pytest.approx(2.0, abs=0.2)

    def test_fraction_above_upper_quantile_raises(self):
        with pytest.raises(InsufficientDataError):
            fit_left_tail(np.array([1.0, 2.0, 3.0]), censored_fraction=0.995)
