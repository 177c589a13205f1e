"""
Pytest configuration and shared fixtures.

Provides a synthetic generator for correlated, left-censored exposure data and
small engine configurations that keep the Gibbs sweeps fast.
"""

import numpy as np
import pandas as pd
import pytest

from mdlimpute.config import ImputationConfig
from mdlimpute.core.exposurematrix import ExposureMatrix


def generate_censored_exposures(
    n_samples: int,
    n_chemicals: int,
    censored_fraction: float = 0.25,
    censored_columns: tuple[int, ...] | None = None,
    noise_sd: float = 0.3,
    seed: int = 42,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Generate log-normal concentrations driven by one shared exposure factor.

    Args:
        n_samples: Number of samples (rows)
        n_chemicals: Number of chemicals (columns)
        censored_fraction: Fraction of each censored column below its MDL
        censored_columns: Columns that get an MDL inside the data range.
            Others get an MDL below every value. Default: all columns.
        noise_sd: Chemical-specific noise on the log scale
        seed: Random seed for reproducibility

    Returns:
        (censored data with NaN below MDL, MDL vector, complete data)

    Design:
        - Log concentrations = baseline + loading × shared factor + noise,
          so chemicals are correlated the way co-used products make them
        - MDL per censored chemical is its ``censored_fraction`` quantile
    """
    rng = np.random.default_rng(seed)

    factor = rng.normal(0.0, 1.0, size=(n_samples, 1))
    baseline = rng.uniform(0.0, 3.0, size=n_chemicals)
    loading = rng.uniform(0.7, 1.3, size=n_chemicals)
    log_conc = baseline + factor * loading + rng.normal(0.0, noise_sd, size=(n_samples, n_chemicals))
    complete = np.exp(log_conc)

    if censored_columns is None:
        censored_columns = tuple(range(n_chemicals))

    mdl = complete.min(axis=0) / 2.0
    for j in censored_columns:
        mdl[j] = np.quantile(complete[:, j], censored_fraction)

    censored = complete.copy()
    censored[complete < mdl] = np.nan

    return censored, mdl, complete


@pytest.fixture
def small_exposures():
    """40 samples × 4 chemicals, columns 0 and 2 censored at 25%."""
    return generate_censored_exposures(40, 4, censored_fraction=0.25, censored_columns=(0, 2), seed=7)


@pytest.fixture
def fast_config():
    """Engine settings small enough for unit tests."""
    return ImputationConfig(
        inner_iters=3,
        outer_cycles=2,
        seed=123,
        penalty_mix=(0.5, 1.0),
        n_alphas=5,
        cv_folds=3,
    )


@pytest.fixture
def exposure_frame(small_exposures):
    """Notebook-style DataFrame: samples × chemicals with an 'mdl' row."""
    data, mdl, _ = small_exposures
    chemicals = ["DEHP", "TPHP", "BBP", "TCEP"]
    df = pd.DataFrame(data, index=[f"WB{i:03d}" for i in range(len(data))], columns=chemicals)
    df.loc["mdl"] = mdl
    return df


@pytest.fixture
def exposure_matrix(exposure_frame):
    """ExposureMatrix built from the notebook-style frame."""
    return ExposureMatrix.from_dataframe(exposure_frame)
