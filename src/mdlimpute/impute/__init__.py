"""
Below-detection-limit imputation engine.

Components (leaf-first):
    scale / recover: Invertible per-column standardization
    qrilc_initialize: Quantile-regression left-censored first pass
    ConditionalImputer: Per-chemical refit-and-redraw (the Gibbs step)
    ImputationScheduler: Outer sweeps × inner refits
    impute_below_mdl / GSimpImputer: Log → scale → initialize → sweep → recover → exp

Substitution baselines (mean, median, half-minimum, half-MDL, zero, QRILC)
live in ``baselines`` for benchmarking.

Examples:
    >>> from mdlimpute.impute import impute_below_mdl
    >>> result = impute_below_mdl(concentrations, mdl, seed=42)
    >>> result.data[result.censor_mask]  # imputed values, raw units
"""

from mdlimpute.impute.baselines import (
    BaselineMethod,
    CensoringSummary,
    impute_left_censored,
    summarize_censoring,
)
from mdlimpute.impute.conditional import ColumnFit, ConditionalImputer
from mdlimpute.impute.gsimp import GSimpImputer, impute_below_mdl, impute_dataframe
from mdlimpute.impute.predictors import (
    ElasticNetPredictor,
    Predictor,
    RandomForestPredictor,
    make_predictor,
)
from mdlimpute.impute.qrilc import QRILCResult, qrilc_initialize
from mdlimpute.impute.result import LeftCensoredImputationResult
from mdlimpute.impute.scaling import ScaleParams, recover, scale
from mdlimpute.impute.scheduler import ImputationScheduler, SchedulerResult, SchedulerState

__all__ = [
    'BaselineMethod',
    'CensoringSummary',
    'impute_left_censored',
    'summarize_censoring',
    'ColumnFit',
    'ConditionalImputer',
    'GSimpImputer',
    'impute_below_mdl',
    'impute_dataframe',
    'ElasticNetPredictor',
    'Predictor',
    'RandomForestPredictor',
    'make_predictor',
    'QRILCResult',
    'qrilc_initialize',
    'LeftCensoredImputationResult',
    'ScaleParams',
    'recover',
    'scale',
    'ImputationScheduler',
    'SchedulerResult',
    'SchedulerState',
]
