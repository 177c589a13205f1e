"""
mdlimpute - Imputation of below-detection-limit exposure measurements

GSimp-style Gibbs imputation of left-censored chemical concentrations
(wristband passive samplers, biomonitoring panels): QRILC initialization
followed by cyclic elastic-net conditional draws truncated at each chemical's
minimum detection limit.
"""

__version__ = "0.1.0"

from mdlimpute.core.exposurematrix import ExposureMatrix
from mdlimpute.core.transform import Transform
from mdlimpute.core.quality import QualityFlag
# impute must load before config: gsimp imports config, config imports impute.predictors
from mdlimpute.impute.gsimp import GSimpImputer, impute_below_mdl, impute_dataframe
from mdlimpute.config import ImputationConfig, load_config

__all__ = [
    "ExposureMatrix",
    "Transform",
    "QualityFlag",
    "GSimpImputer",
    "impute_below_mdl",
    "impute_dataframe",
    "ImputationConfig",
    "load_config",
]
