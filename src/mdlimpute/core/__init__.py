"""
Core data structures for below-detection-limit exposure analysis.

1. ExposureMatrix: Concentration matrix with MDL vector and quality tracking
2. QualityFlag: Bitwise flags for tracking provenance of each value
3. Transform: Abstract base class for immutable matrix transformations

Examples:
    >>> from mdlimpute.core import ExposureMatrix, QualityFlag
    >>>
    >>> matrix = ExposureMatrix.from_dataframe(df, mdl_row="mdl")
    >>> n_below = np.sum(matrix.quality_flags & QualityFlag.BELOW_MDL != 0)
"""

from mdlimpute.core.exposurematrix import ExposureMatrix
from mdlimpute.core.quality import QualityFlag
from mdlimpute.core.transform import Transform

__all__ = [
    'ExposureMatrix',
    'QualityFlag',
    'Transform',
]
