"""Result container shared by the GSimp engine and the substitution baselines."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

__all__ = ['LeftCensoredImputationResult']


@dataclass
class LeftCensoredImputationResult:
    """
    Result of a below-MDL imputation.

    Attributes:
        data: Imputed matrix in raw (non-log) units, same shape as the input
        censor_mask: True where the input cell was below MDL
        method: Imputation method used
        n_imputed: Number of values imputed
        bounds: Detection limit per column, raw units (None if not supplied)
        diagnostics: Method-specific details (sweep means, traces, fit parameters)
    """

    data: NDArray[np.float64]
    censor_mask: NDArray[np.bool_]
    method: str
    n_imputed: int
    bounds: NDArray[np.float64] | None = None
    diagnostics: dict = field(default_factory=dict)

    @property
    def imputed_values(self) -> NDArray[np.float64]:
        """Imputed cells in row-major order."""
        return self.data[self.censor_mask]

    def n_above_bound(self) -> int:
        """Number of imputed cells that exceed their column's bound."""
        if self.bounds is None:
            return 0
        over = self.censor_mask & (self.data > self.bounds[np.newaxis, :])
        return int(over.sum())
