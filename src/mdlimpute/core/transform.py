"""
Base transformation framework for immutable exposure-matrix operations.

Transformations are pure: they take an ExposureMatrix and return a new one,
never modifying the input.

Exposure Context:
    Wristband chemical data passes through several sequential steps before
    statistics are run on it:
    1. Detection-frequency filtering (drop rarely detected chemicals)
    2. Below-MDL imputation (GSimp, QRILC, substitution baselines)
    3. Log transformation / standardization for correlation work

    Each step must be:
    - Reproducible (same input + seed → same output)
    - Auditable (parameters logged)
    - Reversible (the original matrix is never touched)

Examples:
    >>> from mdlimpute.core.transform import Transform
    >>>
    >>> class HalfMDLSubstitution(Transform):
    ...     def __init__(self):
    ...         super().__init__(name="HalfMDLSubstitution", params={})
    ...
    ...     def apply(self, matrix):
    ...         import numpy as np
    ...         new = matrix.copy()
    ...         cols = np.where(matrix.censor_mask)[1]
    ...         new.data[matrix.censor_mask] = matrix.mdl[cols] / 2
    ...         return new
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from mdlimpute.core.exposurematrix import ExposureMatrix

__all__ = ['Transform']


class Transform(ABC):
    """
    Abstract base class for all exposure-matrix transformations.

    Attributes:
        name: Human-readable transformation name (e.g., "GSimpImputer")
        params: Dictionary of parameters used for this transformation
        timestamp: When this transform instance was created (for audit trail)
    """

    def __init__(self, name: str, params: dict[str, Any]) -> None:
        """
        Initialize transformation with name and parameters.

        Args:
            name: Human-readable transformation name
            params: Dictionary of parameters. Must be JSON-serializable for provenance tracking.
                   Example: {"inner_iters": 50, "outer_cycles": 10, "seed": 7}
        """
        self.name = name
        self.params = params
        self.timestamp = datetime.now()

    @abstractmethod
    def apply(self, matrix: ExposureMatrix) -> ExposureMatrix:
        """
        Execute transformation and return new matrix.

        Must never modify the input matrix. Implementations update
        quality_flags on the returned matrix to track what changed.

        Raises:
            ValueError: If transformation cannot be applied (check validate() first)
        """
        pass

    def validate(self, matrix: ExposureMatrix) -> list[str]:
        """
        Check preconditions before applying transformation.

        Subclasses should override and call super().validate() first.

        Returns:
            List of error messages (empty list = valid, transformation can proceed)
        """
        errors: list[str] = []

        if matrix.data.size == 0:
            errors.append("Cannot process empty matrix")

        return errors

    def __repr__(self) -> str:
        """
        String representation for logging and debugging.

        Returns:
            String like "GSimpImputer(inner_iters=50, outer_cycles=10)"
        """
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"
