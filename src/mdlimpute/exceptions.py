"""
Error kinds raised by the below-MDL imputation engine.

Every error is unrecoverable for the run that raised it: the engine never
substitutes a fallback value for a column it cannot model. Each error carries
the failing column and pipeline stage (when known) so callers can report
them verbatim.
"""

from __future__ import annotations

__all__ = [
    'ImputationError',
    'NonPositiveValueError',
    'DegenerateColumnError',
    'InsufficientDataError',
    'FitError',
]


class ImputationError(Exception):
    """Base class for all imputation-run failures."""

    def __init__(
        self,
        message: str,
        column: int | str | None = None,
        stage: str | None = None,
    ) -> None:
        self.message = message
        self.column = column
        self.stage = stage
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.stage is not None:
            context.append(f"stage={self.stage}")
        if self.column is not None:
            context.append(f"column={self.column}")
        if not context:
            return self.message
        return f"[{', '.join(context)}] {self.message}"


class NonPositiveValueError(ImputationError):
    """Raised when the log transform sees a zero or negative value."""
    pass


class DegenerateColumnError(ImputationError):
    """Raised when a column has zero spread and no fallback spread is configured."""
    pass


class InsufficientDataError(ImputationError):
    """Raised when a column has too few observed values to fit a model."""
    pass


class FitError(ImputationError):
    """Raised when the per-column regression cannot be fit."""
    pass
