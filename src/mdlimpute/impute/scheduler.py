"""
Outer/inner iteration control for the Gibbs imputation.

A run makes ``outer_cycles`` sweeps over the censored columns in ascending
index order. Within a sweep each column gets ``inner_iters`` successive
refit-and-redraw calls before the next column is refit against it, so each
column stabilizes locally first. The result approximates a block Gibbs sampler
over the joint distribution of all censored cells.

Columns are visited sequentially: column ``k``'s refit depends on the latest
values of every other column.

Termination:
    By default the run stops after exactly ``outer_cycles`` sweeps. With
    ``tol`` set, it stops early after the first sweep in which no column's
    mean over its censored cells moved by ``tol`` or more.

State machine:
    INITIALIZED -> SWEEPING -> CONVERGED. Any failure during a sweep
    propagates and the run is abandoned; there is no resume.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from mdlimpute.exceptions import FitError
from mdlimpute.impute.conditional import ConditionalImputer

logger = logging.getLogger(__name__)

__all__ = ['ImputationScheduler', 'SchedulerResult', 'SchedulerState']


class SchedulerState(Enum):
    """Lifecycle of one scheduler run."""

    INITIALIZED = "initialized"
    SWEEPING = "sweeping"
    CONVERGED = "converged"


@dataclass
class SchedulerResult:
    """
    Result of an ImputationScheduler run.

    Attributes:
        data: Final working state (same space as the input)
        cycle_means: (n_cycles, n_columns) mean of each column's censored
            cells after each sweep; NaN for columns without censored cells
        n_cycles: Sweeps actually run
        converged: True if ``tol`` stopped the run early
        trace: (row, col) -> value after every inner iteration of that column
    """

    data: NDArray[np.float64]
    cycle_means: NDArray[np.float64]
    n_cycles: int
    converged: bool = False
    trace: dict[tuple[int, int], NDArray[np.float64]] = field(default_factory=dict)


class ImputationScheduler:
    """
    Drive ConditionalImputer over all censored columns.

    Args:
        imputer: The conditional refit-and-redraw step.
        inner_iters: Refits per column per sweep.
        outer_cycles: Maximum number of full sweeps.
        tol: Optional early-stop threshold on the change of censored-cell
            column means between sweeps. None runs the full budget.
        trace_cells: Censored (row, col) cells whose value is recorded after
            every inner iteration.
    """

    def __init__(
        self,
        imputer: ConditionalImputer,
        inner_iters: int = 50,
        outer_cycles: int = 10,
        tol: float | None = None,
        trace_cells: Sequence[tuple[int, int]] = (),
    ):
        if inner_iters < 1:
            raise ValueError(f"inner_iters must be >= 1, got {inner_iters}")
        if outer_cycles < 1:
            raise ValueError(f"outer_cycles must be >= 1, got {outer_cycles}")
        if tol is not None and tol <= 0:
            raise ValueError(f"tol must be positive if specified, got {tol}")

        self.imputer = imputer
        self.inner_iters = inner_iters
        self.outer_cycles = outer_cycles
        self.tol = tol
        self.trace_cells = [(int(r), int(c)) for r, c in trace_cells]
        self.state = SchedulerState.INITIALIZED

    def run(
        self,
        matrix: NDArray[np.float64],
        bounds: NDArray[np.float64],
        mask: NDArray[np.bool_],
        initial_estimate: NDArray[np.float64],
        lower: NDArray[np.float64] | None = None,
    ) -> SchedulerResult:
        """
        Run the sweeps and return the final estimate.

        Args:
            matrix: Censored matrix (NaN at censored cells). Not modified.
            bounds: Per-column ceiling for censored cells.
            mask: Censoring mask, fixed for the whole run.
            initial_estimate: Complete first-pass estimate (e.g. QRILC).
                Not modified; the working state is a copy.
            lower: Optional per-column floor (default -inf).

        Raises:
            FitError: A column could not be fit; the message names the
                column and sweep.
            ValueError: Shape mismatches or an incomplete initial estimate.
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        mask = np.asarray(mask, dtype=bool)
        bounds = np.asarray(bounds, dtype=np.float64)
        n_samples, n_columns = matrix.shape

        if mask.shape != matrix.shape or initial_estimate.shape != matrix.shape:
            raise ValueError(
                f"mask {mask.shape} and initial_estimate {initial_estimate.shape} "
                f"must match matrix shape {matrix.shape}"
            )
        if bounds.shape != (n_columns,):
            raise ValueError(f"bounds must have shape ({n_columns},), got {bounds.shape}")
        if lower is None:
            lower = np.full(n_columns, -np.inf)
        lower = np.asarray(lower, dtype=np.float64)
        if np.isnan(initial_estimate).any():
            raise ValueError("initial_estimate must be complete (no NaN)")
        for r, c in self.trace_cells:
            if not (0 <= r < n_samples and 0 <= c < n_columns) or not mask[r, c]:
                raise ValueError(f"trace cell ({r}, {c}) is not a censored cell")

        working = np.array(initial_estimate, dtype=np.float64, copy=True)
        working[~mask] = matrix[~mask]
        working = np.where(mask, np.minimum(working, bounds), working)

        columns = np.where(mask.any(axis=0))[0]
        trace_buffers: dict[tuple[int, int], list[float]] = {cell: [] for cell in self.trace_cells}
        cycle_means: list[NDArray[np.float64]] = []
        converged = False

        if len(columns) == 0:
            logger.info("No censored cells; nothing to impute")
            self.state = SchedulerState.CONVERGED
            return SchedulerResult(
                data=working, cycle_means=np.empty((0, n_columns)), n_cycles=0, converged=True
            )

        logger.info(
            "Gibbs imputation: %d censored cells in %d/%d columns, "
            "inner_iters=%d, outer_cycles=%d",
            int(mask.sum()), len(columns), n_columns, self.inner_iters, self.outer_cycles,
        )
        self.state = SchedulerState.SWEEPING

        for cycle in range(self.outer_cycles):
            for j in columns:
                traced_rows = [r for r, c in self.trace_cells if c == j]
                for _ in range(self.inner_iters):
                    try:
                        self.imputer.refine(working, int(j), mask, float(bounds[j]), float(lower[j]))
                    except FitError as e:
                        raise FitError(
                            e.message, column=int(j), stage=f"gibbs sweep {cycle + 1}"
                        ) from e
                    for r in traced_rows:
                        trace_buffers[(r, int(j))].append(float(working[r, j]))

            means = np.full(n_columns, np.nan)
            for j in columns:
                means[j] = working[mask[:, j], j].mean()
            cycle_means.append(means)
            logger.debug("Sweep %d/%d complete", cycle + 1, self.outer_cycles)

            if self.tol is not None and cycle > 0:
                delta = float(np.max(np.abs(means[columns] - cycle_means[-2][columns])))
                if delta < self.tol:
                    converged = True
                    logger.info(
                        "Censored-cell means stable (max change %.2e < tol %.2e) after sweep %d",
                        delta, self.tol, cycle + 1,
                    )
                    break

        self.state = SchedulerState.CONVERGED
        n_cycles = len(cycle_means)
        logger.info("Gibbs imputation finished after %d sweep(s)", n_cycles)

        return SchedulerResult(
            data=working,
            cycle_means=np.vstack(cycle_means),
            n_cycles=n_cycles,
            converged=converged,
            trace={cell: np.asarray(values) for cell, values in trace_buffers.items()},
        )
