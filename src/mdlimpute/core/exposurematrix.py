"""
Core data structure for chemical exposure matrices.

ExposureMatrix unifies measured concentrations with their identifiers, the
per-chemical minimum detection limits (MDL) and per-value quality provenance
(which values were below MDL, which were imputed).

Exposure Context:
    Wristband exposure tables are laid out the way the analysis notebooks read
    them:
    - Rows = samples (participants, wristbands)
    - Columns = chemicals
    - Values = concentrations, NaN where the instrument reported below MDL

    The notebooks carry the detection limits as an extra row labelled "mdl";
    ``from_dataframe`` splits that row off into the ``mdl`` vector.

Engineering Design:
    - Immutable: Operations return new instances
    - Type-safe: NumPy arrays for data, Pandas indices for identifiers
    - Validated: Constructor checks shape consistency

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from mdlimpute.core.exposurematrix import ExposureMatrix
    >>>
    >>> df = pd.DataFrame(
    ...     {"DEHP": [12.0, np.nan, 30.5, 0.8], "TPHP": [4.1, 2.2, np.nan, 0.5]},
    ...     index=["S01", "S02", "S03", "mdl"],
    ... )
    >>> matrix = ExposureMatrix.from_dataframe(df)
    >>> matrix.shape
    (3, 2)
    >>> int(matrix.censor_mask.sum())
    2
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from mdlimpute.core.quality import QualityFlag

__all__ = ['ExposureMatrix']


class ExposureMatrix:
    """
    Immutable container for concentrations + MDL vector + quality flags.

    Attributes:
        data: Concentration matrix (samples × chemicals), NaN = below MDL
        sample_ids: Row identifiers
        chemical_ids: Column identifiers
        mdl: Minimum detection limit per chemical, in the units of ``data``
        quality_flags: Per-value provenance (same shape as data)

    Shape Invariants:
        - data.shape[0] == len(sample_ids)
        - data.shape[1] == len(chemical_ids) == len(mdl)
        - quality_flags.shape == data.shape
    """

    def __init__(
        self,
        data: np.ndarray,
        sample_ids: pd.Index,
        chemical_ids: pd.Index,
        mdl: np.ndarray,
        quality_flags: np.ndarray | None = None,
    ):
        """
        Initialize ExposureMatrix with validation.

        Args:
            data: Concentration matrix (samples × chemicals), NaN for censored cells
            sample_ids: Row identifiers
            chemical_ids: Column identifiers
            mdl: Detection limit per chemical
            quality_flags: Provenance matrix (same shape as data). If None,
                censored cells are flagged BELOW_MDL and the rest ORIGINAL.

        Raises:
            ValueError: If shapes are inconsistent
            TypeError: If data types are incorrect
        """
        if not isinstance(data, np.ndarray):
            raise TypeError(f"data must be np.ndarray, got {type(data)}")
        if not isinstance(sample_ids, pd.Index):
            raise TypeError(f"sample_ids must be pd.Index, got {type(sample_ids)}")
        if not isinstance(chemical_ids, pd.Index):
            raise TypeError(f"chemical_ids must be pd.Index, got {type(chemical_ids)}")

        if data.ndim != 2:
            raise ValueError(f"data must be 2D, got shape {data.shape}")

        data = data.astype(np.float64, copy=False)
        mdl = np.asarray(mdl, dtype=np.float64)
        n_samples, n_chemicals = data.shape

        if len(sample_ids) != n_samples:
            raise ValueError(
                f"sample_ids length ({len(sample_ids)}) must match data rows ({n_samples})"
            )
        if len(chemical_ids) != n_chemicals:
            raise ValueError(
                f"chemical_ids length ({len(chemical_ids)}) must match data columns ({n_chemicals})"
            )
        if mdl.shape != (n_chemicals,):
            raise ValueError(
                f"mdl must have shape ({n_chemicals},), got {mdl.shape}"
            )
        if np.any(np.isnan(mdl)):
            missing = list(chemical_ids[np.isnan(mdl)])
            raise ValueError(f"mdl is missing for chemicals: {missing}")

        if quality_flags is None:
            quality_flags = np.where(
                np.isnan(data), QualityFlag.BELOW_MDL, QualityFlag.ORIGINAL
            ).astype(np.uint32)
        elif quality_flags.shape != data.shape:
            raise ValueError(
                f"quality_flags shape {quality_flags.shape} must match data shape {data.shape}"
            )

        self._data = data
        self._sample_ids = sample_ids
        self._chemical_ids = chemical_ids
        self._mdl = mdl
        self._quality_flags = quality_flags

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, mdl_row: str = "mdl") -> ExposureMatrix:
        """
        Build a matrix from a DataFrame whose ``mdl_row`` row holds the MDLs.

        Args:
            df: Samples × chemicals table; NaN marks below-MDL cells
            mdl_row: Index label of the detection-limit row

        Raises:
            KeyError: If ``mdl_row`` is not in the index
        """
        if mdl_row not in df.index:
            raise KeyError(f"DataFrame has no '{mdl_row}' row holding detection limits")

        numeric = df.apply(pd.to_numeric, errors="raise")
        samples = numeric.drop(index=mdl_row)
        return cls(
            data=samples.to_numpy(dtype=np.float64),
            sample_ids=pd.Index(samples.index),
            chemical_ids=pd.Index(samples.columns),
            mdl=numeric.loc[mdl_row].to_numpy(dtype=np.float64),
        )

    def to_dataframe(self, include_mdl: bool = False, mdl_row: str = "mdl") -> pd.DataFrame:
        """Return the data as a DataFrame, optionally with the MDL row appended."""
        df = pd.DataFrame(self._data, index=self._sample_ids, columns=self._chemical_ids)
        if include_mdl:
            mdl = pd.DataFrame([self._mdl], index=[mdl_row], columns=self._chemical_ids)
            df = pd.concat([df, mdl])
        return df

    @property
    def data(self) -> np.ndarray:
        """Concentration matrix (samples × chemicals)."""
        return self._data

    @property
    def sample_ids(self) -> pd.Index:
        return self._sample_ids

    @property
    def chemical_ids(self) -> pd.Index:
        return self._chemical_ids

    @property
    def mdl(self) -> np.ndarray:
        """Detection limit per chemical."""
        return self._mdl

    @property
    def quality_flags(self) -> np.ndarray:
        """Provenance matrix (same shape as data)."""
        return self._quality_flags

    @property
    def censor_mask(self) -> np.ndarray:
        """True where the raw data reported a value below MDL."""
        return (self._quality_flags & QualityFlag.BELOW_MDL) > 0

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_samples, n_chemicals)."""
        return self._data.shape

    @property
    def n_samples(self) -> int:
        return self._data.shape[0]

    @property
    def n_chemicals(self) -> int:
        return self._data.shape[1]

    def select_chemicals(self, mask: np.ndarray | pd.Series) -> ExposureMatrix:
        """
        Subset matrix by chemicals (columns).

        Args:
            mask: Boolean array/Series indicating which chemicals to keep.
                If Series, uses values and ignores index.

        Raises:
            ValueError: If mask length doesn't match n_chemicals

        Examples:
            >>> # Drop chemicals detected in fewer than half of the samples
            >>> detected = (~matrix.censor_mask).mean(axis=0) >= 0.5
            >>> kept = matrix.select_chemicals(detected)
        """
        if isinstance(mask, pd.Series):
            mask = mask.values

        if len(mask) != self.n_chemicals:
            raise ValueError(
                f"mask length ({len(mask)}) must match n_chemicals ({self.n_chemicals})"
            )

        return ExposureMatrix(
            data=self._data[:, mask],
            sample_ids=self._sample_ids,
            chemical_ids=self._chemical_ids[mask],
            mdl=self._mdl[mask],
            quality_flags=self._quality_flags[:, mask],
        )

    def copy(self, deep: bool = True) -> ExposureMatrix:
        """
        Create a copy of this matrix.

        Args:
            deep: If True, copy all arrays. If False, share arrays.
        """
        if deep:
            return ExposureMatrix(
                data=self._data.copy(),
                sample_ids=self._sample_ids.copy(),
                chemical_ids=self._chemical_ids.copy(),
                mdl=self._mdl.copy(),
                quality_flags=self._quality_flags.copy(),
            )
        return ExposureMatrix(
            data=self._data,
            sample_ids=self._sample_ids,
            chemical_ids=self._chemical_ids,
            mdl=self._mdl,
            quality_flags=self._quality_flags,
        )

    def __repr__(self) -> str:
        n_censored = int(self.censor_mask.sum())
        return (
            f"ExposureMatrix({self.n_samples} samples × {self.n_chemicals} chemicals)\n"
            f"  Samples: {self.sample_ids[0]}...{self.sample_ids[-1]}\n"
            f"  Chemicals: {self.chemical_ids[0]}...{self.chemical_ids[-1]}\n"
            f"  Below MDL: {n_censored}/{self._data.size}"
        )

    def __str__(self) -> str:
        return self.__repr__()
