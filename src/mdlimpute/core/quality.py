"""
Quality flag system for tracking provenance of exposure measurements.

Each cell of an exposure matrix carries a bitwise flag recording what happened
to it. This answers reviewer questions such as "which concentrations were below
the detection limit?" or "how many imputed values were pulled onto the MDL?".

Exposure Context:
    Wristband passive samplers report many chemicals below the instrument's
    minimum detection limit (MDL). Those cells are left-censored, not missing
    at random, and every downstream statistic should be able to tell a
    measured concentration from an imputed one.

Examples:
    >>> from mdlimpute.core.quality import QualityFlag
    >>>
    >>> flag = QualityFlag.BELOW_MDL | QualityFlag.IMPUTED
    >>> if flag & QualityFlag.IMPUTED:
    ...     print("This value was imputed")
    >>>
    >>> import numpy as np
    >>> flags = np.array([0, 1, 3, 3, 7], dtype=np.uint32)
    >>> n_imputed = np.sum(flags & QualityFlag.IMPUTED != 0)
"""

from __future__ import annotations

from enum import IntFlag

__all__ = ['QualityFlag']


class QualityFlag(IntFlag):
    """
    Bitwise flags for per-value provenance in exposure matrices.

    Attributes:
        ORIGINAL: Measured concentration, untouched (0)
        BELOW_MDL: Censored in the raw data - reported below the detection limit (1)
        IMPUTED: Value was produced by an imputer (2)
        BOUND_ENFORCED: Imputed value was clipped onto the MDL after back-transform (4)

    Examples:
        >>> flag = QualityFlag.BELOW_MDL | QualityFlag.IMPUTED
        >>> bool(flag & QualityFlag.BOUND_ENFORCED)
        False
    """

    ORIGINAL = 0
    """Measured concentration above the detection limit."""

    BELOW_MDL = 1
    """
    Reported below the minimum detection limit.
    The true value is only known to lie between zero and the MDL.
    """

    IMPUTED = 2
    """
    Value was estimated by an imputer (GSimp, QRILC, substitution baseline).
    Imputed values have different statistical properties than measured values.
    """

    BOUND_ENFORCED = 4
    """
    Imputed value exceeded the MDL by floating-point error after the
    log/scale round trip and was set to the MDL exactly.
    """
