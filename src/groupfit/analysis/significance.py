"""Significance scores on a -log10 scale.

p-values that underflow to 0 have an infinite -log10. Reports need a
finite number, so those take a configurable cap instead.
"""

from __future__ import annotations

import math
from typing import Optional

from groupfit.config import PVALUE_MLOG_CAP


def pvalue_mlog(p: Optional[float], cap: float = PVALUE_MLOG_CAP) -> float:
    """-log10(p), capped at cap; NaN for a missing p-value.

    Raises:
        ValueError: If p is outside [0, 1] or cap is not positive.
    """
    if cap <= 0:
        raise ValueError(f"cap must be positive, got {cap}")
    if p is None or (isinstance(p, float) and math.isnan(p)):
        return math.nan
    p = float(p)
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"p-value must be in [0, 1], got {p}")
    if p == 0.0:
        return cap
    return min(-math.log10(p), cap)


__all__ = ["pvalue_mlog"]
