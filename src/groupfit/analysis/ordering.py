"""Declared ordering of group keys.

Reports and iteration follow the group key's natural or declared order
(e.g. Monday..Sunday), never insertion order.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import pandas as pd

from groupfit.config import WEEKDAY_ORDER


def _natural(values: List[Any]) -> List[Any]:
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=str)


def group_order(
    keys: Sequence[Any],
    column: Optional[pd.Series] = None,
    order: Optional[Sequence[Any]] = None,
) -> List[Any]:
    """Declared order of group keys.

    Precedence: explicit order > categorical dtype categories > weekday
    order (when every key is a weekday name) > natural sort. Keys missing
    from an explicit order follow it in natural order.

    Args:
        keys: Distinct group keys.
        column: The group column, consulted for a categorical dtype.
        order: Explicit key order.

    Returns:
        Every key exactly once.
    """
    keys = list(keys)
    present = set(keys)

    if order is not None:
        head = list(dict.fromkeys(k for k in order if k in present))
        listed = set(head)
        return head + _natural([k for k in keys if k not in listed])

    if column is not None and isinstance(column.dtype, pd.CategoricalDtype):
        return [c for c in column.cat.categories if c in present]

    if keys and all(isinstance(k, str) and k in WEEKDAY_ORDER for k in keys):
        return [d for d in WEEKDAY_ORDER if d in present]

    return _natural(keys)


__all__ = ["group_order"]
