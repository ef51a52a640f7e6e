"""Calendar features and daily aggregation.

Turns transaction-level records into the per-day observation tables the
grouped models run on, and adds an ordered weekday column usable as a
group key.

Key Functions:
    add_weekday() - Ordered categorical weekday column (Monday..Sunday)
    aggregate_daily() - Per-day sums, means and counts

Usage:
    from groupfit.features import aggregate_daily, add_weekday

    daily = aggregate_daily(
        sales, "invoice_date",
        sums={"income": "sum_income"},
        means={"unit_price": "mean_unit_price"},
        counts="n_transactions",
    )
    daily = add_weekday(daily, "day")
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Union

import pandas as pd

from groupfit.config import WEEKDAY_ORDER
from groupfit.data.reader import require_columns

WEEKDAY_DTYPE = pd.CategoricalDtype(categories=WEEKDAY_ORDER, ordered=True)

ColumnMap = Union[Sequence[str], Mapping[str, str]]


def add_weekday(
    df: pd.DataFrame,
    date_column: str,
    out: str = "day_of_week",
) -> pd.DataFrame:
    """Add an ordered weekday column derived from date_column.

    Args:
        df: Table with a date-like column.
        date_column: Column to derive the weekday from.
        out: Name of the new column.

    Returns:
        New DataFrame; the input is not modified.
    """
    require_columns(df, [date_column])
    result = df.copy()
    days = pd.to_datetime(result[date_column])
    result[out] = days.dt.day_name().astype(WEEKDAY_DTYPE)
    return result


def _as_mapping(columns: ColumnMap, prefix: str) -> Dict[str, str]:
    if isinstance(columns, Mapping):
        return dict(columns)
    return {c: f"{prefix}_{c}" for c in columns}


def aggregate_daily(
    df: pd.DataFrame,
    date_column: str,
    sums: ColumnMap = (),
    means: ColumnMap = (),
    counts: Optional[str] = None,
    out: str = "day",
) -> pd.DataFrame:
    """Aggregate records to one row per calendar day.

    Args:
        df: Record-level table.
        date_column: Timestamp column; time of day is dropped.
        sums: Columns to sum. A list names outputs sum_<col>; a mapping
            gives {source: output}.
        means: Columns to average, same naming rules (mean_<col>).
        counts: If set, name of a column holding records per day.
        out: Name of the day column in the result.

    Returns:
        DataFrame ordered by day with a fresh RangeIndex.
    """
    sum_map = _as_mapping(sums, "sum")
    mean_map = _as_mapping(means, "mean")
    require_columns(df, [date_column, *sum_map, *mean_map])

    days = pd.to_datetime(df[date_column]).dt.normalize().rename(out)
    grouped = df.groupby(days, sort=True)

    parts = []
    if sum_map:
        parts.append(grouped[list(sum_map)].sum().rename(columns=sum_map))
    if mean_map:
        parts.append(grouped[list(mean_map)].mean().rename(columns=mean_map))
    if counts:
        parts.append(grouped.size().rename(counts).to_frame())

    if not parts:
        return pd.DataFrame({out: sorted(days.unique())})

    result = pd.concat(parts, axis=1)
    return result.reset_index()
