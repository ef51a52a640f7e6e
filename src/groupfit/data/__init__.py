"""Data module - table loading, column checks and output schemas."""

from groupfit.data.reader import read_table, require_columns, require_numeric
from groupfit.data.schemas import GroupStatusRow, MetricRow

__all__ = [
    "read_table",
    "require_columns",
    "require_numeric",
    "MetricRow",
    "GroupStatusRow",
]
