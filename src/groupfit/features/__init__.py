"""Features module - calendar columns and daily aggregation."""

from groupfit.features.calendar import WEEKDAY_DTYPE, add_weekday, aggregate_daily

__all__ = ["WEEKDAY_DTYPE", "add_weekday", "aggregate_daily"]
