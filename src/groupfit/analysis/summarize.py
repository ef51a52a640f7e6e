"""Goodness-of-fit summaries of grouped runs.

One MetricRow per fitted group, ordered by the group key's declared order
(Monday..Sunday for weekdays), ready for CSV or a plotting collaborator.

Key Functions:
    summarize() - Ordered metric rows
    to_frame() - Rows as a DataFrame
    write_report() - Rows as CSV
    report_frame() - Every group, fitted or failed, with the failure reason

Usage:
    from groupfit.analysis import summarize, to_frame

    rows = summarize(result)
    print(to_frame(rows))
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Union

import pandas as pd

from groupfit.analysis.ordering import group_order
from groupfit.analysis.significance import pvalue_mlog
from groupfit.config import PVALUE_MLOG_CAP
from groupfit.data.schemas import MetricRow

if TYPE_CHECKING:
    from groupfit.pipeline.runner import GroupEntry, GroupedResult

logger = logging.getLogger(__name__)


def _clean(value) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return None if math.isnan(value) else value


def _metric_row(entry: "GroupEntry", mlog_cap: float) -> MetricRow:
    if not entry.ok:
        return MetricRow(
            group=entry.key,
            status="failed",
            n_obs=entry.n_obs,
            reason=entry.reason,
            error_type=entry.error_type,
        )

    m = entry.fitted.metrics()
    holdout = {}
    if entry.holdout is not None:
        holdout = {
            "test_n": entry.holdout.n_samples,
            "test_mae": _clean(entry.holdout.mae),
            "test_rmse": _clean(entry.holdout.rmse),
        }

    return MetricRow(
        group=entry.key,
        status="ok",
        n_obs=m.n_obs,
        df_model=m.df_model,
        df_resid=m.df_resid,
        r_squared=m.r_squared,
        adj_r_squared=m.adj_r_squared,
        sigma=m.sigma,
        deviance=m.deviance,
        null_deviance=m.null_deviance,
        aic=m.aic,
        bic=m.bic,
        pvalue=m.pvalue,
        pvalue_mlog=_clean(pvalue_mlog(m.pvalue, cap=mlog_cap)),
        **holdout,
    )


def summarize(
    result: "GroupedResult",
    order: Optional[Sequence[Any]] = None,
    include_failed: bool = False,
    mlog_cap: float = PVALUE_MLOG_CAP,
) -> List[MetricRow]:
    """Ordered goodness-of-fit rows, one per fitted group.

    Args:
        result: Output of run_grouped().
        order: Explicit key order; defaults to the result's declared order.
        include_failed: Also emit rows (status "failed", with reason) for
            groups without a usable model.
        mlog_cap: Cap for -log10(p-value).

    Returns:
        List of MetricRow in group order.
    """
    keys = group_order(result.keys, order=order) if order is not None else result.keys
    rows = []
    for key in keys:
        entry = result[key]
        if entry.ok or include_failed:
            rows.append(_metric_row(entry, mlog_cap))
    return rows


def to_frame(rows: Sequence[MetricRow]) -> pd.DataFrame:
    """Metric rows as a DataFrame (columns in MetricRow field order)."""
    columns = list(MetricRow.model_fields)
    return pd.DataFrame([row.model_dump() for row in rows], columns=columns)


def report_frame(result: "GroupedResult", order: Optional[Sequence[Any]] = None) -> pd.DataFrame:
    """Full report: every group, fitted or failed, in group order."""
    return to_frame(summarize(result, order=order, include_failed=True))


def write_report(rows: Sequence[MetricRow], path: Union[str, Path]) -> Path:
    """Write metric rows to CSV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    to_frame(rows).to_csv(path, index=False)
    logger.info(f"Report saved to {path}")
    return path


__all__ = ["summarize", "to_frame", "report_frame", "write_report"]
