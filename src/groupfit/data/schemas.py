"""Pydantic schemas for pipeline output rows.

Models:
    MetricRow - Goodness-of-fit summary for one group
    GroupStatusRow - Fit status for one group (fitted or failed, with reason)

Usage:
    from groupfit.data.schemas import MetricRow

    row = MetricRow(group="Monday", status="ok", n_obs=15, df_resid=13)
    row.model_dump()
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

Status = Literal["ok", "failed"]


class MetricRow(BaseModel):
    """Goodness-of-fit metrics for a single group's fitted model."""

    model_config = ConfigDict(frozen=True)

    group: Any
    status: Status = "ok"
    n_obs: int
    df_model: Optional[float] = None
    df_resid: Optional[float] = None
    r_squared: Optional[float] = None
    adj_r_squared: Optional[float] = None
    sigma: Optional[float] = None
    deviance: Optional[float] = None
    null_deviance: Optional[float] = None
    aic: Optional[float] = None
    bic: Optional[float] = None
    pvalue: Optional[float] = None
    pvalue_mlog: Optional[float] = None
    # Hold-out scores, only when the run partitioned each group
    test_n: Optional[int] = None
    test_mae: Optional[float] = None
    test_rmse: Optional[float] = None
    reason: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def is_fitted(self) -> bool:
        return self.status == "ok"


class GroupStatusRow(BaseModel):
    """Fit outcome for one group."""

    model_config = ConfigDict(frozen=True)

    group: Any
    status: Status
    n_obs: int
    reason: Optional[str] = None
    error_type: Optional[str] = None


__all__ = ["MetricRow", "GroupStatusRow", "Status"]
