"""Fitted model container and goodness-of-fit metrics.

A FittedModel is the immutable result of applying a ModelSpec to one
training subset. It predicts on any subset carrying the spec's predictor
columns and exposes the scalar metrics the summarizer reports.

Key Classes:
    FitMetrics - r², residual scale, degrees of freedom, deviance, p-value
    FittedModel - spec + frozen design layout + statsmodels results
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from scipy import stats

from groupfit.models.design import DesignLayout
from groupfit.models.estimators import family_for
from groupfit.models.spec import EstimatorKind, ModelSpec


def _finite_or_none(value) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if np.isfinite(value) else None


@dataclass(frozen=True)
class FitMetrics:
    """Scalar goodness-of-fit summary of one fitted model."""

    n_obs: int
    df_model: float
    df_resid: float
    r_squared: Optional[float] = None
    adj_r_squared: Optional[float] = None
    sigma: Optional[float] = None
    deviance: Optional[float] = None
    null_deviance: Optional[float] = None
    aic: Optional[float] = None
    bic: Optional[float] = None
    pvalue: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_result(cls, spec: ModelSpec, result) -> "FitMetrics":
        """Extract metrics from a statsmodels results object."""
        n_obs = int(result.nobs)
        df_model = float(result.df_model)
        df_resid = float(result.df_resid)

        if spec.kind is EstimatorKind.ORDINARY:
            return cls(
                n_obs=n_obs,
                df_model=df_model,
                df_resid=df_resid,
                r_squared=_finite_or_none(result.rsquared),
                adj_r_squared=_finite_or_none(result.rsquared_adj),
                sigma=_finite_or_none(np.sqrt(result.scale)),
                deviance=_finite_or_none(result.ssr),
                aic=_finite_or_none(result.aic),
                bic=_finite_or_none(result.bic),
                pvalue=_finite_or_none(result.f_pvalue) if df_model > 0 else None,
            )

        if spec.kind is EstimatorKind.ROBUST:
            y = np.asarray(result.model.endog, dtype=float)
            resid = y - np.asarray(result.fittedvalues, dtype=float)
            ssr = float(np.sum(resid ** 2))
            sst = float(np.sum((y - y.mean()) ** 2))
            r2 = 1.0 - ssr / sst if sst > 0 else None
            adj = None
            if r2 is not None and df_resid > 0:
                adj = 1.0 - (1.0 - r2) * (n_obs - 1) / df_resid
            return cls(
                n_obs=n_obs,
                df_model=df_model,
                df_resid=df_resid,
                r_squared=_finite_or_none(r2),
                adj_r_squared=_finite_or_none(adj),
                sigma=_finite_or_none(result.scale),
                deviance=_finite_or_none(ssr),
            )

        # GENERALIZED: likelihood-ratio test of the model against the null model
        deviance = float(result.deviance)
        null_deviance = float(result.null_deviance)
        scale = float(result.scale) if result.scale else 1.0
        pvalue = None
        if df_model > 0:
            pvalue = stats.chi2.sf(max(null_deviance - deviance, 0.0) / scale, df_model)
        r2 = 1.0 - deviance / null_deviance if null_deviance > 0 else None
        return cls(
            n_obs=n_obs,
            df_model=df_model,
            df_resid=df_resid,
            r_squared=_finite_or_none(r2),
            sigma=_finite_or_none(np.sqrt(scale)),
            deviance=_finite_or_none(deviance),
            null_deviance=_finite_or_none(null_deviance),
            aic=_finite_or_none(result.aic),
            bic=_finite_or_none(getattr(result, "bic_llf", None)),
            pvalue=_finite_or_none(pvalue),
        )


@dataclass(frozen=True)
class FittedModel:
    """Immutable fit of a ModelSpec on one training subset.

    Attributes:
        spec: Specification the model was fitted from.
        layout: Design layout learned from the training subset.
        result: statsmodels results object.
        fit_metrics: Goodness-of-fit summary computed at fit time.
    """

    spec: ModelSpec
    layout: DesignLayout
    result: Any
    fit_metrics: FitMetrics

    @property
    def n_obs(self) -> int:
        return self.fit_metrics.n_obs

    @property
    def params(self) -> pd.Series:
        """Coefficients indexed by design column name."""
        return pd.Series(np.asarray(self.result.params, dtype=float), index=list(self.layout.column_names))

    def metrics(self) -> FitMetrics:
        return self.fit_metrics

    def predict(self, frame: pd.DataFrame) -> np.ndarray:
        """Predicted response for every row of frame, in row order.

        Rows with missing predictor values predict NaN.

        Raises:
            SchemaMismatch: If frame lacks a predictor column.
        """
        X = self.layout.transform(frame).to_numpy(dtype=float)
        linear = X @ self.params.to_numpy()
        if self.spec.kind is EstimatorKind.GENERALIZED:
            return np.asarray(family_for(self.spec.family).link.inverse(linear), dtype=float)
        return linear

    def residuals(self, observed: np.ndarray, predicted: np.ndarray) -> np.ndarray:
        """Observed minus predicted; deviance residuals for binomial models."""
        observed = np.asarray(observed, dtype=float)
        predicted = np.asarray(predicted, dtype=float)
        if self.spec.kind is EstimatorKind.GENERALIZED and self.spec.family == "binomial":
            resid = np.full(observed.shape, np.nan)
            ok = np.isfinite(observed) & np.isfinite(predicted)
            if ok.any():
                resid[ok] = family_for("binomial").resid_dev(observed[ok], predicted[ok])
            return resid
        return observed - predicted

    def __repr__(self) -> str:
        m = self.fit_metrics
        return f"FittedModel({self.spec.describe()}, n={m.n_obs}, df_resid={m.df_resid:g})"


__all__ = ["FitMetrics", "FittedModel"]
