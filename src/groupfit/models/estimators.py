"""Estimator dispatch over statsmodels.

ALL numerical fitting goes through fit_estimator(). It checks the design
before handing it to statsmodels and turns every way a fit can go wrong
into EstimationFailure, so callers never see a silently degenerate model.

Estimators:
    ORDINARY    - sm.OLS, or sm.WLS when the spec has a weights column
    ROBUST      - sm.RLM with a named norm (Huber T by default)
    GENERALIZED - sm.GLM with a named family, weights as var_weights
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from groupfit.errors import EstimationFailure
from groupfit.models.spec import EstimatorKind, ModelSpec

logger = logging.getLogger(__name__)

# Warnings that mean the estimates cannot be trusted
FAILURE_WARNINGS = (ConvergenceWarning, PerfectSeparationWarning)


def family_for(name: str) -> sm.families.Family:
    """statsmodels family instance for a GLM family name."""
    families = {
        "gaussian": sm.families.Gaussian,
        "poisson": sm.families.Poisson,
        "binomial": sm.families.Binomial,
        "gamma": sm.families.Gamma,
    }
    if name not in families:
        raise ValueError(f"Unknown GLM family: {name}")
    return families[name]()


def norm_for(name: str) -> sm.robust.norms.RobustNorm:
    """statsmodels robust norm instance for a norm name."""
    norms = {
        "huber": sm.robust.norms.HuberT,
        "tukey": sm.robust.norms.TukeyBiweight,
        "hampel": sm.robust.norms.Hampel,
        "least_squares": sm.robust.norms.LeastSquares,
    }
    if name not in norms:
        raise ValueError(f"Unknown robust norm: {name}")
    return norms[name]()


def check_rank(X: pd.DataFrame) -> None:
    """Raise EstimationFailure if X does not have full column rank."""
    rank = int(np.linalg.matrix_rank(X.to_numpy(dtype=float)))
    if rank < X.shape[1]:
        constant = [c for c in X.columns if np.ptp(X[c].to_numpy()) == 0 and c != "const"]
        detail = f"; constant columns: {constant}" if constant else ""
        raise EstimationFailure(
            f"Design matrix is rank-deficient (rank {rank} < {X.shape[1]} columns){detail}"
        )


def _fit(spec: ModelSpec, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray]):
    if spec.kind is EstimatorKind.ORDINARY:
        if weights is not None:
            return sm.WLS(y, X, weights=weights).fit()
        return sm.OLS(y, X).fit()

    if spec.kind is EstimatorKind.ROBUST:
        result = sm.RLM(y, X, M=norm_for(spec.norm)).fit(maxiter=spec.maxiter)
        iterations = result.fit_history.get("iteration", 0)
        if iterations >= spec.maxiter:
            raise EstimationFailure(f"Robust fit did not converge in {spec.maxiter} iterations")
        return result

    if spec.kind is EstimatorKind.GENERALIZED:
        model = sm.GLM(y, X, family=family_for(spec.family), var_weights=weights)
        result = model.fit(maxiter=spec.maxiter)
        if not getattr(result, "converged", True):
            raise EstimationFailure(f"GLM ({spec.family}) did not converge in {spec.maxiter} iterations")
        return result

    raise ValueError(f"Unknown estimator kind: {spec.kind}")


def fit_estimator(
    spec: ModelSpec,
    X: pd.DataFrame,
    y: np.ndarray,
    weights: Optional[np.ndarray] = None,
):
    """Fit the estimator named by spec.kind.

    Args:
        spec: Model specification (kind, family, norm, maxiter).
        X: Design matrix with finite values only.
        y: Response aligned with X.
        weights: Optional observation weights aligned with X.

    Returns:
        statsmodels results object.

    Raises:
        EstimationFailure: Rank-deficient design, linear-algebra error,
            non-convergence, perfect separation, or non-finite estimates.
    """
    check_rank(X)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        warnings.simplefilter("always", PerfectSeparationWarning)
        try:
            result = _fit(spec, X, y, weights)
        except np.linalg.LinAlgError as e:
            raise EstimationFailure(f"Linear algebra failure: {e}") from e
        except PerfectSeparationError as e:
            raise EstimationFailure(f"{spec.kind.value} fit failed: perfect separation ({e})") from e
        except (ValueError, ZeroDivisionError, FloatingPointError) as e:
            raise EstimationFailure(f"{spec.kind.value} fit failed: {e}") from e

    separation = [w for w in caught if issubclass(w.category, PerfectSeparationWarning)]
    convergence = [w for w in caught if issubclass(w.category, ConvergenceWarning)]
    for w in caught:
        if not issubclass(w.category, FAILURE_WARNINGS):
            warnings.warn(w.message, w.category, stacklevel=2)
    # Separated data has no finite MLE
    if separation:
        raise EstimationFailure(f"{spec.kind.value} fit failed: perfect separation ({separation[0].message})")
    if convergence:
        raise EstimationFailure(f"{spec.kind.value} fit did not converge: {convergence[0].message}")

    params = np.asarray(result.params, dtype=float)
    if not np.all(np.isfinite(params)):
        raise EstimationFailure("Estimated coefficients are not finite")

    logger.debug(f"Fitted {spec.describe()} on {len(y)} rows")
    return result


__all__ = ["family_for", "norm_for", "check_rank", "fit_estimator"]
