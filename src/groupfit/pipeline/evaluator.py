"""Fit/predict/residual evaluation.

Provides separate evaluation logic (decoupled from fitting): given a
FittedModel and any subset, append aligned prediction and residual columns.

Key Functions:
    evaluate() - subset + prediction + residual, row order preserved
    score() - hold-out error metrics of an evaluated subset

Usage:
    from groupfit.pipeline.evaluator import evaluate, score

    fitted = registry.fit("daily_income", parts.train)
    test_eval = evaluate(fitted, parts.test)
    print(score(test_eval, "sum_income"))
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from groupfit.analysis.metrics import PredictionMetrics, evaluate_predictions
from groupfit.config import PREDICTION_COLUMN, RESIDUAL_COLUMN
from groupfit.data.reader import require_columns
from groupfit.models.fitted import FittedModel

logger = logging.getLogger(__name__)


def evaluate(
    fitted: FittedModel,
    subset: pd.DataFrame,
    prediction_column: str = PREDICTION_COLUMN,
    residual_column: str = RESIDUAL_COLUMN,
) -> pd.DataFrame:
    """Append prediction and residual columns to a copy of subset.

    Output row i corresponds to input row i (same index, same order).
    When the response column is absent the residual column is NaN.

    Args:
        fitted: Fitted model.
        subset: Rows to evaluate (train, test, or new data).
        prediction_column: Name of the prediction column.
        residual_column: Name of the residual column.

    Returns:
        New DataFrame: subset's columns plus the two numeric columns.

    Raises:
        SchemaMismatch: If subset lacks a predictor column. Raised before
            any numerical work.
    """
    require_columns(subset, fitted.spec.predictors, what="evaluation subset")

    result = subset.copy()
    if len(subset) == 0:
        result[prediction_column] = pd.Series(dtype=float)
        result[residual_column] = pd.Series(dtype=float)
        return result

    predicted = fitted.predict(subset)
    result[prediction_column] = predicted

    response = fitted.spec.response
    if response in subset.columns:
        observed = subset[response].to_numpy(dtype=float, na_value=np.nan)
        result[residual_column] = fitted.residuals(observed, predicted)
    else:
        logger.debug(f"Response '{response}' absent; residuals left as NaN")
        result[residual_column] = np.nan

    return result


def score(
    evaluated: pd.DataFrame,
    response: str,
    prediction_column: str = PREDICTION_COLUMN,
) -> PredictionMetrics:
    """Error metrics of an evaluated subset against its observed response."""
    require_columns(evaluated, [response, prediction_column], what="evaluated subset")
    return evaluate_predictions(
        evaluated[response].to_numpy(dtype=float, na_value=np.nan),
        evaluated[prediction_column].to_numpy(dtype=float, na_value=np.nan),
    )


__all__ = ["evaluate", "score"]
