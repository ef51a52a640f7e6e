"""Prediction error metrics.

Measures how well a fitted model's predictions track observed values on
any evaluated subset (typically the held-out test rows of each group).

Key Classes:
    PredictionMetrics - MAE, RMSE, mean residual, R² for predictions

Key Functions:
    evaluate_predictions() - Compute prediction accuracy metrics

Metrics Explained:
    MAE: Average absolute error (lower is better)
    RMSE: Root mean square error (penalizes large errors)
    Mean residual: Bias of the predictions (0 for unbiased)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score


@dataclass
class PredictionMetrics:
    """Metrics for prediction accuracy."""

    mae: float  # Mean Absolute Error
    rmse: float  # Root Mean Square Error
    mean_residual: float
    r2: float
    n_samples: int

    def to_dict(self) -> dict:
        return {
            "mae": round(self.mae, 4),
            "rmse": round(self.rmse, 4),
            "mean_residual": round(self.mean_residual, 4),
            "r2": round(self.r2, 4),
            "n_samples": self.n_samples,
        }

    def __repr__(self) -> str:
        return f"MAE: {self.mae:.3f}, RMSE: {self.rmse:.3f}, R²: {self.r2:.3f} (n={self.n_samples})"


def evaluate_predictions(y_true: np.ndarray, y_pred: np.ndarray) -> PredictionMetrics:
    """Calculate prediction metrics.

    Rows where either value is NaN are masked out. With no valid rows every
    metric is NaN and n_samples is 0.

    Args:
        y_true: Observed values
        y_pred: Predicted values

    Returns:
        PredictionMetrics with MAE, RMSE, etc.
    """
    y_true = np.asarray(y_true, dtype=float).flatten()
    y_pred = np.asarray(y_pred, dtype=float).flatten()

    mask = ~(np.isnan(y_true) | np.isnan(y_pred))
    y_true = y_true[mask]
    y_pred = y_pred[mask]

    n = len(y_true)
    if n == 0:
        return PredictionMetrics(np.nan, np.nan, np.nan, np.nan, 0)

    mae = float(mean_absolute_error(y_true, y_pred))
    rmse = float(np.sqrt(mean_squared_error(y_true, y_pred)))
    mean_residual = float(np.mean(y_true - y_pred))

    # R² is undefined for fewer than two points or a constant target
    r2 = float(r2_score(y_true, y_pred)) if n > 1 and np.ptp(y_true) > 0 else np.nan

    return PredictionMetrics(
        mae=mae,
        rmse=rmse,
        mean_residual=mean_residual,
        r2=r2,
        n_samples=n,
    )


__all__ = ["PredictionMetrics", "evaluate_predictions"]
