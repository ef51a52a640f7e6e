"""Analysis module - prediction metrics, goodness-of-fit reports, PCA weights.

Key Functions:
    evaluate_predictions() - MAE / RMSE / R² of predictions
    summarize() - Ordered goodness-of-fit rows of a grouped run
    pca_scores(), outlier_weights() - PCA-based outlier down-weighting
    pvalue_mlog() - Capped -log10 p-values
"""

from groupfit.analysis.metrics import PredictionMetrics, evaluate_predictions
from groupfit.analysis.ordering import group_order
from groupfit.analysis.significance import pvalue_mlog
from groupfit.analysis.summarize import report_frame, summarize, to_frame, write_report
from groupfit.analysis.pca import PCAResult, outlier_weights, pca_scores

__all__ = [
    "PredictionMetrics",
    "evaluate_predictions",
    "group_order",
    "pvalue_mlog",
    "summarize",
    "to_frame",
    "report_frame",
    "write_report",
    "PCAResult",
    "pca_scores",
    "outlier_weights",
]
