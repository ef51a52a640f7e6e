"""PCA scores and outlier down-weighting.

Outlying observations are spotted on standardized principal-component
scores. Instead of editing weights by eye, rows whose score distance
exceeds a configured threshold get a configured weight, which a ModelSpec
can consume through its weights column.

Usage:
    from groupfit.analysis.pca import pca_scores, outlier_weights

    scores = pca_scores(daily, ["sum_income", "mean_unit_price", "n_transactions"])
    daily = daily.assign(w=outlier_weights(scores.scores))
    spec = ModelSpec("sum_income", ["mean_unit_price"], weights="w")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from groupfit.config import OUTLIER_SCORE_THRESHOLD, OUTLIER_WEIGHT
from groupfit.data.reader import require_columns
from groupfit.errors import SchemaMismatch


@dataclass
class PCAResult:
    """Component scores (index aligned with the input) and explained variance."""

    scores: pd.DataFrame
    explained_variance_ratio: np.ndarray
    loadings: pd.DataFrame


def pca_scores(df: pd.DataFrame, columns: Sequence[str], n_components: int = 2) -> PCAResult:
    """Standardize columns and project onto the first principal components.

    Raises:
        SchemaMismatch: If a column is missing or holds missing values.
        ValueError: If n_components exceeds the number of columns or rows.
    """
    columns = list(columns)
    require_columns(df, columns, what="table")
    values = df[columns].to_numpy(dtype=float)
    if np.isnan(values).any():
        raise SchemaMismatch(f"PCA columns contain missing values: {columns}")
    if not 1 <= n_components <= min(values.shape):
        raise ValueError(f"n_components must be in [1, {min(values.shape)}], got {n_components}")

    scaled = StandardScaler().fit_transform(values)
    pca = PCA(n_components=n_components)
    scores = pca.fit_transform(scaled)

    names = [f"PC{i + 1}" for i in range(n_components)]
    return PCAResult(
        scores=pd.DataFrame(scores, index=df.index, columns=names),
        explained_variance_ratio=pca.explained_variance_ratio_,
        loadings=pd.DataFrame(pca.components_.T, index=columns, columns=names),
    )


def outlier_weights(
    scores: pd.DataFrame,
    threshold: float = OUTLIER_SCORE_THRESHOLD,
    weight: float = OUTLIER_WEIGHT,
) -> pd.Series:
    """Weight per row: `weight` for outliers, 1.0 otherwise.

    A row is an outlier when the Euclidean norm of its standardized
    component scores exceeds threshold.
    """
    if threshold <= 0:
        raise ValueError(f"threshold must be positive, got {threshold}")
    if weight < 0:
        raise ValueError(f"weight must be non-negative, got {weight}")

    values = scores.to_numpy(dtype=float)
    std = values.std(axis=0)
    std[std == 0] = 1.0
    distance = np.sqrt((((values - values.mean(axis=0)) / std) ** 2).sum(axis=1))
    return pd.Series(np.where(distance > threshold, weight, 1.0), index=scores.index, name="weight")


__all__ = ["PCAResult", "pca_scores", "outlier_weights"]
