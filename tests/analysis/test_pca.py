"""Tests for PCA scores and outlier weights."""

import numpy as np
import pandas as pd
import pytest

from groupfit.analysis import outlier_weights, pca_scores
from groupfit.errors import SchemaMismatch
from groupfit.models import ModelFamily, ModelSpec


@pytest.fixture
def table():
    rng = np.random.default_rng(4)
    a = rng.normal(size=200)
    df = pd.DataFrame({
        "a": a,
        "b": a + rng.normal(scale=0.1, size=200),
        "c": rng.normal(size=200),
    })
    df.loc[7, ["a", "b", "c"]] = [8.0, -8.0, 8.0]
    return df


class TestPcaScores:
    """pca_scores output."""

    def test_shapes_and_index(self, table):
        result = pca_scores(table, ["a", "b", "c"], n_components=2)

        assert list(result.scores.columns) == ["PC1", "PC2"]
        assert result.scores.index.equals(table.index)
        assert list(result.loadings.index) == ["a", "b", "c"]
        assert result.explained_variance_ratio[0] >= result.explained_variance_ratio[1]

    def test_missing_values_raise(self, table):
        table.loc[0, "a"] = np.nan
        with pytest.raises(SchemaMismatch):
            pca_scores(table, ["a", "b"])

    def test_missing_column_raises(self, table):
        with pytest.raises(SchemaMismatch):
            pca_scores(table, ["a", "z"])

    def test_too_many_components_raise(self, table):
        with pytest.raises(ValueError):
            pca_scores(table, ["a", "b"], n_components=3)


class TestOutlierWeights:
    """outlier_weights thresholds."""

    def test_outlier_gets_weight(self, table):
        scores = pca_scores(table, ["a", "b", "c"], n_components=3).scores
        weights = outlier_weights(scores, threshold=5.0, weight=0.0)

        assert weights.name == "weight"
        assert weights.loc[7] == 0.0
        assert (weights.drop(7) == 1.0).all()

    def test_weights_feed_weighted_fit(self, table):
        scores = pca_scores(table, ["a", "b", "c"], n_components=3).scores
        df = table.assign(w=outlier_weights(scores, threshold=5.0, weight=0.0))
        fitted = ModelFamily(ModelSpec("b", ["a"], weights="w"))(df)

        assert fitted.params["a"] == pytest.approx(1.0, abs=0.05)

    @pytest.mark.parametrize("threshold,weight", [(0.0, 0.0), (3.0, -1.0)])
    def test_invalid_arguments(self, table, threshold, weight):
        scores = pca_scores(table, ["a", "b"]).scores
        with pytest.raises(ValueError):
            outlier_weights(scores, threshold=threshold, weight=weight)
