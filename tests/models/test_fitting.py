"""Tests for estimator dispatch, fitted models and the registry."""

import numpy as np
import pandas as pd
import pytest

from groupfit.errors import EstimationFailure, InsufficientData, SchemaMismatch
from groupfit.models import (
    Categorical,
    EstimatorKind,
    FittedModel,
    ModelFamily,
    ModelRegistry,
    ModelSpec,
    Numeric,
    get_registry,
)


@pytest.fixture
def linear_df():
    rng = np.random.default_rng(0)
    x = rng.uniform(0, 10, 60)
    return pd.DataFrame({"x": x, "y": 3.0 + 2.0 * x + rng.normal(0, 0.3, 60)})


@pytest.fixture
def count_df():
    rng = np.random.default_rng(1)
    x = rng.uniform(0, 2, 200)
    return pd.DataFrame({"x": x, "y": rng.poisson(np.exp(0.5 + 0.8 * x))})


class TestOrdinary:
    """OLS / WLS fits."""

    def test_recovers_coefficients(self, linear_df):
        fitted = ModelFamily(ModelSpec("y", ["x"]))(linear_df)

        assert isinstance(fitted, FittedModel)
        assert fitted.params["const"] == pytest.approx(3.0, abs=0.3)
        assert fitted.params["x"] == pytest.approx(2.0, abs=0.05)

    def test_metrics(self, linear_df):
        m = ModelFamily(ModelSpec("y", ["x"]))(linear_df).metrics()

        assert m.n_obs == 60
        assert m.df_model == 1
        assert m.df_resid == 58
        assert 0.99 < m.r_squared <= 1.0
        assert m.sigma == pytest.approx(0.3, rel=0.3)
        assert m.pvalue < 1e-10

    def test_train_residuals_center_on_zero(self, linear_df):
        fitted = ModelFamily(ModelSpec("y", ["x"]))(linear_df)
        predicted = fitted.predict(linear_df)
        resid = fitted.residuals(linear_df["y"].to_numpy(), predicted)

        assert abs(resid.mean()) < 1e-8

    def test_weighted_fit(self, linear_df):
        df = linear_df.assign(w=1.0)
        weighted = ModelFamily(ModelSpec("y", ["x"], weights="w"))(df)
        plain = ModelFamily(ModelSpec("y", ["x"]))(df)

        np.testing.assert_allclose(weighted.params.to_numpy(), plain.params.to_numpy())

    def test_rows_with_missing_values_are_dropped(self, linear_df):
        df = linear_df.copy()
        df.loc[0, "x"] = np.nan
        df.loc[1, "y"] = np.nan
        fitted = ModelFamily(ModelSpec("y", ["x"]))(df)

        assert fitted.n_obs == 58
        assert np.isnan(fitted.predict(df)[0])

    def test_zero_weight_rows_are_not_observations(self, linear_df):
        df = linear_df.head(10).assign(w=[1.0, 0.0] * 5)
        weighted = ModelFamily(ModelSpec("y", ["x"], weights="w"))(df).metrics()
        kept = ModelFamily(ModelSpec("y", ["x"]))(df[df["w"] > 0]).metrics()

        assert weighted.n_obs == kept.n_obs == 5
        assert weighted.df_resid == kept.df_resid == 3
        assert weighted.sigma == pytest.approx(kept.sigma)

    def test_zero_weight_rows_can_leave_too_few_rows(self, linear_df):
        df = linear_df.head(3).assign(w=[1.0, 1.0, 0.0])
        with pytest.raises(InsufficientData, match="2 usable rows"):
            ModelFamily(ModelSpec("y", ["x"], weights="w"))(df)


class TestFailures:
    """Failures surface as typed errors."""

    def test_collinear_design_raises_estimation_failure(self, linear_df):
        df = linear_df.assign(x2=2.0 * linear_df["x"])
        with pytest.raises(EstimationFailure, match="rank-deficient"):
            ModelFamily(ModelSpec("y", ["x", "x2"]))(df)

    def test_constant_predictor_raises_estimation_failure(self, linear_df):
        df = linear_df.assign(x=5.0)
        with pytest.raises(EstimationFailure):
            ModelFamily(ModelSpec("y", ["x"]))(df)

    def test_too_few_rows_raises_insufficient_data(self, linear_df):
        with pytest.raises(InsufficientData, match="need at least 3"):
            ModelFamily(ModelSpec("y", ["x"]))(linear_df.head(2))

    def test_missing_response_raises_schema_mismatch(self, linear_df):
        with pytest.raises(SchemaMismatch, match="return"):
            ModelFamily(ModelSpec("return", ["x"]))(linear_df)

    def test_failure_tagged_with_group(self):
        err = InsufficientData("2 usable rows").for_group("Monday")
        assert err.group == "Monday"
        assert err.reason == "2 usable rows"
        assert "Monday" in str(err)


class TestRobustAndGeneralized:
    """RLM and GLM fits."""

    def test_robust_resists_outliers(self, linear_df):
        df = linear_df.copy()
        df.loc[:4, "y"] += 200.0
        robust = ModelFamily(ModelSpec("y", ["x"], kind=EstimatorKind.ROBUST))(df)
        ordinary = ModelFamily(ModelSpec("y", ["x"]))(df)

        assert abs(robust.params["const"] - 3.0) < abs(ordinary.params["const"] - 3.0)
        assert robust.metrics().sigma is not None

    def test_poisson_glm(self, count_df):
        spec = ModelSpec("y", ["x"], kind=EstimatorKind.GENERALIZED, family="poisson")
        fitted = ModelFamily(spec)(count_df)
        m = fitted.metrics()

        assert fitted.params["x"] == pytest.approx(0.8, abs=0.2)
        assert m.deviance < m.null_deviance
        assert m.pvalue < 1e-6
        assert (fitted.predict(count_df) > 0).all()

    def test_binomial_residuals_are_deviance_residuals(self):
        rng = np.random.default_rng(2)
        x = rng.normal(size=300)
        y = (rng.uniform(size=300) < 1 / (1 + np.exp(-x))).astype(float)
        df = pd.DataFrame({"x": x, "y": y})
        fitted = ModelFamily(ModelSpec("y", ["x"], kind="generalized", family="binomial"))(df)

        resid = fitted.residuals(df["y"].to_numpy(), fitted.predict(df))
        np.testing.assert_allclose(resid, fitted.result.resid_deviance, rtol=1e-6)

    def test_perfect_separation_raises_estimation_failure(self):
        x = np.linspace(-2, 2, 40)
        df = pd.DataFrame({"x": x, "y": (x > 0).astype(float)})
        with pytest.raises(EstimationFailure, match="separation"):
            ModelFamily(ModelSpec("y", ["x"], kind="generalized", family="binomial"))(df)


class TestModelRegistry:
    """Registry membership and fitting."""

    def test_register_and_fit(self, linear_df):
        registry = ModelRegistry()
        registry.register("linear", ModelSpec("y", ["x"]))

        assert "linear" in registry
        assert registry.names() == ["linear"]
        assert registry.fit("linear", linear_df).n_obs == 60

    def test_duplicate_name_rejected(self):
        registry = ModelRegistry()
        registry.register("linear", ModelSpec("y", ["x"]))
        with pytest.raises(ValueError, match="already registered"):
            registry.register("linear", ModelSpec("y", ["x"], intercept=False))
        assert len(registry) == 1

    def test_unknown_name_raises_key_error(self):
        with pytest.raises(KeyError):
            ModelRegistry().get("missing")

    def test_accepts_callables(self, linear_df):
        family = ModelFamily(ModelSpec("y", ["x"]))
        registry = ModelRegistry()
        assert registry.register("custom", lambda train: family(train)) is not family
        assert registry.fit("custom", linear_df).n_obs == 60

    def test_rejects_non_callables(self):
        with pytest.raises(TypeError):
            ModelRegistry().register("bad", 42)

    def test_default_registry_is_shared(self):
        assert get_registry() is get_registry()

    def test_categorical_family_predicts_per_level(self):
        df = pd.DataFrame({
            "g": ["a", "b"] * 10,
            "y": [1.0, 5.0, 1.2, 5.2] * 5,
        })
        fitted = ModelFamily(ModelSpec("y", [Categorical("g")]))(df)
        np.testing.assert_allclose(fitted.predict(pd.DataFrame({"g": ["b", "a"]})), [5.1, 1.1])
