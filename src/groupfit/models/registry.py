"""Model family registry.

Holds named spec builders: callables mapping a training subset to a
FittedModel. ModelSpec instances are wrapped in a ModelFamily, which
resolves the spec's terms once at registration time.

Membership only grows. Registering an existing name is an error; there is
no removal and no replacement.

Usage:
    from groupfit.models import ModelRegistry, ModelSpec, Numeric

    registry = ModelRegistry()
    registry.register("income_by_price", ModelSpec("sum_income", [Numeric("mean_unit_price")]))
    fitted = registry.fit("income_by_price", train)
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterator, List, Union

import numpy as np
import pandas as pd

from groupfit.config import MIN_RESIDUAL_DF
from groupfit.data.reader import require_columns, require_numeric
from groupfit.errors import InsufficientData
from groupfit.models.design import DesignBuilder
from groupfit.models.estimators import fit_estimator
from groupfit.models.fitted import FitMetrics, FittedModel
from groupfit.models.spec import ModelSpec

logger = logging.getLogger(__name__)

SpecBuilder = Callable[[pd.DataFrame], FittedModel]


class ModelFamily:
    """Callable spec builder for a ModelSpec.

    Calling a family on a training subset:
        1. checks the subset carries every required column (SchemaMismatch)
        2. learns the design layout and expands the design matrix
        3. drops rows with missing response / predictor / weight values and
           rows whose weight is not positive
        4. checks rows >= parameters + min_resid_df (InsufficientData)
        5. fits through fit_estimator (EstimationFailure)
    """

    def __init__(self, spec: ModelSpec, min_resid_df: int = MIN_RESIDUAL_DF):
        self.spec = spec
        self.min_resid_df = min_resid_df
        self._builder = DesignBuilder(spec)

    @property
    def name(self) -> str:
        return self.spec.name or self.spec.describe()

    def __call__(self, train: pd.DataFrame) -> FittedModel:
        require_columns(train, self.spec.required_columns, what="training subset")
        require_numeric(train, self.spec.response)

        layout = self._builder.fit_layout(train)
        X = layout.transform(train)
        y = train[self.spec.response].to_numpy(dtype=float, na_value=np.nan)
        weights = layout.weights(train)

        mask = np.isfinite(y) & np.isfinite(X.to_numpy(dtype=float)).all(axis=1)
        if weights is not None:
            # Zero-weight rows carry no information and do not count as observations
            mask &= np.isfinite(weights) & (weights > 0)
        dropped = int((~mask).sum())
        if dropped:
            logger.debug(f"{self.name}: dropping {dropped} rows with missing values or zero weight")

        n_rows = int(mask.sum())
        required = layout.n_parameters + self.min_resid_df
        if n_rows < required:
            raise InsufficientData(
                f"{n_rows} usable rows, need at least {required} "
                f"({layout.n_parameters} parameters + {self.min_resid_df} residual df)"
            )

        result = fit_estimator(
            self.spec,
            X[mask],
            y[mask],
            weights[mask] if weights is not None else None,
        )
        return FittedModel(
            spec=self.spec,
            layout=layout,
            result=result,
            fit_metrics=FitMetrics.from_result(self.spec, result),
        )

    def __repr__(self) -> str:
        return f"ModelFamily({self.spec.describe()})"


class ModelRegistry:
    """Named spec builders. Grows only."""

    def __init__(self):
        self._builders: Dict[str, SpecBuilder] = {}

    def register(self, name: str, spec_builder: Union[ModelSpec, SpecBuilder]) -> SpecBuilder:
        """Register a spec builder under name.

        Args:
            name: Unique family name.
            spec_builder: A ModelSpec (wrapped in ModelFamily) or any callable
                mapping a training subset to a FittedModel.

        Returns:
            The registered builder.

        Raises:
            ValueError: If name is already registered or empty.
            TypeError: If spec_builder is neither a ModelSpec nor callable.
        """
        if not name:
            raise ValueError("Model family name must be non-empty")
        if name in self._builders:
            raise ValueError(f"Model family already registered: {name}")

        if isinstance(spec_builder, ModelSpec):
            builder: SpecBuilder = ModelFamily(spec_builder)
        elif callable(spec_builder):
            builder = spec_builder
        else:
            raise TypeError(f"spec_builder must be a ModelSpec or callable, got {type(spec_builder).__name__}")

        self._builders[name] = builder
        logger.debug(f"Registered model family '{name}'")
        return builder

    def get(self, name: str) -> SpecBuilder:
        if name not in self._builders:
            raise KeyError(f"Unknown model family: {name}. Registered: {self.names()}")
        return self._builders[name]

    def fit(self, name: str, train: pd.DataFrame) -> FittedModel:
        """Fit the named family on a training subset.

        Raises:
            KeyError: Unknown family.
            SchemaMismatch: Training subset lacks a required column.
            InsufficientData: Too few usable rows.
            EstimationFailure: Non-convergence or rank-deficient design.
        """
        return self.get(name)(train)

    def names(self) -> List[str]:
        return list(self._builders)

    def __contains__(self, name: str) -> bool:
        return name in self._builders

    def __len__(self) -> int:
        return len(self._builders)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._builders))


_DEFAULT_REGISTRY = ModelRegistry()


def get_registry() -> ModelRegistry:
    """Process-wide default registry."""
    return _DEFAULT_REGISTRY


__all__ = ["ModelFamily", "ModelRegistry", "SpecBuilder", "get_registry"]
