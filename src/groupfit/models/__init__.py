"""Models module - typed specs, design matrices, estimators and the registry.

This module contains:
- spec: ModelSpec and its terms (Numeric, Categorical, Poly, Log, Interaction)
- design: Design matrix layout learned per training subset
- estimators: statsmodels OLS / WLS / RLM / GLM dispatch
- fitted: FittedModel and FitMetrics
- registry: ModelFamily and the grow-only ModelRegistry

For fitting, register a ModelSpec and call ModelRegistry.fit().
"""

from groupfit.models.spec import (
    Categorical,
    EstimatorKind,
    Interaction,
    Log,
    ModelSpec,
    Numeric,
    Poly,
    Term,
)
from groupfit.models.design import DesignBuilder, DesignLayout
from groupfit.models.estimators import fit_estimator
from groupfit.models.fitted import FitMetrics, FittedModel
from groupfit.models.registry import ModelFamily, ModelRegistry, SpecBuilder, get_registry

__all__ = [
    # Specs
    "EstimatorKind",
    "ModelSpec",
    "Numeric",
    "Categorical",
    "Poly",
    "Log",
    "Interaction",
    "Term",
    # Design
    "DesignBuilder",
    "DesignLayout",
    # Fitting
    "fit_estimator",
    "FitMetrics",
    "FittedModel",
    # Registry
    "ModelFamily",
    "ModelRegistry",
    "SpecBuilder",
    "get_registry",
]
