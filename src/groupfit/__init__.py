"""
groupfit - Tidy grouped-model evaluation

Fit a family of models per group, generate predictions and residuals,
and summarize goodness of fit across groups.

Structure:
    data/      - Table loading, column checks, output schemas
    features/  - Calendar columns and daily aggregation
    models/    - Typed model specs, design matrices, estimators, registry
    pipeline/  - Partitioning, evaluation, grouped runs
    analysis/  - Metrics, goodness-of-fit reports, PCA weights

Usage:
    from groupfit import ModelSpec, ModelFamily, run_grouped, summarize

    result = run_grouped(daily, "day_of_week", ModelFamily(ModelSpec("y", ["x"])))
    rows = summarize(result)
"""

from groupfit.errors import (
    EstimationFailure,
    GroupfitError,
    InsufficientData,
    InvalidPartitionSpec,
    SchemaMismatch,
)
from groupfit.models import (
    Categorical,
    EstimatorKind,
    FittedModel,
    Interaction,
    Log,
    ModelFamily,
    ModelRegistry,
    ModelSpec,
    Numeric,
    Poly,
)
from groupfit.pipeline import (
    CutoffRule,
    GroupedResult,
    RatioRule,
    evaluate,
    partition,
    run_grouped,
)
from groupfit.analysis import summarize

__all__ = [
    "__version__",
    # Errors
    "GroupfitError",
    "InvalidPartitionSpec",
    "SchemaMismatch",
    "EstimationFailure",
    "InsufficientData",
    # Models
    "EstimatorKind",
    "ModelSpec",
    "Numeric",
    "Categorical",
    "Poly",
    "Log",
    "Interaction",
    "FittedModel",
    "ModelFamily",
    "ModelRegistry",
    # Pipeline
    "CutoffRule",
    "RatioRule",
    "partition",
    "evaluate",
    "run_grouped",
    "GroupedResult",
    "summarize",
]
__version__ = "0.1.0"
