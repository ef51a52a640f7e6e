"""
Pipeline Module

Grouped model evaluation workflow.

Components:
    partition  - Train/test (and validation) splits by cutoff or ratio
    evaluate   - Prediction + residual columns for any subset
    run_grouped - Fit and evaluate one model per group
"""

from groupfit.pipeline.partition import (
    CutoffRule,
    Partition,
    PartitionRule,
    RatioRule,
    load_partition,
    partition,
)
from groupfit.pipeline.evaluator import evaluate, score
from groupfit.pipeline.runner import (
    GroupEntry,
    GroupedModelRunner,
    GroupedResult,
    load_grouped_result,
    run_grouped,
)

__all__ = [
    # Partitioning
    "CutoffRule",
    "RatioRule",
    "PartitionRule",
    "Partition",
    "partition",
    "load_partition",
    # Evaluation
    "evaluate",
    "score",
    # Grouped runs
    "GroupEntry",
    "GroupedResult",
    "GroupedModelRunner",
    "run_grouped",
    "load_grouped_result",
]
