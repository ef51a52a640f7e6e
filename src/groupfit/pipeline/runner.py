"""Grouped model runner.

Fits one model per group of an observation table and evaluates it:

1. Split the table on every distinct value of the group column
2. Per group (independently, optionally in parallel):
   a. Optionally partition the group (holdout rule)
   b. Fit the spec builder on the group's training rows
   c. Evaluate on every subset (prediction + residual)
3. Collect one GroupEntry per group into a GroupedResult

Per-group EstimationFailure / InsufficientData are recorded on the group's
entry and never abort the run; so is a held-out subset carrying a level the
group's training rows never had. Other SchemaMismatch / InvalidPartitionSpec
errors are configuration errors and propagate immediately.

Usage:
    from groupfit.pipeline import run_grouped

    result = run_grouped(daily, "day_of_week", ModelFamily(spec))
    for key, entry in result:
        print(key, entry.status)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import joblib
import pandas as pd
from joblib import Parallel, delayed

from groupfit.analysis.metrics import PredictionMetrics
from groupfit.analysis.ordering import group_order
from groupfit.config import DEFAULT_N_JOBS
from groupfit.data.reader import require_columns
from groupfit.data.schemas import GroupStatusRow
from groupfit.errors import EstimationFailure, InsufficientData, SchemaMismatch
from groupfit.models.fitted import FittedModel
from groupfit.models.registry import ModelRegistry, SpecBuilder
from groupfit.pipeline.evaluator import evaluate, score
from groupfit.pipeline.partition import PartitionRule, partition

logger = logging.getLogger(__name__)


@dataclass
class GroupEntry:
    """Outcome of fitting one group.

    Attributes:
        key: Group key.
        status: "ok" or "failed".
        n_obs: Rows in the group (before any holdout split).
        fitted: Fitted model, None when failed.
        evaluated: Evaluated subsets by name ("train", "validation", "test").
        holdout: Error metrics on the test subset, when a holdout was used.
        reason: Failure reason, None when ok.
        error_type: Failure class name, None when ok.
    """

    key: Any
    status: str
    n_obs: int
    fitted: Optional[FittedModel] = None
    evaluated: Dict[str, pd.DataFrame] = field(default_factory=dict)
    holdout: Optional[PredictionMetrics] = None
    reason: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def predictions(self) -> Optional[pd.DataFrame]:
        """Evaluated training rows (prediction + residual)."""
        return self.evaluated.get("train")

    def status_row(self) -> GroupStatusRow:
        return GroupStatusRow(
            group=self.key,
            status=self.status,
            n_obs=self.n_obs,
            reason=self.reason,
            error_type=self.error_type,
        )


@dataclass
class GroupedResult:
    """Mapping from group key to GroupEntry, iterated in declared order.

    Attributes:
        group_column: Column the table was grouped by.
        entries: Group key -> GroupEntry.
        order: Declared key order.
        holdout: Holdout rule used, if any.
        index: Row index of the input table, used to restore input order.
    """

    group_column: str
    entries: Dict[Any, GroupEntry]
    order: List[Any]
    holdout: Optional[PartitionRule] = None
    index: Optional[pd.Index] = None

    def __getitem__(self, key: Any) -> GroupEntry:
        return self.entries[key]

    def __contains__(self, key: Any) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Tuple[Any, GroupEntry]]:
        for key in self.order:
            yield key, self.entries[key]

    @property
    def keys(self) -> List[Any]:
        return list(self.order)

    @property
    def succeeded(self) -> List[Any]:
        return [k for k, e in self if e.ok]

    @property
    def failed(self) -> List[Any]:
        return [k for k, e in self if not e.ok]

    def predictions(self, split: str = "train") -> pd.DataFrame:
        """Evaluated rows of every fitted group, in input row order.

        Rows of failed groups (and rows outside split) are absent.
        """
        frames = [e.evaluated[split] for _, e in self if e.ok and split in e.evaluated]
        if not frames:
            return pd.DataFrame()
        combined = pd.concat(frames)
        if self.index is None or not self.index.is_unique:
            return combined.sort_index(kind="mergesort")
        return combined.loc[self.index[self.index.isin(combined.index)]]

    def status_frame(self) -> pd.DataFrame:
        """One row per group: status, rows, failure reason."""
        return pd.DataFrame([e.status_row().model_dump() for _, e in self])

    def print_summary(self) -> None:
        print(f"Grouped by '{self.group_column}': {len(self.succeeded)} fitted, {len(self.failed)} failed")
        for key, entry in self:
            detail = f"n={entry.n_obs}" if entry.ok else f"{entry.error_type}: {entry.reason}"
            print(f"  {str(key):<12} {entry.status:<7} {detail}")

    def save(self, path: Union[str, Path]) -> Path:
        """Persist the grouped result with joblib."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(self, path)
        logger.info(f"Grouped result saved to {path}")
        return path


def load_grouped_result(path: Union[str, Path]) -> GroupedResult:
    """Load a GroupedResult written by GroupedResult.save()."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing {path}")
    result = joblib.load(path)
    if not isinstance(result, GroupedResult):
        raise ValueError(f"Unknown result format in {path}")
    return result


def _fit_group(
    key: Any,
    frame: pd.DataFrame,
    spec_builder: SpecBuilder,
    holdout: Optional[PartitionRule],
) -> GroupEntry:
    if holdout is None:
        subsets = {"train": frame}
    else:
        subsets = partition(frame, holdout).subsets

    try:
        fitted = spec_builder(subsets["train"])
        evaluated = {"train": evaluate(fitted, subsets["train"])}
        for name, subset in subsets.items():
            if name == "train":
                continue
            # A level unseen in train fails this group only
            try:
                evaluated[name] = evaluate(fitted, subset)
            except SchemaMismatch as e:
                raise EstimationFailure(f"{name} subset cannot be evaluated: {e}") from e
    except (EstimationFailure, InsufficientData) as e:
        failure = e.for_group(key)
        logger.warning(f"Fit failed for {failure}")
        return GroupEntry(
            key=key,
            status="failed",
            n_obs=len(frame),
            reason=failure.reason,
            error_type=type(failure).__name__,
        )

    holdout_metrics = None
    if "test" in evaluated and fitted.spec.response in frame.columns:
        holdout_metrics = score(evaluated["test"], fitted.spec.response)

    return GroupEntry(
        key=key,
        status="ok",
        n_obs=len(frame),
        fitted=fitted,
        evaluated=evaluated,
        holdout=holdout_metrics,
    )


def run_grouped(
    table: pd.DataFrame,
    group_column: str,
    spec_builder: SpecBuilder,
    holdout: Optional[PartitionRule] = None,
    n_jobs: int = DEFAULT_N_JOBS,
    order: Optional[Sequence[Any]] = None,
) -> GroupedResult:
    """Fit and evaluate spec_builder independently on every group.

    Args:
        table: Observation table.
        group_column: Categorical column whose values define the groups.
        spec_builder: Callable training subset -> FittedModel
            (e.g. a ModelFamily or ModelRegistry.get(name)).
        holdout: If set, each group is partitioned with this rule; the model
            is fitted on train and evaluated on every subset.
        n_jobs: Parallel workers for joblib (1 runs sequentially).
        order: Explicit group key order for iteration and reports.

    Returns:
        GroupedResult with one entry per distinct group value.

    Raises:
        SchemaMismatch: Group column missing or has missing values, or a
            group lacks a column the model requires.
        InvalidPartitionSpec: Malformed holdout rule.
    """
    require_columns(table, [group_column], what="table")
    keys = table[group_column]
    if keys.isna().any():
        raise SchemaMismatch(
            f"Group column '{group_column}' has {int(keys.isna().sum())} missing values"
        )

    groups = list(table.groupby(group_column, observed=True, sort=False))
    logger.info(f"Fitting {len(groups)} groups by '{group_column}' (n_jobs={n_jobs})")

    if n_jobs == 1:
        entries = [_fit_group(key, frame, spec_builder, holdout) for key, frame in groups]
    else:
        entries = Parallel(n_jobs=n_jobs)(
            delayed(_fit_group)(key, frame, spec_builder, holdout) for key, frame in groups
        )

    by_key = {entry.key: entry for entry in entries}
    result = GroupedResult(
        group_column=group_column,
        entries=by_key,
        order=group_order(list(by_key), keys, order),
        holdout=holdout,
        index=table.index,
    )
    logger.info(f"Fitted {len(result.succeeded)} groups, {len(result.failed)} failed")
    return result


class GroupedModelRunner:
    """Runs a registered model family across groups.

    Attributes:
        registry: Registry holding the family.
        family: Registered family name.
        holdout: Optional per-group partition rule.
        n_jobs: Parallel workers.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        family: str,
        holdout: Optional[PartitionRule] = None,
        n_jobs: int = DEFAULT_N_JOBS,
    ):
        self.registry = registry
        self.family = family
        self.holdout = holdout
        self.n_jobs = n_jobs
        # Fail on unknown families at construction, not per group
        self.spec_builder = registry.get(family)

    def run(
        self,
        table: pd.DataFrame,
        group_column: str,
        order: Optional[Sequence[Any]] = None,
    ) -> GroupedResult:
        return run_grouped(
            table,
            group_column,
            self.spec_builder,
            holdout=self.holdout,
            n_jobs=self.n_jobs,
            order=order,
        )


__all__ = [
    "GroupEntry",
    "GroupedResult",
    "GroupedModelRunner",
    "run_grouped",
    "load_grouped_result",
]
