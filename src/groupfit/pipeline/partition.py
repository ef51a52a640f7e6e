"""Train/validation/test partitioning of an observation table.

Two deterministic rules:
    - CutoffRule: split on an ordering column (dates or numbers). Rows at or
      before the cutoff train the model; later rows test it. Prevents
      temporal leakage.
    - RatioRule: shuffled split by ratios with a fixed seed. Reproducible.

Both rules produce disjoint subsets whose union is the input table (for
ratios summing to 1). Row indices and relative row order are preserved;
the input is never modified.

Key Classes:
    CutoffRule, RatioRule - Partition rules
    Partition - Container for the subsets

Usage:
    from groupfit.pipeline import CutoffRule, partition

    parts = partition(daily, CutoffRule("day", "2011-11-01"))
    parts.print_summary()

    # Or save to CSV files
    parts.save("storage/datasets", prefix="daily")
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd
from pandas.api.types import is_datetime64_any_dtype

from groupfit.config import DEFAULT_SEED, RATIO_TOLERANCE
from groupfit.errors import InvalidPartitionSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CutoffRule:
    """Split on an ordering column.

    Attributes:
        column: Ordering column (dates or numbers).
        cutoff: Last value included in train.
        validation_cutoff: If set, rows in (cutoff, validation_cutoff] form
            the validation subset.
    """

    column: str
    cutoff: Any
    validation_cutoff: Any = None


@dataclass(frozen=True)
class RatioRule:
    """Seeded random split by ratios.

    Attributes:
        train: Fraction of rows for training.
        test: Fraction of rows for testing.
        validation: Optional fraction of rows for validation.
        seed: Seed for the shuffle.
    """

    train: float
    test: float
    validation: Optional[float] = None
    seed: int = DEFAULT_SEED

    def __post_init__(self):
        ratios = {"train": self.train, "test": self.test}
        if self.validation is not None:
            ratios["validation"] = self.validation
        bad = {k: v for k, v in ratios.items() if not (isinstance(v, (int, float)) and np.isfinite(v) and v > 0)}
        if bad:
            raise InvalidPartitionSpec(f"Partition ratios must be positive numbers, got {bad}")
        total = sum(ratios.values())
        if total > 1 + RATIO_TOLERANCE:
            raise InvalidPartitionSpec(f"Partition ratios must sum to <= 1, got {total:.6g}")

    @property
    def total(self) -> float:
        return self.train + self.test + (self.validation or 0.0)


PartitionRule = Union[CutoffRule, RatioRule]


@dataclass
class Partition:
    """Container for train/test (and optional validation) subsets.

    Attributes:
        train: Training DataFrame.
        test: Test DataFrame.
        validation: Validation DataFrame, or None.
        rule: Rule that produced the split.
    """

    train: pd.DataFrame
    test: pd.DataFrame
    validation: Optional[pd.DataFrame] = None
    rule: Optional[PartitionRule] = None

    @property
    def subsets(self) -> Dict[str, pd.DataFrame]:
        out = {"train": self.train}
        if self.validation is not None:
            out["validation"] = self.validation
        out["test"] = self.test
        return out

    @property
    def summary(self) -> Dict[str, Any]:
        """Row counts per subset."""
        return {f"{name}_rows": len(df) for name, df in self.subsets.items()}

    def print_summary(self) -> None:
        """Print partition summary to console."""
        print("Partition Summary:")
        for name, df in self.subsets.items():
            print(f"  {name.capitalize():<11} {len(df):,} rows")

    def save(self, out_dir: Union[str, Path], prefix: str = "") -> Path:
        """Save subsets to CSV files plus partition_info.json.

        Args:
            out_dir: Output directory.
            prefix: Optional prefix for filenames.

        Returns:
            Output directory path.
        """
        out_path = Path(out_dir)
        out_path.mkdir(parents=True, exist_ok=True)
        pfx = f"{prefix}_" if prefix else ""

        for name, df in self.subsets.items():
            df.to_csv(out_path / f"{pfx}{name}.csv", index=False)

        meta = {
            "rule": {"type": type(self.rule).__name__, **vars(self.rule)} if self.rule else None,
            "summary": self.summary,
        }
        with open(out_path / f"{pfx}partition_info.json", "w") as f:
            json.dump(meta, f, indent=2, default=str)

        logger.info(f"Saved partition to {out_path}/")
        return out_path


def load_partition(dataset_dir: Union[str, Path], prefix: str = "") -> Partition:
    """Load subsets written by Partition.save()."""
    path = Path(dataset_dir)
    pfx = f"{prefix}_" if prefix else ""

    train = pd.read_csv(path / f"{pfx}train.csv")
    test = pd.read_csv(path / f"{pfx}test.csv")
    val_file = path / f"{pfx}validation.csv"
    validation = pd.read_csv(val_file) if val_file.exists() else None

    return Partition(train=train, test=test, validation=validation)


def _coerce_cutoff(series: pd.Series, value: Any, name: str):
    if is_datetime64_any_dtype(series.dtype):
        try:
            return pd.Timestamp(value)
        except (TypeError, ValueError) as e:
            raise InvalidPartitionSpec(f"{name} {value!r} is not a valid date") from e
    return value


def _partition_cutoff(table: pd.DataFrame, rule: CutoffRule) -> Partition:
    if rule.column not in table.columns:
        raise InvalidPartitionSpec(f"Ordering column '{rule.column}' not found in table")

    order = table[rule.column]
    if order.isna().any():
        raise InvalidPartitionSpec(
            f"Ordering column '{rule.column}' has {int(order.isna().sum())} missing values"
        )

    cutoff = _coerce_cutoff(order, rule.cutoff, "cutoff")
    try:
        in_train = (order <= cutoff).to_numpy()
    except TypeError as e:
        raise InvalidPartitionSpec(
            f"cutoff {rule.cutoff!r} is not comparable with column '{rule.column}' ({order.dtype})"
        ) from e

    validation = None
    in_test = ~in_train
    if rule.validation_cutoff is not None:
        val_cutoff = _coerce_cutoff(order, rule.validation_cutoff, "validation_cutoff")
        if not val_cutoff > cutoff:
            raise InvalidPartitionSpec(
                f"validation_cutoff ({rule.validation_cutoff}) must be after cutoff ({rule.cutoff})"
            )
        in_val = in_test & (order <= val_cutoff).to_numpy()
        in_test = in_test & ~in_val
        validation = table[in_val].copy()

    return Partition(
        train=table[in_train].copy(),
        test=table[in_test].copy(),
        validation=validation,
        rule=rule,
    )


def _partition_ratio(table: pd.DataFrame, rule: RatioRule) -> Partition:
    n = len(table)
    shuffled = np.random.default_rng(rule.seed).permutation(n)

    n_train = int(np.floor(n * rule.train))
    n_val = int(np.floor(n * rule.validation)) if rule.validation is not None else 0
    if abs(rule.total - 1.0) <= RATIO_TOLERANCE:
        n_test = n - n_train - n_val
    else:
        n_test = int(np.floor(n * rule.test))

    train_pos = np.sort(shuffled[:n_train])
    val_pos = np.sort(shuffled[n_train:n_train + n_val])
    test_pos = np.sort(shuffled[n_train + n_val:n_train + n_val + n_test])

    return Partition(
        train=table.iloc[train_pos].copy(),
        test=table.iloc[test_pos].copy(),
        validation=table.iloc[val_pos].copy() if rule.validation is not None else None,
        rule=rule,
    )


def partition(table: pd.DataFrame, rule: PartitionRule) -> Partition:
    """Split table into disjoint train/test (and optional validation) subsets.

    Args:
        table: Observation table.
        rule: CutoffRule or RatioRule.

    Returns:
        Partition with copies of the selected rows (indices preserved).

    Raises:
        InvalidPartitionSpec: Malformed rule, missing ordering column, or
            missing ordering values.
    """
    if isinstance(rule, CutoffRule):
        parts = _partition_cutoff(table, rule)
    elif isinstance(rule, RatioRule):
        parts = _partition_ratio(table, rule)
    else:
        raise InvalidPartitionSpec(f"Unknown partition rule: {type(rule).__name__}")

    logger.debug(f"Partitioned {len(table):,} rows: {parts.summary}")
    return parts


__all__ = [
    "CutoffRule",
    "RatioRule",
    "PartitionRule",
    "Partition",
    "partition",
    "load_partition",
]
