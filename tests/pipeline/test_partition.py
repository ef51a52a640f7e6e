"""Tests for cutoff and ratio partitioning."""

import numpy as np
import pandas as pd
import pytest

from groupfit.errors import InvalidPartitionSpec
from groupfit.pipeline import CutoffRule, Partition, RatioRule, load_partition, partition


@pytest.fixture
def numbered():
    return pd.DataFrame({"t": np.arange(100), "v": np.linspace(0, 1, 100)})


class TestCutoffRule:
    """Cutoff splits on an ordering column."""

    def test_daily_cutoff(self, daily_table):
        parts = partition(daily_table, CutoffRule("day", "2011-11-01"))

        assert len(parts.train) == 32
        assert len(parts.test) == 30
        assert parts.train["day"].max() == pd.Timestamp("2011-11-01")
        assert parts.test["day"].min() == pd.Timestamp("2011-11-02")
        assert parts.validation is None

    def test_validation_cutoff(self, daily_table):
        parts = partition(daily_table, CutoffRule("day", "2011-11-01", validation_cutoff="2011-11-15"))

        assert parts.summary == {"train_rows": 32, "validation_rows": 14, "test_rows": 16}
        assert list(parts.subsets) == ["train", "validation", "test"]

    def test_subsets_are_disjoint_and_cover_input(self, daily_table):
        parts = partition(daily_table, CutoffRule("day", "2011-11-01", validation_cutoff="2011-11-15"))
        indices = np.concatenate([df.index.to_numpy() for df in parts.subsets.values()])

        assert len(indices) == len(set(indices)) == len(daily_table)

    def test_numeric_cutoff(self, numbered):
        parts = partition(numbered, CutoffRule("t", 79))
        assert len(parts.train) == 80
        assert len(parts.test) == 20

    def test_input_not_modified(self, daily_table):
        before = daily_table.copy()
        partition(daily_table, CutoffRule("day", "2011-11-01"))
        pd.testing.assert_frame_equal(daily_table, before)

    def test_missing_column_raises(self, daily_table):
        with pytest.raises(InvalidPartitionSpec, match="not found"):
            partition(daily_table, CutoffRule("date", "2011-11-01"))

    def test_missing_ordering_values_raise(self, numbered):
        numbered = numbered.astype({"t": float})
        numbered.loc[3, "t"] = np.nan
        with pytest.raises(InvalidPartitionSpec, match="missing values"):
            partition(numbered, CutoffRule("t", 50))

    def test_unparsable_date_raises(self, daily_table):
        with pytest.raises(InvalidPartitionSpec):
            partition(daily_table, CutoffRule("day", "not-a-date"))

    def test_validation_cutoff_must_follow_cutoff(self, daily_table):
        with pytest.raises(InvalidPartitionSpec, match="after"):
            partition(daily_table, CutoffRule("day", "2011-11-01", validation_cutoff="2011-10-15"))


class TestRatioRule:
    """Seeded ratio splits."""

    def test_sizes_and_coverage(self, numbered):
        parts = partition(numbered, RatioRule(train=0.7, test=0.3, seed=1))

        assert len(parts.train) == 70
        assert len(parts.test) == 30
        assert set(parts.train.index) | set(parts.test.index) == set(numbered.index)
        assert not set(parts.train.index) & set(parts.test.index)

    def test_relative_order_preserved(self, numbered):
        parts = partition(numbered, RatioRule(train=0.6, test=0.2, validation=0.2))
        for subset in parts.subsets.values():
            assert subset.index.is_monotonic_increasing

    def test_same_seed_same_split(self, numbered):
        a = partition(numbered, RatioRule(0.7, 0.3, seed=5))
        b = partition(numbered, RatioRule(0.7, 0.3, seed=5))
        c = partition(numbered, RatioRule(0.7, 0.3, seed=6))

        assert list(a.train.index) == list(b.train.index)
        assert list(a.train.index) != list(c.train.index)

    def test_ratios_below_one_leave_rows_out(self, numbered):
        parts = partition(numbered, RatioRule(train=0.5, test=0.2))
        assert len(parts.train) == 50
        assert len(parts.test) == 20

    @pytest.mark.parametrize("train,test,validation", [
        (0.8, 0.5, None),
        (0.0, 1.0, None),
        (-0.1, 0.5, None),
        (0.6, 0.3, 0.2),
        (0.5, float("nan"), None),
    ])
    def test_invalid_ratios_raise(self, train, test, validation):
        with pytest.raises(InvalidPartitionSpec):
            RatioRule(train=train, test=test, validation=validation)

    def test_unknown_rule_raises(self, numbered):
        with pytest.raises(InvalidPartitionSpec):
            partition(numbered, {"train": 0.5})


class TestPartitionPersistence:
    """Partition.save / load_partition."""

    def test_save_and_load(self, daily_table, tmp_path):
        parts = partition(daily_table, CutoffRule("day", "2011-11-01"))
        parts.save(tmp_path, prefix="daily")

        assert (tmp_path / "daily_train.csv").exists()
        assert (tmp_path / "daily_partition_info.json").exists()

        loaded = load_partition(tmp_path, prefix="daily")
        assert isinstance(loaded, Partition)
        assert len(loaded.train) == 32
        assert len(loaded.test) == 30
        assert loaded.validation is None
