"""Pytest fixtures/config for groupfit tests."""

import os
import sys

import numpy as np
import pandas as pd
import pytest


def pytest_sessionstart(session) -> None:  # type: ignore[unused-argument]
    repo_root = os.path.dirname(os.path.dirname(__file__))
    src_path = os.path.join(repo_root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@pytest.fixture
def weekday_table():
    """100 rows, 7 weekdays, y = a + b*x + noise with per-weekday slopes."""
    rng = np.random.default_rng(7)
    n = 100
    weekday = [WEEKDAYS[i % 7] for i in range(n)]
    x = rng.uniform(0, 10, n)
    slope = np.array([1.0 + 0.25 * WEEKDAYS.index(d) for d in weekday])
    y = 2.0 + slope * x + rng.normal(0, 0.5, n)
    df = pd.DataFrame({"weekday": weekday, "x": x, "y": y})
    # Shuffle so input order differs from weekday order
    return df.sample(frac=1.0, random_state=3).reset_index(drop=True)


@pytest.fixture
def daily_table():
    """Daily table 2011-10-01..2011-12-01 with a price-driven income."""
    rng = np.random.default_rng(11)
    days = pd.date_range("2011-10-01", "2011-12-01", freq="D")
    price = rng.uniform(2, 6, len(days))
    income = 500 + 80 * price + rng.normal(0, 10, len(days))
    return pd.DataFrame({
        "day": days,
        "mean_unit_price": price,
        "sum_income": income,
    })
