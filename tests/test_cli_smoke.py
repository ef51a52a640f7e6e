"""CLI smoke tests for ops scripts.

These are minimal tests that verify:
1. Script runs without crashing
2. Exit code is 0 (1 on bad input)
3. Output exists (stdout or file)

Correctness is covered by the module tests; scripts are thin wrappers.
"""

import subprocess
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


# Project root for PYTHONPATH
PROJECT_ROOT = Path(__file__).parent.parent
SCRIPTS_DIR = PROJECT_ROOT / "scripts"


def run_script(script_path: Path, args: list = None) -> subprocess.CompletedProcess:
    """Run a script with PYTHONPATH set to src."""
    env = {
        "PYTHONPATH": str(PROJECT_ROOT / "src"),
    }

    cmd = [sys.executable, str(script_path)]
    if args:
        cmd.extend(args)

    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        env={**subprocess.os.environ, **env},
        cwd=str(PROJECT_ROOT),
        timeout=120,
    )


@pytest.fixture
def transactions_csv(tmp_path):
    rng = np.random.default_rng(3)
    stamps = pd.date_range("2011-10-01", "2011-12-01 23:00", freq="7h")
    price = rng.uniform(1, 5, len(stamps))
    df = pd.DataFrame({
        "invoice_date": stamps,
        "unit_price": price,
        "income": 20 + 10 * price + rng.normal(0, 1, len(stamps)),
    })
    path = tmp_path / "transactions.csv"
    df.to_csv(path, index=False)
    return path


class TestBuildDailyCLI:
    """Smoke tests for build_daily.py."""

    def test_writes_daily_table(self, transactions_csv, tmp_path):
        out_dir = tmp_path / "datasets"
        result = run_script(
            SCRIPTS_DIR / "ops" / "build_daily.py",
            ["--data", str(transactions_csv), "--out-dir", str(out_dir)],
        )

        assert result.returncode == 0, f"Exit code {result.returncode}, stderr: {result.stderr}"
        daily = pd.read_csv(out_dir / "daily.csv")
        assert {"day", "sum_income", "mean_unit_price", "n_transactions", "day_of_week"} <= set(daily.columns)

    def test_writes_partition_with_cutoff(self, transactions_csv, tmp_path):
        out_dir = tmp_path / "datasets"
        result = run_script(
            SCRIPTS_DIR / "ops" / "build_daily.py",
            ["--data", str(transactions_csv), "--out-dir", str(out_dir), "--cutoff", "2011-11-01"],
        )

        assert result.returncode == 0, result.stderr
        assert (out_dir / "daily_train.csv").exists()
        assert (out_dir / "daily_test.csv").exists()

    def test_missing_input_exits_one(self, tmp_path):
        result = run_script(SCRIPTS_DIR / "ops" / "build_daily.py", ["--data", str(tmp_path / "none.csv")])
        assert result.returncode == 1

    def test_bad_cutoff_exits_one(self, transactions_csv, tmp_path):
        result = run_script(
            SCRIPTS_DIR / "ops" / "build_daily.py",
            ["--data", str(transactions_csv), "--out-dir", str(tmp_path / "datasets"), "--cutoff", "notadate"],
        )

        assert result.returncode == 1
        assert "Traceback" not in result.stderr
        assert "Build failed" in result.stderr
        assert not (tmp_path / "datasets").exists()


class TestRunGroupedCLI:
    """Smoke tests for run_grouped.py."""

    @pytest.fixture
    def daily_csv(self, transactions_csv, tmp_path):
        out_dir = tmp_path / "datasets"
        run_script(
            SCRIPTS_DIR / "ops" / "build_daily.py",
            ["--data", str(transactions_csv), "--out-dir", str(out_dir)],
        )
        return out_dir / "daily.csv"

    def test_writes_report(self, daily_csv, tmp_path):
        report = tmp_path / "reports" / "report.csv"
        result = run_script(
            SCRIPTS_DIR / "ops" / "run_grouped.py",
            [
                "--data", str(daily_csv),
                "--group", "day_of_week",
                "--response", "sum_income",
                "--predictors", "mean_unit_price",
                "--date-columns", "day",
                "--cutoff", "day:2011-11-15",
                "--out", str(report),
                "--save-model", str(tmp_path / "models" / "result.joblib"),
            ],
        )

        assert result.returncode == 0, f"Exit code {result.returncode}, stderr: {result.stderr}"
        df = pd.read_csv(report)
        assert list(df["group"]) == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
        assert (tmp_path / "models" / "result.joblib").exists()

    def test_bad_response_exits_one(self, daily_csv, tmp_path):
        result = run_script(
            SCRIPTS_DIR / "ops" / "run_grouped.py",
            [
                "--data", str(daily_csv),
                "--group", "day_of_week",
                "--response", "return",
                "--predictors", "mean_unit_price",
                "--out", str(tmp_path / "report.csv"),
            ],
        )
        assert result.returncode == 1

    def test_has_help(self):
        result = run_script(SCRIPTS_DIR / "ops" / "run_grouped.py", ["--help"])

        assert result.returncode == 0
        assert "usage" in result.stdout.lower()
