"""Build a daily observation table from transaction records.

Aggregates transactions per day (income sum, mean unit price, count),
adds an ordered weekday column, and optionally writes a train/test
partition split on a date cutoff.

Usage:
    python scripts/ops/build_daily.py --data storage/raw/transactions.csv \
        --date-column invoice_date --cutoff 2011-11-01
"""

import argparse
import logging
import sys
from pathlib import Path

from groupfit.config import DATASETS_DIR
from groupfit.data import read_table
from groupfit.errors import GroupfitError
from groupfit.features import add_weekday, aggregate_daily
from groupfit.pipeline import CutoffRule, partition

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """Aggregate transactions into a daily table."""
    parser = argparse.ArgumentParser(description="Build a daily table from transactions")
    parser.add_argument("--data", required=True, help="Transaction table")
    parser.add_argument("--date-column", default="invoice_date", help="Transaction timestamp column")
    parser.add_argument("--income-column", default="income", help="Column summed into sum_income")
    parser.add_argument("--price-column", default="unit_price", help="Column averaged into mean_unit_price")
    parser.add_argument("--cutoff", default=None, help="Last day of the training subset (YYYY-MM-DD)")
    parser.add_argument("--out-dir", default=str(DATASETS_DIR), help="Output directory")

    args = parser.parse_args(argv)

    try:
        raw = read_table(args.data, date_columns=[args.date_column])
        daily = aggregate_daily(
            raw,
            args.date_column,
            sums={args.income_column: "sum_income"},
            means={args.price_column: "mean_unit_price"},
            counts="n_transactions",
        )
        daily = add_weekday(daily, "day")
        parts = partition(daily, CutoffRule("day", args.cutoff)) if args.cutoff else None
    except (GroupfitError, ValueError, FileNotFoundError) as e:
        logger.error(f"Build failed: {e}")
        return 1

    print(f"Built {len(daily):,} daily rows ({daily['day'].min():%Y-%m-%d} .. {daily['day'].max():%Y-%m-%d})")

    if parts is not None:
        parts.save(args.out_dir, prefix="daily")
        parts.print_summary()
    else:
        out_dir = Path(args.out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        out_path = out_dir / "daily.csv"
        daily.to_csv(out_path, index=False)
        print(f"Saved {out_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
