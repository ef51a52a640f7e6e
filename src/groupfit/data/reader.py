"""Observation table loading and column checks.

Reads delimited-text or serialized tables into pandas, parsing date and
categorical columns up front so later stages never re-parse.

Key Functions:
    read_table() - Load a table from .csv/.tsv/.txt/.parquet/.pkl
    require_columns() - Fail with SchemaMismatch when columns are absent
    require_numeric() - Fail with SchemaMismatch for a non-numeric response

Usage:
    from groupfit.data import read_table

    daily = read_table("storage/datasets/daily.csv", date_columns=["day"])
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence, Union

import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from groupfit.errors import SchemaMismatch

logger = logging.getLogger(__name__)

DELIMITERS = {".csv": ",", ".tsv": "\t", ".txt": "\t"}


def read_table(
    path: Union[str, Path],
    date_columns: Sequence[str] = (),
    categorical_columns: Sequence[str] = (),
) -> pd.DataFrame:
    """Load an observation table.

    Args:
        path: File to read. Suffix picks the reader.
        date_columns: Columns parsed to datetime64.
        categorical_columns: Columns cast to pandas categorical.

    Returns:
        DataFrame with a fresh RangeIndex.

    Raises:
        FileNotFoundError: If path does not exist.
        ValueError: If the suffix is not supported.
        SchemaMismatch: If a requested date/categorical column is absent.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")

    suffix = path.suffix.lower()
    if suffix in DELIMITERS:
        df = pd.read_csv(path, sep=DELIMITERS[suffix])
    elif suffix == ".parquet":
        df = pd.read_parquet(path)
    elif suffix in (".pkl", ".pickle"):
        df = pd.read_pickle(path)
    else:
        raise ValueError(f"Unsupported table format: {suffix}")

    require_columns(df, list(date_columns) + list(categorical_columns), what=str(path))

    for col in date_columns:
        df[col] = pd.to_datetime(df[col])
    for col in categorical_columns:
        df[col] = df[col].astype("category")

    logger.info(f"Loaded {len(df):,} rows x {df.shape[1]} columns from {path}")
    return df.reset_index(drop=True)


def require_columns(df: pd.DataFrame, columns: Iterable[str], what: str = "table") -> None:
    """Raise SchemaMismatch if any of columns is missing from df."""
    missing = [c for c in dict.fromkeys(columns) if c not in df.columns]
    if missing:
        raise SchemaMismatch(f"{what} is missing required columns: {missing}", missing=missing)


def require_numeric(df: pd.DataFrame, column: str) -> None:
    """Raise SchemaMismatch if column is not numeric (bool counts as numeric)."""
    require_columns(df, [column])
    dtype = df[column].dtype
    if not (is_numeric_dtype(dtype) or is_bool_dtype(dtype)):
        raise SchemaMismatch(f"Response column '{column}' must be numeric, got {dtype}")
