"""Design matrix construction from a ModelSpec.

Terms are resolved once per spec (DesignBuilder). Categorical levels are
learned once per training subset (DesignLayout) so that any later subset
is expanded to exactly the same columns, in the same order.

Coding rules:
    - "const" column first when the spec has an intercept
    - Categorical: treatment coding, reference (first) level dropped when an
      intercept is present; without an intercept the first categorical main
      effect keeps every level
    - Poly: raw powers col^1..col^degree
    - Interaction: every pairwise product of the two expansions, named a:b
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from groupfit.data.reader import require_columns
from groupfit.errors import SchemaMismatch
from groupfit.models.spec import Categorical, Interaction, Log, ModelSpec, Numeric, Poly

logger = logging.getLogger(__name__)

CONST = "const"


def _numeric_values(frame: pd.DataFrame, column: str) -> np.ndarray:
    series = frame[column]
    if not (is_numeric_dtype(series.dtype) or is_bool_dtype(series.dtype)):
        raise SchemaMismatch(f"Column '{column}' must be numeric, got {series.dtype}")
    return series.to_numpy(dtype=float, na_value=np.nan)


def _learn_levels(series: pd.Series) -> Tuple:
    observed = series.dropna()
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(observed.unique())
        return tuple(c for c in series.cat.categories if c in present)
    return tuple(sorted(observed.unique(), key=lambda v: (str(type(v)), v)))


def _categorical_terms(terms) -> List[Categorical]:
    found: List[Categorical] = []
    for term in terms:
        if isinstance(term, Categorical):
            found.append(term)
        elif isinstance(term, Interaction):
            found.extend(_categorical_terms([term.left, term.right]))
    return found


@dataclass(frozen=True)
class DesignLayout:
    """Frozen column layout learned from a training subset."""

    spec: ModelSpec
    levels: Tuple[Tuple[str, Tuple], ...]
    column_names: Tuple[str, ...]

    @property
    def n_parameters(self) -> int:
        return len(self.column_names)

    def _levels_for(self, column: str) -> Tuple:
        return dict(self.levels)[column]

    def _expand(self, term, frame: pd.DataFrame, keep_all_levels: bool = False) -> Dict[str, np.ndarray]:
        if isinstance(term, Numeric):
            return {term.column: _numeric_values(frame, term.column)}

        if isinstance(term, Log):
            values = _numeric_values(frame, term.column)
            logged = np.full_like(values, np.nan)
            positive = values > 0
            logged[positive] = np.log(values[positive])
            return {term.label: logged}

        if isinstance(term, Poly):
            values = _numeric_values(frame, term.column)
            return {f"{term.column}^{k}": values ** k for k in range(1, term.degree + 1)}

        if isinstance(term, Categorical):
            levels = self._levels_for(term.column)
            series = frame[term.column]
            observed = set(series.dropna().unique())
            unseen = sorted(map(str, observed - set(levels)))
            if unseen:
                raise SchemaMismatch(
                    f"Column '{term.column}' has levels not seen when fitting: {unseen}"
                )
            missing = series.isna().to_numpy()
            used = levels if keep_all_levels else levels[1:]
            out = {}
            for level in used:
                dummy = (series == level).to_numpy(dtype=float)
                dummy[missing] = np.nan
                out[f"{term.column}[{level}]"] = dummy
            return out

        if isinstance(term, Interaction):
            left = self._expand(term.left, frame)
            right = self._expand(term.right, frame)
            return {
                f"{lname}:{rname}": lvals * rvals
                for lname, lvals in left.items()
                for rname, rvals in right.items()
            }

        raise TypeError(f"Unsupported term type: {type(term).__name__}")

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Expand frame into the design matrix (index preserved).

        Raises:
            SchemaMismatch: If a predictor column is missing, non-numeric
                where numbers are needed, or carries an unseen level.
        """
        require_columns(frame, self.spec.predictors, what="subset")

        columns: Dict[str, np.ndarray] = {}
        if self.spec.intercept:
            columns[CONST] = np.ones(len(frame))

        full_rank_categorical = not self.spec.intercept
        for term in self.spec.terms:
            keep_all = full_rank_categorical and isinstance(term, Categorical)
            if keep_all:
                full_rank_categorical = False
            columns.update(self._expand(term, frame, keep_all_levels=keep_all))

        design = pd.DataFrame(columns, index=frame.index)
        return design[list(self.column_names)]

    def weights(self, frame: pd.DataFrame) -> Optional[np.ndarray]:
        if not self.spec.weights:
            return None
        require_columns(frame, [self.spec.weights], what="subset")
        return _numeric_values(frame, self.spec.weights)


class DesignBuilder:
    """Resolves a ModelSpec's terms into a reusable design recipe."""

    def __init__(self, spec: ModelSpec):
        self.spec = spec
        self._categoricals = _categorical_terms(spec.terms)

    def fit_layout(self, frame: pd.DataFrame) -> DesignLayout:
        """Learn categorical levels from frame and freeze the column layout.

        Raises:
            SchemaMismatch: If frame lacks a column the spec requires.
        """
        require_columns(frame, self.spec.columns, what="subset")

        levels: Dict[str, Tuple] = {}
        for term in self._categoricals:
            if term.column in levels:
                continue
            levels[term.column] = term.levels if term.levels is not None else _learn_levels(frame[term.column])

        provisional = DesignLayout(self.spec, tuple(levels.items()), ())
        names: List[str] = [CONST] if self.spec.intercept else []
        full_rank_categorical = not self.spec.intercept
        for term in self.spec.terms:
            keep_all = full_rank_categorical and isinstance(term, Categorical)
            if keep_all:
                full_rank_categorical = False
            names.extend(provisional._expand(term, frame.iloc[:0], keep_all_levels=keep_all))

        layout = DesignLayout(self.spec, tuple(levels.items()), tuple(names))
        logger.debug(f"Design for {self.spec.describe()}: {len(names)} columns")
        return layout


__all__ = ["CONST", "DesignBuilder", "DesignLayout"]
