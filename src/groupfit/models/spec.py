"""Typed model specifications.

A ModelSpec replaces a formula string such as
``sum_income ~ day_of_week * poly(mean_unit_price, 5)`` with an explicit,
immutable structure:

    ModelSpec(
        response="sum_income",
        terms=Interaction.crossed(Categorical("day_of_week"), Poly("mean_unit_price", 5)),
    )

Terms:
    Numeric - column used as-is
    Categorical - treatment-coded dummies
    Poly - raw powers 1..degree
    Log - natural log of a positive column
    Interaction - row-wise products of two expanded terms

Estimator kinds:
    ORDINARY - least squares (weighted when ModelSpec.weights is set)
    ROBUST - M-estimation (iteratively reweighted least squares)
    GENERALIZED - generalized linear model with a named family
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from groupfit.config import DEFAULT_MAXITER, GLM_FAMILIES, ROBUST_NORMS


class EstimatorKind(str, Enum):
    ORDINARY = "ordinary"
    ROBUST = "robust"
    GENERALIZED = "generalized"


@dataclass(frozen=True)
class Numeric:
    column: str

    @property
    def columns(self) -> Tuple[str, ...]:
        return (self.column,)

    @property
    def label(self) -> str:
        return self.column


@dataclass(frozen=True)
class Categorical:
    """Treatment-coded categorical column.

    levels fixes the level order (first level is the reference). When None,
    levels are learned from the training subset.
    """

    column: str
    levels: Optional[Tuple] = None

    def __post_init__(self):
        if self.levels is not None:
            object.__setattr__(self, "levels", tuple(self.levels))
            if len(set(self.levels)) != len(self.levels):
                raise ValueError(f"Duplicate levels for '{self.column}': {self.levels}")

    @property
    def columns(self) -> Tuple[str, ...]:
        return (self.column,)

    @property
    def label(self) -> str:
        return self.column


@dataclass(frozen=True)
class Poly:
    column: str
    degree: int = 2

    def __post_init__(self):
        if int(self.degree) != self.degree or self.degree < 1:
            raise ValueError(f"Poly degree must be a positive integer, got {self.degree}")

    @property
    def columns(self) -> Tuple[str, ...]:
        return (self.column,)

    @property
    def label(self) -> str:
        return f"poly({self.column}, {self.degree})"


@dataclass(frozen=True)
class Log:
    column: str

    @property
    def columns(self) -> Tuple[str, ...]:
        return (self.column,)

    @property
    def label(self) -> str:
        return f"log({self.column})"


@dataclass(frozen=True)
class Interaction:
    left: "Term"
    right: "Term"

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(self.left.columns + self.right.columns))

    @property
    def label(self) -> str:
        return f"{self.left.label}:{self.right.label}"

    @classmethod
    def crossed(cls, left: "Term", right: "Term") -> List["Term"]:
        """Main effects plus interaction: the ``left * right`` shorthand."""
        return [left, right, cls(left, right)]


Term = Union[Numeric, Categorical, Poly, Log, Interaction]


def _flatten(terms: Sequence) -> Tuple:
    flat = []
    for term in terms:
        if isinstance(term, (list, tuple)):
            flat.extend(_flatten(term))
        elif isinstance(term, str):
            flat.append(Numeric(term))
        else:
            flat.append(term)
    return tuple(flat)


@dataclass(frozen=True)
class ModelSpec:
    """Immutable description of a model family.

    Attributes:
        response: Column to model.
        terms: Predictor terms. Plain strings become Numeric terms and
            nested lists (e.g. from Interaction.crossed) are flattened.
        kind: Estimator kind.
        family: GLM family name (GENERALIZED only, default gaussian).
        norm: Robust norm name (ROBUST only, default huber).
        intercept: Include a constant column.
        weights: Optional column of observation weights (ORDINARY uses WLS,
            GENERALIZED uses variance weights).
        maxiter: Iteration cap for ROBUST / GENERALIZED fits.
        name: Optional display name.
    """

    response: str
    terms: Tuple = field(default_factory=tuple)
    kind: EstimatorKind = EstimatorKind.ORDINARY
    family: Optional[str] = None
    norm: Optional[str] = None
    intercept: bool = True
    weights: Optional[str] = None
    maxiter: int = DEFAULT_MAXITER
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "kind", EstimatorKind(self.kind))
        object.__setattr__(self, "terms", _flatten(self.terms))

        if not self.response:
            raise ValueError("ModelSpec.response must be a non-empty column name")
        if not self.terms and not self.intercept:
            raise ValueError("ModelSpec needs at least one term or an intercept")

        labels = [t.label for t in self.terms]
        duplicates = sorted({l for l in labels if labels.count(l) > 1})
        if duplicates:
            raise ValueError(f"Duplicate terms in ModelSpec: {duplicates}")
        if self.response in self.columns:
            raise ValueError(f"Response '{self.response}' is also used as a predictor")

        if self.kind is EstimatorKind.GENERALIZED:
            if self.family is None:
                object.__setattr__(self, "family", "gaussian")
            if self.family not in GLM_FAMILIES:
                raise ValueError(f"Unknown GLM family: {self.family}. Must be one of {GLM_FAMILIES}")
        elif self.family is not None:
            raise ValueError("family is only valid for GENERALIZED models")

        if self.kind is EstimatorKind.ROBUST:
            if self.norm is None:
                object.__setattr__(self, "norm", "huber")
            if self.norm not in ROBUST_NORMS:
                raise ValueError(f"Unknown robust norm: {self.norm}. Must be one of {ROBUST_NORMS}")
            if self.weights is not None:
                raise ValueError("ROBUST models derive their own weights; weights column not supported")
        elif self.norm is not None:
            raise ValueError("norm is only valid for ROBUST models")

        if self.maxiter < 1:
            raise ValueError(f"maxiter must be >= 1, got {self.maxiter}")

    @classmethod
    def from_columns(cls, response: str, predictors: Sequence[str], **kwargs) -> "ModelSpec":
        """Every listed predictor as a Numeric term (``response ~ .``)."""
        return cls(response=response, terms=tuple(Numeric(c) for c in predictors), **kwargs)

    @property
    def predictors(self) -> List[str]:
        """Predictor columns referenced by any term, in first-use order."""
        cols: List[str] = []
        for term in self.terms:
            cols.extend(term.columns)
        return list(dict.fromkeys(cols))

    @property
    def columns(self) -> List[str]:
        """Columns needed to predict: predictors plus the weights column."""
        cols = self.predictors
        if self.weights:
            cols.append(self.weights)
        return list(dict.fromkeys(cols))

    @property
    def required_columns(self) -> List[str]:
        """Columns needed to fit: response plus everything in columns."""
        return [self.response] + [c for c in self.columns if c != self.response]

    def describe(self) -> str:
        """Formula-style rendering for logs and reports."""
        rhs = [t.label for t in self.terms]
        if not self.intercept:
            rhs.append("0")
        body = f"{self.response} ~ {' + '.join(rhs) if rhs else '1'}"
        if self.kind is EstimatorKind.GENERALIZED:
            return f"glm[{self.family}]({body})"
        if self.kind is EstimatorKind.ROBUST:
            return f"rlm[{self.norm}]({body})"
        return f"ols({body})"


__all__ = [
    "EstimatorKind",
    "Numeric",
    "Categorical",
    "Poly",
    "Log",
    "Interaction",
    "Term",
    "ModelSpec",
]
