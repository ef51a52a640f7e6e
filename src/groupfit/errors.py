"""Error taxonomy for the grouped modeling pipeline.

Two families with different propagation rules:

    Configuration errors (fail fast, never recorded per group):
        InvalidPartitionSpec - malformed split ratios / cutoff
        SchemaMismatch - subset lacks a column the model needs

    Per-model errors (recorded against the group, run continues):
        EstimationFailure - singular design, non-convergence
        InsufficientData - too few rows for the parameters

Usage:
    from groupfit.errors import EstimationFailure

    try:
        fitted = registry.fit("daily_income", train)
    except EstimationFailure as e:
        print(e.reason)
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class GroupfitError(Exception):
    """Base class for all groupfit errors."""


class InvalidPartitionSpec(GroupfitError, ValueError):
    """Partition rule is malformed (ratios, cutoff, or ordering column)."""


class SchemaMismatch(GroupfitError, ValueError):
    """A table does not carry the columns (or values) a model requires."""

    def __init__(self, message: str, missing: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])

    def __reduce__(self):
        return (type(self), (str(self), self.missing))


class ModelFailure(GroupfitError):
    """Failure of a single fit; recorded per group by the grouped runner."""

    def __init__(self, reason: str, group: Any = None):
        self.reason = reason
        self.group = group
        super().__init__(self._format())

    def __reduce__(self):
        return (type(self), (self.reason, self.group))

    def _format(self) -> str:
        if self.group is None:
            return self.reason
        return f"group {self.group!r}: {self.reason}"

    def for_group(self, group: Any) -> "ModelFailure":
        """Return a copy of this error tagged with a group key."""
        return type(self)(self.reason, group=group)


class EstimationFailure(ModelFailure):
    """Estimator did not converge or the design matrix is rank-deficient."""


class InsufficientData(ModelFailure):
    """Too few observations to estimate the model's parameters."""


__all__ = [
    "GroupfitError",
    "InvalidPartitionSpec",
    "SchemaMismatch",
    "ModelFailure",
    "EstimationFailure",
    "InsufficientData",
]
