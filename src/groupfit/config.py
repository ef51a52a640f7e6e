"""Centralized configuration for groupfit.

All paths, estimator defaults and analysis thresholds in one place.
Environment variables can override defaults.

Path Constants:
    PROJECT_ROOT - Root directory of the project
    STORAGE_DIR - Storage for datasets, reports and fitted models
    REPORTS_DIR - Goodness-of-fit reports (CSV)
    MODELS_DIR - Persisted grouped results (joblib)

Modeling Constants:
    DEFAULT_SEED - Seed for ratio partitions
    MIN_RESIDUAL_DF - Residual degrees of freedom a group must leave
    DEFAULT_MAXITER - Iteration cap for robust / generalized fits
    WEEKDAY_ORDER - Declared order for weekday group keys

Analysis Thresholds:
    PVALUE_MLOG_CAP - Finite stand-in for -log10(0)
    OUTLIER_SCORE_THRESHOLD / OUTLIER_WEIGHT - PCA outlier down-weighting

Environment Variables:
    GROUPFIT_STORAGE_DIR - Override default storage directory
    GROUPFIT_N_JOBS - Override default group-level parallelism
"""

from __future__ import annotations

import os
from pathlib import Path

# Project root (src/groupfit/config.py -> groupfit -> src -> project_root)
PROJECT_ROOT = Path(__file__).parent.parent.parent
STORAGE_DIR = Path(os.environ.get("GROUPFIT_STORAGE_DIR", str(PROJECT_ROOT / "storage")))
DATASETS_DIR = STORAGE_DIR / "datasets"
REPORTS_DIR = STORAGE_DIR / "reports"
MODELS_DIR = STORAGE_DIR / "models"

# Partitioning
DEFAULT_SEED = 42
RATIO_TOLERANCE = 1e-9

# Estimation
MIN_RESIDUAL_DF = 1
DEFAULT_MAXITER = 100
DEFAULT_N_JOBS = int(os.environ.get("GROUPFIT_N_JOBS", "1"))

# Robust norms and GLM families accepted by ModelSpec
ROBUST_NORMS = ("huber", "tukey", "hampel", "least_squares")
GLM_FAMILIES = ("gaussian", "poisson", "binomial", "gamma")

# Group key ordering
WEEKDAY_ORDER = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

# -log10(p) for p == 0 is infinite; reports use this finite value instead
PVALUE_MLOG_CAP = 300.0

# PCA outlier down-weighting
OUTLIER_SCORE_THRESHOLD = 3.0
OUTLIER_WEIGHT = 0.0

# Output column names
PREDICTION_COLUMN = "prediction"
RESIDUAL_COLUMN = "residual"
