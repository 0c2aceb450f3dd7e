"""
tests/utils/assertions.py

Custom assertion utilities for windcap tests.
Covers clean-table invariants, CV tables and prediction alignment.

Author: windcap Team
Date: October 2026
"""

import sys
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.append(str(project_root))

# ============================================
# DATA ASSERTIONS
# ============================================

class CleanTableAssertions:
    """Assertions for preprocessed tables"""

    @staticmethod
    def assert_no_missing(df: pd.DataFrame, message: str = "") -> None:
        n_missing = int(df.isna().sum().sum())
        assert n_missing == 0, f"Clean table has {n_missing} missing values. {message}"

    @staticmethod
    def assert_standardized(df: pd.DataFrame, columns: Iterable[str], tolerance: float = 1e-9) -> None:
        """Train-side numeric columns have mean 0 and sample std 1"""
        for col in columns:
            assert abs(df[col].mean()) < tolerance, f"Column '{col}' mean is {df[col].mean()}"
            assert abs(df[col].std() - 1.0) < 1e-6, f"Column '{col}' std is {df[col].std()}"

    @staticmethod
    def assert_one_hot(df: pd.DataFrame, columns: Iterable[str]) -> None:
        """Exactly one indicator set per row"""
        block = df[list(columns)]
        assert set(np.unique(block.to_numpy())) <= {0.0, 1.0}, "One-hot block holds values other than 0/1"
        assert (block.sum(axis=1) == 1).all(), "One-hot rows must have exactly one active column"

# ============================================
# MODEL ASSERTIONS
# ============================================

class ModelAssertions:
    """Assertions for CV tables and predictions"""

    @staticmethod
    def assert_valid_cv_table(table: Mapping[int, float]) -> None:
        assert table, "CV table is empty"
        for k, mse in table.items():
            assert isinstance(k, int) and k >= 1, f"Invalid k in CV table: {k!r}"
            assert np.isfinite(mse) and mse >= 0, f"MSE for k={k} must be finite and non-negative, got {mse}"

    @staticmethod
    def assert_predictions_aligned(predictions: pd.Series, index: pd.Index) -> None:
        assert len(predictions) == len(index), (
            f"Expected {len(index)} predictions, got {len(predictions)}"
        )
        assert predictions.index.equals(index), "Predictions are not aligned with the test rows"
        assert np.all(np.isfinite(predictions.to_numpy())), "Predictions contain non-finite values"
