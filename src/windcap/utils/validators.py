# ============================================
# windcap - src/windcap/utils/validators.py
# Table schema and parameter validation
# ============================================

from typing import Any, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .exceptions import (
    DataValidationError,
    DegenerateDataError,
    InvalidParameterError,
    SchemaError
)
from .logger import get_logger

logger = get_logger('validators')

# ============================================
# Base Validation Framework
# ============================================

class ValidationResult:
    """Container for validation results"""

    def __init__(self, is_valid: bool = True, errors: Optional[List[str]] = None, warnings: Optional[List[str]] = None):
        self.is_valid = is_valid
        self.errors = errors or []
        self.warnings = warnings or []

    def add_error(self, error: str):
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str):
        self.warnings.append(warning)

    def merge(self, other: 'ValidationResult'):
        """Merge another validation result"""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if not other.is_valid:
            self.is_valid = False

    def raise_if_invalid(self):
        """Raise exception if validation failed"""
        if not self.is_valid:
            raise DataValidationError(
                f"Validation failed: {'; '.join(self.errors)}",
                validation_errors=self.errors
            )

    def __str__(self) -> str:
        status = "VALID" if self.is_valid else "INVALID"
        parts = [f"Validation: {status}"]

        if self.errors:
            parts.append(f"Errors: {', '.join(self.errors)}")
        if self.warnings:
            parts.append(f"Warnings: {', '.join(self.warnings)}")

        return " | ".join(parts)

# ============================================
# Table Validators
# ============================================

class TableValidator:
    """Schema checks for raw turbine tables"""

    def __init__(self, table_name: str = "table"):
        self.table_name = table_name

    def validate_required_columns(self, df: pd.DataFrame, required: Iterable[str]) -> None:
        """Raise SchemaError if any required column is absent"""
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise SchemaError(
                f"{self.table_name} is missing required columns: {missing}",
                missing_columns=missing
            )

    def validate_numeric_columns(self, df: pd.DataFrame, columns: Iterable[str]) -> ValidationResult:
        """Check that columns hold numbers (numeric dtype or fully parseable strings)"""
        result = ValidationResult()

        for col in columns:
            series = df[col]
            if pd.api.types.is_bool_dtype(series):
                result.add_error(f"Column '{col}' is boolean, expected numeric")
            elif pd.api.types.is_numeric_dtype(series):
                continue
            else:
                present = series.dropna()
                try:
                    pd.to_numeric(present, errors='raise')
                except (ValueError, TypeError):
                    result.add_error(f"Column '{col}' contains non-numeric values")

        return result

    def require_numeric_columns(self, df: pd.DataFrame, columns: Sequence[str]) -> None:
        """Raise SchemaError listing every non-numeric column"""
        result = self.validate_numeric_columns(df, columns)
        if not result.is_valid:
            invalid = [err.split("'")[1] for err in result.errors]
            raise SchemaError(
                f"{self.table_name} has columns of the wrong type: {invalid}",
                invalid_columns=invalid
            )

# ============================================
# Parameter Validators
# ============================================

def validate_k(k: Any, n_rows: Optional[int] = None, param_name: str = "k") -> int:
    """Validate a neighbor count against the training size"""
    if isinstance(k, (bool, np.bool_)) or not isinstance(k, (int, np.integer)):
        raise InvalidParameterError(
            f"{param_name} must be an integer, got {type(k).__name__}",
            parameter_name=param_name, provided_value=k
        )
    if k < 1:
        raise InvalidParameterError(
            f"{param_name} must be >= 1, got {k}",
            parameter_name=param_name, provided_value=int(k)
        )
    if n_rows is not None and k > n_rows:
        raise InvalidParameterError(
            f"{param_name}={k} exceeds the number of training rows ({n_rows})",
            parameter_name=param_name, provided_value=int(k)
        )
    return int(k)

def validate_k_grid(k_values: Iterable[Any]) -> List[int]:
    """Validate a K search grid; order is preserved and duplicates removed"""
    if k_values is None:
        raise InvalidParameterError("K grid must not be None", parameter_name="k_values")

    grid: List[int] = []
    for k in k_values:
        k = validate_k(k, param_name="k_values")
        if k not in grid:
            grid.append(k)

    if not grid:
        raise InvalidParameterError("K grid must not be empty", parameter_name="k_values")

    return grid

def validate_n_folds(v: Any, n_rows: Optional[int] = None) -> int:
    """Validate a fold count; fails fast before any fitting"""
    if isinstance(v, (bool, np.bool_)) or not isinstance(v, (int, np.integer)):
        raise InvalidParameterError(
            f"Number of folds must be an integer, got {type(v).__name__}",
            parameter_name="n_folds", provided_value=v
        )
    if v < 2:
        raise InvalidParameterError(
            f"Number of folds must be >= 2, got {v}",
            parameter_name="n_folds", provided_value=int(v)
        )
    if n_rows is not None and n_rows < v:
        raise DegenerateDataError(
            f"Cannot split {n_rows} rows into {v} folds",
            required_rows=int(v), available_rows=int(n_rows)
        )
    return int(v)

def validate_positive_int(value: Any, param_name: str) -> int:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)) or value < 1:
        raise InvalidParameterError(
            f"{param_name} must be a positive integer, got {value!r}",
            parameter_name=param_name, provided_value=value
        )
    return int(value)
