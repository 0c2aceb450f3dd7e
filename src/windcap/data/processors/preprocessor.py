# ============================================
# windcap - src/windcap/data/processors/preprocessor.py
# Cleaning, categorical encoding and standardization of turbine tables
# ============================================

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ...utils.exceptions import (
    DataValidationError,
    DegenerateDataError,
    InvalidParameterError,
    SchemaError
)
from ...utils.logger import get_logger
from ...utils.timing import time_it
from ...utils.validators import TableValidator

logger = get_logger('data.processors.preprocessor')

NOVEL_CATEGORY = "__novel__"

DEFAULT_NUMERIC_FEATURES = (
    'rotor_swept_area', 'hub_height', 'year_operational',
    'total_height', 'longitude', 'latitude'
)
DEFAULT_CATEGORICAL_FEATURES = ('retrofit',)

# ============================================
# Configuration and Parameters
# ============================================

@dataclass
class PreprocessorConfig:
    """Configuration for the feature preprocessor"""
    numeric_features: Sequence[str] = DEFAULT_NUMERIC_FEATURES
    categorical_features: Sequence[str] = DEFAULT_CATEGORICAL_FEATURES
    target_column: str = 'capacity'
    id_column: Optional[str] = 'case_id'
    missing_threshold: float = 0.9

    def __post_init__(self):
        self.numeric_features = tuple(self.numeric_features)
        self.categorical_features = tuple(self.categorical_features)

        if not 0.0 <= float(self.missing_threshold) <= 1.0:
            raise InvalidParameterError(
                "missing_threshold must lie in [0, 1]",
                parameter_name="missing_threshold", provided_value=self.missing_threshold
            )
        self.missing_threshold = float(self.missing_threshold)

        overlap = set(self.numeric_features) & set(self.categorical_features)
        if overlap:
            raise InvalidParameterError(
                f"Columns declared both numeric and categorical: {sorted(overlap)}",
                parameter_name="categorical_features"
            )
        if self.target_column in self.numeric_features or self.target_column in self.categorical_features:
            raise InvalidParameterError(
                f"Target column '{self.target_column}' cannot also be a feature",
                parameter_name="target_column"
            )

@dataclass(frozen=True)
class PreprocessingParameters:
    """
    Everything learned from the training table

    Applied unchanged to every other table, so test statistics never
    influence the fitted values.
    """
    target_column: str
    dropped_columns: Tuple[str, ...]
    numeric_features: Tuple[str, ...]
    categorical_features: Tuple[str, ...]
    normalization: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    categories: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    feature_columns: Tuple[str, ...] = ()
    feature_groups: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def feature_names(self) -> List[str]:
        """Declared features that survived the column drop"""
        return list(self.feature_groups)

    def mean(self, column: str) -> float:
        return self.normalization[column][0]

    def std(self, column: str) -> float:
        return self.normalization[column][1]

    def to_dict(self) -> Dict[str, object]:
        return {
            'target_column': self.target_column,
            'dropped_columns': list(self.dropped_columns),
            'numeric_features': list(self.numeric_features),
            'categorical_features': list(self.categorical_features),
            'normalization': {col: {'mean': m, 'std': s} for col, (m, s) in self.normalization.items()},
            'categories': {col: list(levels) for col, levels in self.categories.items()},
            'feature_columns': list(self.feature_columns),
        }

# ============================================
# Helpers
# ============================================

def _category_labels(series: pd.Series) -> pd.Series:
    """Render category values as strings; integral numbers lose their '.0'"""
    def render(value):
        if pd.isna(value):
            return np.nan
        if isinstance(value, (float, np.floating)) and float(value).is_integer():
            return str(int(value))
        return str(value)

    return series.map(render)

def _standardize(values: pd.Series, mean: float, std: float) -> pd.Series:
    """Zero-mean, unit-variance scaling; a zero or undefined std yields zeros"""
    if std == 0 or not math.isfinite(std):
        return pd.Series(0.0, index=values.index, dtype=float)
    return (values - mean) / std

def _one_hot_column(column: str, label: str) -> str:
    return f"{column}_{label}"

# ============================================
# Feature Preprocessor
# ============================================

class FeaturePreprocessor:
    """
    Turns raw turbine tables into model-ready matrices

    Steps on the training table:
    - drop columns whose missing share exceeds the threshold
    - drop rows with any remaining missing feature or target value
    - one-hot encode categorical features (train labels plus a reserved novel level)
    - standardize numeric features with train mean and standard deviation

    The target column is never standardized.
    """

    def __init__(self, config: Optional[PreprocessorConfig] = None):
        self.config = config or PreprocessorConfig()

    @property
    def required_columns(self) -> List[str]:
        return [*self.config.numeric_features, *self.config.categorical_features,
                self.config.target_column]

    @time_it("preprocessor_fit_transform")
    def fit_transform(self, train_raw: pd.DataFrame) -> Tuple[pd.DataFrame, PreprocessingParameters]:
        """
        Learn preprocessing parameters from the training table and apply them

        Args:
            train_raw: Raw training table including the target column

        Returns:
            (clean training table, fitted parameters)
        """
        cfg = self.config
        validator = TableValidator("training table")
        validator.validate_required_columns(train_raw, self.required_columns)

        # Column drop runs before row filtering so a sparse column cannot wipe out rows
        missing_share = train_raw.isna().mean() if len(train_raw) else pd.Series(0.0, index=train_raw.columns)
        dropped = [col for col in train_raw.columns if missing_share[col] > cfg.missing_threshold]
        if cfg.target_column in dropped:
            raise SchemaError(
                f"Target column '{cfg.target_column}' is {missing_share[cfg.target_column]:.1%} missing",
                invalid_columns=[cfg.target_column]
            )
        if dropped:
            logger.info(f"Dropping {len(dropped)} column(s) above {cfg.missing_threshold:.0%} missing: {dropped}")

        numeric = [col for col in cfg.numeric_features if col not in dropped]
        categorical = [col for col in cfg.categorical_features if col not in dropped]
        lost = [col for col in (*cfg.numeric_features, *cfg.categorical_features) if col in dropped]
        if lost:
            logger.warning(f"Declared features removed by the missing-value threshold: {lost}")

        validator.require_numeric_columns(train_raw, [*numeric, cfg.target_column])

        working = train_raw.drop(columns=dropped)
        n_before = len(working)
        working = working.dropna(subset=[*numeric, *categorical, cfg.target_column])
        n_removed = n_before - len(working)
        if n_removed:
            logger.info(f"Removed {n_removed} of {n_before} training rows with missing values")
        if working.empty:
            raise DegenerateDataError(
                "No complete training rows remain after removing missing values",
                required_rows=1, available_rows=0
            )

        normalization: Dict[str, Tuple[float, float]] = {}
        for col in numeric:
            values = pd.to_numeric(working[col])
            mean = float(values.mean())
            std = float(values.std())
            # Rounding leaves a tiny non-zero std on constant float columns
            if not math.isfinite(std) or std == 0 or values.max() == values.min():
                logger.warning(f"Column '{col}' has zero variance in training data; it will standardize to 0")
                std = 0.0
            normalization[col] = (mean, std)

        categories = {
            col: tuple(sorted(_category_labels(working[col]).unique()))
            for col in categorical
        }

        feature_groups: Dict[str, Tuple[str, ...]] = {}
        for col in cfg.numeric_features:
            if col in normalization:
                feature_groups[col] = (col,)
        for col in cfg.categorical_features:
            if col in categories:
                levels = (*categories[col], NOVEL_CATEGORY)
                feature_groups[col] = tuple(_one_hot_column(col, label) for label in levels)

        feature_columns = tuple(c for group in feature_groups.values() for c in group)

        params = PreprocessingParameters(
            target_column=cfg.target_column,
            dropped_columns=tuple(dropped),
            numeric_features=tuple(numeric),
            categorical_features=tuple(categorical),
            normalization=normalization,
            categories=categories,
            feature_columns=feature_columns,
            feature_groups=feature_groups,
        )

        clean = self._encode(working, params)
        clean[cfg.target_column] = pd.to_numeric(working[cfg.target_column]).astype(float)

        logger.info(f"Preprocessed training table: {len(clean)} rows, "
                    f"{len(feature_columns)} encoded feature columns")
        return clean, params

    @time_it("preprocessor_transform")
    def transform(self, test_raw: pd.DataFrame, params: PreprocessingParameters,
                  drop_incomplete: bool = False) -> pd.DataFrame:
        """
        Apply training parameters to another table

        Args:
            test_raw: Raw table; the target column is optional
            params: Parameters returned by ``fit_transform``
            drop_incomplete: Remove rows with missing feature values instead of failing

        Returns:
            Clean table with the same encoded columns as the training table
        """
        validator = TableValidator("test table")
        features = [*params.numeric_features, *params.categorical_features]
        validator.validate_required_columns(test_raw, features)
        validator.require_numeric_columns(test_raw, params.numeric_features)

        working = test_raw.drop(columns=[c for c in params.dropped_columns if c in test_raw.columns])

        incomplete = working[features].isna().any(axis=1)
        if incomplete.any():
            n_bad = int(incomplete.sum())
            if not drop_incomplete:
                sample = working.index[incomplete][:5].tolist()
                raise DataValidationError(
                    f"{n_bad} row(s) have missing feature values (first rows: {sample})",
                    validation_errors=[f"missing feature values in row {idx}" for idx in sample]
                )
            logger.warning(f"Dropping {n_bad} row(s) with missing feature values")
            working = working.loc[~incomplete]

        clean = self._encode(working, params)

        target = params.target_column
        if target in working.columns:
            validator.require_numeric_columns(working, [target])
            clean[target] = pd.to_numeric(working[target]).astype(float)

        return clean

    def _encode(self, working: pd.DataFrame, params: PreprocessingParameters) -> pd.DataFrame:
        """Standardize numeric features and one-hot encode categorical ones"""
        encoded: Dict[str, pd.Series] = {}

        for col in params.numeric_features:
            mean, std = params.normalization[col]
            encoded[col] = _standardize(pd.to_numeric(working[col]).astype(float), mean, std)

        for col in params.categorical_features:
            known = params.categories[col]
            labels = _category_labels(working[col])
            novel = ~labels.isin(known)
            if novel.any():
                logger.info(f"{int(novel.sum())} row(s) with unseen '{col}' categories mapped to {NOVEL_CATEGORY}")
            labels = labels.where(~novel, NOVEL_CATEGORY)
            for label in (*known, NOVEL_CATEGORY):
                encoded[_one_hot_column(col, label)] = (labels == label).astype(float)

        clean = pd.DataFrame(encoded, index=working.index)
        return clean.reindex(columns=list(params.feature_columns))

    def inverse_transform_numeric(self, clean: pd.DataFrame, params: PreprocessingParameters) -> pd.DataFrame:
        """
        Undo standardization of numeric feature columns

        Columns with zero training variance come back as the training mean.
        """
        restored = {}
        for col in params.numeric_features:
            if col not in clean.columns:
                continue
            mean, std = params.normalization[col]
            restored[col] = clean[col] * std + mean
        return pd.DataFrame(restored, index=clean.index)

