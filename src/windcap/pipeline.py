# ============================================
# windcap - src/windcap/pipeline.py
# End-to-end capacity pipeline: preprocess, select K, fit, explain, estimate
# ============================================

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .data.processors.preprocessor import FeaturePreprocessor, PreprocessingParameters, PreprocessorConfig
from .evaluation.error_estimator import ErrorEstimator
from .evaluation.importance import ImportanceResult, PermutationImportance
from .evaluation.metrics import calculate_regression_metrics
from .evaluation.validation.cross_validator import CrossValidationResult, CrossValidator
from .models.knn import KNNRegressor
from .utils.config_loader import get
from .utils.exceptions import ConfigurationError, DataValidationError, InvalidParameterError
from .utils.logger import clear_logging_context, get_logger, set_logging_context
from .utils.timing import Timer

logger = get_logger('pipeline')

PREDICTION_COLUMN = 'capacity_pred'

# ============================================
# Configuration
# ============================================

def _as_int(name: str, value: Any, minimum: Optional[int] = None) -> int:
    try:
        if isinstance(value, bool):
            raise TypeError
        if isinstance(value, float) and not value.is_integer():
            raise ValueError
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{name}' must be an integer, got {value!r}", config_name='pipeline')

    if minimum is not None and result < minimum:
        raise ConfigurationError(f"'{name}' must be >= {minimum}, got {result}", config_name='pipeline')
    return result

@dataclass
class PipelineConfig:
    """Run settings for CapacityPipeline"""
    random_seed: int = 42
    n_folds: int = 10
    k_min: int = 1
    k_max: int = 20
    n_repeats: int = 15
    n_jobs: int = 1
    importance_max_samples: Optional[int] = 1000
    drop_incomplete_test: bool = False
    preprocessing: PreprocessorConfig = field(default_factory=PreprocessorConfig)
    column_aliases: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.random_seed = _as_int('random_seed', self.random_seed, minimum=0)
        self.n_folds = _as_int('n_folds', self.n_folds)
        self.k_min = _as_int('k_min', self.k_min, minimum=1)
        self.k_max = _as_int('k_max', self.k_max, minimum=1)
        self.n_repeats = _as_int('n_repeats', self.n_repeats, minimum=1)
        self.n_jobs = _as_int('n_jobs', self.n_jobs)
        if self.n_jobs == 0:
            raise ConfigurationError("'n_jobs' must not be 0", config_name='pipeline')
        if self.importance_max_samples is not None:
            self.importance_max_samples = _as_int('importance_max_samples', self.importance_max_samples, minimum=0)
        if self.k_min > self.k_max:
            raise ConfigurationError(
                f"k_min ({self.k_min}) must not exceed k_max ({self.k_max})", config_name='pipeline'
            )

    @property
    def k_values(self) -> List[int]:
        return list(range(self.k_min, self.k_max + 1))

    @classmethod
    def from_config(cls, **overrides) -> 'PipelineConfig':
        """
        Build from the ``pipeline`` configuration, then apply overrides

        Overrides with a value of None are ignored, so CLI options that were
        not given leave the configured value in place.
        """
        section = get('pipeline', 'pipeline', {}) or {}
        preprocessing = get('pipeline', 'preprocessing', {}) or {}

        known = {
            'random_seed', 'n_folds', 'k_min', 'k_max', 'n_repeats',
            'n_jobs', 'importance_max_samples', 'drop_incomplete_test'
        }
        kwargs = {key: value for key, value in section.items() if key in known}
        kwargs.update({key: value for key, value in overrides.items() if value is not None})

        try:
            kwargs['preprocessing'] = PreprocessorConfig(**{
                key: preprocessing[key]
                for key in ('numeric_features', 'categorical_features', 'target_column',
                            'id_column', 'missing_threshold')
                if key in preprocessing
            })
        except (InvalidParameterError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid preprocessing configuration: {e}",
                                     config_name='pipeline', cause=e) from e

        kwargs['column_aliases'] = dict(preprocessing.get('column_aliases') or {})
        if isinstance(kwargs.get('drop_incomplete_test'), str):
            kwargs['drop_incomplete_test'] = kwargs['drop_incomplete_test'].lower() in ('1', 'true', 'yes')

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'random_seed': self.random_seed,
            'n_folds': self.n_folds,
            'k_min': self.k_min,
            'k_max': self.k_max,
            'n_repeats': self.n_repeats,
            'n_jobs': self.n_jobs,
            'importance_max_samples': self.importance_max_samples,
            'drop_incomplete_test': self.drop_incomplete_test,
            'missing_threshold': self.preprocessing.missing_threshold,
        }

# ============================================
# Results
# ============================================

@dataclass
class PipelineResult:
    """Everything a run produces, kept in memory"""
    predictions: pd.Series
    cv_result: CrossValidationResult
    best_k: int
    importance: ImportanceResult
    error_estimate: float
    model: KNNRegressor
    params: PreprocessingParameters
    run_id: str
    test_ids: Optional[pd.Series] = None
    test_metrics: Optional[Dict[str, float]] = None

    @property
    def cv_table(self) -> Dict[int, float]:
        return dict(self.cv_result.mse_by_k)

    def predictions_frame(self) -> pd.DataFrame:
        """Predictions with the test identifier when one was supplied"""
        frame = self.predictions.to_frame(name=PREDICTION_COLUMN)
        if self.test_ids is not None:
            frame.insert(0, self.test_ids.name, self.test_ids)
        return frame

    def summary(self) -> Dict[str, Any]:
        return {
            'run_id': self.run_id,
            'best_k': self.best_k,
            'cv_mse_at_best_k': self.cv_result.mse_by_k[self.best_k],
            'error_estimate': self.error_estimate,
            'baseline_mse': self.importance.baseline_mse,
            'importance_ranking': [name for name, _ in self.importance.ranking()],
            'skipped_k': list(self.cv_result.skipped_k),
            'n_predictions': int(len(self.predictions)),
            'test_metrics': self.test_metrics,
            'preprocessing': self.params.to_dict(),
        }

# ============================================
# Pipeline
# ============================================

class CapacityPipeline:
    """
    Orchestrates one deterministic run

    preprocess -> cross-validated K search -> final fit on all training
    rows -> test predictions -> permutation importance -> error estimate
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()
        self.preprocessor = FeaturePreprocessor(self.config.preprocessing)

    def _importance_sample(self, X: pd.DataFrame, y: pd.Series):
        """Seeded row subsample that bounds the cost of repeated KNN prediction"""
        cap = self.config.importance_max_samples
        if not cap or len(X) <= cap:
            return X, y

        rng = np.random.default_rng(self.config.random_seed)
        positions = np.sort(rng.choice(len(X), size=cap, replace=False))
        logger.info(f"Permutation importance on {cap} of {len(X)} training rows")
        return X.iloc[positions], y.iloc[positions]

    def run(self, train_raw: pd.DataFrame, test_raw: pd.DataFrame) -> PipelineResult:
        """
        Run the full pipeline

        Args:
            train_raw: Raw training table with the target column
            test_raw: Raw test table; predictions follow its row order

        Returns:
            PipelineResult
        """
        cfg = self.config
        if not test_raw.index.is_unique:
            duplicated = test_raw.index[test_raw.index.duplicated()].unique()[:5].tolist()
            raise DataValidationError(
                "Test table index must be unique; predictions are aligned to it",
                validation_errors=[f"duplicate index label {label!r}" for label in duplicated]
            )

        run_id = uuid.uuid4().hex[:12]
        set_logging_context(run_id=run_id, seed=cfg.random_seed)

        try:
            with Timer("pipeline_run", log_level='info'):
                train_clean, params = self.preprocessor.fit_transform(train_raw)
                test_clean = self.preprocessor.transform(
                    test_raw, params, drop_incomplete=cfg.drop_incomplete_test
                )

                target = params.target_column
                X_train = train_clean[list(params.feature_columns)]
                y_train = train_clean[target]
                X_test = test_clean[list(params.feature_columns)]

                validator = CrossValidator(
                    n_folds=cfg.n_folds, random_state=cfg.random_seed,
                    n_jobs=cfg.n_jobs, target_column=target
                )
                cv_result = validator.cross_validate(
                    train_clean[[*params.feature_columns, target]], cfg.k_values
                )
                best_k = cv_result.best_k
                logger.info(f"Selected k={best_k} (CV MSE {cv_result.mse_by_k[best_k]:.4f})")

                model = KNNRegressor(n_neighbors=best_k).fit(X_train, y_train)
                predictions = pd.Series(
                    model.predict(X_test), index=test_clean.index, name=PREDICTION_COLUMN
                )

                X_imp, y_imp = self._importance_sample(X_train, y_train)
                importance = PermutationImportance(
                    n_repeats=cfg.n_repeats, random_state=cfg.random_seed, n_jobs=cfg.n_jobs
                ).compute(model, X_imp, y_imp, feature_groups=params.feature_groups)

                error_estimate = ErrorEstimator().estimate(cv_result.mse_by_k)

                test_metrics = None
                if target in test_clean.columns and test_clean[target].notna().all():
                    test_metrics = calculate_regression_metrics(test_clean[target], predictions)
                    logger.info(f"Test MSE {test_metrics['mse']:.4f} on {len(predictions)} labelled rows")

            id_column = cfg.preprocessing.id_column
            test_ids = None
            if id_column and id_column in test_raw.columns:
                test_ids = test_raw.loc[test_clean.index, id_column]

            return PipelineResult(
                predictions=predictions,
                cv_result=cv_result,
                best_k=best_k,
                importance=importance,
                error_estimate=error_estimate,
                model=model,
                params=params,
                run_id=run_id,
                test_ids=test_ids,
                test_metrics=test_metrics,
            )
        finally:
            clear_logging_context()
