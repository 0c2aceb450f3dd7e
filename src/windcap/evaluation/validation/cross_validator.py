# ============================================
# windcap - src/windcap/evaluation/validation/cross_validator.py
# V-fold cross-validation over a grid of neighbor counts
# ============================================

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from scipy import stats
from sklearn.model_selection import KFold

from ...models.knn import KNNRegressor
from ...utils.exceptions import DataValidationError, DegenerateDataError, InvalidParameterError, SchemaError
from ...utils.logger import get_logger
from ...utils.timing import time_it
from ...utils.validators import validate_k_grid, validate_n_folds
from ..metrics import calculate_mse

logger = get_logger('evaluation.validation.cross_validator')

# ============================================
# Results
# ============================================

@dataclass
class CrossValidationResult:
    """Per-k cross-validation error with per-fold detail"""
    mse_by_k: Dict[int, float]
    fold_mse: Dict[int, List[float]]
    n_folds: int
    skipped_k: List[int] = field(default_factory=list)

    @property
    def best_k(self) -> int:
        return select_best(self.mse_by_k)

    def to_frame(self) -> pd.DataFrame:
        """Table with one row per evaluated k"""
        rows = []
        for k, mse in self.mse_by_k.items():
            folds = self.fold_mse.get(k, [])
            std_err = float(stats.sem(folds)) if len(folds) > 1 else float('nan')
            rows.append({'k': k, 'mse': mse, 'std_err': std_err, 'n_folds': len(folds)})
        return pd.DataFrame(rows, columns=['k', 'mse', 'std_err', 'n_folds'])

# ============================================
# Selection
# ============================================

def select_best(table: Mapping[int, float]) -> int:
    """
    Pick the k with the lowest cross-validated MSE

    Ties are resolved in favor of the smallest k.
    """
    if not table:
        raise InvalidParameterError("Cannot select k from an empty CV table", parameter_name="table")

    values = np.asarray(list(table.values()), dtype=float)
    if not np.all(np.isfinite(values)):
        raise DataValidationError("CV table contains missing or infinite MSE values")

    return int(min(table.items(), key=lambda item: (item[1], item[0]))[0])

# ============================================
# Fold evaluation
# ============================================

def _evaluate_fold(X: np.ndarray, y: np.ndarray, test_idx: np.ndarray,
                   k_values: Sequence[int]) -> List[float]:
    """
    MSE on one held-out fold for every k

    Neighbors are ranked once with the largest k. The k nearest rows for any
    smaller k are a prefix of that ranking, which gives the same predictions
    as refitting with each k.
    """
    train_mask = np.ones(len(y), dtype=bool)
    train_mask[test_idx] = False

    model = KNNRegressor(n_neighbors=max(k_values)).fit(X[train_mask], y[train_mask])
    _, indices = model.kneighbors(X[test_idx])
    neighbor_labels = model.y_train_[indices]

    y_test = y[test_idx]
    return [calculate_mse(y_test, neighbor_labels[:, :k].mean(axis=1)) for k in k_values]

# ============================================
# Cross Validator
# ============================================

class CrossValidator:
    """
    Seeded V-fold cross-validation of KNN over a K grid

    Parameters:
    -----------
    n_folds : int, default=10
        Number of folds used when a call does not pass ``v``.
    random_state : int, default=42
        Seed of the fold shuffle.
    n_jobs : int, default=1
        Folds evaluated in parallel through joblib. Results do not depend on it.
    target_column : str, default='capacity'
        Label column of the clean training table; every other column is a feature.
    """

    def __init__(self, n_folds: int = 10, random_state: int = 42, n_jobs: int = 1,
                 target_column: str = 'capacity'):
        self.n_folds = n_folds
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.target_column = target_column

    def _split_xy(self, train_clean: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
        if self.target_column not in train_clean.columns:
            raise SchemaError(
                f"Training table has no target column '{self.target_column}'",
                missing_columns=[self.target_column]
            )
        X = train_clean.drop(columns=[self.target_column]).to_numpy(dtype=float)
        y = train_clean[self.target_column].to_numpy(dtype=float)
        return X, y

    def split(self, train_clean: pd.DataFrame, v: Optional[int] = None) -> List[np.ndarray]:
        """
        Partition row positions into v disjoint, near-equal folds

        Args:
            train_clean: Clean training table
            v: Number of folds (defaults to ``n_folds``)

        Returns:
            List of held-out position arrays; together they cover every row once
        """
        v = validate_n_folds(self.n_folds if v is None else v, n_rows=len(train_clean))
        kfold = KFold(n_splits=v, shuffle=True, random_state=self.random_state)
        return [test_idx for _, test_idx in kfold.split(np.arange(len(train_clean)))]

    @time_it("cross_validate", log_level='info')
    def cross_validate(self, train_clean: pd.DataFrame, k_values: Iterable[int],
                       v: Optional[int] = None) -> CrossValidationResult:
        """
        Cross-validated MSE for every k in the grid

        A k larger than the smallest fold-training set cannot be evaluated;
        it is skipped with a warning. If no k can be evaluated the search fails.
        """
        grid = validate_k_grid(k_values)
        folds = self.split(train_clean, v)
        X, y = self._split_xy(train_clean)

        min_train_size = len(y) - max(len(fold) for fold in folds)
        usable = [k for k in grid if k <= min_train_size]
        skipped = [k for k in grid if k > min_train_size]

        for k in skipped:
            logger.warning(f"Skipping k={k}: exceeds the smallest fold training size ({min_train_size})")
        if not usable:
            raise DegenerateDataError(
                f"No k in {grid} fits within fold training size {min_train_size}",
                required_rows=min(grid), available_rows=min_train_size
            )

        logger.info(f"Cross-validating {len(usable)} k values over {len(folds)} folds "
                    f"({len(y)} rows, n_jobs={self.n_jobs})")

        per_fold = Parallel(n_jobs=self.n_jobs)(
            delayed(_evaluate_fold)(X, y, fold, usable) for fold in folds
        )

        fold_mse = {k: [float(scores[i]) for scores in per_fold] for i, k in enumerate(usable)}
        mse_by_k = {k: float(np.mean(values)) for k, values in fold_mse.items()}

        return CrossValidationResult(
            mse_by_k=mse_by_k,
            fold_mse=fold_mse,
            n_folds=len(folds),
            skipped_k=skipped,
        )

    def grid_search(self, train_clean: pd.DataFrame, k_values: Iterable[int],
                    v: Optional[int] = None) -> Dict[int, float]:
        """Mapping from each evaluated k to its mean fold MSE"""
        return self.cross_validate(train_clean, k_values, v).mse_by_k

    @staticmethod
    def select_best(table: Mapping[int, float]) -> int:
        return select_best(table)
