# ============================================
# windcap - src/windcap/evaluation/importance.py
# Permutation feature importance for fitted regressors
# ============================================

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..utils.exceptions import SchemaError
from ..utils.logger import get_logger
from ..utils.timing import time_it
from ..utils.validators import validate_positive_int
from .metrics import calculate_mse

logger = get_logger('evaluation.importance')

BASELINE_KEY = "_full_model_"

@dataclass
class ImportanceResult:
    """Degraded MSE per feature and repeat, plus the unpermuted baseline"""
    baseline_mse: float
    degraded_mse: Dict[str, np.ndarray] = field(default_factory=dict)
    n_repeats: int = 0

    @property
    def mean_mse(self) -> Dict[str, float]:
        means = {BASELINE_KEY: self.baseline_mse}
        means.update({name: float(np.mean(values)) for name, values in self.degraded_mse.items()})
        return means

    def ranking(self) -> List[Tuple[str, float]]:
        """Features ordered by ascending mean degraded MSE; the most important comes last"""
        means = [(name, float(np.mean(values))) for name, values in self.degraded_mse.items()]
        return sorted(means, key=lambda item: item[1])

    def to_frame(self) -> pd.DataFrame:
        rows = [{
            'feature': BASELINE_KEY,
            'mean_mse': self.baseline_mse,
            'std_mse': 0.0,
            'min_mse': self.baseline_mse,
            'max_mse': self.baseline_mse,
            'mse_increase': 0.0,
        }]
        for name, mean in self.ranking():
            values = self.degraded_mse[name]
            rows.append({
                'feature': name,
                'mean_mse': mean,
                'std_mse': float(np.std(values)),
                'min_mse': float(np.min(values)),
                'max_mse': float(np.max(values)),
                'mse_increase': mean - self.baseline_mse,
            })
        return pd.DataFrame(rows)

def _permuted_mse(model, X: np.ndarray, y: np.ndarray, columns: Sequence[int],
                  seed: int, feature_position: int, repeat: int) -> float:
    """MSE after shuffling the rows of one feature group"""
    rng = np.random.default_rng([seed, feature_position, repeat])
    X_permuted = X.copy()
    order = rng.permutation(X.shape[0])
    # All columns of a group move together so one-hot rows stay valid
    X_permuted[:, columns] = X[order][:, columns]
    return calculate_mse(y, model.predict(X_permuted))

class PermutationImportance:
    """
    Importance of a feature measured as the model error after shuffling it

    Each (feature, repeat) draw has its own generator seeded from
    ``(random_state, feature position, repeat)``, so results are identical for
    any ``n_jobs`` and any evaluation order.
    """

    def __init__(self, n_repeats: int = 15, random_state: int = 42, n_jobs: int = 1):
        self.n_repeats = n_repeats
        self.random_state = random_state
        self.n_jobs = n_jobs

    def _resolve_groups(self, columns: List[str],
                        feature_groups: Optional[Mapping[str, Sequence[str]]]) -> Dict[str, List[int]]:
        if not feature_groups:
            return {name: [i] for i, name in enumerate(columns)}

        position = {name: i for i, name in enumerate(columns)}
        groups = {}
        for feature, encoded in feature_groups.items():
            missing = [c for c in encoded if c not in position]
            if missing:
                raise SchemaError(
                    f"Feature '{feature}' refers to absent columns: {missing}", missing_columns=missing
                )
            groups[feature] = [position[c] for c in encoded]
        return groups

    @time_it("permutation_importance", log_level='info')
    def compute(self, model, X: pd.DataFrame, y, n_repeats: Optional[int] = None,
                feature_groups: Optional[Mapping[str, Sequence[str]]] = None) -> ImportanceResult:
        """
        Degraded MSE per feature over repeated permutations

        Args:
            model: Fitted regressor with a ``predict`` method
            X: Feature table the model was fitted on
            y: Labels for X
            n_repeats: Permutations per feature (defaults to ``self.n_repeats``)
            feature_groups: Declared feature -> encoded columns; columns of one
                group are permuted jointly. Defaults to one group per column.

        Returns:
            ImportanceResult with the baseline under ``_full_model_``
        """
        n_repeats = validate_positive_int(self.n_repeats if n_repeats is None else n_repeats, "n_repeats")

        columns = list(X.columns) if isinstance(X, pd.DataFrame) else [f"x{i}" for i in range(np.shape(X)[1])]
        X_values = np.array(X, dtype=float)
        y_values = np.array(y, dtype=float).ravel()
        groups = self._resolve_groups(columns, feature_groups)

        baseline = calculate_mse(y_values, model.predict(X_values))
        logger.info(f"Permutation importance: {len(groups)} features x {n_repeats} repeats "
                    f"on {len(y_values)} rows, baseline MSE {baseline:.4f}")

        units = [
            (name, position, repeat)
            for position, name in enumerate(groups)
            for repeat in range(n_repeats)
        ]
        scores = Parallel(n_jobs=self.n_jobs)(
            delayed(_permuted_mse)(model, X_values, y_values, groups[name],
                                   self.random_state, position, repeat)
            for name, position, repeat in units
        )

        degraded: Dict[str, List[float]] = {name: [] for name in groups}
        for (name, _, _), score in zip(units, scores):
            degraded[name].append(score)

        return ImportanceResult(
            baseline_mse=baseline,
            degraded_mse={name: np.asarray(values) for name, values in degraded.items()},
            n_repeats=n_repeats,
        )
