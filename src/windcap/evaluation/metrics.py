# ============================================
# windcap - src/windcap/evaluation/metrics.py
# Regression metrics used for model selection and importance
# ============================================

from typing import Dict, Union

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, r2_score

from ..utils.exceptions import DataValidationError
from ..utils.logger import get_logger

logger = get_logger('evaluation.metrics')

def _aligned(y_true, y_pred):
    y_true_array = np.asarray(y_true, dtype=float).ravel()
    y_pred_array = np.asarray(y_pred, dtype=float).ravel()

    if len(y_true_array) != len(y_pred_array):
        raise DataValidationError(
            f"Length mismatch: {len(y_true_array)} actual vs {len(y_pred_array)} predicted values"
        )
    if len(y_true_array) == 0:
        raise DataValidationError("Cannot compute a metric on zero values")
    if not (np.all(np.isfinite(y_true_array)) and np.all(np.isfinite(y_pred_array))):
        raise DataValidationError("Metric inputs contain missing or infinite values")

    return y_true_array, y_pred_array

def calculate_mse(y_true: Union[np.ndarray, pd.Series],
                  y_pred: Union[np.ndarray, pd.Series]) -> float:
    """
    Calculate Mean Squared Error (MSE)

    Args:
        y_true: Actual values
        y_pred: Predicted values

    Returns:
        MSE value
    """
    y_true_array, y_pred_array = _aligned(y_true, y_pred)
    return float(np.mean((y_true_array - y_pred_array) ** 2))

def calculate_regression_metrics(y_true: Union[np.ndarray, pd.Series],
                                 y_pred: Union[np.ndarray, pd.Series]) -> Dict[str, float]:
    """MSE, RMSE, MAE and R² for a set of predictions"""
    y_true_array, y_pred_array = _aligned(y_true, y_pred)
    mse = float(np.mean((y_true_array - y_pred_array) ** 2))

    metrics = {
        'mse': mse,
        'rmse': float(np.sqrt(mse)),
        'mae': float(mean_absolute_error(y_true_array, y_pred_array)),
    }
    # R² is undefined for a single value
    metrics['r2'] = float(r2_score(y_true_array, y_pred_array)) if len(y_true_array) > 1 else float('nan')
    return metrics
