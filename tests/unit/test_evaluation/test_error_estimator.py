"""
tests/unit/test_evaluation/test_error_estimator.py

Unit tests for the generalization error estimate and regression metrics.

Author: windcap Team
Date: October 2026
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent.parent.parent
sys.path.append(str(project_root))

from windcap.evaluation.error_estimator import ErrorEstimator
from windcap.evaluation.metrics import calculate_mse, calculate_regression_metrics
from windcap.utils.exceptions import DataValidationError, InvalidParameterError

class TestErrorEstimator:
    """Test averaging over the whole CV table"""

    def test_mean_over_all_k(self):
        """The estimate is the mean of all entries, not the minimum"""
        assert ErrorEstimator().estimate({1: 100, 2: 80, 3: 90}) == 90.0

    def test_single_entry(self):
        assert ErrorEstimator().estimate({4: 12.5}) == 12.5

    def test_empty_table_raises(self):
        with pytest.raises(InvalidParameterError):
            ErrorEstimator().estimate({})

    def test_non_finite_values_raise(self):
        with pytest.raises(DataValidationError):
            ErrorEstimator().estimate({1: 1.0, 2: float('nan')})

class TestMetrics:
    """Test regression metrics"""

    def test_mse(self):
        assert calculate_mse([1.0, 2.0, 3.0], [1.0, 4.0, 1.0]) == pytest.approx(8.0 / 3.0)

    def test_mse_perfect_prediction(self):
        assert calculate_mse(np.arange(5), np.arange(5)) == 0.0

    def test_length_mismatch_raises(self):
        with pytest.raises(DataValidationError):
            calculate_mse([1.0, 2.0], [1.0])

    def test_empty_raises(self):
        with pytest.raises(DataValidationError):
            calculate_mse([], [])

    def test_regression_metrics(self):
        metrics = calculate_regression_metrics([1.0, 2.0, 3.0, 4.0], [1.5, 2.0, 2.5, 4.0])

        assert metrics['mse'] == pytest.approx(0.125)
        assert metrics['rmse'] == pytest.approx(np.sqrt(0.125))
        assert metrics['mae'] == pytest.approx(0.25)
        assert metrics['r2'] == pytest.approx(1 - 0.5 / 5.0)
