# ============================================
# windcap - src/windcap/evaluation/error_estimator.py
# Generalization error estimate from the CV table
# ============================================

from typing import Mapping

import numpy as np

from ..utils.exceptions import DataValidationError, InvalidParameterError
from ..utils.logger import get_logger

logger = get_logger('evaluation.error_estimator')

class ErrorEstimator:
    """
    Estimate of the error on unseen data

    Averages the cross-validated MSE over every evaluated k instead of taking
    the minimum, which would be optimistically biased by the selection itself.
    """

    def estimate(self, cv_table: Mapping[int, float]) -> float:
        if not cv_table:
            raise InvalidParameterError("Cannot estimate error from an empty CV table", parameter_name="cv_table")

        values = np.asarray(list(cv_table.values()), dtype=float)
        if not np.all(np.isfinite(values)):
            raise DataValidationError("CV table contains missing or infinite MSE values")

        estimate = float(values.mean())
        logger.info(f"Estimated generalization MSE {estimate:.4f} over {len(values)} k values")
        return estimate
