# ============================================
# windcap - src/windcap/models/knn.py
# Exact K-Nearest-Neighbors regression for turbine capacity
# ============================================

from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, RegressorMixin

from ..utils.exceptions import (
    DataValidationError,
    InvalidParameterError,
    ModelNotFittedError,
    SchemaError
)
from ..utils.logger import get_logger
from ..utils.validators import validate_k

logger = get_logger('models.knn')

ArrayLike = Union[np.ndarray, pd.DataFrame, pd.Series]

# Upper bound on the number of entries in one query-by-train distance block
MAX_DISTANCE_BLOCK = 4_000_000

def _as_matrix(X: ArrayLike, name: str) -> np.ndarray:
    """Convert features to a finite 2-D float matrix"""
    matrix = np.asarray(X, dtype=float)
    if matrix.ndim == 1:
        matrix = matrix.reshape(-1, 1)
    if matrix.ndim != 2:
        raise DataValidationError(f"{name} must be 2-dimensional, got shape {matrix.shape}")
    if not np.all(np.isfinite(matrix)):
        raise DataValidationError(f"{name} contains missing or infinite values")
    return matrix

class KNNRegressor(BaseEstimator, RegressorMixin):
    """
    K-Nearest-Neighbors regressor with exact Euclidean distances

    The prediction for a query row is the arithmetic mean of the labels of
    its k nearest training rows. Among equally distant training rows the one
    with the lower position in the training matrix is preferred, so results
    never depend on sort implementation details.

    Parameters:
    -----------
    n_neighbors : int, default=5
        Number of neighbors used when ``fit`` is not given an explicit k.
    batch_size : int, optional
        Query rows per distance block. Derived from the training size when None.
    """

    def __init__(self, n_neighbors: int = 5, batch_size: Optional[int] = None):
        self.n_neighbors = n_neighbors
        self.batch_size = batch_size

    def fit(self, X: ArrayLike, y: ArrayLike, k: Optional[int] = None) -> 'KNNRegressor':
        """
        Store the training data

        Args:
            X: Training feature matrix (n rows x d columns, d may be 0)
            y: Training labels (n values)
            k: Neighbor count; overrides ``n_neighbors`` when given

        Returns:
            self
        """
        X_train = _as_matrix(X, "Training features")
        y_train = np.asarray(y, dtype=float).ravel()

        if len(y_train) != X_train.shape[0]:
            raise InvalidParameterError(
                f"Training features have {X_train.shape[0]} rows but labels have {len(y_train)}",
                parameter_name="y", provided_value=len(y_train)
            )
        if not np.all(np.isfinite(y_train)):
            raise DataValidationError("Training labels contain missing or infinite values")

        k_value = self.n_neighbors if k is None else k
        self.k_ = validate_k(k_value, n_rows=X_train.shape[0])

        if isinstance(X, pd.DataFrame):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)

        X_train = X_train.copy()
        y_train = y_train.copy()
        X_train.setflags(write=False)
        y_train.setflags(write=False)

        self.X_train_ = X_train
        self.y_train_ = y_train
        self.n_features_in_ = X_train.shape[1]
        self.n_samples_fit_ = X_train.shape[0]

        logger.debug(f"Fitted KNN on {self.n_samples_fit_} rows x {self.n_features_in_} features, k={self.k_}")
        return self

    def _check_fitted(self):
        if not hasattr(self, 'X_train_'):
            raise ModelNotFittedError(
                "KNNRegressor has not been fitted", model_name=self.__class__.__name__
            )

    def _check_query(self, X: ArrayLike) -> np.ndarray:
        self._check_fitted()
        X_query = _as_matrix(X, "Query features")
        if X_query.shape[1] != self.n_features_in_:
            raise SchemaError(
                f"Query has {X_query.shape[1]} feature columns, model was fitted on {self.n_features_in_}"
            )
        return X_query

    def _batch_rows(self) -> int:
        if self.batch_size is not None:
            return max(1, int(self.batch_size))
        return max(1, MAX_DISTANCE_BLOCK // max(1, self.n_samples_fit_))

    def _squared_distances(self, X_block: np.ndarray) -> np.ndarray:
        """Exact squared Euclidean distances, accumulated one feature at a time"""
        distances = np.zeros((X_block.shape[0], self.n_samples_fit_))
        for j in range(self.n_features_in_):
            diff = X_block[:, j, None] - self.X_train_[None, :, j]
            distances += diff * diff
        return distances

    def kneighbors(self, X: ArrayLike, n_neighbors: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find the nearest training rows for each query row

        Args:
            X: Query feature matrix
            n_neighbors: Defaults to the fitted k

        Returns:
            (distances, indices), each of shape (n_queries, k), nearest first
        """
        X_query = self._check_query(X)
        k = self.k_ if n_neighbors is None else validate_k(n_neighbors, n_rows=self.n_samples_fit_)

        n_queries = X_query.shape[0]
        indices = np.empty((n_queries, k), dtype=np.intp)
        distances = np.empty((n_queries, k), dtype=float)

        step = self._batch_rows()
        for start in range(0, n_queries, step):
            block = self._squared_distances(X_query[start:start + step])
            # Stable sort keeps the lower training index first among ties
            order = np.argsort(block, axis=1, kind='stable')[:, :k]
            indices[start:start + step] = order
            distances[start:start + step] = np.sqrt(np.take_along_axis(block, order, axis=1))

        return distances, indices

    def predict(self, X: ArrayLike) -> np.ndarray:
        """Mean label of the k nearest training rows for every query row"""
        _, indices = self.kneighbors(X)
        if indices.shape[0] == 0:
            return np.empty(0, dtype=float)
        return self.y_train_[indices].mean(axis=1)
