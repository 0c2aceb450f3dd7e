"""
tests/utils/mock_factories.py

Mock data factories for windcap tests.
Generates reproducible synthetic turbine tables in canonical and
US Wind Turbine Database column layouts.

Author: windcap Team
Date: October 2026
"""

import sys
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import pandas as pd

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.append(str(project_root))

NUMERIC_FEATURES = [
    'rotor_swept_area', 'hub_height', 'year_operational',
    'total_height', 'longitude', 'latitude'
]

USWTDB_NAMES = {
    'rotor_swept_area': 't_rsa',
    'hub_height': 't_hh',
    'year_operational': 'p_year',
    'total_height': 't_ttlh',
    'longitude': 'xlong',
    'latitude': 'ylat',
    'capacity': 't_cap',
}

# ============================================
# TURBINE DATA FACTORIES
# ============================================

class TurbineDataFactory:
    """Factory for generating synthetic wind turbine tables"""

    @staticmethod
    def create_turbine_table(n_rows: int = 200, seed: int = 42,
                             include_id: bool = True, noise: float = 50.0) -> pd.DataFrame:
        """
        Generate turbines whose capacity grows with rotor area and hub height

        Args:
            n_rows: Number of turbines
            seed: Random seed for reproducibility
            include_id: Add a ``case_id`` column
            noise: Standard deviation of the capacity noise (kW)

        Returns:
            DataFrame with canonical column names
        """
        rng = np.random.default_rng(seed)

        rotor_swept_area = rng.uniform(2000.0, 15000.0, n_rows)
        hub_height = rng.uniform(60.0, 120.0, n_rows)
        rotor_diameter = np.sqrt(rotor_swept_area / np.pi) * 2
        total_height = hub_height + rotor_diameter / 2

        capacity = 0.2 * rotor_swept_area + 5.0 * hub_height + rng.normal(0.0, noise, n_rows)

        data = pd.DataFrame({
            'rotor_swept_area': rotor_swept_area,
            'hub_height': hub_height,
            'year_operational': rng.integers(1995, 2024, n_rows),
            'retrofit': rng.choice([0, 1], size=n_rows, p=[0.9, 0.1]),
            'total_height': total_height,
            'longitude': rng.uniform(-125.0, -67.0, n_rows),
            'latitude': rng.uniform(25.0, 49.0, n_rows),
            'capacity': capacity,
        })

        if include_id:
            data.insert(0, 'case_id', np.arange(1000, 1000 + n_rows))

        return data

    @staticmethod
    def create_uswtdb_table(n_rows: int = 50, seed: int = 42) -> pd.DataFrame:
        """Same turbines with US Wind Turbine Database column names"""
        data = TurbineDataFactory.create_turbine_table(n_rows=n_rows, seed=seed)
        return data.rename(columns=USWTDB_NAMES)

    @staticmethod
    def create_train_test(n_train: int = 200, n_test: int = 40,
                          seed: int = 42) -> Dict[str, pd.DataFrame]:
        """Disjoint train and test tables drawn from the same process"""
        data = TurbineDataFactory.create_turbine_table(n_rows=n_train + n_test, seed=seed)
        test = data.iloc[n_train:].drop(columns=['capacity']).reset_index(drop=True)
        return {
            'train': data.iloc[:n_train].reset_index(drop=True),
            'test': test,
            'test_capacity': data['capacity'].iloc[n_train:].reset_index(drop=True),
        }

    @staticmethod
    def add_missing(data: pd.DataFrame, column: str, fraction: float,
                    seed: int = 0) -> pd.DataFrame:
        """Blank out a fraction of one column"""
        rng = np.random.default_rng(seed)
        data = data.copy()
        n_missing = int(round(len(data) * fraction))
        positions = rng.choice(len(data), size=n_missing, replace=False)
        data[column] = data[column].astype(float)
        data.iloc[positions, data.columns.get_loc(column)] = np.nan
        return data

# ============================================
# MATRIX FACTORIES
# ============================================

class MatrixFactory:
    """Small numeric matrices for model-level tests"""

    @staticmethod
    def create_regression_data(n_rows: int = 100, n_features: int = 3,
                               seed: int = 42, noise: float = 0.1):
        """Linear target plus Gaussian noise"""
        rng = np.random.default_rng(seed)
        X = rng.normal(size=(n_rows, n_features))
        coefficients = np.arange(1, n_features + 1, dtype=float)
        y = X @ coefficients + rng.normal(0.0, noise, n_rows)
        return X, y

    @staticmethod
    def create_feature_frame(n_rows: int = 100, seed: int = 42,
                             noise_column: Optional[str] = 'noise') -> pd.DataFrame:
        """
        Clean table where only ``signal`` drives ``capacity``

        The optional noise column is independent of the target.
        """
        rng = np.random.default_rng(seed)
        frame = pd.DataFrame({'signal': rng.normal(size=n_rows)})
        if noise_column:
            frame[noise_column] = rng.normal(size=n_rows)
        frame['capacity'] = 3.0 * frame['signal'] + rng.normal(0.0, 0.05, n_rows)
        return frame
