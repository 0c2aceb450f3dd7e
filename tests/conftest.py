"""
conftest.py

Pytest configuration and fixtures for windcap tests.
Provides shared turbine tables, temporary files and environment helpers
for reproducible testing across all test modules.

Author: windcap Team
Date: October 2026
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict

import pandas as pd
import pytest

# Add project root and src/ to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))
sys.path.insert(0, str(project_root / "src"))

# Import test utilities
from tests.utils.mock_factories import TurbineDataFactory, MatrixFactory

# ============================================
# PYTEST CONFIGURATION
# ============================================

def pytest_configure(config):
    """Configure pytest settings and markers"""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")

def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location"""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

# ============================================
# DATA FIXTURES
# ============================================

@pytest.fixture
def turbine_table():
    """Synthetic canonical turbine table"""
    return TurbineDataFactory.create_turbine_table(n_rows=120, seed=42)

@pytest.fixture
def train_test_tables():
    """Train table with target and test table without it"""
    return TurbineDataFactory.create_train_test(n_train=150, n_test=30, seed=7)

@pytest.fixture
def signal_noise_frame():
    """Clean table with one informative and one noise feature"""
    return MatrixFactory.create_feature_frame(n_rows=200, seed=11)

# ============================================
# TEMPORARY FILE FIXTURES
# ============================================

@pytest.fixture
def temp_table_file(tmp_path):
    """Write a DataFrame to a temporary CSV or Parquet file"""
    def _create(data: pd.DataFrame, filename: str = "table.csv") -> Path:
        path = tmp_path / filename
        if path.suffix == ".parquet":
            data.to_parquet(path, index=False)
        else:
            data.to_csv(path, index=False)
        return path

    return _create

@pytest.fixture
def config_dir(tmp_path):
    """Temporary config directory with writer for YAML files"""
    directory = tmp_path / "config"
    directory.mkdir()

    def _write(filename: str, content: str) -> Path:
        path = directory / filename
        path.write_text(content, encoding="utf-8")
        return path

    _write.path = directory
    return _write

# ============================================
# ENVIRONMENT FIXTURES
# ============================================

@pytest.fixture
def mock_env_vars():
    """Set environment variables for one test and restore them afterwards"""
    original_values: Dict[str, Any] = {}

    def wrapper(**kwargs):
        for key, value in kwargs.items():
            original_values.setdefault(key, os.environ.get(key))
            os.environ[key] = value

    yield wrapper

    for key, value in original_values.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
