"""
tests/unit/test_data/test_loader.py

Unit tests for table loading and saving.
Tests format detection, column aliasing and error wrapping.

Author: windcap Team
Date: October 2026
"""

import sys
import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent.parent.parent
sys.path.append(str(project_root))

from tests.utils.mock_factories import TurbineDataFactory, USWTDB_NAMES

from windcap.data.loader import (
    CSVHandler,
    ParquetHandler,
    apply_column_aliases,
    get_handler,
    load_table,
    save_json,
    save_table
)
from windcap.utils.exceptions import DataValidationError, SchemaError

ALIASES = {source: canonical for canonical, source in USWTDB_NAMES.items()}

class TestHandlers:
    """Test format handler selection"""

    def test_csv_handler_selected(self):
        assert isinstance(get_handler("turbines.csv"), CSVHandler)
        assert isinstance(get_handler("turbines.CSV"), CSVHandler)
        assert isinstance(get_handler("turbines.csv.gz"), CSVHandler)

    def test_parquet_handler_selected(self):
        assert isinstance(get_handler("turbines.parquet"), ParquetHandler)
        assert isinstance(get_handler("turbines.pq"), ParquetHandler)

    def test_format_hint_overrides_suffix(self):
        assert isinstance(get_handler("turbines.dat", format_hint="csv"), CSVHandler)

    def test_unknown_format_raises(self):
        with pytest.raises(DataValidationError):
            get_handler("turbines.xlsx")

        with pytest.raises(DataValidationError):
            get_handler("turbines.csv", format_hint="excel")

class TestLoadTable:
    """Test loading turbine tables"""

    def test_load_csv(self, temp_table_file):
        data = TurbineDataFactory.create_turbine_table(n_rows=20)
        path = temp_table_file(data, "train.csv")

        loaded = load_table(path)

        assert loaded.shape == data.shape
        np.testing.assert_allclose(loaded['capacity'].to_numpy(), data['capacity'].to_numpy())

    def test_load_parquet(self, temp_table_file):
        pytest.importorskip("pyarrow")
        data = TurbineDataFactory.create_turbine_table(n_rows=20)
        path = temp_table_file(data, "train.parquet")

        loaded = load_table(path)

        pd.testing.assert_frame_equal(loaded, data)

    def test_uswtdb_names_renamed(self, temp_table_file):
        data = TurbineDataFactory.create_uswtdb_table(n_rows=15)
        path = temp_table_file(data, "uswtdb.csv")

        loaded = load_table(path, aliases=ALIASES)

        for canonical in USWTDB_NAMES:
            assert canonical in loaded.columns
        assert 't_cap' not in loaded.columns

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(DataValidationError):
            load_table(tmp_path / "absent.csv")

    def test_unparseable_file_raises(self, tmp_path):
        path = tmp_path / "broken.parquet"
        path.write_text("not a parquet file", encoding="utf-8")

        with pytest.raises(DataValidationError):
            load_table(path)

class TestColumnAliases:
    """Test renaming of source-specific columns"""

    def test_no_aliases_returns_input(self):
        data = pd.DataFrame({'t_cap': [1.0]})
        assert apply_column_aliases(data, None) is data

    def test_partial_aliases(self):
        data = pd.DataFrame({'t_hh': [80.0], 'retrofit': [0]})

        renamed = apply_column_aliases(data, ALIASES)

        assert list(renamed.columns) == ['hub_height', 'retrofit']

    def test_conflicting_names_raise(self):
        data = pd.DataFrame({'t_hh': [80.0], 'hub_height': [85.0]})

        with pytest.raises(SchemaError):
            apply_column_aliases(data, ALIASES)

class TestSaving:
    """Test writing pipeline outputs"""

    def test_save_table_creates_directory(self, tmp_path):
        data = pd.DataFrame({'k': [1, 2], 'mse': [4.0, 3.0]})
        path = tmp_path / "out" / "cv_results.csv"

        save_table(data, path)

        pd.testing.assert_frame_equal(pd.read_csv(path), data)

    def test_save_json_handles_numpy_values(self, tmp_path):
        path = save_json({'best_k': np.int64(3), 'mse': np.float64(1.5), 'ks': np.arange(3)},
                         tmp_path / "summary.json")

        with open(path, encoding="utf-8") as f:
            loaded = json.load(f)

        assert loaded == {'best_k': 3, 'mse': 1.5, 'ks': [0, 1, 2]}
