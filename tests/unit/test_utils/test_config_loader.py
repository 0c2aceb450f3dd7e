"""
tests/unit/test_utils/test_config_loader.py

Unit tests for YAML configuration loading and the pipeline settings
built from it.

Author: windcap Team
Date: October 2026
"""

import sys
import json
from pathlib import Path

import pytest
import yaml

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent.parent.parent
sys.path.append(str(project_root))

from windcap.pipeline import PipelineConfig
from windcap.utils.config_loader import ConfigLoader, ConfigValidationError
from windcap.utils.exceptions import ConfigurationError

PIPELINE_YAML = """
pipeline:
  random_seed: ${WINDCAP_TEST_SEED:5}
  n_folds: 4
  k_min: 2
  k_max: 6
preprocessing:
  missing_threshold: 0.8
  column_aliases:
    t_hh: hub_height
"""

# ============================================
# TEST CONFIG LOADER
# ============================================

class TestConfigLoader:
    """Test loading, defaults and environment substitution"""

    def test_defaults_when_files_absent(self, config_dir):
        loader = ConfigLoader(config_dir=config_dir.path)

        assert set(loader.list_configs()) == {'pipeline', 'logging'}
        assert loader.get_metadata('pipeline').source == 'defaults'
        assert loader.get('pipeline', 'preprocessing.target_column') == 'capacity'
        assert loader.get('pipeline', 'preprocessing.missing_threshold') == 0.9

    def test_default_values_follow_environment(self, config_dir, mock_env_vars):
        mock_env_vars(WINDCAP_K_MAX='7')

        loader = ConfigLoader(config_dir=config_dir.path)

        assert loader.get('pipeline', 'pipeline.k_max') == '7'

    def test_yaml_file_loaded(self, config_dir):
        config_dir('pipeline.yaml', PIPELINE_YAML)

        loader = ConfigLoader(config_dir=config_dir.path)

        assert loader.get_metadata('pipeline').source == 'file'
        assert loader.get('pipeline', 'pipeline.n_folds') == 4
        assert loader.get('pipeline', 'pipeline.random_seed') == '5'
        assert loader.get('pipeline', 'preprocessing.column_aliases') == {'t_hh': 'hub_height'}

    def test_environment_substitution(self, config_dir, mock_env_vars):
        mock_env_vars(WINDCAP_TEST_SEED='123')
        config_dir('pipeline.yaml', PIPELINE_YAML)

        loader = ConfigLoader(config_dir=config_dir.path)

        assert loader.get('pipeline', 'pipeline.random_seed') == '123'

    def test_missing_required_key_raises(self, config_dir):
        config_dir('pipeline.yaml', "preprocessing:\n  missing_threshold: 0.5\n")

        with pytest.raises(ConfigValidationError):
            ConfigLoader(config_dir=config_dir.path)

    def test_invalid_yaml_raises(self, config_dir):
        config_dir('pipeline.yaml', "pipeline: [unclosed\n")

        with pytest.raises(ConfigValidationError):
            ConfigLoader(config_dir=config_dir.path)

    def test_get_missing_key_returns_default(self, config_dir):
        loader = ConfigLoader(config_dir=config_dir.path)

        assert loader.get('pipeline', 'pipeline.unknown', default='fallback') == 'fallback'
        assert loader.get_config('absent') == {}

    def test_runtime_set(self, config_dir):
        loader = ConfigLoader(config_dir=config_dir.path)

        loader.set('pipeline', 'pipeline.n_folds', 3)

        assert loader.get('pipeline', 'pipeline.n_folds') == 3

    def test_get_config_returns_copy(self, config_dir):
        loader = ConfigLoader(config_dir=config_dir.path)

        loader.get_config('pipeline')['pipeline']['n_folds'] = 99

        assert loader.get('pipeline', 'pipeline.n_folds') != 99

    def test_export(self, config_dir):
        loader = ConfigLoader(config_dir=config_dir.path)

        assert json.loads(loader.export_config('pipeline', 'json')) == loader.get_config('pipeline')
        assert yaml.safe_load(loader.export_config('pipeline', 'yaml')) == loader.get_config('pipeline')
        with pytest.raises(ValueError):
            loader.export_config('pipeline', 'toml')

    def test_reload_picks_up_new_file(self, config_dir):
        loader = ConfigLoader(config_dir=config_dir.path)
        config_dir('pipeline.yaml', PIPELINE_YAML)

        loader.reload_config('pipeline')

        assert loader.get('pipeline', 'pipeline.k_max') == 6

# ============================================
# TEST PIPELINE CONFIG
# ============================================

class TestPipelineConfig:
    """Test typed pipeline settings"""

    def test_string_values_cast(self):
        config = PipelineConfig(random_seed='7', n_folds='5', k_min='1', k_max='3', n_repeats='2', n_jobs='-1')

        assert (config.random_seed, config.n_folds, config.k_max, config.n_jobs) == (7, 5, 3, -1)
        assert config.k_values == [1, 2, 3]

    def test_non_integer_raises(self):
        with pytest.raises(ConfigurationError):
            PipelineConfig(n_folds='ten')

        with pytest.raises(ConfigurationError):
            PipelineConfig(n_repeats=2.5)

    def test_k_range_validated(self):
        with pytest.raises(ConfigurationError):
            PipelineConfig(k_min=5, k_max=3)

        with pytest.raises(ConfigurationError):
            PipelineConfig(k_min=0)

    def test_zero_jobs_rejected(self):
        with pytest.raises(ConfigurationError):
            PipelineConfig(n_jobs=0)

    def test_from_config_with_overrides(self, mocker):
        sections = {
            'pipeline': {'random_seed': '9', 'n_folds': '4', 'k_min': '1', 'k_max': '8',
                         'n_repeats': '3', 'n_jobs': '1', 'importance_max_samples': 50},
            'preprocessing': {'missing_threshold': 0.5, 'target_column': 'capacity',
                              'column_aliases': {'t_cap': 'capacity'}},
        }
        mocker.patch('windcap.pipeline.get', side_effect=lambda name, key, default=None: sections.get(key, default))

        config = PipelineConfig.from_config(k_max=5, n_jobs=None)

        assert config.random_seed == 9
        assert config.n_folds == 4
        assert config.k_max == 5
        assert config.n_jobs == 1
        assert config.importance_max_samples == 50
        assert config.preprocessing.missing_threshold == 0.5
        assert config.column_aliases == {'t_cap': 'capacity'}

    def test_from_config_invalid_preprocessing(self, mocker):
        sections = {'pipeline': {}, 'preprocessing': {'missing_threshold': 3}}
        mocker.patch('windcap.pipeline.get', side_effect=lambda name, key, default=None: sections.get(key, default))

        with pytest.raises(ConfigurationError):
            PipelineConfig.from_config()
