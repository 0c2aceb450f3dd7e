# ============================================
# windcap - src/windcap/utils/config_loader.py
# YAML configuration management with environment overrides
# ============================================

import os
import copy
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union, List
from dataclasses import dataclass
from datetime import datetime

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

@dataclass
class ConfigMetadata:
    """Configuration metadata"""
    config_name: str
    file_path: Optional[Path]
    last_modified: Optional[datetime]
    source: str = "file"

class ConfigValidationError(Exception):
    """Raised when a configuration file cannot be parsed or validated"""
    pass

class ConfigLoader:
    """
    Configuration management for windcap

    Features:
    - YAML files with in-memory defaults when a file is absent
    - Environment variable substitution (${VAR} and ${VAR:default})
    - Dot-path access to nested keys
    - Runtime overrides (not persisted)
    """

    CONFIG_FILES = ["pipeline.yaml", "logging.yaml"]

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize ConfigLoader

        Args:
            config_dir: Path to configuration directory. If None, WINDCAP_CONFIG_DIR
                or <project root>/config is used.
        """
        self.project_root = self._find_project_root()
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif os.getenv("WINDCAP_CONFIG_DIR"):
            self.config_dir = Path(os.environ["WINDCAP_CONFIG_DIR"])
        else:
            self.config_dir = self.project_root / "config"

        self.configs: Dict[str, Dict[str, Any]] = {}
        self.metadata: Dict[str, ConfigMetadata] = {}

        self._validation_schemas: Dict[str, Dict] = {
            'pipeline': {'required': ['pipeline']},
            'logging': {'required': ['version']},
        }

        self.logger = logging.getLogger(__name__)

        self._load_all_configs()

    def _find_project_root(self) -> Path:
        """Find project root directory by looking for key files"""
        current = Path(__file__).resolve()
        markers = ['setup.py', 'pyproject.toml', '.git', 'requirements.txt']

        for parent in current.parents:
            if any((parent / marker).exists() for marker in markers):
                return parent

        return current.parents[2]

    def _load_all_configs(self):
        """Load all configuration files, falling back to defaults"""
        for config_file in self.CONFIG_FILES:
            config_name = config_file.replace('.yaml', '').replace('.yml', '')
            try:
                self._load_config_file(config_file, config_name)
            except FileNotFoundError:
                self._use_default_config(config_file, config_name)

    def _load_config_file(self, filename: str, config_name: str):
        """Load a single configuration file"""
        config_path = self.config_dir / filename

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Invalid YAML in {filename}: {e}")

        config_data = self._process_environment_variables(config_data)

        if config_name in self._validation_schemas:
            self._validate_config(config_data, config_name)

        self.configs[config_name] = config_data

        stat = config_path.stat()
        self.metadata[config_name] = ConfigMetadata(
            config_name=config_name,
            file_path=config_path,
            last_modified=datetime.fromtimestamp(stat.st_mtime)
        )

        self.logger.debug(f"Loaded configuration: {config_name}")

    def _use_default_config(self, filename: str, config_name: str):
        """Register the built-in defaults for a missing configuration file"""
        defaults = {
            "pipeline.yaml": self._get_pipeline_config_defaults,
            "logging.yaml": self._get_logging_config_defaults,
        }

        if filename not in defaults:
            self.logger.warning(f"No default configuration available for {filename}")
            return

        self.configs[config_name] = self._process_environment_variables(defaults[filename]())
        self.metadata[config_name] = ConfigMetadata(
            config_name=config_name,
            file_path=None,
            last_modified=None,
            source="defaults"
        )
        self.logger.debug(f"Using default configuration: {config_name}")

    def _process_environment_variables(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process environment variable substitutions in config

        Supports formats:
        - ${VAR_NAME}
        - ${VAR_NAME:default_value}
        """
        def process_value(value):
            if isinstance(value, str):
                if value.startswith('${') and value.endswith('}'):
                    env_spec = value[2:-1]

                    if ':' in env_spec:
                        var_name, default_value = env_spec.split(':', 1)
                        return os.getenv(var_name, default_value)
                    else:
                        return os.getenv(env_spec, value)

                return value
            elif isinstance(value, dict):
                return {k: process_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [process_value(item) for item in value]
            else:
                return value

        return process_value(config_data)

    def _validate_config(self, config_data: Dict[str, Any], config_name: str):
        """Validate configuration against schema"""
        schema = self._validation_schemas[config_name]

        required_keys = schema.get('required', [])
        for key in required_keys:
            if key not in config_data:
                raise ConfigValidationError(f"Missing required key '{key}' in {config_name}")

    def get_config(self, config_name: str) -> Dict[str, Any]:
        """
        Get complete configuration by name

        Args:
            config_name: Name of configuration (without .yaml extension)

        Returns:
            Deep copy of the configuration dictionary
        """
        if config_name not in self.configs:
            self.logger.warning(f"Configuration '{config_name}' not found")
            return {}

        return copy.deepcopy(self.configs[config_name])

    def get(self, config_name: str, key_path: str, default: Any = None) -> Any:
        """
        Get specific configuration value using dot notation

        Args:
            config_name: Name of configuration
            key_path: Dot-separated path to key (e.g., 'pipeline.random_seed')
            default: Default value if key not found
        """
        current = self.configs.get(config_name, {})

        try:
            for key in key_path.split('.'):
                current = current[key]
            return copy.deepcopy(current)
        except (KeyError, TypeError):
            return default

    def set(self, config_name: str, key_path: str, value: Any):
        """Set configuration value (runtime only, not persisted)"""
        if config_name not in self.configs:
            self.configs[config_name] = {}

        keys = key_path.split('.')
        current = self.configs[config_name]

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
        self.logger.debug(f"Set config {config_name}.{key_path} = {value}")

    def reload_config(self, config_name: Optional[str] = None):
        """Reload configuration files from disk"""
        if config_name:
            filename = f"{config_name}.yaml"
            try:
                self._load_config_file(filename, config_name)
            except FileNotFoundError:
                self._use_default_config(filename, config_name)
            self.logger.info(f"Reloaded configuration: {config_name}")
        else:
            self.configs.clear()
            self.metadata.clear()
            self._load_all_configs()
            self.logger.info("Reloaded all configurations")

    def get_metadata(self, config_name: str) -> Optional[ConfigMetadata]:
        return self.metadata.get(config_name)

    def list_configs(self) -> List[str]:
        return list(self.configs.keys())

    def export_config(self, config_name: str, format: str = 'yaml') -> str:
        """
        Export configuration in specified format

        Args:
            config_name: Name of configuration to export
            format: Export format ('yaml', 'json')
        """
        config = self.get_config(config_name)

        if format.lower() == 'json':
            return json.dumps(config, indent=2, default=str)
        elif format.lower() == 'yaml':
            return yaml.dump(config, default_flow_style=False, indent=2, sort_keys=False)
        else:
            raise ValueError(f"Unsupported export format: {format}")

    # Default configuration templates
    def _get_pipeline_config_defaults(self) -> Dict[str, Any]:
        """Get default pipeline configuration"""
        return {
            'pipeline': {
                'random_seed': '${WINDCAP_RANDOM_SEED:42}',
                'n_folds': '${WINDCAP_N_FOLDS:10}',
                'k_min': '${WINDCAP_K_MIN:1}',
                'k_max': '${WINDCAP_K_MAX:20}',
                'n_repeats': '${WINDCAP_N_REPEATS:15}',
                'n_jobs': '${WINDCAP_N_JOBS:1}',
                'importance_max_samples': 1000,
            },
            'preprocessing': {
                'missing_threshold': 0.9,
                'target_column': 'capacity',
                'id_column': 'case_id',
                'numeric_features': [
                    'rotor_swept_area', 'hub_height', 'year_operational',
                    'total_height', 'longitude', 'latitude'
                ],
                'categorical_features': ['retrofit'],
                'column_aliases': {
                    't_rsa': 'rotor_swept_area',
                    't_hh': 'hub_height',
                    'p_year': 'year_operational',
                    't_ttlh': 'total_height',
                    'xlong': 'longitude',
                    'ylat': 'latitude',
                    't_cap': 'capacity',
                },
            },
        }

    def _get_logging_config_defaults(self) -> Dict[str, Any]:
        """Get default logging configuration"""
        return {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'simple': {
                    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': 'DEBUG',
                    'formatter': 'simple',
                    'stream': 'ext://sys.stderr'
                }
            },
            'loggers': {
                'windcap': {'level': '${WINDCAP_LOG_LEVEL:INFO}', 'handlers': ['console'], 'propagate': True}
            }
        }

# Global configuration instance
config = ConfigLoader()

def get_config(config_name: str) -> Dict[str, Any]:
    """Get complete configuration by name"""
    return config.get_config(config_name)

def get(config_name: str, key_path: str, default: Any = None) -> Any:
    """Get specific configuration value using dot notation"""
    return config.get(config_name, key_path, default)

def reload_configs():
    """Reload all configurations from disk"""
    config.reload_config()
