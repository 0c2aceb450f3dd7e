# ============================================
# windcap - src/windcap/utils/logger.py
# Component logging with run context
# ============================================

import os
import sys
import json
import logging
import logging.config
import traceback
from pathlib import Path
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from .config_loader import get_config

ROOT_LOGGER_NAME = "windcap"

class ContextFilter(logging.Filter):
    """Add contextual information (run id, seed, ...) to log records"""

    def __init__(self):
        super().__init__()
        self.context: Dict[str, Any] = {}

    def filter(self, record):
        for key, value in self.context.items():
            if not hasattr(record, key):
                setattr(record, key, value)

        if not hasattr(record, 'run_id'):
            record.run_id = 'N/A'

        if not hasattr(record, 'component'):
            # windcap.models.knn -> models
            name_parts = record.name.split('.')
            record.component = name_parts[1] if len(name_parts) >= 2 else 'app'

        return True

    def set_context(self, **kwargs):
        self.context.update(kwargs)

    def clear_context(self):
        self.context.clear()

class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    RESERVED = frozenset((
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
        'filename', 'module', 'lineno', 'funcName', 'created',
        'msecs', 'relativeCreated', 'thread', 'threadName', 'taskName',
        'processName', 'process', 'getMessage', 'exc_info',
        'exc_text', 'stack_info', 'message', 'asctime'
    ))

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        for key, value in record.__dict__.items():
            if key not in self.RESERVED:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)

class WindCapLogger:
    """
    Logging system for windcap

    Features:
    - Component-specific loggers under the ``windcap`` namespace
    - dictConfig setup from the ``logging`` configuration
    - Optional JSON output (WINDCAP_LOG_FORMAT=json)
    - Optional file output (WINDCAP_LOG_DIR)
    - Run context injected into every record
    """

    def __init__(self):
        self.context_filter = ContextFilter()
        self.logs_dir: Optional[Path] = None
        self._setup_logging()

        self._loggers: Dict[str, logging.Logger] = {}
    def _setup_logging(self):
        """Setup logging configuration"""
        logging_config = get_config('logging')
        if logging_config:
            try:
                logging.config.dictConfig(logging_config)
            except (ValueError, TypeError, AttributeError, ImportError) as e:
                print(f"Warning: Failed to apply logging config, using defaults: {e}", file=sys.stderr)
                self._setup_default_logging()
        else:
            self._setup_default_logging()

        package_logger = logging.getLogger(ROOT_LOGGER_NAME)

        if os.getenv('WINDCAP_LOG_FORMAT', '').lower() == 'json':
            for handler in package_logger.handlers:
                handler.setFormatter(JSONFormatter())

        log_dir = os.getenv('WINDCAP_LOG_DIR')
        if log_dir:
            self.logs_dir = Path(log_dir)
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.logs_dir / 'windcap.log')
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(funcName)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            package_logger.addHandler(file_handler)

        for handler in package_logger.handlers:
            handler.addFilter(self.context_filter)

    def _setup_default_logging(self):
        """Setup default logging configuration"""
        package_logger = logging.getLogger(ROOT_LOGGER_NAME)
        package_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

        package_logger.setLevel(logging.INFO)
        package_logger.addHandler(console_handler)

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger for a specific component

        Args:
            name: Logger name (e.g., 'models.knn', 'pipeline')
        """
        if name in self._loggers:
            return self._loggers[name]

        full_name = f"{ROOT_LOGGER_NAME}.{name}" if not name.startswith(ROOT_LOGGER_NAME) else name
        logger = logging.getLogger(full_name)
        self._loggers[name] = logger

        return logger

    def set_context(self, **kwargs):
        self.context_filter.set_context(**kwargs)

    def clear_context(self):
        self.context_filter.clear_context()

    def set_level(self, level: int):
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)

# Global logger instance
logger_system = WindCapLogger()

def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific component"""
    return logger_system.get_logger(name)

def set_logging_context(**kwargs):
    """Set context for all subsequent log messages"""
    logger_system.set_context(**kwargs)

def clear_logging_context():
    logger_system.clear_context()

def set_log_level(level: int):
    logger_system.set_level(level)
