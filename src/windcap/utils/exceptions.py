# ============================================
# windcap - src/windcap/utils/exceptions.py
# Exception hierarchy for the capacity regression pipeline
# ============================================

import re
import json
import traceback
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

class WindCapBaseException(Exception):
    """
    Base exception class for all windcap exceptions

    Features:
    - Error codes for programmatic handling
    - Context information for debugging
    - Severity levels for appropriate responses
    - User-friendly messages for CLI output
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        severity: str = "error",
        user_message: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize base exception

        Args:
            message: Technical error message for logs
            error_code: Unique error code for programmatic handling
            context: Additional context information
            severity: Error severity (debug, info, warning, error, critical)
            user_message: User-friendly message
            suggestions: List of suggested solutions
            cause: Original exception that caused this error
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.severity = severity
        self.user_message = user_message or self._generate_user_message()
        self.suggestions = suggestions or []
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        self.context.update({
            'exception_type': self.__class__.__name__,
            'timestamp': self.timestamp.isoformat(),
            'severity': self.severity
        })

    def _generate_error_code(self) -> str:
        """Generate error code based on class name"""
        class_name = self.__class__.__name__
        # CamelCase -> UPPER_SNAKE_CASE
        error_code = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', class_name)
        error_code = re.sub('([a-z0-9])([A-Z])', r'\1_\2', error_code).upper()
        return error_code.replace('_EXCEPTION', '_ERROR')

    def _generate_user_message(self) -> str:
        return "An error occurred while running the capacity pipeline."

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization"""
        return {
            'error_code': self.error_code,
            'message': self.message,
            'user_message': self.user_message,
            'severity': self.severity,
            'context': self.context,
            'suggestions': self.suggestions,
            'timestamp': self.timestamp.isoformat(),
            'traceback': traceback.format_exc() if self.severity in ['error', 'critical'] else None
        }

    def to_json(self) -> str:
        """Convert exception to JSON string"""
        return json.dumps(self.to_dict(), default=str, indent=2)

    def add_context(self, **kwargs):
        """Add additional context to the exception"""
        self.context.update(kwargs)

    def add_suggestion(self, suggestion: str):
        """Add a suggestion for resolving the error"""
        self.suggestions.append(suggestion)

# ============================================
# Data-related Exceptions
# ============================================

class DataError(WindCapBaseException):
    """Base class for data-related errors"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('severity', 'error')
        super().__init__(message, **kwargs)

class SchemaError(DataError):
    """Raised when a required column is absent or has the wrong type"""

    def __init__(self, message: str, missing_columns: Optional[List[str]] = None,
                 invalid_columns: Optional[List[str]] = None, **kwargs):
        context = kwargs.pop('context', {})
        if missing_columns:
            context['missing_columns'] = list(missing_columns)
        if invalid_columns:
            context['invalid_columns'] = list(invalid_columns)

        self.missing_columns = list(missing_columns or [])
        self.invalid_columns = list(invalid_columns or [])

        super().__init__(
            message,
            context=context,
            user_message="The input table does not match the expected turbine schema.",
            suggestions=[
                "Check the column names of the input file",
                "Configure column aliases for source-specific names",
                "Make sure numeric columns contain only numbers"
            ],
            **kwargs
        )

class DataValidationError(DataError):
    """Raised when data values fail validation"""

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None, **kwargs):
        context = kwargs.pop('context', {})
        if validation_errors:
            context['validation_errors'] = validation_errors

        super().__init__(
            message,
            context=context,
            user_message="The data contains values that cannot be processed.",
            suggestions=[
                "Remove or fill rows with missing feature values",
                "Allow incomplete rows to be dropped"
            ],
            **kwargs
        )

class DegenerateDataError(DataError):
    """Raised when there is not enough data for a fold or neighbor count"""

    def __init__(self, message: str, required_rows: Optional[int] = None,
                 available_rows: Optional[int] = None, **kwargs):
        context = kwargs.pop('context', {})
        if required_rows is not None:
            context['required_rows'] = required_rows
        if available_rows is not None:
            context['available_rows'] = available_rows

        super().__init__(
            message,
            context=context,
            user_message="Not enough training rows for the requested evaluation.",
            suggestions=[
                "Reduce the number of folds",
                "Reduce the largest K in the search grid",
                "Provide more training rows"
            ],
            **kwargs
        )

# ============================================
# Model-related Exceptions
# ============================================

class ModelError(WindCapBaseException):
    """Base class for model-related errors"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('severity', 'error')
        super().__init__(message, **kwargs)

class ModelNotFittedError(ModelError):
    """Raised when a model is used before it has been fitted"""

    def __init__(self, message: str, model_name: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if model_name:
            context['model_name'] = model_name

        super().__init__(
            message,
            context=context,
            user_message="The model must be fitted before it can predict.",
            suggestions=["Call fit() with training data first"],
            **kwargs
        )

# ============================================
# Configuration Exceptions
# ============================================

class ConfigurationError(WindCapBaseException):
    """Raised when configuration is invalid"""

    def __init__(self, message: str, config_name: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if config_name:
            context['config_name'] = config_name

        super().__init__(
            message,
            context=context,
            severity="critical",
            user_message="Configuration is invalid.",
            suggestions=[
                "Check the YAML files in the config directory",
                "Check WINDCAP_* environment variables"
            ],
            **kwargs
        )

# ============================================
# Business Logic Exceptions
# ============================================

class BusinessLogicError(WindCapBaseException):
    """Raised when business logic validation fails"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('severity', 'warning')
        super().__init__(message, **kwargs)

class InvalidParameterError(BusinessLogicError):
    """Raised when invalid parameters are provided"""

    def __init__(self, message: str, parameter_name: Optional[str] = None, provided_value: Any = None, **kwargs):
        context = kwargs.pop('context', {})
        if parameter_name:
            context['parameter_name'] = parameter_name
        if provided_value is not None:
            context['provided_value'] = provided_value

        self.parameter_name = parameter_name
        self.provided_value = provided_value

        super().__init__(
            message,
            context=context,
            user_message="Invalid input parameters. Please check your inputs and try again.",
            suggestions=[
                "K must lie between 1 and the number of training rows",
                "Use at least 2 folds",
                "Provide a non-empty K grid"
            ],
            **kwargs
        )

# ============================================
# Utility Functions
# ============================================

def log_exception(exception: Exception, logger=None):
    """Log exception with appropriate level and context"""
    from .logger import get_logger

    if logger is None:
        logger = get_logger('exceptions')

    if isinstance(exception, WindCapBaseException):
        level_map = {
            'debug': logger.debug,
            'info': logger.info,
            'warning': logger.warning,
            'error': logger.error,
            'critical': logger.critical
        }

        log_func = level_map.get(exception.severity, logger.error)
        log_func(
            f"[{exception.error_code}] {exception.message}",
            extra={'error_context': exception.context},
            exc_info=exception.severity in ['error', 'critical']
        )
    else:
        logger.error(f"Unexpected exception: {str(exception)}", exc_info=True)

# ============================================
# Exception Registry
# ============================================

EXCEPTION_REGISTRY = {
    'SCHEMA_ERROR': SchemaError,
    'DATA_VALIDATION_ERROR': DataValidationError,
    'DEGENERATE_DATA_ERROR': DegenerateDataError,
    'MODEL_NOT_FITTED_ERROR': ModelNotFittedError,
    'CONFIGURATION_ERROR': ConfigurationError,
    'INVALID_PARAMETER_ERROR': InvalidParameterError,
}

def get_exception_class(error_code: str) -> type:
    """Get exception class by error code"""
    return EXCEPTION_REGISTRY.get(error_code, WindCapBaseException)
