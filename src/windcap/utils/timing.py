# ============================================
# windcap - src/windcap/utils/timing.py
# Timing utilities for pipeline stages
# ============================================

import time
import functools
from typing import Optional, Callable
from dataclasses import dataclass

from .logger import get_logger
from .exceptions import BusinessLogicError

logger = get_logger('timing')

@dataclass
class TimingResult:
    """Container for timing measurement results"""
    operation_name: str
    start_time: float
    end_time: float
    duration: float

    @property
    def duration_str(self) -> str:
        return format_duration(self.duration)

class Timer:
    """
    High-precision timer for measuring operation performance

    Can be used as context manager or through the ``time_it`` decorator
    """

    def __init__(self, operation_name: str, auto_log: bool = True,
                 log_level: str = 'info'):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self.log_level = log_level.lower()

        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.result: Optional[TimingResult] = None

    def start(self) -> 'Timer':
        self.start_time = time.perf_counter()
        return self

    def stop(self) -> TimingResult:
        """Stop timing and return result"""
        if self.start_time is None:
            raise BusinessLogicError("Timer not started")

        self.end_time = time.perf_counter()
        self.result = TimingResult(
            operation_name=self.operation_name,
            start_time=self.start_time,
            end_time=self.end_time,
            duration=self.end_time - self.start_time
        )

        if self.auto_log:
            self._log_result()

        return self.result

    def _log_result(self):
        if self.result is None:
            return

        log_func = getattr(logger, self.log_level, logger.info)
        log_func(
            f"Operation '{self.operation_name}' completed in {self.result.duration_str}",
            extra={
                'operation_name': self.operation_name,
                'duration': self.result.duration,
                'performance_metric': True
            }
        )

    def __enter__(self) -> 'Timer':
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.auto_log = False
            self.stop()
            logger.error(
                f"Operation '{self.operation_name}' failed after {self.result.duration_str}",
                extra={
                    'operation_name': self.operation_name,
                    'duration': self.result.duration,
                    'error_type': exc_type.__name__,
                }
            )
        else:
            self.stop()
        return False

def time_it(operation_name: Optional[str] = None, auto_log: bool = True,
            log_level: str = 'debug'):
    """
    Decorator to time function execution

    Args:
        operation_name: Custom operation name (defaults to module.function)
        auto_log: Whether to automatically log timing results
        log_level: Log level for timing messages
    """
    def decorator(func: Callable) -> Callable:
        name = operation_name or f"{func.__module__}.{func.__name__}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with Timer(name, auto_log, log_level):
                return func(*args, **kwargs)

        return wrapper

    return decorator

def format_duration(seconds: float) -> str:
    """Format duration in human-readable format"""
    if seconds < 0.001:
        return f"{seconds * 1000000:.0f}us"
    elif seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        return f"{minutes}m {seconds % 60:.1f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m {seconds % 60:.0f}s"
