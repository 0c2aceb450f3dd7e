# ============================================
# windcap - src/windcap/data/loader.py
# Tabular file I/O for turbine tables and pipeline outputs
# ============================================

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from ..utils.exceptions import DataValidationError, SchemaError
from ..utils.logger import get_logger
from ..utils.timing import Timer

logger = get_logger('data.loader')

# ============================================
# File Format Handlers
# ============================================

class BaseFileHandler:
    """Base class for file format handlers"""

    supported_extensions: List[str] = []

    def can_handle(self, file_path: Union[str, Path]) -> bool:
        """Check if handler can handle the file format"""
        suffixes = [s.lower() for s in Path(file_path).suffixes]
        if suffixes and suffixes[-1] == '.gz':
            suffixes = suffixes[:-1]
        return bool(suffixes) and suffixes[-1] in self.supported_extensions

    def save(self, data: Any, file_path: Path, **kwargs) -> None:
        raise NotImplementedError

    def load(self, file_path: Path, **kwargs) -> Any:
        raise NotImplementedError

class CSVHandler(BaseFileHandler):
    """Handler for CSV files"""

    supported_extensions = ['.csv']

    def save(self, data: pd.DataFrame, file_path: Path, **kwargs) -> None:
        csv_options = {'index': False, **kwargs}
        data.to_csv(file_path, **csv_options)
        logger.debug(f"Saved CSV: {file_path} ({len(data)} rows)")

    def load(self, file_path: Path, **kwargs) -> pd.DataFrame:
        try:
            data = pd.read_csv(file_path, **kwargs)
        except (OSError, ValueError, pd.errors.ParserError) as e:
            raise DataValidationError(
                f"Cannot load CSV file: {e}", context={'file_path': str(file_path)}, cause=e
            ) from e
        logger.debug(f"Loaded CSV: {file_path} ({len(data)} rows)")
        return data

class ParquetHandler(BaseFileHandler):
    """Handler for Parquet files"""

    supported_extensions = ['.parquet', '.pq']

    def save(self, data: pd.DataFrame, file_path: Path, **kwargs) -> None:
        parquet_options = {'compression': 'snappy', 'index': False, **kwargs}
        data.to_parquet(file_path, **parquet_options)
        logger.debug(f"Saved Parquet: {file_path} ({len(data)} rows)")

    def load(self, file_path: Path, **kwargs) -> pd.DataFrame:
        try:
            data = pd.read_parquet(file_path, **kwargs)
        except (OSError, ValueError, ImportError) as e:
            raise DataValidationError(
                f"Cannot load Parquet file: {e}", context={'file_path': str(file_path)}, cause=e
            ) from e
        logger.debug(f"Loaded Parquet: {file_path} ({len(data)} rows)")
        return data

HANDLERS: Dict[str, BaseFileHandler] = {
    'csv': CSVHandler(),
    'parquet': ParquetHandler(),
}

def get_handler(file_path: Union[str, Path], format_hint: Optional[str] = None) -> BaseFileHandler:
    """Get the handler for a path, or for an explicit format hint"""
    if format_hint:
        handler = HANDLERS.get(format_hint.lower())
        if handler is None:
            raise DataValidationError(f"Unknown format hint: {format_hint}")
        return handler

    for handler in HANDLERS.values():
        if handler.can_handle(file_path):
            return handler

    raise DataValidationError(f"Cannot determine table format for: {file_path}")

# ============================================
# Public API
# ============================================

def apply_column_aliases(df: pd.DataFrame, aliases: Optional[Mapping[str, str]]) -> pd.DataFrame:
    """
    Rename source-specific columns to canonical names

    A source column is renamed only when the canonical name is not already
    present; having both is ambiguous and rejected.
    """
    if not aliases:
        return df

    rename = {src: dst for src, dst in aliases.items() if src in df.columns and src != dst}
    clashes = [dst for dst in rename.values() if dst in df.columns]
    if clashes:
        raise SchemaError(
            f"Both source and canonical names present for columns: {sorted(clashes)}",
            invalid_columns=sorted(clashes)
        )

    if rename:
        logger.debug(f"Renaming columns: {rename}")
        df = df.rename(columns=rename)
    return df

def load_table(file_path: Union[str, Path],
               aliases: Optional[Mapping[str, str]] = None,
               format_hint: Optional[str] = None,
               **kwargs) -> pd.DataFrame:
    """
    Load a turbine table from CSV or Parquet

    Args:
        file_path: Source file
        aliases: Optional mapping of source column names to canonical names
        format_hint: 'csv' or 'parquet' when the suffix is not conclusive
        **kwargs: Passed to the pandas reader

    Returns:
        DataFrame with canonical column names
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataValidationError(f"File not found: {file_path}", context={'file_path': str(file_path)})

    handler = get_handler(file_path, format_hint)

    with Timer(f"load_table_{file_path.name}", auto_log=False) as timer:
        data = handler.load(file_path, **kwargs)

    logger.info(f"Loaded {len(data)} rows x {data.shape[1]} columns from {file_path} "
                f"in {timer.result.duration_str}")
    return apply_column_aliases(data, aliases)

def save_table(data: pd.DataFrame, file_path: Union[str, Path],
               format_hint: Optional[str] = None, **kwargs) -> Path:
    """Save a table, creating the parent directory if needed"""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    get_handler(file_path, format_hint).save(data, file_path, **kwargs)
    return file_path

def _json_serializer(obj):
    """JSON serializer for numpy types"""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

def save_json(data: Dict[str, Any], file_path: Union[str, Path]) -> Path:
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, default=_json_serializer)
    logger.debug(f"Saved JSON: {file_path}")
    return file_path
