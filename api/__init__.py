# API module - CSV I/O, session storage and settings

from .csv_io import (
    CsvManager,
    CsvFormatError,
    AVAILABLE_FILES,
    get_column_definitions,
    get_column_order,
    get_empty_row,
    sanitize_rows,
    ColumnDefinition,
)
from .session_store import (
    Dataset,
    SessionStore,
    InMemorySessionStore,
    SessionNotFoundError,
    DatasetNotFoundError,
)

__all__ = [
    "CsvManager",
    "CsvFormatError",
    "AVAILABLE_FILES",
    "get_column_definitions",
    "get_column_order",
    "get_empty_row",
    "sanitize_rows",
    "ColumnDefinition",
    "Dataset",
    "SessionStore",
    "InMemorySessionStore",
    "SessionNotFoundError",
    "DatasetNotFoundError",
]
