from .database import Database
from .config import StoreConfig
from .results import QueryOptions
from .query import QueryKind, ParsedQuery, parse_query
from .codec import MARKER_ACTIVE, MARKER_DELETED, encode, decode
from .errors import (
    DocStoreError,
    StorageIOError,
    CorruptRecordError,
    InvalidRecordError,
    QueryError,
    UnsupportedQueryError,
    UnsupportedComparisonError,
    UnsupportedFieldTypeError,
)

__all__ = [
    "Database",
    "StoreConfig",
    "QueryOptions",
    "QueryKind",
    "ParsedQuery",
    "parse_query",
    "MARKER_ACTIVE",
    "MARKER_DELETED",
    "encode",
    "decode",
    "DocStoreError",
    "StorageIOError",
    "CorruptRecordError",
    "InvalidRecordError",
    "QueryError",
    "UnsupportedQueryError",
    "UnsupportedComparisonError",
    "UnsupportedFieldTypeError",
]
