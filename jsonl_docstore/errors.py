from __future__ import annotations
from typing import Optional


class DocStoreError(Exception):
    """Base exception for all document store errors."""
    pass


class StorageIOError(DocStoreError, OSError):
    """Reading or writing the data file failed."""
    pass


class CorruptRecordError(DocStoreError):
    """
    A log line could not be parsed back into a record.
    The store never tries to repair the file.
    """

    def __init__(self, msg: str, *, line_no: Optional[int] = None, offset: Optional[int] = None) -> None:
        where = []
        if line_no is not None:
            where.append(f"line {line_no}")
        if offset is not None:
            where.append(f"offset {offset}")
        if where:
            msg = f"{msg} ({', '.join(where)})"
        super().__init__(msg)
        self.line_no = line_no
        self.offset = offset


class InvalidRecordError(DocStoreError, ValueError):
    """Record is not a JSON object or cannot be serialized."""
    pass


class QueryError(DocStoreError):
    pass


class UnsupportedQueryError(QueryError):
    """Query shape or operator is not recognized."""
    pass


class UnsupportedComparisonError(QueryError):
    """Ordering operator applied to values that have no common order."""
    pass


class UnsupportedFieldTypeError(QueryError):
    """Full-text field holds something other than a string."""
    pass
