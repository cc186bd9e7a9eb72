from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, Tuple
from .utils import canonical_json
from .errors import CorruptRecordError, InvalidRecordError

MARKER_ACTIVE = "E"
MARKER_DELETED = "D"
MARKERS = (MARKER_ACTIVE, MARKER_DELETED)


@dataclass(frozen=True)
class StoredRecord:
    """A decoded active record together with the line it was read from."""
    line_no: int
    offset: int
    data: Dict[str, Any]


def encode(record: Dict[str, Any], marker: str = MARKER_ACTIVE) -> str:
    """
    Serialize a record into one log line: <marker><canonical json>.
    The returned string has no trailing newline.
    """
    if marker not in MARKERS:
        raise ValueError(f"unknown marker: {marker!r}")
    if not isinstance(record, dict):
        raise InvalidRecordError(f"record must be a JSON object, got {type(record).__name__}")
    _check_keys(record)
    try:
        body = canonical_json(record)
    except (TypeError, ValueError) as exc:
        raise InvalidRecordError(f"record is not JSON-serializable: {exc}") from exc
    return marker + body


def _check_keys(obj: Any) -> None:
    # json.dumps would turn 1 into "1" and the record would not read back equal
    if isinstance(obj, dict):
        for k, v in obj.items():
            if not isinstance(k, str):
                raise InvalidRecordError(f"record keys must be strings, got {k!r}")
            _check_keys(v)
    elif isinstance(obj, (list, tuple)):
        for v in obj:
            _check_keys(v)


def split_marker(line: str) -> Tuple[str, str]:
    if not line or line[0] not in MARKERS:
        raise CorruptRecordError(f"line does not start with a status marker: {line[:32]!r}")
    return line[0], line[1:]


def decode(line: str) -> Dict[str, Any]:
    _marker, body = split_marker(line)
    try:
        obj = json.loads(body)
    except json.JSONDecodeError as exc:
        raise CorruptRecordError(f"malformed record json: {exc.msg}") from exc
    if not isinstance(obj, dict):
        raise CorruptRecordError("record json is not an object")
    return obj
