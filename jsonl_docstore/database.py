from __future__ import annotations
import os
import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from .codec import StoredRecord, encode, decode
from .config import StoreConfig
from .errors import CorruptRecordError
from .progress import Progress, ProgressCallback
from .query import filter_entries, parse_query
from .results import QueryOptions, apply_options
from .storage import FileStorage

logger = logging.getLogger(__name__)

Options = Union[QueryOptions, Mapping[str, Any], None]


class Database:
    """
    Document store over one append-only JSONL file.

    Each line is a status marker ("E" active, "D" deleted) followed by the record
    as canonical JSON. Records are never rewritten; delete flips the marker and
    leaves the bytes in place. Every call re-reads the file, nothing is cached.

    Operations on one Database object are serialized by a lock. Separate
    processes (or separate Database objects on the same file) are not
    coordinated.
    """
    def __init__(
        self,
        path: Union[str, "os.PathLike[str]"],
        fulltext_fields: Sequence[str] = (),
        *,
        fsync: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._config = StoreConfig(path=path, fulltext_fields=fulltext_fields, fsync=fsync)
        self._setup(on_progress)

    @classmethod
    def from_config(cls, config: StoreConfig, on_progress: Optional[ProgressCallback] = None) -> "Database":
        db = cls.__new__(cls)
        db._config = config
        db._setup(on_progress)
        return db

    def _setup(self, on_progress: Optional[ProgressCallback]) -> None:
        self._fs = FileStorage(self._config.path, encoding=self._config.encoding, fsync=self._config.fsync)
        self._progress = Progress(on_progress)
        self._lock = threading.RLock()
        self._open()

    def _open(self) -> None:
        """Create the data file if it does not exist yet."""
        self._progress.emit("open.start", 0, str(self._fs.path))
        self._fs.ensure_exists()
        logger.debug("opened %s, full-text fields %s", self._fs.path, self._config.fulltext_fields)
        self._progress.done("open.done")

    @property
    def path(self) -> str:
        return str(self._fs.path)

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def fulltext_fields(self) -> tuple:
        return self._config.fulltext_fields

    def insert(self, record: Dict[str, Any]) -> int:
        """
        Append a record as a new active line. Returns the byte offset of the line.
        No uniqueness or schema checks are made.
        """
        line = encode(record)
        with self._lock:
            offset = self._fs.append(line)
        self._progress.done("insert.done")
        return offset

    def find(self, query: Mapping[str, Any], options: Options = None) -> List[Dict[str, Any]]:
        """
        Return the active records matching `query` in file order, then sorted,
        sliced and projected according to `options`.

        Query shapes:
          {"field": value, "other": {"$gt": 3}}       fields ANDed; ops $eq/$gt/$lt/$in
          {"$and": [fq, ...]} / {"$or": [fq, ...]}    over field queries
          {"$text": "word"}                            whole-token match on full-text fields
        """
        opts = QueryOptions.coerce(options) if options is not None else None
        with self._lock:
            matched = self._match(query, "find")
        res = apply_options([e.data for e in matched], opts)
        self._progress.done("find.done", f"{len(res)} records")
        return res

    def find_one(self, query: Mapping[str, Any], options: Options = None) -> Optional[Dict[str, Any]]:
        opts = QueryOptions.coerce(options)
        if opts.limit is None:
            opts = QueryOptions(sort=opts.sort, projection=opts.projection, skip=opts.skip, limit=1)
        res = self.find(query, opts)
        return res[0] if res else None

    def count(self, query: Mapping[str, Any]) -> int:
        with self._lock:
            return len(self._match(query, "count"))

    def delete(self, query: Mapping[str, Any]) -> int:
        """
        Logical deletion: flip the marker of every matched line to "D".
        Returns the number of lines tombstoned. When nothing matches the file
        is not touched.

        The rewrite goes through a temp file and an atomic replace, but there
        is no rollback beyond that: a failure after the replace is not undone.
        """
        with self._lock:
            matched = self._match(query, "delete")
            offsets = {e.offset for e in matched}
            self._progress.emit("delete.rewrite", 50, f"{len(offsets)} lines")
            n = self._fs.rewrite_markers(offsets)
        logger.debug("delete tombstoned %d lines", n)
        self._progress.done("delete.done", f"{n} deleted")
        return n

    def stats(self) -> Dict[str, int]:
        with self._lock:
            lines = self._fs.read_all()
        active = sum(1 for ln in lines if ln.is_active)
        return {"active": active, "deleted": len(lines) - active, "lines": len(lines)}

    # ----- internals -----

    def _load_active(self) -> List[StoredRecord]:
        entries: List[StoredRecord] = []
        for ln in self._fs.iter_lines():
            if not ln.is_active:
                continue
            try:
                obj = decode(ln.text)
            except CorruptRecordError as exc:
                raise CorruptRecordError(str(exc), line_no=ln.line_no, offset=ln.offset) from exc
            entries.append(StoredRecord(ln.line_no, ln.offset, obj))
        return entries

    def _match(self, query: Mapping[str, Any], phase: str) -> List[StoredRecord]:
        # Classify before touching the file so a bad query fails fast
        parsed = parse_query(query)
        self._progress.emit(f"{phase}.start", 0)
        entries = self._load_active()
        self._progress.emit(f"{phase}.scan", 50, f"{len(entries)} active records")
        return filter_entries(entries, parsed, self._config.fulltext_fields)
