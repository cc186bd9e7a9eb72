from __future__ import annotations
import os
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Union
from .codec import MARKER_ACTIVE, MARKER_DELETED, split_marker
from .errors import CorruptRecordError, StorageIOError

logger = logging.getLogger(__name__)

_ACTIVE_B = MARKER_ACTIVE.encode("ascii")
_DELETED_B = MARKER_DELETED.encode("ascii")


@dataclass(frozen=True)
class LogLine:
    """
    One non-empty line of the data file. line_no is 1-based over non-empty
    lines, offset is the byte position of the marker. Neither changes once the
    line is written.
    """
    line_no: int
    offset: int
    text: str

    @property
    def marker(self) -> str:
        return self.text[0]

    @property
    def is_active(self) -> bool:
        return self.text.startswith(MARKER_ACTIVE)


class FileStorage:
    """
    Append-only line file. Every call opens the file, does its work and closes it
    again; no handle is kept between calls.
    """
    def __init__(self, path: Union[str, os.PathLike], encoding: str = "utf-8", fsync: bool = False) -> None:
        self.path = Path(path)
        self.encoding = encoding
        self.fsync = fsync

    def ensure_exists(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "ab"):
                pass
        except OSError as exc:
            raise StorageIOError(f"cannot create data file {self.path}: {exc}") from exc

    def append(self, line: str) -> int:
        """
        Append one line plus newline. Returns the byte offset the line starts at.
        A torn write is not repaired here.
        """
        data = line.encode(self.encoding) + b"\n"
        try:
            with open(self.path, "ab") as f:
                offset = f.seek(0, os.SEEK_END)
                f.write(data)
                f.flush()
                if self.fsync:
                    os.fsync(f.fileno())
        except OSError as exc:
            raise StorageIOError(f"append to {self.path} failed: {exc}") from exc
        logger.debug("appended line at offset %d (%d bytes)", offset, len(data))
        return offset

    def iter_lines(self) -> Iterator[LogLine]:
        """
        Yield every non-empty line in file order. Blank segments (the one after
        the trailing newline included) are skipped.
        """
        raw = self._read_bytes()
        offset = 0
        line_no = 0
        for chunk in raw.split(b"\n"):
            start = offset
            offset += len(chunk) + 1
            if not chunk.strip():
                continue
            line_no += 1
            try:
                text = chunk.decode(self.encoding)
            except UnicodeDecodeError as exc:
                raise CorruptRecordError(f"undecodable bytes: {exc.reason}", line_no=line_no, offset=start) from exc
            try:
                split_marker(text)
            except CorruptRecordError as exc:
                raise CorruptRecordError(str(exc), line_no=line_no, offset=start) from exc
            yield LogLine(line_no, start, text)

    def read_all(self) -> List[LogLine]:
        return list(self.iter_lines())

    def rewrite_markers(self, offsets: Iterable[int]) -> int:
        """
        Flip the marker of the lines starting at the given offsets from E to D.
        The whole file is rewritten into a temp file and swapped in atomically.
        Lines already tombstoned are left alone. Returns the number of lines flipped.
        """
        targets = sorted(set(offsets))
        if not targets:
            return 0
        buf = bytearray(self._read_bytes())
        flipped = 0
        for off in targets:
            if off < 0 or off >= len(buf) or (off > 0 and buf[off - 1] != ord("\n")):
                raise CorruptRecordError("no line starts at this offset", offset=off)
            marker = bytes(buf[off:off + 1])
            if marker == _DELETED_B:
                continue
            if marker != _ACTIVE_B:
                raise CorruptRecordError(f"unexpected marker {marker!r}", offset=off)
            buf[off:off + 1] = _DELETED_B
            flipped += 1
        if flipped:
            self._write_replace(bytes(buf))
        logger.debug("tombstoned %d of %d target lines in %s", flipped, len(targets), self.path)
        return flipped

    def replace_file(self, tmp_path: Union[str, os.PathLike]) -> None:
        """
        Atomic os.replace and fsync of the parent directory. A symlinked data
        file keeps its link; the file it points to is replaced.
        """
        target = self.path.resolve()
        try:
            os.replace(tmp_path, target)
            if hasattr(os, "O_DIRECTORY"):
                dfd = os.open(target.parent, os.O_RDONLY | os.O_DIRECTORY)
                try:
                    os.fsync(dfd)
                finally:
                    os.close(dfd)
        except OSError as exc:
            raise StorageIOError(f"replace of {self.path} failed: {exc}") from exc

    def _write_replace(self, data: bytes) -> None:
        target = self.path.resolve()
        try:
            fd, tmp = tempfile.mkstemp(prefix=target.name + ".", suffix=".tmp", dir=target.parent)
        except OSError as exc:
            raise StorageIOError(f"cannot create temp file next to {target}: {exc}") from exc
        try:
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                # mkstemp creates 0600; keep the data file's own mode
                shutil.copymode(target, tmp)
            except OSError as exc:
                raise StorageIOError(f"rewrite of {self.path} failed: {exc}") from exc
            self.replace_file(tmp)
        finally:
            # Only left behind when something above failed
            if os.path.exists(tmp):
                os.unlink(tmp)

    def _read_bytes(self) -> bytes:
        try:
            with open(self.path, "rb") as f:
                return f.read()
        except OSError as exc:
            raise StorageIOError(f"read of {self.path} failed: {exc}") from exc
