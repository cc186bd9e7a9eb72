from __future__ import annotations
from typing import Any, Callable, Dict, Optional

ProgressCallback = Callable[[Dict[str, Any]], None]


class Progress:
    """
    Forwards progress events to a user callback as
    {"phase": "delete.start", "pct": 0, "msg": "..."}.
    Does nothing when no callback is set.
    """
    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._cb = callback

    @property
    def enabled(self) -> bool:
        return self._cb is not None

    def emit(self, phase: str, pct: int = 0, msg: str = "") -> None:
        if self._cb is None:
            return
        self._cb({"phase": phase, "pct": max(0, min(100, int(pct))), "msg": msg})

    def done(self, phase: str, msg: str = "") -> None:
        self.emit(phase, 100, msg)
