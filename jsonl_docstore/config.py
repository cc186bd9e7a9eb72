from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Tuple, Union


@dataclass(frozen=True)
class StoreConfig:
    """Settings for one data file. The encoding must be ASCII-compatible."""

    path: Union[str, "os.PathLike[str]"]
    fulltext_fields: Tuple[str, ...] = field(default_factory=tuple)
    fsync: bool = False
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        # Accept any iterable of names, store an immutable tuple
        if isinstance(self.fulltext_fields, str):
            object.__setattr__(self, "fulltext_fields", (self.fulltext_fields,))
        else:
            object.__setattr__(self, "fulltext_fields", tuple(self.fulltext_fields))
