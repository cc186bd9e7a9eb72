from __future__ import annotations
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from .utils import is_number
from .errors import UnsupportedComparisonError, UnsupportedQueryError

_MISSING = object()


@dataclass(frozen=True)
class QueryOptions:
    """
    Post-processing for find(). Applied in this order: sort, skip/limit, projection.

    sort:       ordered (field, direction) pairs, direction 1 = ascending, -1 = descending
    projection: field names to keep, None keeps whole records
    """
    sort: Tuple[Tuple[str, int], ...] = ()
    projection: Optional[Tuple[str, ...]] = None
    skip: int = 0
    limit: Optional[int] = None

    @classmethod
    def coerce(cls, options: Union["QueryOptions", Mapping[str, Any], None]) -> "QueryOptions":
        """Accept the JSON-shaped options surface ({"sort": {...}, "projection": {...}})."""
        if options is None:
            return cls()
        if isinstance(options, QueryOptions):
            return options
        if not isinstance(options, Mapping):
            raise UnsupportedQueryError(f"options must be an object, got {type(options).__name__}")
        unknown = set(options) - {"sort", "projection", "skip", "limit"}
        if unknown:
            raise UnsupportedQueryError(f"unknown options: {', '.join(sorted(unknown))}")
        return cls(
            sort=_coerce_sort(options.get("sort")),
            projection=_coerce_projection(options.get("projection")),
            skip=_coerce_count("skip", options.get("skip", 0)) or 0,
            limit=_coerce_count("limit", options.get("limit")),
        )


def _coerce_sort(spec: Any) -> Tuple[Tuple[str, int], ...]:
    if spec is None:
        return ()
    if isinstance(spec, Mapping):
        pairs = list(spec.items())
    elif isinstance(spec, (list, tuple)):
        pairs = list(spec)
    else:
        raise UnsupportedQueryError(f"sort must map field names to 1 or -1, got {spec!r}")
    out = []
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2 or not isinstance(pair[0], str):
            raise UnsupportedQueryError(f"sort entries must be (field, direction) pairs, got {pair!r}")
        fname, direction = pair
        if isinstance(direction, bool) or direction not in (1, -1):
            raise UnsupportedQueryError(f"sort direction for {fname!r} must be 1 or -1, got {direction!r}")
        out.append((fname, int(direction)))
    return tuple(out)


def _coerce_projection(spec: Any) -> Optional[Tuple[str, ...]]:
    if spec is None:
        return None
    if isinstance(spec, Mapping):
        for fname, flag in spec.items():
            if flag is not True and (isinstance(flag, bool) or flag != 1):
                raise UnsupportedQueryError(f"projection of {fname!r} must be 1, got {flag!r}")
        return tuple(spec)
    if isinstance(spec, str):
        return (spec,)
    return tuple(spec)


def _coerce_count(name: str, v: Any) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise UnsupportedQueryError(f"{name} must be a non-negative integer, got {v!r}")
    return v


def _compare_values(a: Any, b: Any, fname: str) -> int:
    # Missing and null sort before everything else
    a_none = a is _MISSING or a is None
    b_none = b is _MISSING or b is None
    if a_none or b_none:
        return int(b_none) - int(a_none) if not (a_none and b_none) else 0
    if not ((is_number(a) and is_number(b)) or (isinstance(a, str) and isinstance(b, str))):
        raise UnsupportedComparisonError(
            f"cannot sort on {fname!r}: {type(a).__name__} and {type(b).__name__} are not comparable"
        )
    return (a > b) - (a < b)


def sort_records(records: List[Dict[str, Any]], sort: Iterable[Tuple[str, int]]) -> List[Dict[str, Any]]:
    """
    Multi-key sort: the first key that tells two records apart decides.
    Records no key separates keep their relative order.
    """
    keys = list(sort)
    if not keys:
        return list(records)

    def cmp(a: Dict[str, Any], b: Dict[str, Any]) -> int:
        for fname, direction in keys:
            c = _compare_values(a.get(fname, _MISSING), b.get(fname, _MISSING), fname)
            if c:
                return c * direction
        return 0

    return sorted(records, key=cmp_to_key(cmp))


def project(record: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    return {f: record[f] for f in fields if f in record}


def apply_options(records: List[Dict[str, Any]], options: Optional[QueryOptions]) -> List[Dict[str, Any]]:
    if options is None:
        return records
    res = sort_records(records, options.sort)
    if options.skip or options.limit is not None:
        end = None if options.limit is None else options.skip + options.limit
        res = res[options.skip:end]
    if options.projection is not None:
        res = [project(r, options.projection) for r in res]
    return res
