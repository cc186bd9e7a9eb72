from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from .codec import StoredRecord
from .utils import is_number, json_equal, tokenize
from .errors import UnsupportedComparisonError, UnsupportedFieldTypeError, UnsupportedQueryError

logger = logging.getLogger(__name__)

FIELD_OPS = ("$eq", "$gt", "$lt", "$in")
BOOL_OPS = ("$and", "$or")
TEXT_OP = "$text"

_MISSING = object()


class QueryKind(Enum):
    FIELD = "field"
    BOOLEAN = "boolean"
    TEXT = "text"


@dataclass(frozen=True)
class Condition:
    field: str
    op: str
    arg: Any


@dataclass(frozen=True)
class ParsedQuery:
    """
    A query classified once up front. Only the members belonging to `kind`
    are meaningful:
      FIELD   -> conditions
      BOOLEAN -> combinator ("$and" / "$or") and branches
      TEXT    -> text
    """
    kind: QueryKind
    conditions: Tuple[Condition, ...] = ()
    combinator: Optional[str] = None
    branches: Tuple[Tuple[Condition, ...], ...] = ()
    text: Optional[str] = None


def parse_query(query: Any) -> ParsedQuery:
    if isinstance(query, ParsedQuery):
        return query
    if not isinstance(query, Mapping):
        raise UnsupportedQueryError(f"query must be an object, got {type(query).__name__}")

    top_ops = [k for k in query if isinstance(k, str) and k.startswith("$")]
    if not top_ops:
        return ParsedQuery(QueryKind.FIELD, conditions=_parse_field_query(query))

    for k in top_ops:
        if k != TEXT_OP and k not in BOOL_OPS:
            raise UnsupportedQueryError(f"unknown top-level operator {k}")
    if len(query) != 1:
        raise UnsupportedQueryError(f"ambiguous query, {', '.join(sorted(map(str, query)))} cannot be combined")

    if TEXT_OP in query:
        text = query[TEXT_OP]
        if not isinstance(text, str):
            raise UnsupportedQueryError("$text expects a string")
        logger.debug("classified text query %r", text)
        return ParsedQuery(QueryKind.TEXT, text=text)

    op = top_ops[0]
    subs = query[op]
    if not isinstance(subs, (list, tuple)):
        raise UnsupportedQueryError(f"{op} expects a list of field queries")
    branches = []
    for sub in subs:
        if not isinstance(sub, Mapping):
            raise UnsupportedQueryError(f"{op} items must be objects")
        branches.append(_parse_field_query(sub))
    logger.debug("classified %s query with %d branches", op, len(branches))
    return ParsedQuery(QueryKind.BOOLEAN, combinator=op, branches=tuple(branches))


def _parse_field_query(q: Mapping[str, Any]) -> Tuple[Condition, ...]:
    conds: List[Condition] = []
    for field, v in q.items():
        if not isinstance(field, str):
            raise UnsupportedQueryError(f"field name must be a string: {field!r}")
        if field.startswith("$"):
            raise UnsupportedQueryError(f"operator {field} is not allowed inside a field query")
        if isinstance(v, Mapping) and any(isinstance(k, str) and k.startswith("$") for k in v):
            for op, arg in v.items():
                if op not in FIELD_OPS:
                    raise UnsupportedQueryError(f"unknown operator {op!r} on field {field!r}")
                if op == "$in" and not isinstance(arg, (list, tuple)):
                    raise UnsupportedQueryError(f"$in on field {field!r} expects a list")
                # Several operators on one field: all of them must hold
                conds.append(Condition(field, op, arg))
        else:
            conds.append(Condition(field, "$eq", v))
    return tuple(conds)


def _ordered(val: Any, arg: Any, field: str, op: str) -> bool:
    if is_number(val) and is_number(arg):
        pass
    elif isinstance(val, str) and isinstance(arg, str):
        pass
    else:
        raise UnsupportedComparisonError(
            f"{op} cannot compare {type(val).__name__} field {field!r} with {type(arg).__name__}"
        )
    return val > arg if op == "$gt" else val < arg


def check_condition(obj: Dict[str, Any], cond: Condition) -> bool:
    val = obj.get(cond.field, _MISSING)
    if val is _MISSING:
        return False
    if cond.op == "$eq":
        return json_equal(val, cond.arg)
    if cond.op in ("$gt", "$lt"):
        return _ordered(val, cond.arg, cond.field, cond.op)
    if cond.op == "$in":
        return any(json_equal(val, item) for item in cond.arg)
    raise UnsupportedQueryError(f"unknown operator {cond.op!r}")


def match_conditions(obj: Dict[str, Any], conds: Iterable[Condition]) -> bool:
    return all(check_condition(obj, c) for c in conds)


def text_match(obj: Dict[str, Any], text: str, fulltext_fields: Sequence[str]) -> bool:
    """
    The query is lower-cased but not split: it has to equal one whole token of
    some full-text field.
    """
    needle = text.lower()
    hit = False
    for field in fulltext_fields:
        val = obj.get(field, _MISSING)
        if val is _MISSING:
            continue
        if not isinstance(val, str):
            raise UnsupportedFieldTypeError(f"full-text field {field!r} holds {type(val).__name__}, not str")
        if not hit and needle in tokenize(val):
            hit = True
    return hit


def filter_entries(
    entries: Sequence[StoredRecord],
    query: Any,
    fulltext_fields: Sequence[str] = (),
) -> List[StoredRecord]:
    """
    Return the entries matching `query`, keeping file order.
    $and intersects branch results by line, $or concatenates them as they are,
    so a record matched by two branches is returned twice.
    """
    parsed = parse_query(query)
    if parsed.kind is QueryKind.FIELD:
        return [e for e in entries if match_conditions(e.data, parsed.conditions)]
    if parsed.kind is QueryKind.TEXT:
        return [e for e in entries if text_match(e.data, parsed.text or "", fulltext_fields)]
    if parsed.kind is QueryKind.BOOLEAN:
        results = [[e for e in entries if match_conditions(e.data, b)] for b in parsed.branches]
        if parsed.combinator == "$or":
            return [e for res in results for e in res]
        if not results:
            return []
        keep = set.intersection(*({e.offset for e in res} for res in results))
        return [e for e in results[0] if e.offset in keep]
    raise UnsupportedQueryError(f"unsupported query kind {parsed.kind}")
