"""Translate generic query, sort and projection parameters for the store.

Queries become TinyDB query conditions. Sort tokens become an ordered
``field -> 1 | -1`` mapping applied through a composite comparator, and
field allow-lists become projections that always keep ``id``.
"""

from __future__ import annotations

import re
from functools import cmp_to_key, reduce
from typing import Any, Iterable, Mapping, Optional, Sequence

from tinydb import Query
from tinydb.queries import QueryInstance
from tinydb.utils import freeze

from docstore_driver.core.exceptions import InvalidQueryError, InvalidSortDirectionError
from docstore_driver.core.models import Document

ID_FIELD = "id"
ASCENDING = 1
DESCENDING = -1
INCLUDE = 1

_SORT_TOKEN = re.compile(r"^\s*([^()\s]*)\s*\((.+)\)\s*$")
_DIRECTIONS = {"asc": ASCENDING, "desc": DESCENDING}
_MISSING = object()


# =========================
# Sort
# =========================
def parse_order_token(token: str) -> tuple[str, int]:
    """Split ``"asc(field)"`` into ``("field", 1)``."""
    match = _SORT_TOKEN.match(token) if isinstance(token, str) else None
    if match is None:
        raise InvalidSortDirectionError(str(token))
    direction, field = match.group(1), match.group(2).strip()
    if direction not in _DIRECTIONS:
        raise InvalidSortDirectionError(direction)
    return field, _DIRECTIONS[direction]


def build_sort_spec(order: Optional[Sequence[str]]) -> dict[str, int]:
    """Return the ordered sort directive for ``order`` tokens.

    A later token for a field already present overrides its direction but
    keeps the position of the first occurrence.
    """
    spec: dict[str, int] = {}
    for token in order or ():
        field, direction = parse_order_token(token)
        spec[field] = direction
    return spec


def _type_rank(value: Any) -> int:
    if value is _MISSING:
        return 0
    if value is None:
        return 1
    if isinstance(value, bool):
        return 4
    if isinstance(value, (int, float)):
        return 2
    if isinstance(value, str):
        return 3
    if isinstance(value, (list, tuple)):
        return 5
    return 6


def _cmp(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


def compare_values(left: Any, right: Any) -> int:
    """Total order over document values, across types."""
    left_rank, right_rank = _type_rank(left), _type_rank(right)
    if left_rank != right_rank:
        return _cmp(left_rank, right_rank)
    if left_rank in (0, 1):
        return 0
    if left_rank == 5:
        for left_item, right_item in zip(left, right):
            result = compare_values(left_item, right_item)
            if result:
                return result
        return _cmp(len(left), len(right))
    if left_rank == 6:
        if not isinstance(left, Mapping) or not isinstance(right, Mapping):
            return _cmp(repr(left), repr(right))
        left_keys, right_keys = sorted(left), sorted(right)
        for left_key, right_key in zip(left_keys, right_keys):
            result = _cmp(left_key, right_key) or compare_values(left[left_key], right[right_key])
            if result:
                return result
        return _cmp(len(left_keys), len(right_keys))
    return _cmp(left, right)


def sort_documents(documents: Iterable[Document], sort_spec: Mapping[str, int]) -> list[Document]:
    """Return ``documents`` ordered by the composite comparator."""
    items = list(documents)
    if not sort_spec:
        return items

    def _compare(left: Document, right: Document) -> int:
        for field, direction in sort_spec.items():
            result = compare_values(
                deep_get(left, field, _MISSING), deep_get(right, field, _MISSING)
            )
            if result:
                return result * direction
        return 0

    return sorted(items, key=cmp_to_key(_compare))


# =========================
# Projection
# =========================
def build_projection(fields: Optional[Sequence[str]]) -> Optional[dict[str, int]]:
    """Return the include-projection for ``fields`` or None for all fields."""
    if not fields:
        return None
    names = list(fields)
    if ID_FIELD not in names:
        names.append(ID_FIELD)
    return {name: INCLUDE for name in names}


def apply_projection(document: Document, projection: Optional[Mapping[str, int]]) -> Document:
    """Keep only the projected fields of ``document``."""
    if projection is None:
        return document
    projected: Document = {}
    for field in projection:
        value = deep_get(document, field, _MISSING)
        if value is not _MISSING:
            deep_set(projected, field, value)
    return projected


def deep_get(doc: Mapping[str, Any], dotted_key: str, default: Any = None) -> Any:
    cur: Any = doc
    for part in dotted_key.split("."):
        if isinstance(cur, Mapping) and part in cur:
            cur = cur[part]
        else:
            return default
    return cur


def deep_set(doc: dict, dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cur = doc
    for part in parts[:-1]:
        if part not in cur or not isinstance(cur[part], dict):
            cur[part] = {}
        cur = cur[part]
    cur[parts[-1]] = value


# =========================
# Query
# =========================
def _field_query(dotted_key: str) -> Query:
    if not dotted_key:
        raise InvalidQueryError("query field names must be non-empty")
    path = Query()
    for part in dotted_key.split("."):
        path = path[part]
    return path


def _equals(value: Any, argument: Any) -> bool:
    return _type_rank(value) == _type_rank(argument) and compare_values(value, argument) == 0


def _is_member(value: Any, members: tuple) -> bool:
    return any(_equals(value, member) for member in members)


def _compare_with(value: Any, operator: str, argument: Any) -> bool:
    if _type_rank(value) != _type_rank(argument):
        return False
    result = compare_values(value, argument)
    if operator == "$gt":
        return result > 0
    if operator == "$gte":
        return result >= 0
    if operator == "$lt":
        return result < 0
    return result <= 0


def _regex_match(value: Any, pattern: str, flags: int) -> bool:
    return isinstance(value, str) and re.search(pattern, value, flags) is not None


def _has_size(value: Any, size: int) -> bool:
    return isinstance(value, list) and len(value) == size


def _parse_regex(argument: Any) -> tuple[str, int]:
    if isinstance(argument, str):
        return argument, 0
    if isinstance(argument, Mapping):
        options = str(argument.get("options", ""))
        flags = 0
        if "i" in options:
            flags |= re.IGNORECASE
        if "m" in options:
            flags |= re.MULTILINE
        if "s" in options:
            flags |= re.DOTALL
        return str(argument.get("pattern", "")), flags
    raise InvalidQueryError("$regex must be a string or {pattern, options}")


def _operator_query(path: Query, operator: str, argument: Any) -> QueryInstance:
    if operator == "$eq":
        return path.test(_equals, freeze(argument))
    if operator == "$ne":
        return ~path.test(_equals, freeze(argument))
    if operator in ("$gt", "$gte", "$lt", "$lte"):
        return path.test(_compare_with, operator, freeze(argument))
    if operator in ("$in", "$nin"):
        if not isinstance(argument, (list, tuple)):
            raise InvalidQueryError(f"{operator} requires a list")
        members = path.test(_is_member, freeze(list(argument)))
        return members if operator == "$in" else ~members
    if operator == "$exists":
        return path.exists() if argument else ~path.exists()
    if operator == "$regex":
        pattern, flags = _parse_regex(argument)
        try:
            re.compile(pattern, flags)
        except re.error as exc:
            raise InvalidQueryError(f"invalid $regex pattern: {exc}") from exc
        return path.test(_regex_match, pattern, flags)
    if operator == "$size":
        if not isinstance(argument, int) or isinstance(argument, bool):
            raise InvalidQueryError("$size requires an integer")
        return path.test(_has_size, argument)
    raise InvalidQueryError(f"Unsupported operator: {operator}")


def _is_operator_map(value: Any) -> bool:
    if not isinstance(value, Mapping) or not value:
        return False
    flags = [str(key).startswith("$") for key in value]
    if any(flags) and not all(flags):
        raise InvalidQueryError("cannot mix operators and plain fields in one condition")
    return all(flags)


def _all_of(conditions: list[QueryInstance]) -> QueryInstance:
    if not conditions:
        return Query().noop()
    return reduce(lambda left, right: left & right, conditions)


def _logical_query(operator: str, clauses: Any) -> QueryInstance:
    if operator in ("$and", "$or"):
        if not isinstance(clauses, (list, tuple)) or not clauses:
            raise InvalidQueryError(f"{operator} requires a non-empty list of clauses")
        parts = [translate_query(clause) for clause in clauses]
        if operator == "$and":
            return _all_of(parts)
        return reduce(lambda left, right: left | right, parts)
    if operator == "$not":
        if not isinstance(clauses, Mapping):
            raise InvalidQueryError("$not requires a single clause object")
        return ~translate_query(clauses)
    raise InvalidQueryError(f"Unsupported logical operator: {operator}")


def translate_query(query: Optional[Mapping[str, Any]]) -> QueryInstance:
    """Return a TinyDB condition equivalent to ``query``.

    ``None`` and ``{}`` match every document.
    """
    if query is None:
        return Query().noop()
    if not isinstance(query, Mapping):
        raise InvalidQueryError("Query must be a mapping")

    conditions: list[QueryInstance] = []
    for key, condition in query.items():
        if not isinstance(key, str):
            raise InvalidQueryError(f"query keys must be strings, got {key!r}")
        if key.startswith("$"):
            conditions.append(_logical_query(key, condition))
            continue
        path = _field_query(key)
        if _is_operator_map(condition):
            conditions.extend(
                _operator_query(path, operator, argument)
                for operator, argument in condition.items()
            )
        else:
            conditions.append(path.test(_equals, freeze(condition)))
    return _all_of(conditions)


def validate_window(limit: Optional[int], skip: Optional[int]) -> tuple[int, int]:
    """Normalize pagination arguments; ``None`` and ``0`` disable each one."""
    values = []
    for name, value in (("limit", limit), ("skip", skip)):
        if value is None:
            values.append(0)
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidQueryError(f"{name} must be an integer")
        if value < 0:
            raise InvalidQueryError(f"{name} must not be negative")
        values.append(value)
    return values[0], values[1]


def apply_window(documents: list[Document], limit: int, skip: int) -> list[Document]:
    """Skip ``skip`` documents then keep at most ``limit``."""
    if skip:
        documents = documents[skip:]
    if limit:
        documents = documents[:limit]
    return documents


__all__ = [
    "ID_FIELD",
    "ASCENDING",
    "DESCENDING",
    "parse_order_token",
    "build_sort_spec",
    "compare_values",
    "sort_documents",
    "build_projection",
    "apply_projection",
    "translate_query",
    "validate_window",
    "apply_window",
    "deep_get",
    "deep_set",
]
