"""Filtering, ordering and pagination shared by every storage backend."""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Mapping, TypeVar

from pydantic import BaseModel

R = TypeVar("R", bound=BaseModel)

SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class QueryOptions:
    """Pagination and single-field ordering for list/find."""
    limit: int | None = None
    offset: int = 0
    sort_by: str | None = None
    sort_order: SortOrder = "asc"


def matches_filter(record: BaseModel, filter: Mapping[str, Any] | None) -> bool:
    """Exact-match conjunction; keys whose filter value is None are unconstrained."""
    if not filter:
        return True
    for field, expected in filter.items():
        if expected is None:
            continue
        if getattr(record, field, None) != expected:
            return False
    return True


def sort_records(records: list[R], sort_by: str, sort_order: SortOrder = "asc") -> list[R]:
    """
    Stable sort on one field.

    Records whose field is missing or None are kept after the sorted ones in
    their input order; callers should not rely on where nulls land.
    """
    present = [r for r in records if getattr(r, sort_by, None) is not None]
    missing = [r for r in records if getattr(r, sort_by, None) is None]
    present.sort(key=lambda r: _sort_key(getattr(r, sort_by)), reverse=sort_order == "desc")
    return present + missing


def _sort_key(value: Any) -> Any:
    # str enums compare by value
    return getattr(value, "value", value)


def paginate(records: list[R], limit: int | None, offset: int = 0) -> list[R]:
    offset = max(offset or 0, 0)
    if limit is None:
        return records[offset:]
    return records[offset:offset + limit]


def apply_query(
    records: Iterable[R],
    predicate: Callable[[R], bool] | None = None,
    options: QueryOptions | None = None,
) -> list[R]:
    """Filter with ``predicate``, then sort and slice according to ``options``."""
    selected = [r for r in records if predicate is None or predicate(r)]
    if options is None:
        return selected
    if options.sort_by:
        selected = sort_records(selected, options.sort_by, options.sort_order)
    return paginate(selected, options.limit, options.offset)
