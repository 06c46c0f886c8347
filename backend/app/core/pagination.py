"""Pagination & Sorting — normalizes list query parameters.

Invariants:
    - page >= 1, 1 <= limit <= MAX_LIMIT, skip = (page - 1) * limit
    - Non-numeric page/limit fall back to the defaults instead of failing the request
    - totalPages = ceil(total / limit); hasMore = page < totalPages
    - Sort order is "asc" only when explicitly requested, otherwise "desc"
    - Sort field outside the allow-list falls back to the first allowed field

Design Decisions:
    - Raw strings in, typed values out: FastAPI hands query params through
      untouched so malformed paging never produces a 400
"""

import math
from dataclasses import dataclass
from typing import Literal, Sequence

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class PaginationParams:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _to_int(value: str | int | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_pagination(
    page: str | int | None, limit: str | int | None,
    default_limit: int = DEFAULT_LIMIT, max_limit: int = MAX_LIMIT,
) -> PaginationParams:
    """Clamp page/limit query values into a valid window."""
    parsed_page = max(1, _to_int(page, DEFAULT_PAGE))
    parsed_limit = min(max_limit, max(1, _to_int(limit, default_limit)))
    return PaginationParams(page=parsed_page, limit=parsed_limit)


def build_pagination(params: PaginationParams, total: int) -> dict:
    """Pagination block of the paginated envelope."""
    total_pages = math.ceil(total / params.limit) if total else 0
    return {
        "page": params.page,
        "limit": params.limit,
        "total": total,
        "totalPages": total_pages,
        "hasMore": params.page < total_pages,
    }


def resolve_sort(
    sort_by: str | None, sort_order: str | None, allowed: Sequence[str],
) -> tuple[str, SortOrder]:
    """Pick a safe sort field and direction.

    sort_by defaults to createdAt; anything outside `allowed` is replaced by
    allowed[0].
    """
    order: SortOrder = "asc" if sort_order == "asc" else "desc"
    field = sort_by or "createdAt"
    if field not in allowed:
        field = allowed[0]
    return field, order


def parse_bool_flag(value: str | None) -> bool | None:
    """Query flag: None when absent, True only for the literal "true"."""
    if value is None:
        return None
    return value == "true"


@dataclass(frozen=True)
class ListQuery:
    """Normalized list request: page window, free-text search, sort request."""
    pagination: PaginationParams
    search: str | None = None
    sort_by: str | None = None
    sort_order: str | None = None
