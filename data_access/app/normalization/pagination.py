"""
Pagination normalizer.
"""

from typing import Any, Mapping, Optional

from pydantic import BaseModel

from .resolver import MISSING, lookup_path, parse_bool, parse_number

DEFAULT_LIMIT = 20


class PaginationMeta(BaseModel):
    """Canonical pagination block; every field is always populated."""

    page: int = 1
    limit: int = DEFAULT_LIMIT
    total: int = 0
    total_pages: int = 0
    has_next_page: bool = False
    has_previous_page: bool = False


def _first(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = lookup_path(raw, name)
        if value is not MISSING and value is not None:
            return value
    return MISSING


def _integer(raw: Mapping[str, Any], default: int, *names: str) -> int:
    value = parse_number(_first(raw, *names))
    if value is MISSING:
        return default
    return int(value)


def _boolean(raw: Mapping[str, Any], *names: str) -> Optional[bool]:
    value = parse_bool(_first(raw, *names))
    return None if value is MISSING else value


def normalize_pagination(raw: Optional[Any], default_limit: int = DEFAULT_LIMIT) -> Optional[PaginationMeta]:
    """
    Normalize a raw pagination block.

    Accepts camelCase or snake_case keys. ``total_pages`` is taken as sent and
    never derived from ``total / limit``; when it is missing ``has_next_page``
    is therefore False unless the server sent ``hasNextPage``. Returns None
    when the server sent no pagination block.
    """
    if raw is None:
        return None
    if isinstance(raw, PaginationMeta):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        return None

    page = _integer(raw, 1, "page", "currentPage", "current_page")
    limit = _integer(raw, default_limit, "limit", "pageSize", "page_size", "per_page")
    total = _integer(raw, 0, "total", "totalItems", "total_items", "count")
    total_pages = _integer(raw, 0, "totalPages", "total_pages")

    has_next = _boolean(raw, "hasNextPage", "has_next_page", "hasNext", "has_next")
    if has_next is None:
        has_next = page < total_pages
    has_previous = _boolean(raw, "hasPreviousPage", "has_previous_page", "hasPrev", "has_prev")
    if has_previous is None:
        has_previous = page > 1

    return PaginationMeta(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next_page=has_next,
        has_previous_page=has_previous,
    )
