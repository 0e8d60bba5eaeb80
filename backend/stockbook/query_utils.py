# Overview: Shared text search, sort and page slicing for listing endpoints.

from __future__ import annotations

from typing import Iterable, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query

from .validation import ValidationError

DEFAULT_SORT = "created_at:desc"


def split_search_terms(search: str | None) -> list[str]:
    if not search:
        return []
    return search.split()


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_search_filter(model, terms: Iterable[str], fields: Sequence[str]):
    """
    Every term must match at least one field (case-insensitive substring).

    Returns None when there is nothing to filter on, so callers can do
    `if clause is not None: query = query.filter(clause)`.
    """
    terms = [t for t in terms if t]
    if not terms or not fields:
        return None

    columns = [getattr(model, f) for f in fields]
    per_term = [
        or_(*(col.ilike(f"%{_escape_like(term)}%", escape="\\") for col in columns))
        for term in terms
    ]
    return and_(*per_term)


def build_sort(model, sort: str | None, allowed_fields: Iterable[str], default: str = DEFAULT_SORT) -> list:
    """
    Translate "field:direction" into ORDER BY clauses.

    Only "desc" sorts descending; any other direction (or none) is ascending.
    The primary key is appended as a tiebreaker so page boundaries are stable.
    """
    sort_key = sort.strip() if sort and sort.strip() else default
    field, _, direction = sort_key.partition(":")
    field = field.strip()

    if field not in set(allowed_fields):
        raise ValidationError(f"Cannot sort by {field!r}")

    column = getattr(model, field)
    descending = direction.strip().lower() == "desc"
    primary = column.desc() if descending else column.asc()

    if field == "id":
        return [primary]
    return [primary, model.id.desc() if descending else model.id.asc()]


def paginate(query: Query, page: int, limit: int) -> dict:
    """
    Slice an ordered query.

    Returns items plus total row count and total page count
    (ceil(total / limit); 0 when nothing matches).
    """
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        raise ValidationError("limit must be >= 1")

    total = query.order_by(None).count()
    total_pages = (total + limit - 1) // limit

    items = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": items,
        "total": total,
        "total_pages": total_pages,
        "current_page": page,
        "limit": limit,
    }
