"""Sorting helper for repository list queries."""

from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

from app.core.database import Base


def apply_order_by(
    query: Query,  # type: ignore[type-arg]
    model: type[Base],
    order_by: str | None,
    allowed_fields: Collection[str] | None = None,
    default_field: str = "created_at",
    default_direction: str = "desc",
) -> Query:  # type: ignore[type-arg]
    """Apply a ``field:direction`` sort string (e.g. ``"code:asc"``) to a query.

    Unknown fields, or fields outside ``allowed_fields``, fall back to the
    default ordering rather than raising.
    """
    field = default_field
    direction = default_direction

    if order_by:
        candidate_field, _, candidate_direction = order_by.partition(":")
        known = hasattr(model, candidate_field)
        if known and (allowed_fields is None or candidate_field in allowed_fields):
            field = candidate_field
            direction = candidate_direction or "asc"
            if direction not in ("asc", "desc"):
                direction = default_direction

    order_func = asc if direction == "asc" else desc
    # Primary key as secondary sort keeps pages stable.
    return query.order_by(order_func(getattr(model, field)), asc(model.id))
