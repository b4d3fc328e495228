# backend/rentline/routers/common.py
from __future__ import annotations

from typing import Optional

from fastapi import Query

from ..domain.enrichment import RowQuery


def row_query(
    status: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None, description="case-insensitive text search"),
    sort: Optional[str] = Query(default=None, description="snake_case field, e.g. due_date"),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
) -> RowQuery:
    return RowQuery(status=status, search=q, sort=sort, descending=order == "desc")
