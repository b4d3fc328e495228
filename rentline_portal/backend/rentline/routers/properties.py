# backend/rentline/routers/properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_actor
from ..domain.enrichment import RowQuery, enrich_units
from ..domain.scoping import Actor
from ..schemas import EnrichedUnit, Property
from ..services.views import open_view, rows_in_scope
from ..store.base import EntityStore
from ..store.factory import get_store
from .common import row_query

router = APIRouter(prefix="/properties", tags=["properties"])


@router.get("", response_model=list[Property])
async def list_properties(
    query: RowQuery = Depends(row_query),
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    session = await open_view(store, actor, "properties")
    return query.apply(
        rows_in_scope(session, "properties"),
        default_sort="created_at",
        text=lambda p: " ".join([p.name, p.address, p.city, p.county]),
    )


@router.get("/units", response_model=list[EnrichedUnit])
async def list_units(
    query: RowQuery = Depends(row_query),
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    session = await open_view(store, actor, "properties")
    return enrich_units(rows_in_scope(session, "units"), session.graph, query)
