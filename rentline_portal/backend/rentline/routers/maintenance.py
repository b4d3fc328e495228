# backend/rentline/routers/maintenance.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_actor
from ..domain.enrichment import RowQuery, enrich_maintenance
from ..domain.scoping import Actor
from ..schemas import (
    CommentIn,
    EnrichedMaintenanceRequest,
    MaintenanceIn,
    MaintenanceRequest,
    MaintenanceStatusIn,
)
from ..services import transitions
from ..services.views import open_view, rows_in_scope
from ..store.base import EntityStore
from ..store.factory import get_store
from .common import row_query

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("", response_model=list[EnrichedMaintenanceRequest])
async def list_requests(
    query: RowQuery = Depends(row_query),
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    session = await open_view(store, actor, "maintenance")
    return enrich_maintenance(rows_in_scope(session, "maintenance"), session.graph, query)


@router.post("", response_model=MaintenanceRequest)
async def open_request(
    payload: MaintenanceIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.open_maintenance_request(
        store,
        actor,
        unit_id=payload.unit_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        priority=payload.priority,
    )


@router.patch("/{request_id}/status", response_model=MaintenanceRequest)
async def update_request_status(
    request_id: str,
    payload: MaintenanceStatusIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.update_maintenance_status(store, actor, request_id, status=payload.status)


@router.post("/{request_id}/comments", response_model=MaintenanceRequest)
async def add_comment(
    request_id: str,
    payload: CommentIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.add_maintenance_comment(store, actor, request_id, content=payload.content)
