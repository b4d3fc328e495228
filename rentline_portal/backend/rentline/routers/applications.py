# backend/rentline/routers/applications.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_actor
from ..domain.enrichment import RowQuery, enrich_applications
from ..domain.scoping import Actor
from ..schemas import (
    Application,
    ApplicationIn,
    ApplicationStatusIn,
    EnrichedApplication,
    RecommendationIn,
)
from ..services import transitions
from ..services.views import open_view, rows_in_scope
from ..store.base import EntityStore
from ..store.factory import get_store
from .common import row_query

router = APIRouter(prefix="/applications", tags=["applications"])


@router.get("", response_model=list[EnrichedApplication])
async def list_applications(
    query: RowQuery = Depends(row_query),
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    session = await open_view(store, actor, "applications")
    return enrich_applications(rows_in_scope(session, "applications"), session.graph, query)


@router.post("", response_model=Application)
async def submit_application(
    payload: ApplicationIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    details = payload.model_dump(mode="json", by_alias=True, exclude={"unit_id"})
    return await transitions.submit_application(store, actor, unit_id=payload.unit_id, details=details)


@router.patch("/{application_id}/status", response_model=Application)
async def update_application_status(
    application_id: str,
    payload: ApplicationStatusIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.update_application_status(
        store, actor, application_id, status=payload.status, notes=payload.notes
    )


@router.patch("/{application_id}/recommendation", response_model=Application)
async def update_recommendation(
    application_id: str,
    payload: RecommendationIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.update_recommendation(
        store, actor, application_id, recommendation=payload.recommendation, notes=payload.notes
    )
