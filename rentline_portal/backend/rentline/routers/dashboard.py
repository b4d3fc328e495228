# backend/rentline/routers/dashboard.py
from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, Query

from ..auth import get_actor
from ..config import settings
from ..domain.dashboard import aggregate, recent_activities
from ..domain.scoping import Actor
from ..schemas import Activity, AdminStats, LandlordStats, TenantStats
from ..services.views import open_view, scoped_graph
from ..store.base import EntityStore
from ..store.factory import get_store

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=Union[AdminStats, LandlordStats, TenantStats])
async def dashboard_stats(
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    """Counters for the actor's role, recomputed from a fresh snapshot on every call."""
    session = await open_view(store, actor, "dashboard")
    return aggregate(actor.role, scoped_graph(session), actor=actor)


@router.get("/activities", response_model=list[Activity])
async def dashboard_activities(
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    session = await open_view(store, actor, "dashboard")
    return recent_activities(scoped_graph(session), limit or settings.activities_default_limit)
