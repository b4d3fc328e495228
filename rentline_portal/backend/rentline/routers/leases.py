# backend/rentline/routers/leases.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_actor
from ..domain.enrichment import RowQuery, enrich_leases
from ..domain.scoping import Actor
from ..schemas import EnrichedLease, Lease, LeaseIn, LeaseStatusIn
from ..services import transitions
from ..services.views import open_view, rows_in_scope
from ..store.base import EntityStore
from ..store.factory import get_store
from .common import row_query

router = APIRouter(prefix="/leases", tags=["leases"])


@router.get("", response_model=list[EnrichedLease])
async def list_leases(
    query: RowQuery = Depends(row_query),
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    session = await open_view(store, actor, "leases")
    return enrich_leases(rows_in_scope(session, "leases"), session.graph, query)


@router.patch("/{lease_id}/status", response_model=Lease)
async def update_lease_status(
    lease_id: str,
    payload: LeaseStatusIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.update_lease_status(
        store, actor, lease_id, status=payload.status, reason=payload.reason
    )


@router.post("", response_model=Lease)
async def create_lease(
    payload: LeaseIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.create_lease(
        store,
        actor,
        unit_id=payload.unit_id,
        tenant_id=payload.tenant_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        rent_amount=payload.rent_amount,
        deposit_amount=payload.deposit_amount,
        payment_frequency=payload.payment_frequency,
        status=payload.status,
        terms=payload.terms,
    )
