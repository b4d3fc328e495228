# backend/rentline/routers/payments.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_actor
from ..domain.enrichment import RowQuery, enrich_payments
from ..domain.scoping import Actor
from ..schemas import EnrichedPayment, Payment, PaymentIn, PaymentStatusIn, RecordPaymentIn
from ..services import transitions
from ..services.views import open_view, rows_in_scope
from ..store.base import EntityStore
from ..store.factory import get_store
from .common import row_query

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=list[EnrichedPayment])
async def list_payments(
    query: RowQuery = Depends(row_query),
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    session = await open_view(store, actor, "payments")
    return enrich_payments(rows_in_scope(session, "payments"), session.graph, query)


@router.post("/{payment_id}/record", response_model=Payment)
async def record_payment(
    payment_id: str,
    payload: RecordPaymentIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.record_payment(
        store,
        actor,
        payment_id,
        method=payload.method,
        transaction_ref=payload.transaction_ref,
        notes=payload.notes,
    )


@router.patch("/{payment_id}/status", response_model=Payment)
async def update_payment_status(
    payment_id: str,
    payload: PaymentStatusIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.update_payment_status(
        store, actor, payment_id, status=payload.status, late_fee=payload.late_fee
    )


@router.post("", response_model=Payment)
async def create_payment(
    payload: PaymentIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.create_payment(
        store, actor, lease_id=payload.lease_id, amount=payload.amount, due_date=payload.due_date, notes=payload.notes
    )
