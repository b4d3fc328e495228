# backend/rentline/routers/messages.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_actor
from ..domain.enrichment import RowQuery, enrich_messages, person_ref
from ..domain.scoping import Actor
from ..schemas import EnrichedMessage, Message, MessageIn, PersonRef
from ..services import transitions
from ..services.views import open_view, rows_in_scope
from ..store.base import EntityStore
from ..store.factory import get_store
from .common import row_query

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("", response_model=list[EnrichedMessage])
async def list_messages(
    query: RowQuery = Depends(row_query),
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    session = await open_view(store, actor, "messages")
    return enrich_messages(rows_in_scope(session, "messages"), session.graph, query)


@router.get("/contacts", response_model=list[PersonRef])
async def list_contacts(
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    """Users the actor may start a conversation with, sorted by name."""
    session = await open_view(store, actor, "messages")
    users = [u for u in session.graph.users if u.id in session.scoped.contacts]
    users.sort(key=lambda u: (u.first_name.lower(), u.last_name.lower()))
    return [person_ref(u) for u in users]


@router.post("", response_model=Message)
async def send_message(
    payload: MessageIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.send_message(
        store, actor, receiver_id=payload.receiver_id, subject=payload.subject, content=payload.content
    )


@router.post("/{message_id}/read", response_model=Message)
async def mark_read(
    message_id: str,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.mark_message_read(store, actor, message_id)
