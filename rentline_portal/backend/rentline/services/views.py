# backend/rentline/services/views.py
from __future__ import annotations

from ..domain.graph import EntityGraph
from ..domain.scoping import Actor, restrict
from ..store.base import EntityStore
from .snapshot_loader import VIEW_COLLECTIONS, ViewSession


async def open_view(store: EntityStore, actor: Actor, view: str) -> ViewSession:
    """Load the collections a screen needs for this actor. Raises StoreUnavailable."""
    session = ViewSession(store, actor, VIEW_COLLECTIONS[view])
    await session.reload()
    return session


def rows_in_scope(session: ViewSession, collection: str) -> list:
    ids = getattr(session.scoped, collection)
    return [r for r in getattr(session.graph, collection) if r.id in ids]


def scoped_graph(session: ViewSession) -> EntityGraph:
    return restrict(session.graph, session.scoped)
