# backend/rentline/services/snapshot_loader.py
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from ..config import settings
from ..domain.errors import StoreUnavailable
from ..domain.graph import COLLECTIONS, EntityGraph
from ..domain.scoping import Actor, ScopedIds, scope
from ..schemas import Record
from ..store.base import EntityStore, unwrap

log = logging.getLogger("rentline.snapshot")

# every scope needs these to walk property -> unit -> lease and find contacts
SCOPE_BASE = ("users", "properties", "units", "leases")

VIEW_COLLECTIONS: dict[str, tuple[str, ...]] = {
    "dashboard": tuple(COLLECTIONS),
    "properties": SCOPE_BASE,
    "leases": SCOPE_BASE,
    "payments": SCOPE_BASE + ("payments",),
    "maintenance": SCOPE_BASE + ("maintenance",),
    "applications": SCOPE_BASE + ("applications",),
    "messages": SCOPE_BASE + ("messages",),
    "listings": ("properties", "units"),
}


async def load_graph(
    store: EntityStore,
    collections: Iterable[str] = tuple(COLLECTIONS),
    *,
    timeout: Optional[float] = None,
) -> EntityGraph:
    """
    Read the requested collections concurrently and build one snapshot.

    All-or-nothing: a failed envelope, a raised error or a read exceeding the
    timeout fails the whole load with StoreUnavailable.
    """
    names = tuple(dict.fromkeys(collections))
    limit = timeout if timeout is not None else settings.entity_store_timeout_seconds

    async def one(name: str) -> tuple[str, list]:
        try:
            env = await asyncio.wait_for(store.get_all(name), timeout=limit)
        except asyncio.TimeoutError:
            raise StoreUnavailable(f"reading {name} timed out after {limit}s") from None
        return name, unwrap(env, what=name) or []

    tasks = [asyncio.ensure_future(one(n)) for n in names]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        # the first failure decides the load; stop the reads still in flight
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return EntityGraph.build(**dict(results))


class ViewSession:
    """
    Working snapshot for one actor.

    Each reload takes a new load token; a load that finishes after a newer one
    has started is discarded, so switching actors mid-load can never surface
    the previous actor's data. A failed load leaves the session empty.
    """

    def __init__(
        self,
        store: EntityStore,
        actor: Actor,
        collections: Iterable[str] = tuple(COLLECTIONS),
    ) -> None:
        self.store = store
        self.actor = actor
        self.collections = tuple(collections)
        self.graph = EntityGraph.empty()
        self.scoped = ScopedIds.empty()
        self.loading = False
        self.error: Optional[str] = None
        self._token = 0

    @property
    def token(self) -> int:
        return self._token

    def _reset(self) -> None:
        self.graph = EntityGraph.empty()
        self.scoped = ScopedIds.empty()

    async def reload(self) -> bool:
        """Returns False when the result was stale and dropped."""
        self._token += 1
        token = self._token
        actor = self.actor
        self.loading = True

        try:
            graph = await load_graph(self.store, self.collections)
        except StoreUnavailable as e:
            if token != self._token:
                log.debug("ignoring failure of stale load", extra={"actor_id": actor.id, "load_token": token})
                return False
            self._reset()
            self.error = e.message
            self.loading = False
            log.warning("snapshot load failed: %s", e.message, extra={"actor_id": actor.id, "load_token": token})
            raise

        if token != self._token:
            log.debug("discarding stale snapshot", extra={"actor_id": actor.id, "load_token": token})
            return False

        self.graph = graph
        self.scoped = scope(actor, graph)
        self.error = None
        self.loading = False
        return True

    async def switch_actor(self, actor: Actor) -> bool:
        self.actor = actor
        self._reset()
        return await self.reload()

    async def actor_profile_changed(self, actor: Actor) -> bool:
        # profile edits can change what the actor sees (contacts, counterpart rows)
        self.actor = actor
        return await self.reload()

    def replace_row(self, collection: str, record: Record) -> None:
        """Swap in the fresh row an update returned and rescope."""
        rows = [r for r in getattr(self.graph, collection) if r.id != record.id]
        rows.append(record)
        self.graph = self.graph.with_rows(**{collection: rows})
        self.scoped = scope(self.actor, self.graph)
