# backend/tests/test_view_session.py
from __future__ import annotations

import asyncio

import pytest

from rentline.domain.errors import StoreUnavailable
from rentline.schemas import Envelope
from rentline.services.snapshot_loader import ViewSession, load_graph
from rentline.store.base import EntityStore, unwrap

from conftest import LANDLORD1, TENANT2


class ProxyStore(EntityStore):
    """Delegates to a real store; subclasses interfere with get_all."""

    def __init__(self, inner: EntityStore) -> None:
        self.inner = inner

    async def get_all(self, collection):
        return await self.inner.get_all(collection)

    async def get_by_id(self, collection, entity_id):
        return await self.inner.get_by_id(collection, entity_id)

    async def get_by_related(self, collection, field, value):
        return await self.inner.get_by_related(collection, field, value)

    async def create(self, collection, payload):
        return await self.inner.create(collection, payload)

    async def update(self, collection, entity_id, patch):
        return await self.inner.update(collection, entity_id, patch)


class GatedStore(ProxyStore):
    def __init__(self, inner: EntityStore) -> None:
        super().__init__(inner)
        self.gate: asyncio.Event | None = None
        self.entered = asyncio.Event()

    async def get_all(self, collection):
        gate = self.gate
        if gate is not None:
            self.entered.set()
            await gate.wait()
        return await self.inner.get_all(collection)


class FailingStore(ProxyStore):
    async def get_all(self, collection):
        if collection == "payments":
            return Envelope.fail("payments table locked")
        return await self.inner.get_all(collection)


class SlowStore(ProxyStore):
    async def get_all(self, collection):
        await asyncio.sleep(1)
        return await self.inner.get_all(collection)


@pytest.mark.asyncio
async def test_stale_load_is_discarded_after_actor_switch(sql_store):
    store = GatedStore(sql_store)
    session = ViewSession(store, LANDLORD1)

    gate = asyncio.Event()
    store.gate = gate
    first = asyncio.create_task(session.reload())
    await store.entered.wait()
    store.gate = None

    assert await session.switch_actor(TENANT2) is True
    assert session.token == 2

    gate.set()
    assert await first is False

    # the landlord's late snapshot never replaced the tenant's
    assert session.actor == TENANT2
    assert session.scoped.leases == {"lease-2"}
    assert session.scoped.properties == {"prop-2"}
    assert session.loading is False


@pytest.mark.asyncio
async def test_failed_load_empties_the_session(sql_store):
    session = ViewSession(sql_store, LANDLORD1)
    assert await session.reload() is True
    assert session.scoped.payments

    session.store = FailingStore(sql_store)
    with pytest.raises(StoreUnavailable):
        await session.reload()
    assert session.scoped.is_empty()
    assert session.graph.payments == ()
    assert session.error == "payments table locked"


@pytest.mark.asyncio
async def test_load_times_out(sql_store):
    with pytest.raises(StoreUnavailable):
        await load_graph(SlowStore(sql_store), ("units",), timeout=0.01)


@pytest.mark.asyncio
async def test_load_graph_reads_only_requested_collections(sql_store):
    g = await load_graph(sql_store, ("properties", "units"))
    assert len(g.units) == 5
    assert g.payments == ()


@pytest.mark.asyncio
async def test_replace_row_rescopes(sql_store):
    session = ViewSession(sql_store, LANDLORD1)
    await session.reload()
    assert "unit-2b" not in session.scoped.units

    moved = unwrap(await sql_store.units.update("unit-2b", {"propertyId": "prop-1"}))
    session.replace_row("units", moved)
    assert "unit-2b" in session.scoped.units


class HangingStore(ProxyStore):
    """payments fails at once; every other read blocks until cancelled."""

    def __init__(self, inner: EntityStore) -> None:
        super().__init__(inner)
        self.cancelled: list[str] = []

    async def get_all(self, collection):
        if collection == "payments":
            return Envelope.fail("payments table locked")
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled.append(collection)
            raise


@pytest.mark.asyncio
async def test_failed_read_cancels_the_reads_still_running(sql_store):
    store = HangingStore(sql_store)
    with pytest.raises(StoreUnavailable):
        await load_graph(store, ("users", "properties", "payments"), timeout=5)
    assert sorted(store.cancelled) == ["properties", "users"]
