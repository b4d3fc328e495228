# backend/tests/test_scoping.py
from __future__ import annotations

from datetime import datetime

import pytest

from rentline.domain.errors import InvalidRole
from rentline.domain.scoping import Actor, ScopedIds, resolve_scope, restrict, scope
from rentline.schemas import Lease, Unit

from conftest import ADMIN, LANDLORD1, LANDLORD2, TENANT1, TENANT3

TS = datetime(2026, 1, 5, 9, 0, 0)


def test_admin_sees_everything(graph):
    s = scope(ADMIN, graph)
    assert s.properties == {"prop-1", "prop-2"}
    assert len(s.units) == 5
    assert s.payments == {"pay-1", "pay-2", "pay-3", "pay-4"}
    assert s.contacts == {u.id for u in graph.users} - {"user-admin"}


def test_landlord_sees_only_own_portfolio(graph):
    s = scope(LANDLORD1, graph)
    assert s.properties == {"prop-1"}
    assert s.units == {"unit-1a", "unit-1b", "unit-1c"}
    assert s.leases == {"lease-1"}
    assert s.payments == {"pay-1", "pay-2", "pay-3"}
    assert s.maintenance == {"maint-1"}
    assert s.applications == {"app-1"}
    assert s.messages == {"msg-1"}
    assert s.contacts == {"user-tenant1", "user-admin"}
    # applicants are visible, not messageable
    assert "user-tenant3" in s.users

    other = scope(LANDLORD2, graph)
    assert other.properties.isdisjoint(s.properties)
    assert other.payments == {"pay-4"}


def test_tenant_sees_own_rows_and_their_landlord(graph):
    s = scope(TENANT1, graph)
    assert s.leases == {"lease-1"}
    assert s.units == {"unit-1a"}
    assert s.properties == {"prop-1"}
    assert s.payments == {"pay-1", "pay-2", "pay-3"}
    assert s.maintenance == {"maint-1"}
    assert s.contacts == {"user-landlord1", "user-admin"}


def test_applicant_without_lease_only_reaches_admins(graph):
    s = scope(TENANT3, graph)
    assert s.applications == {"app-1", "app-2"}
    assert s.units == {"unit-1b", "unit-2b"}
    assert s.leases == frozenset()
    assert s.contacts == {"user-admin"}


def test_unknown_role_fails_closed(graph):
    rogue = Actor(id="user-admin", role="superuser")
    assert scope(rogue, graph).is_empty()
    with pytest.raises(InvalidRole):
        resolve_scope(rogue, graph)


def test_orphan_unit_drops_out_of_landlord_scope(graph):
    orphan = Unit(
        id="unit-x", property_id="prop-gone", unit_number="X1", rent_amount=1000,
        created_at=TS, updated_at=TS,
    )
    lease = Lease(
        id="lease-x", unit_id="unit-x", tenant_id="user-tenant1", start_date=datetime(2026, 1, 1).date(),
        end_date=datetime(2026, 6, 1).date(), rent_amount=1000, created_at=TS, updated_at=TS,
    )
    g = graph.with_rows(units=[*graph.units, orphan], leases=[*graph.leases, lease])

    s = scope(LANDLORD1, g)
    assert "unit-x" not in s.units
    assert "lease-x" not in s.leases

    # the tenant keeps the lease but the missing unit does not leak in
    t = scope(TENANT1, g)
    assert "lease-x" in t.leases
    assert "unit-x" in t.units
    assert "prop-gone" not in t.properties


def test_restrict_keeps_only_scoped_rows(graph):
    sub = restrict(graph, scope(LANDLORD1, graph))
    assert {p.id for p in sub.properties} == {"prop-1"}
    assert {p.id for p in sub.payments} == {"pay-1", "pay-2", "pay-3"}


def test_contains_rejects_unknown_collection():
    with pytest.raises(KeyError):
        ScopedIds.empty().contains("widgets", "w-1")
