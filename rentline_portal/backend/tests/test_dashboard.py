# backend/tests/test_dashboard.py
from __future__ import annotations

from datetime import date, datetime

import pytest

from rentline.domain.dashboard import aggregate, next_payment_due, occupancy_rate, recent_activities
from rentline.domain.errors import InvalidRole
from rentline.domain.scoping import restrict, scope
from rentline.schemas import Activity

from conftest import ADMIN, LANDLORD1, TENANT1


def test_admin_counts_whole_portfolio(graph):
    stats = aggregate("admin", restrict(graph, scope(ADMIN, graph)))
    assert stats.total_properties == 2
    assert stats.total_units == 5
    assert stats.occupancy_rate == pytest.approx(40.0)
    assert stats.total_revenue == pytest.approx(105000.0)
    assert stats.pending_applications == 2
    assert stats.open_maintenance_requests == 2
    assert stats.overdue_payments == 1
    assert stats.active_leases == 2


def test_landlord_counts_only_their_rows(graph):
    stats = aggregate("landlord", restrict(graph, scope(LANDLORD1, graph)))
    assert stats.my_properties == 1
    assert stats.my_units == 3
    assert stats.occupancy_rate == pytest.approx(100.0 / 3)
    assert stats.pending_applications == 1
    assert stats.open_maintenance_requests == 1
    assert stats.overdue_payments == 1
    assert stats.active_leases == 1


def test_tenant_stats(graph):
    stats = aggregate(
        "tenant", restrict(graph, scope(TENANT1, graph)), actor=TENANT1, now=datetime(2026, 9, 15)
    )
    assert stats.current_lease.id == "lease-1"
    assert stats.next_payment_due.id == "pay-2"
    assert stats.open_maintenance_requests == 1
    assert stats.unread_messages == 0


def test_tenant_stats_need_actor(graph):
    with pytest.raises(ValueError):
        aggregate("tenant", graph)


def test_unknown_role_raises(graph):
    with pytest.raises(InvalidRole):
        aggregate("owner", graph)


def test_occupancy_of_nothing_is_zero():
    assert occupancy_rate(()) == 0.0


def test_next_payment_skips_paid_and_past(graph):
    assert next_payment_due(graph.payments, as_of=date(2026, 10, 2)).id == "pay-3"
    assert next_payment_due(graph.payments, as_of=date(2027, 1, 1)) is None


def test_recent_activities_newest_first(graph):
    extra = Activity(
        id="act-2", type="maintenance_opened", user_id="user-tenant1", description="x",
        created_at=datetime(2026, 2, 1),
    )
    g = graph.with_rows(activities=[*graph.activities, extra])
    assert [a.id for a in recent_activities(g, 1)] == ["act-2"]
    assert len(recent_activities(g)) == 2
