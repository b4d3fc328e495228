# backend/tests/test_enrichment.py
from __future__ import annotations

from datetime import date, datetime

import pytest

from rentline.domain.enrichment import (
    NOT_AVAILABLE,
    UNKNOWN,
    RowQuery,
    enrich,
    enrich_leases,
    enrich_maintenance,
    enrich_messages,
    enrich_payments,
    enrich_units,
)
from rentline.schemas import Lease, MaintenanceRequest, Message, Payment

TS = datetime(2026, 1, 5, 9, 0, 0)


def test_payment_rows_carry_unit_property_and_tenant(graph):
    rows = enrich_payments([graph.payment("pay-1")], graph)
    (row,) = rows
    assert row.kind == "payment"
    assert row.unit.unit_number == "A1"
    assert row.property.name == "Kilimani Heights"
    assert row.tenant.display_name == "John Mwangi"
    assert row.wire()["tenant"]["firstName"] == "John"


def test_orphans_get_sentinels_instead_of_failing(graph):
    lease = Lease(
        id="lease-x", unit_id="unit-missing", tenant_id="user-missing", start_date=date(2026, 1, 1),
        end_date=date(2026, 6, 1), rent_amount=1000, created_at=TS, updated_at=TS,
    )
    (row,) = enrich_leases([lease], graph)
    assert row.unit.unit_number == NOT_AVAILABLE
    assert row.property.name == NOT_AVAILABLE
    assert row.tenant.first_name == UNKNOWN
    assert row.tenant.known is False
    assert row.tenant.display_name == UNKNOWN


def test_message_with_deleted_sender_still_renders(graph):
    msg = Message(id="msg-x", sender_id="user-gone", receiver_id="user-tenant1", subject="Hi", content="x", created_at=TS)
    (row,) = enrich_messages([msg], graph)
    assert row.sender.display_name == UNKNOWN
    assert row.receiver.display_name == "John Mwangi"


def test_default_order_is_newest_first(graph):
    older = graph.payment("pay-1")
    newer = Payment(**{**dict(graph.payment("pay-3")), "id": "pay-new", "created_at": datetime(2026, 2, 1)})
    rows = enrich_payments([older, newer], graph, RowQuery(sort="created_at"))
    assert [r.id for r in rows] == ["pay-new", "pay-1"]


def test_payments_default_to_due_date_descending(graph):
    rows = enrich_payments(graph.payments, graph)
    dues = [r.due_date for r in rows]
    assert dues == sorted(dues, reverse=True)


def test_row_query_filters_status_and_search(graph):
    rows = enrich_payments(graph.payments, graph, RowQuery(status="paid"))
    assert {r.id for r in rows} == {"pay-1", "pay-4"}

    rows = enrich_maintenance(graph.maintenance, graph, RowQuery(search="sink"))
    assert [r.id for r in rows] == ["maint-1"]

    rows = enrich_units(graph.units, graph, RowQuery(search="mombasa", sort="rent_amount", descending=False))
    assert [r.id for r in rows] == ["unit-2b", "unit-2a"]


def test_enrich_dispatches_on_row_type(graph):
    assert enrich([], graph) == []
    rows = enrich(list(graph.leases), graph)
    assert {r.kind for r in rows} == {"lease"}
    with pytest.raises(TypeError):
        enrich(list(graph.users), graph)


def test_maintenance_priority_sorts_by_urgency(graph):
    base = dict(graph.maintenance[0])
    reqs = [
        MaintenanceRequest(**{**base, "id": f"maint-{p}", "priority": p})
        for p in ("high", "low", "urgent", "medium")
    ]

    rows = enrich_maintenance(reqs, graph, RowQuery(sort="priority"))
    assert [r.priority for r in rows] == ["urgent", "high", "medium", "low"]

    rows = enrich_maintenance(reqs, graph, RowQuery(sort="priority", descending=False))
    assert [r.priority for r in rows] == ["low", "medium", "high", "urgent"]
