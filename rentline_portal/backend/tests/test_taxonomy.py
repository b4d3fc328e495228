# backend/tests/test_taxonomy.py
from __future__ import annotations

import pytest

from rentline.domain.errors import InvalidTransition, MissingRequiredNote, PermissionDenied
from rentline.domain.taxonomy import (
    can_transition,
    ensure_role_may_transition,
    is_terminal,
    priority_rank,
    requires_note,
    states,
    validate_transition,
)


def test_application_is_decided_once():
    assert can_transition("Application", "pending", "approved")
    assert can_transition("Application", "pending", "rejected")
    assert not can_transition("Application", "approved", "rejected")
    assert not can_transition("Application", "rejected", "pending")
    assert is_terminal("Application", "withdrawn")


def test_same_state_is_a_no_op_on_known_states_only():
    assert can_transition("Lease", "active", "active")
    assert not can_transition("Lease", "archived", "archived")
    assert not can_transition("Widget", "a", "a")


def test_lease_and_maintenance_edges():
    assert can_transition("Lease", "pending", "active")
    assert not can_transition("Lease", "ended", "active")
    assert can_transition("MaintenanceRequest", "in_progress", "completed")
    assert not can_transition("MaintenanceRequest", "open", "completed")
    assert not can_transition("MessageRead", "read", "unread")


def test_reject_requires_admin_notes():
    assert requires_note("Application", "rejected") == "adminNotes"
    with pytest.raises(MissingRequiredNote):
        validate_transition("Application", "pending", "rejected", "   ")
    validate_transition("Application", "pending", "rejected", "incomplete documents")
    # approve does not need a note
    validate_transition("Application", "pending", "approved")


def test_terminate_requires_reason():
    with pytest.raises(MissingRequiredNote) as exc:
        validate_transition("Lease", "active", "terminated")
    assert exc.value.field == "terminationReason"


def test_invalid_edge_raises_before_note_check():
    with pytest.raises(InvalidTransition):
        validate_transition("Application", "approved", "rejected", "late change of heart")


def test_role_policy():
    ensure_role_may_transition("admin", "Application", "approved")
    ensure_role_may_transition("landlord", "Recommendation", "recommended")
    with pytest.raises(PermissionDenied):
        ensure_role_may_transition("landlord", "Application", "approved")
    with pytest.raises(PermissionDenied):
        ensure_role_may_transition("tenant", "Payment", "paid")


def test_priority_rank_orders_urgent_first():
    ordered = sorted(["low", "urgent", "medium", "high"], key=priority_rank)
    assert ordered == ["urgent", "high", "medium", "low"]
    assert priority_rank("whenever") > priority_rank("low")


def test_states_unknown_entity():
    assert "paid" in states("Payment")
    with pytest.raises(KeyError):
        states("Invoice")
