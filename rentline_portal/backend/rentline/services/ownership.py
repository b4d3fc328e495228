# backend/rentline/services/ownership.py
from __future__ import annotations

from ..domain.errors import EntityNotFound
from ..domain.graph import EntityGraph
from ..domain.scoping import ScopedIds
from ..schemas import Application, Lease, MaintenanceRequest, Message, Payment, Unit

# Rows outside the actor's scope are reported as missing, never as forbidden,
# so ids belonging to other landlords/tenants do not leak.


def must_get_unit(g: EntityGraph, scoped: ScopedIds, unit_id: str) -> Unit:
    row = g.unit(unit_id)
    if row is None or not scoped.contains("units", unit_id):
        raise EntityNotFound("Unit", unit_id)
    return row


def must_get_application(g: EntityGraph, scoped: ScopedIds, application_id: str) -> Application:
    row = g.application(application_id)
    if row is None or not scoped.contains("applications", application_id):
        raise EntityNotFound("Application", application_id)
    return row


def must_get_lease(g: EntityGraph, scoped: ScopedIds, lease_id: str) -> Lease:
    row = g.lease(lease_id)
    if row is None or not scoped.contains("leases", lease_id):
        raise EntityNotFound("Lease", lease_id)
    return row


def must_get_payment(g: EntityGraph, scoped: ScopedIds, payment_id: str) -> Payment:
    row = g.payment(payment_id)
    if row is None or not scoped.contains("payments", payment_id):
        raise EntityNotFound("Payment", payment_id)
    return row


def must_get_request(g: EntityGraph, scoped: ScopedIds, request_id: str) -> MaintenanceRequest:
    row = g.request(request_id)
    if row is None or not scoped.contains("maintenance", request_id):
        raise EntityNotFound("MaintenanceRequest", request_id)
    return row


def must_get_message(g: EntityGraph, scoped: ScopedIds, message_id: str) -> Message:
    row = g.message(message_id)
    if row is None or not scoped.contains("messages", message_id):
        raise EntityNotFound("Message", message_id)
    return row
