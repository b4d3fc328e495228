# backend/rentline/services/transitions.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from ..domain.errors import Conflict, EntityNotFound, InvalidTransition, PermissionDenied
from ..domain.graph import EntityGraph
from ..domain.scoping import Actor, ScopedIds, resolve_scope
from ..domain.taxonomy import TRANSITIONS, can_transition, ensure_role_may_transition, validate_transition
from ..schemas import (
    Application,
    Lease,
    MaintenanceRequest,
    Message,
    Payment,
    User,
    utcnow,
)
from ..store.base import COMMENT_PREFIX, EntityStore, new_id, normalize_keys, spec_for, unwrap
from .events_facade import activity
from .ownership import (
    must_get_application,
    must_get_lease,
    must_get_message,
    must_get_payment,
    must_get_request,
    must_get_unit,
)
from .snapshot_loader import SCOPE_BASE, ViewSession, load_graph

log = logging.getLogger("rentline.transitions")

# -----------------------------------------------------------------------------
# Write path
# -----------------------------------------------------------------------------
# Every status write: load scope -> ownership -> role policy -> taxonomy ->
# store.update -> activity. Anything rejected before store.update leaves the
# store untouched. Same-state writes return the current row without writing.
# -----------------------------------------------------------------------------

PROFILE_FIELDS = ("first_name", "last_name", "phone", "email", "avatar_url")


async def _scoped(store: EntityStore, actor: Actor, *extra: str) -> tuple[EntityGraph, ScopedIds]:
    graph = await load_graph(store, SCOPE_BASE + extra)
    return graph, resolve_scope(actor, graph)


def _log_write(actor: Actor, entity_type: str, entity_id: str, change: str) -> None:
    log.info(
        "%s %s: %s",
        entity_type,
        entity_id,
        change,
        extra={"actor_id": actor.id, "role": actor.role, "entity_type": entity_type, "entity_id": entity_id},
    )


# -------------------- Applications --------------------

async def submit_application(store: EntityStore, actor: Actor, *, unit_id: str, details: dict[str, Any]) -> Application:
    if actor.role != "tenant":
        raise PermissionDenied("only tenants submit applications")

    graph = await load_graph(store, ("units", "applications"))
    unit = graph.unit(unit_id)
    if unit is None:
        raise EntityNotFound("Unit", unit_id)
    if unit.status != "available":
        raise InvalidTransition("Unit", unit.status, "applied")
    if any(a.unit_id == unit_id and a.tenant_id == actor.id and a.status == "pending" for a in graph.applications):
        raise InvalidTransition("Application", "pending", "pending")

    payload = {k: v for k, v in details.items() if k not in ("status", "landlordRecommendation", "tenantId", "unitId")}
    payload.update({"unitId": unit_id, "tenantId": actor.id})
    row: Application = unwrap(await store.applications.create(payload), what="applications.create")
    _log_write(actor, "Application", row.id, "submitted")

    await activity.emit(
        store,
        type="application_submitted",
        user_id=actor.id,
        description=f"Application submitted for unit {unit.unit_number}",
        metadata={"applicationId": row.id, "unitId": unit_id},
    )
    return row


async def update_application_status(
    store: EntityStore,
    actor: Actor,
    application_id: str,
    *,
    status: str,
    notes: Optional[str] = None,
) -> Application:
    """
    Approve, reject (adminNotes required) or withdraw. On a decided
    application the only permitted write is an admin note change.
    """
    graph, scoped = await _scoped(store, actor, "applications")
    app = must_get_application(graph, scoped, application_id)

    if status == app.status:
        if notes is None or notes == app.admin_notes:
            return app
        if actor.role != "admin":
            raise PermissionDenied("only admins edit admin notes")
        row = unwrap(await store.applications.update(app.id, {"adminNotes": notes}), what="applications.update")
        _log_write(actor, "Application", app.id, "admin notes updated")
        return row

    ensure_role_may_transition(actor.role, "Application", status)
    validate_transition("Application", app.status, status, notes)

    patch: dict[str, Any] = {"status": status}
    if notes is not None:
        patch["adminNotes"] = notes
    row = unwrap(await store.applications.update(app.id, patch), what="applications.update")
    _log_write(actor, "Application", app.id, f"{app.status} -> {status}")

    if status == "approved":
        unit = graph.unit(app.unit_id)
        await activity.emit(
            store,
            type="application_approved",
            user_id=actor.id,
            description=f"Application approved for unit {unit.unit_number if unit else app.unit_id}",
            metadata={"applicationId": app.id, "tenantId": app.tenant_id},
        )
    return row


async def update_recommendation(
    store: EntityStore,
    actor: Actor,
    application_id: str,
    *,
    recommendation: str,
    notes: Optional[str] = None,
) -> Application:
    graph, scoped = await _scoped(store, actor, "applications")
    app = must_get_application(graph, scoped, application_id)

    if recommendation == app.landlord_recommendation and (notes is None or notes == app.landlord_notes):
        return app

    ensure_role_may_transition(actor.role, "Recommendation", recommendation)
    if app.status != "pending":
        # a decided application no longer takes recommendations
        raise InvalidTransition("Recommendation", app.landlord_recommendation, recommendation)
    validate_transition("Recommendation", app.landlord_recommendation, recommendation, notes)

    patch: dict[str, Any] = {"landlordRecommendation": recommendation}
    if notes is not None:
        patch["landlordNotes"] = notes
    row = unwrap(await store.applications.update(app.id, patch), what="applications.update")
    _log_write(actor, "Application", app.id, f"recommendation {app.landlord_recommendation} -> {recommendation}")
    return row


# -------------------- Leases --------------------

async def update_lease_status(
    store: EntityStore,
    actor: Actor,
    lease_id: str,
    *,
    status: str,
    reason: Optional[str] = None,
) -> Lease:
    graph, scoped = await _scoped(store, actor)
    lease = must_get_lease(graph, scoped, lease_id)

    if status == lease.status:
        validate_transition("Lease", lease.status, status)
        return lease

    ensure_role_may_transition(actor.role, "Lease", status)
    validate_transition("Lease", lease.status, status, reason)

    patch: dict[str, Any] = {"status": status}
    if reason is not None:
        patch["terminationReason"] = reason
    row = unwrap(await store.leases.update(lease.id, patch), what="leases.update")
    _log_write(actor, "Lease", lease.id, f"{lease.status} -> {status}")
    return row


async def create_lease(
    store: EntityStore,
    actor: Actor,
    *,
    unit_id: str,
    tenant_id: str,
    start_date: date,
    end_date: date,
    rent_amount: Optional[float] = None,
    deposit_amount: Optional[float] = None,
    payment_frequency: str = "monthly",
    status: str = "active",
    terms: Optional[str] = None,
) -> Lease:
    """
    Admin lease creation. Rent and deposit default to the unit's asking
    amounts. A unit holds at most one pending or active lease, and an active
    lease marks the unit occupied.
    """
    if actor.role != "admin":
        raise PermissionDenied("only admins create leases")
    if status not in ("pending", "active"):
        raise InvalidTransition("Lease", None, status)

    graph = await load_graph(store, ("users", "units", "leases"))
    unit = graph.unit(unit_id)
    if unit is None:
        raise EntityNotFound("Unit", unit_id)
    tenant = graph.user(tenant_id)
    if tenant is None or tenant.role != "tenant":
        raise EntityNotFound("Tenant", tenant_id)
    if unit.status in ("occupied", "maintenance") or any(
        l.unit_id == unit.id and l.status in ("pending", "active") for l in graph.leases
    ):
        raise InvalidTransition("Unit", unit.status, "leased")

    payload = {
        "unitId": unit.id,
        "tenantId": tenant.id,
        "startDate": start_date,
        "endDate": end_date,
        "rentAmount": unit.rent_amount if rent_amount is None else rent_amount,
        "depositAmount": unit.deposit_amount if deposit_amount is None else deposit_amount,
        "paymentFrequency": payment_frequency,
        "status": status,
        "terms": terms,
    }
    row: Lease = unwrap(await store.leases.create(payload), what="leases.create")
    _log_write(actor, "Lease", row.id, f"created ({status}) for {unit.id}")

    if status == "active" and unit.status != "occupied":
        unwrap(await store.units.update(unit.id, {"status": "occupied"}), what="units.update")
        _log_write(actor, "Unit", unit.id, f"{unit.status} -> occupied")

    await activity.emit(
        store,
        type="lease_created",
        user_id=actor.id,
        description=f"Lease created for unit {unit.unit_number}",
        metadata={"leaseId": row.id, "unitId": unit.id, "tenantId": tenant.id},
    )
    return row


# -------------------- Payments --------------------

async def update_payment_status(
    store: EntityStore,
    actor: Actor,
    payment_id: str,
    *,
    status: str,
    late_fee: Optional[float] = None,
) -> Payment:
    graph, scoped = await _scoped(store, actor, "payments")
    payment = must_get_payment(graph, scoped, payment_id)

    if status == payment.status:
        if late_fee is None or late_fee == payment.late_fee:
            return payment
        # a fee edit leaves status and paidDate alone
        if actor.role != "admin":
            raise PermissionDenied("only admins set late fees")
        row = unwrap(await store.payments.update(payment.id, {"lateFee": late_fee}), what="payments.update")
        _log_write(actor, "Payment", payment.id, f"late fee {payment.late_fee} -> {late_fee}")
        return row

    ensure_role_may_transition(actor.role, "Payment", status)
    validate_transition("Payment", payment.status, status)

    patch: dict[str, Any] = {"status": status}
    if late_fee is not None:
        patch["lateFee"] = late_fee
    if status == "paid":
        patch["paidDate"] = utcnow().date()
    row = unwrap(await store.payments.update(payment.id, patch), what="payments.update")
    _log_write(actor, "Payment", payment.id, f"{payment.status} -> {status}")
    if status == "paid":
        await _payment_received(store, actor, row)
    return row


async def record_payment(
    store: EntityStore,
    actor: Actor,
    payment_id: str,
    *,
    method: str,
    transaction_ref: Optional[str] = None,
    notes: Optional[str] = None,
    paid_on: Optional[date] = None,
) -> Payment:
    graph, scoped = await _scoped(store, actor, "payments")
    payment = must_get_payment(graph, scoped, payment_id)

    if payment.status == "paid":
        return payment

    ensure_role_may_transition(actor.role, "Payment", "paid")
    validate_transition("Payment", payment.status, "paid")

    patch = {
        "status": "paid",
        "paidDate": paid_on or utcnow().date(),
        "method": method,
        "transactionRef": transaction_ref,
    }
    if notes is not None:
        patch["notes"] = notes
    row = unwrap(await store.payments.update(payment.id, patch), what="payments.update")
    _log_write(actor, "Payment", payment.id, f"{payment.status} -> paid via {method}")
    await _payment_received(store, actor, row)
    return row


async def _payment_received(store: EntityStore, actor: Actor, payment: Payment) -> None:
    await activity.emit(
        store,
        type="payment_received",
        user_id=actor.id,
        description=f"Payment of {payment.amount:,.2f} received",
        metadata={"paymentId": payment.id, "leaseId": payment.lease_id, "tenantId": payment.tenant_id},
    )


async def create_payment(
    store: EntityStore,
    actor: Actor,
    *,
    lease_id: str,
    amount: float,
    due_date: date,
    notes: Optional[str] = None,
) -> Payment:
    """Invoice the tenant of an active lease. New payments always start pending."""
    if actor.role != "admin":
        raise PermissionDenied("only admins create payments")

    graph = await load_graph(store, ("leases",))
    lease = graph.lease(lease_id)
    if lease is None:
        raise EntityNotFound("Lease", lease_id)
    if lease.status != "active":
        raise InvalidTransition("Lease", lease.status, "invoiced")

    payload = {
        "leaseId": lease.id,
        "tenantId": lease.tenant_id,
        "amount": amount,
        "dueDate": due_date,
        "status": "pending",
        "notes": notes,
    }
    row: Payment = unwrap(await store.payments.create(payload), what="payments.create")
    _log_write(actor, "Payment", row.id, f"invoiced {amount:,.2f} due {due_date.isoformat()}")
    return row


# -------------------- Maintenance --------------------

async def open_maintenance_request(
    store: EntityStore,
    actor: Actor,
    *,
    unit_id: str,
    title: str,
    description: str = "",
    category: str = "other",
    priority: str = "medium",
) -> MaintenanceRequest:
    if actor.role != "tenant":
        raise PermissionDenied("only tenants open maintenance requests")

    graph, scoped = await _scoped(store, actor, "maintenance")
    unit = must_get_unit(graph, scoped, unit_id)
    if not any(l.unit_id == unit.id and l.tenant_id == actor.id and l.status == "active" for l in graph.leases):
        raise PermissionDenied("maintenance can only be requested on a unit under an active lease")

    payload = {
        "unitId": unit.id,
        "tenantId": actor.id,
        "title": title,
        "description": description,
        "category": category,
        "priority": priority,
    }
    row: MaintenanceRequest = unwrap(await store.maintenance.create(payload), what="maintenance.create")
    _log_write(actor, "MaintenanceRequest", row.id, "opened")
    await activity.emit(
        store,
        type="maintenance_opened",
        user_id=actor.id,
        description=f"Maintenance request opened: {title}",
        metadata={"requestId": row.id, "unitId": unit.id, "priority": priority},
    )
    return row


async def update_maintenance_status(
    store: EntityStore,
    actor: Actor,
    request_id: str,
    *,
    status: str,
) -> MaintenanceRequest:
    graph, scoped = await _scoped(store, actor, "maintenance")
    req = must_get_request(graph, scoped, request_id)

    if status == req.status:
        validate_transition("MaintenanceRequest", req.status, status)
        return req

    ensure_role_may_transition(actor.role, "MaintenanceRequest", status)
    validate_transition("MaintenanceRequest", req.status, status)

    patch: dict[str, Any] = {"status": status}
    if status == "completed":
        patch["completedAt"] = utcnow()
    row = unwrap(await store.maintenance.update(req.id, patch), what="maintenance.update")
    _log_write(actor, "MaintenanceRequest", req.id, f"{req.status} -> {status}")

    if status == "completed":
        await activity.emit(
            store,
            type="maintenance_completed",
            user_id=actor.id,
            description=f"Maintenance request completed: {req.title}",
            metadata={"requestId": req.id, "unitId": req.unit_id},
        )
    return row


async def add_maintenance_comment(
    store: EntityStore,
    actor: Actor,
    request_id: str,
    *,
    content: str,
) -> MaintenanceRequest:
    if not (content or "").strip():
        raise ValueError("comment content is required")

    graph, scoped = await _scoped(store, actor, "maintenance")
    req = must_get_request(graph, scoped, request_id)

    comment = {
        "id": new_id(COMMENT_PREFIX),
        "requestId": req.id,
        "userId": actor.id,
        "content": content.strip(),
        "createdAt": utcnow(),
    }
    comments = [c.model_dump(by_alias=True) for c in req.comments] + [comment]
    row = unwrap(await store.maintenance.update(req.id, {"comments": comments}), what="maintenance.update")
    _log_write(actor, "MaintenanceRequest", req.id, "comment added")
    return row


# -------------------- Messages --------------------

async def send_message(
    store: EntityStore,
    actor: Actor,
    *,
    receiver_id: str,
    subject: str,
    content: str,
) -> Message:
    _, scoped = await _scoped(store, actor)
    if receiver_id not in scoped.contacts:
        raise PermissionDenied(f"user {receiver_id} is not one of your contacts")

    payload = {"senderId": actor.id, "receiverId": receiver_id, "subject": subject, "content": content}
    row = unwrap(await store.messages.create(payload), what="messages.create")
    _log_write(actor, "Message", row.id, f"sent to {receiver_id}")
    return row


async def mark_message_read(store: EntityStore, actor: Actor, message_id: str) -> Message:
    graph, scoped = await _scoped(store, actor, "messages")
    msg = must_get_message(graph, scoped, message_id)
    if msg.receiver_id != actor.id:
        raise PermissionDenied("only the receiver can mark a message read")
    if msg.read:
        return msg

    validate_transition("MessageRead", "unread", "read")
    row = unwrap(await store.messages.update(msg.id, {"read": True}), what="messages.update")
    _log_write(actor, "Message", msg.id, "read")
    return row


# -------------------- Users --------------------

def _ensure_email_free(users: list[User], email: str, *, except_id: Optional[str] = None) -> None:
    wanted = email.strip().lower()
    if any(u.email.lower() == wanted and u.id != except_id for u in users):
        raise Conflict(f"email already in use: {email}")


async def create_user(
    store: EntityStore,
    actor: Actor,
    *,
    email: str,
    first_name: str,
    last_name: str,
    role: str,
    phone: str = "",
    status: str = "active",
) -> User:
    if actor.role != "admin":
        raise PermissionDenied("only admins create users")

    users = unwrap(await store.users.get_all(), what="users.get_all") or []
    _ensure_email_free(users, email)

    payload = {
        "email": email.strip(),
        "firstName": first_name,
        "lastName": last_name,
        "phone": phone,
        "role": role,
        "status": status,
    }
    row: User = unwrap(await store.users.create(payload), what="users.create")
    _log_write(actor, "User", row.id, f"created ({role})")
    await activity.emit(
        store,
        type="user_created",
        user_id=actor.id,
        description=f"New {role} registered: {row.full_name}",
        metadata={"userId": row.id, "role": role},
    )
    return row


async def set_user_status(store: EntityStore, actor: Actor, user_id: str, *, status: str) -> User:
    """Suspend, activate or park a user as pending. Admins cannot change their own status."""
    if actor.role != "admin":
        raise PermissionDenied("only admins change user status")
    if user_id == actor.id:
        raise PermissionDenied("admins cannot change their own status")

    user = unwrap(await store.users.get_by_id(user_id), what="users.get_by_id")
    if user is None:
        raise EntityNotFound("User", user_id)
    if user.status == status:
        return user

    row: User = unwrap(await store.users.update(user.id, {"status": status}), what="users.update")
    _log_write(actor, "User", user.id, f"{user.status} -> {status}")
    return row


# -------------------- Profile --------------------

async def update_profile(
    store: EntityStore,
    actor: Actor,
    changes: dict[str, Any],
    *,
    session: Optional[ViewSession] = None,
) -> User:
    """
    Self-service profile edit. Role and status are not editable here. When a
    live session is given, its scope is recomputed for the edited actor.
    """
    blocked = set(changes) - set(PROFILE_FIELDS)
    if blocked:
        raise PermissionDenied(f"profile fields not editable: {sorted(blocked)}")
    patch = {k: v for k, v in changes.items() if v is not None}
    if not patch:
        current = unwrap(await store.users.get_by_id(actor.id), what="users.get_by_id")
        if current is None:
            raise EntityNotFound("User", actor.id)
        return current

    if "email" in patch:
        users = unwrap(await store.users.get_all(), what="users.get_all") or []
        _ensure_email_free(users, patch["email"], except_id=actor.id)

    row: User = unwrap(await store.users.update(actor.id, patch), what="users.update")
    _log_write(actor, "User", actor.id, f"profile updated ({', '.join(sorted(patch))})")

    if session is not None:
        await session.actor_profile_changed(Actor(id=row.id, role=row.role, email=row.email))
    return row


# -------------------- Raw store patches --------------------

# (collection, field) -> taxonomy entity; these fields move only through the
# write services above
LIFECYCLE_FIELDS: dict[tuple[str, str], str] = {
    ("applications", "status"): "Application",
    ("applications", "landlord_recommendation"): "Recommendation",
    ("leases", "status"): "Lease",
    ("payments", "status"): "Payment",
    ("maintenance", "status"): "MaintenanceRequest",
    ("messages", "read"): "MessageRead",
    ("users", "status"): "User",
}


def _lifecycle_state(field: str, value: Any) -> Any:
    if field == "read":
        return "read" if value else "unread"
    return value


async def guard_raw_patch(store: EntityStore, collection: str, entity_id: str, patch: dict[str, Any]) -> None:
    """
    Refuse a raw store patch that changes a lifecycle field. An edge the
    taxonomy never allows raises InvalidTransition; a legal edge still raises
    PermissionDenied because it has to go through its status endpoint.
    Unchanged values pass through.
    """
    spec = spec_for(collection)
    try:
        values = normalize_keys(spec.record, patch)
    except ValueError:
        # unknown fields are rejected by the store with a failed envelope
        return
    guarded = {f: v for f, v in values.items() if (collection, f) in LIFECYCLE_FIELDS}
    if not guarded:
        return

    current = unwrap(await store.get_by_id(collection, entity_id), what=f"{collection}.get_by_id")
    if current is None:
        raise EntityNotFound(spec.record.__name__, entity_id)

    for field, value in guarded.items():
        before = getattr(current, field)
        if value == before:
            continue
        entity_type = LIFECYCLE_FIELDS[(collection, field)]
        old, new = _lifecycle_state(field, before), _lifecycle_state(field, value)
        if entity_type in TRANSITIONS and not can_transition(entity_type, old, new):
            raise InvalidTransition(entity_type, old, new)
        raise PermissionDenied(f"{collection}.{field} changes go through the {collection} status endpoint")
