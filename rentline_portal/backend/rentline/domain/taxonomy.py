# backend/rentline/domain/taxonomy.py
from __future__ import annotations

from typing import Optional, get_args

from ..schemas import (
    ApplicationStatus,
    LeaseStatus,
    MaintenanceCategory,
    MaintenancePriority,
    MaintenanceStatus,
    PaymentFrequency,
    PaymentMethod,
    PaymentStatus,
    RecommendationStatus,
    UnitStatus,
    UnitType,
    UserRole,
)
from .errors import InvalidTransition, MissingRequiredNote, PermissionDenied

# -----------------------------------------------------------------------------
# Status / priority taxonomy
# -----------------------------------------------------------------------------
# Nothing here moves on its own. Every transition is an externally triggered
# write, and this module only answers whether that write is legal.
# -----------------------------------------------------------------------------

ROLES: tuple[str, ...] = get_args(UserRole)
UNIT_STATUSES: tuple[str, ...] = get_args(UnitStatus)
UNIT_TYPES: tuple[str, ...] = get_args(UnitType)
APPLICATION_STATUSES: tuple[str, ...] = get_args(ApplicationStatus)
RECOMMENDATION_STATUSES: tuple[str, ...] = get_args(RecommendationStatus)
LEASE_STATUSES: tuple[str, ...] = get_args(LeaseStatus)
PAYMENT_FREQUENCIES: tuple[str, ...] = get_args(PaymentFrequency)
PAYMENT_STATUSES: tuple[str, ...] = get_args(PaymentStatus)
PAYMENT_METHODS: tuple[str, ...] = get_args(PaymentMethod)
MAINTENANCE_STATUSES: tuple[str, ...] = get_args(MaintenanceStatus)
MAINTENANCE_PRIORITIES: tuple[str, ...] = get_args(MaintenancePriority)
MAINTENANCE_CATEGORIES: tuple[str, ...] = get_args(MaintenanceCategory)

# urgent first
PRIORITY_RANK = {"urgent": 0, "high": 1, "medium": 2, "low": 3}

OPEN_MAINTENANCE = frozenset({"open", "in_progress"})
PAYABLE = frozenset({"pending", "overdue"})

TRANSITIONS: dict[str, dict[str, frozenset[str]]] = {
    "Application": {
        "pending": frozenset({"approved", "rejected", "withdrawn"}),
        "approved": frozenset(),
        "rejected": frozenset(),
        "withdrawn": frozenset(),
    },
    "Lease": {
        "pending": frozenset({"active"}),
        "active": frozenset({"ended", "terminated"}),
        "ended": frozenset(),
        "terminated": frozenset(),
    },
    "Payment": {
        "pending": frozenset({"paid", "partial", "overdue"}),
        "overdue": frozenset({"paid"}),
        "partial": frozenset({"paid"}),
        "paid": frozenset(),
    },
    "MaintenanceRequest": {
        "open": frozenset({"in_progress", "cancelled"}),
        "in_progress": frozenset({"completed", "cancelled"}),
        "completed": frozenset(),
        "cancelled": frozenset(),
    },
    "Recommendation": {
        "pending": frozenset({"recommended", "not_recommended"}),
        "recommended": frozenset(),
        "not_recommended": frozenset(),
    },
    "MessageRead": {
        "unread": frozenset({"read"}),
        "read": frozenset(),
    },
}

# (entity_type, to_status) -> the patch field holding the justification
REQUIRED_NOTES: dict[tuple[str, str], str] = {
    ("Application", "rejected"): "adminNotes",
    ("Lease", "terminated"): "terminationReason",
}

# (entity_type, to_status) -> roles allowed to trigger it
TRANSITION_ROLES: dict[tuple[str, str], frozenset[str]] = {
    ("Application", "approved"): frozenset({"admin"}),
    ("Application", "rejected"): frozenset({"admin"}),
    ("Application", "withdrawn"): frozenset({"tenant"}),
    ("Recommendation", "recommended"): frozenset({"landlord"}),
    ("Recommendation", "not_recommended"): frozenset({"landlord"}),
    ("Lease", "active"): frozenset({"admin"}),
    ("Lease", "ended"): frozenset({"admin"}),
    ("Lease", "terminated"): frozenset({"admin"}),
    ("Payment", "paid"): frozenset({"admin"}),
    ("Payment", "partial"): frozenset({"admin"}),
    ("Payment", "overdue"): frozenset({"admin"}),
    ("MaintenanceRequest", "in_progress"): frozenset({"admin", "landlord"}),
    ("MaintenanceRequest", "completed"): frozenset({"admin", "landlord"}),
    ("MaintenanceRequest", "cancelled"): frozenset({"admin", "landlord", "tenant"}),
}


def states(entity_type: str) -> tuple[str, ...]:
    try:
        return tuple(TRANSITIONS[entity_type])
    except KeyError:
        raise KeyError(f"no taxonomy for entity type {entity_type!r}") from None


def is_terminal(entity_type: str, status: str) -> bool:
    edges = TRANSITIONS.get(entity_type, {}).get(status)
    return edges is not None and not edges


def can_transition(entity_type: str, from_status: str, to_status: str) -> bool:
    """
    Same-state writes are allowed no-ops on known states. Unknown entity types
    and unknown states are never allowed.
    """
    machine = TRANSITIONS.get(entity_type)
    if machine is None or from_status not in machine or to_status not in machine:
        return False
    if from_status == to_status:
        return True
    return to_status in machine[from_status]


def requires_note(entity_type: str, to_status: str) -> Optional[str]:
    return REQUIRED_NOTES.get((entity_type, to_status))


def validate_transition(
    entity_type: str,
    from_status: str,
    to_status: str,
    note: Optional[str] = None,
) -> None:
    """
    Raise InvalidTransition for a disallowed edge, MissingRequiredNote when a
    reject-type move has no justification. Same-state writes skip the note check.
    """
    if not can_transition(entity_type, from_status, to_status):
        raise InvalidTransition(entity_type, from_status, to_status)
    if from_status == to_status:
        return
    field = requires_note(entity_type, to_status)
    if field and not (note or "").strip():
        raise MissingRequiredNote(entity_type, to_status, field)


def transition_allowed_for(role: str, entity_type: str, to_status: str) -> bool:
    allowed = TRANSITION_ROLES.get((entity_type, to_status))
    return allowed is not None and role in allowed


def ensure_role_may_transition(role: str, entity_type: str, to_status: str) -> None:
    if not transition_allowed_for(role, entity_type, to_status):
        raise PermissionDenied(f"role {role!r} may not move {entity_type} to {to_status!r}")


def priority_rank(priority: str) -> int:
    return PRIORITY_RANK.get(priority, len(PRIORITY_RANK))
