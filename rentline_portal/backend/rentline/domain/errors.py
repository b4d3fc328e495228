# backend/rentline/domain/errors.py
from __future__ import annotations

from typing import Optional


class RentlineError(Exception):
    """Base for every domain failure; `code` is the stable machine-readable name."""

    code = "rentline_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class InvalidRole(RentlineError):
    code = "invalid_role"

    def __init__(self, role: object) -> None:
        super().__init__(f"unrecognized role: {role!r}")
        self.role = role


class OrphanedReference(RentlineError):
    """A foreign key with no matching parent. Recovered locally, never surfaced."""

    code = "orphaned_reference"

    def __init__(self, entity_type: str, entity_id: str, field: str, ref_id: Optional[str]) -> None:
        super().__init__(f"{entity_type} {entity_id}: {field}={ref_id!r} has no matching parent")
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.field = field
        self.ref_id = ref_id


class InvalidTransition(RentlineError):
    code = "invalid_transition"

    def __init__(self, entity_type: str, from_status: object, to_status: object) -> None:
        super().__init__(f"{entity_type}: transition {from_status!r} -> {to_status!r} is not allowed")
        self.entity_type = entity_type
        self.from_status = from_status
        self.to_status = to_status


class MissingRequiredNote(RentlineError):
    code = "missing_required_note"

    def __init__(self, entity_type: str, to_status: str, field: str) -> None:
        super().__init__(f"{entity_type}: moving to {to_status!r} requires a non-empty {field}")
        self.entity_type = entity_type
        self.to_status = to_status
        self.field = field


class StoreUnavailable(RentlineError):
    code = "store_unavailable"


class EntityNotFound(RentlineError):
    code = "not_found"

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(f"{entity_type} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class PermissionDenied(RentlineError):
    code = "permission_denied"


class Conflict(RentlineError):
    """A write that collides with an existing row, e.g. a duplicate email."""

    code = "conflict"
