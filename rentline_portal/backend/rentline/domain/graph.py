# backend/rentline/domain/graph.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Optional

from ..schemas import (
    Activity,
    Application,
    Lease,
    MaintenanceRequest,
    Message,
    Payment,
    Property,
    Unit,
    User,
)

# collection name -> record type; the order is the order snapshots are loaded in
COLLECTIONS: dict[str, type] = {
    "users": User,
    "properties": Property,
    "units": Unit,
    "applications": Application,
    "leases": Lease,
    "payments": Payment,
    "maintenance": MaintenanceRequest,
    "messages": Message,
    "activities": Activity,
}


def _index(rows) -> dict:
    return {r.id: r for r in rows}


@dataclass(frozen=True)
class EntityGraph:
    """
    Immutable snapshot of every collection.

    Scoping, enrichment and aggregation read only from a graph passed to them,
    never from ambient state, so the same graph always yields the same views.
    """

    users: tuple[User, ...] = ()
    properties: tuple[Property, ...] = ()
    units: tuple[Unit, ...] = ()
    applications: tuple[Application, ...] = ()
    leases: tuple[Lease, ...] = ()
    payments: tuple[Payment, ...] = ()
    maintenance: tuple[MaintenanceRequest, ...] = ()
    messages: tuple[Message, ...] = ()
    activities: tuple[Activity, ...] = ()

    # lookups built lazily; not part of equality
    _idx: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    @classmethod
    def build(cls, **collections) -> "EntityGraph":
        unknown = set(collections) - set(COLLECTIONS)
        if unknown:
            raise TypeError(f"unknown collections: {sorted(unknown)}")
        return cls(**{k: tuple(v or ()) for k, v in collections.items()})

    @classmethod
    def empty(cls) -> "EntityGraph":
        return cls()

    def with_rows(self, **collections) -> "EntityGraph":
        """Copy with some collections replaced (used when an update returns a fresh row set)."""
        return replace(self, **{k: tuple(v) for k, v in collections.items()})

    def _lookup(self, name: str) -> dict:
        idx = self._idx.get(name)
        if idx is None:
            idx = _index(getattr(self, name))
            self._idx[name] = idx
        return idx

    def user(self, user_id: Optional[str]) -> Optional[User]:
        return self._lookup("users").get(user_id)

    def property(self, property_id: Optional[str]) -> Optional[Property]:
        return self._lookup("properties").get(property_id)

    def unit(self, unit_id: Optional[str]) -> Optional[Unit]:
        return self._lookup("units").get(unit_id)

    def lease(self, lease_id: Optional[str]) -> Optional[Lease]:
        return self._lookup("leases").get(lease_id)

    def application(self, application_id: Optional[str]) -> Optional[Application]:
        return self._lookup("applications").get(application_id)

    def payment(self, payment_id: Optional[str]) -> Optional[Payment]:
        return self._lookup("payments").get(payment_id)

    def request(self, request_id: Optional[str]) -> Optional[MaintenanceRequest]:
        return self._lookup("maintenance").get(request_id)

    def message(self, message_id: Optional[str]) -> Optional[Message]:
        return self._lookup("messages").get(message_id)

    @cached_property
    def admin_ids(self) -> frozenset[str]:
        return frozenset(u.id for u in self.users if u.role == "admin")

    def counts(self) -> dict[str, int]:
        return {name: len(getattr(self, name)) for name in COLLECTIONS}
