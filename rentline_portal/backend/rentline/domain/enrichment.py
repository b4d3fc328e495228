# backend/rentline/domain/enrichment.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional, Sequence

from ..schemas import (
    Application,
    EnrichedApplication,
    EnrichedLease,
    EnrichedMaintenanceRequest,
    EnrichedMessage,
    EnrichedPayment,
    EnrichedUnit,
    Lease,
    MaintenanceRequest,
    Message,
    Payment,
    PersonRef,
    PropertyRef,
    Unit,
    UnitRef,
    User,
)
from .errors import OrphanedReference
from .graph import EntityGraph
from .taxonomy import priority_rank

log = logging.getLogger("rentline.enrichment")

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"

_MISSING_UNIT = UnitRef(unit_number=NOT_AVAILABLE, rent_amount=0.0, type=NOT_AVAILABLE)
_MISSING_PROPERTY = PropertyRef(name=NOT_AVAILABLE, city=NOT_AVAILABLE)


def _orphan(entity_type: str, entity_id: str, field: str, ref_id: Optional[str]) -> None:
    err = OrphanedReference(entity_type, entity_id, field, ref_id)
    log.debug(err.message, extra={"entity_type": entity_type, "entity_id": entity_id})


def person_ref(user: Optional[User]) -> PersonRef:
    if user is None:
        return PersonRef(
            first_name=UNKNOWN,
            last_name="",
            phone=NOT_AVAILABLE,
            email=NOT_AVAILABLE,
            known=False,
        )
    return PersonRef(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone or NOT_AVAILABLE,
        email=user.email or NOT_AVAILABLE,
        role=user.role,
    )


def _user(g: EntityGraph, entity_type: str, entity_id: str, field: str, user_id: str) -> PersonRef:
    u = g.user(user_id)
    if u is None:
        _orphan(entity_type, entity_id, field, user_id)
    return person_ref(u)


def _unit_and_property(
    g: EntityGraph, entity_type: str, entity_id: str, unit_id: Optional[str]
) -> tuple[UnitRef, PropertyRef]:
    unit = g.unit(unit_id)
    if unit is None:
        _orphan(entity_type, entity_id, "unitId", unit_id)
        return _MISSING_UNIT, _MISSING_PROPERTY

    unit_ref = UnitRef(unit_number=unit.unit_number, rent_amount=unit.rent_amount, type=unit.type)
    prop = g.property(unit.property_id)
    if prop is None:
        _orphan("Unit", unit.id, "propertyId", unit.property_id)
        return unit_ref, _MISSING_PROPERTY
    return unit_ref, PropertyRef(name=prop.name, city=prop.city)


# -------------------- Row query (filter / sort override) --------------------

@dataclass(frozen=True)
class RowQuery:
    """
    Caller-specified filter and ordering. Left at defaults, rows come back
    newest first by the row's natural timestamp.
    """

    status: Optional[str] = None
    search: Optional[str] = None
    sort: Optional[str] = None  # snake_case field name, e.g. "amount" or "due_date"
    descending: bool = True

    def apply(
        self,
        rows: Sequence[Any],
        *,
        default_sort: str,
        text: Callable[[Any], str],
        ranks: Optional[dict[str, Callable[[Any], Any]]] = None,
    ) -> list:
        """`ranks` maps a field to its own sort key, for fields whose order is not lexical."""
        out = list(rows)
        if self.status:
            wanted = self.status.strip().lower()
            out = [r for r in out if str(getattr(r, "status", "")).lower() == wanted]
        if self.search:
            needle = self.search.strip().lower()
            if needle:
                out = [r for r in out if needle in text(r).lower()]

        key_name = self.sort or default_sort
        rank = (ranks or {}).get(key_name)
        if rank is not None:
            out.sort(key=lambda r: rank(getattr(r, key_name, None)), reverse=self.descending)
        else:
            out.sort(key=lambda r: _sort_key(getattr(r, key_name, None)), reverse=self.descending)
        return out


def _sort_key(v: Any) -> tuple:
    # None sorts as the smallest value; dates and datetimes compare on one axis
    if v is None:
        return (0, "")
    if isinstance(v, datetime):
        return (1, v.isoformat())
    if isinstance(v, date):
        return (1, datetime(v.year, v.month, v.day).isoformat())
    if isinstance(v, (int, float)):
        return (2, float(v))
    return (3, str(v).lower())


DEFAULT_QUERY = RowQuery()


def _text(*parts: Any) -> str:
    return " ".join(str(p) for p in parts if p)


# -------------------- Joiners --------------------

def enrich_units(units: Iterable[Unit], g: EntityGraph, query: RowQuery = DEFAULT_QUERY) -> list[EnrichedUnit]:
    rows = []
    for u in units:
        prop = g.property(u.property_id)
        if prop is None:
            _orphan("Unit", u.id, "propertyId", u.property_id)
        ref = PropertyRef(name=prop.name, city=prop.city) if prop else _MISSING_PROPERTY
        rows.append(EnrichedUnit(**dict(u), property=ref))
    return query.apply(
        rows,
        default_sort="created_at",
        text=lambda r: _text(r.unit_number, r.property.name, r.property.city, r.type),
    )


def enrich_applications(
    apps: Iterable[Application], g: EntityGraph, query: RowQuery = DEFAULT_QUERY
) -> list[EnrichedApplication]:
    rows = []
    for a in apps:
        unit, prop = _unit_and_property(g, "Application", a.id, a.unit_id)
        tenant = _user(g, "Application", a.id, "tenantId", a.tenant_id)
        rows.append(EnrichedApplication(**dict(a), unit=unit, property=prop, tenant=tenant))
    return query.apply(
        rows,
        default_sort="created_at",
        text=lambda r: _text(r.tenant.display_name, r.tenant.email, r.unit.unit_number, r.property.name),
    )


def enrich_leases(leases: Iterable[Lease], g: EntityGraph, query: RowQuery = DEFAULT_QUERY) -> list[EnrichedLease]:
    rows = []
    for l in leases:
        unit, prop = _unit_and_property(g, "Lease", l.id, l.unit_id)
        tenant = _user(g, "Lease", l.id, "tenantId", l.tenant_id)
        rows.append(EnrichedLease(**dict(l), unit=unit, property=prop, tenant=tenant))
    return query.apply(
        rows,
        default_sort="created_at",
        text=lambda r: _text(r.tenant.display_name, r.unit.unit_number, r.property.name),
    )


def enrich_payments(
    payments: Iterable[Payment], g: EntityGraph, query: RowQuery = DEFAULT_QUERY
) -> list[EnrichedPayment]:
    rows = []
    for p in payments:
        lease = g.lease(p.lease_id)
        if lease is None:
            _orphan("Payment", p.id, "leaseId", p.lease_id)
            unit, prop = _MISSING_UNIT, _MISSING_PROPERTY
        else:
            unit, prop = _unit_and_property(g, "Lease", lease.id, lease.unit_id)
        tenant = _user(g, "Payment", p.id, "tenantId", p.tenant_id)
        rows.append(EnrichedPayment(**dict(p), unit=unit, property=prop, tenant=tenant))
    return query.apply(
        rows,
        default_sort="due_date",
        text=lambda r: _text(r.tenant.display_name, r.unit.unit_number, r.property.name, r.transaction_ref),
    )


def enrich_maintenance(
    requests: Iterable[MaintenanceRequest], g: EntityGraph, query: RowQuery = DEFAULT_QUERY
) -> list[EnrichedMaintenanceRequest]:
    rows = []
    for m in requests:
        unit, prop = _unit_and_property(g, "MaintenanceRequest", m.id, m.unit_id)
        tenant = _user(g, "MaintenanceRequest", m.id, "tenantId", m.tenant_id)
        rows.append(EnrichedMaintenanceRequest(**dict(m), unit=unit, property=prop, tenant=tenant))
    return query.apply(
        rows,
        default_sort="created_at",
        text=lambda r: _text(r.title, r.description, r.category, r.unit.unit_number, r.property.name),
        # higher urgency sorts higher: descending puts urgent first
        ranks={"priority": lambda p: -priority_rank(p)},
    )


def enrich_messages(
    messages: Iterable[Message], g: EntityGraph, query: RowQuery = DEFAULT_QUERY
) -> list[EnrichedMessage]:
    rows = []
    for m in messages:
        sender = _user(g, "Message", m.id, "senderId", m.sender_id)
        receiver = _user(g, "Message", m.id, "receiverId", m.receiver_id)
        rows.append(EnrichedMessage(**dict(m), sender=sender, receiver=receiver))
    return query.apply(
        rows,
        default_sort="created_at",
        text=lambda r: _text(r.subject, r.content, r.sender.display_name, r.receiver.display_name),
    )


_JOINERS: dict[type, Callable] = {
    Unit: enrich_units,
    Application: enrich_applications,
    Lease: enrich_leases,
    Payment: enrich_payments,
    MaintenanceRequest: enrich_maintenance,
    Message: enrich_messages,
}


def enrich(scoped_entities: Sequence[Any], graph: EntityGraph, query: RowQuery = DEFAULT_QUERY) -> list:
    """
    Dispatch on the row type. All rows must be of one entity type; an empty
    input yields an empty list.
    """
    if not scoped_entities:
        return []
    kind = type(scoped_entities[0])
    for cls, joiner in _JOINERS.items():
        if issubclass(kind, cls):
            return joiner(scoped_entities, graph, query)
    raise TypeError(f"no enrichment defined for {kind.__name__}")
