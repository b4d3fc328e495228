# backend/rentline/domain/scoping.py
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Iterable

from .errors import InvalidRole
from .graph import COLLECTIONS, EntityGraph

log = logging.getLogger("rentline.scoping")

ROLES = ("admin", "landlord", "tenant")


@dataclass(frozen=True)
class Actor:
    """The authenticated user an operation runs as. Role comes from the stored User."""

    id: str
    role: str
    email: str = ""


@dataclass(frozen=True)
class ScopedIds:
    properties: frozenset[str] = frozenset()
    units: frozenset[str] = frozenset()
    applications: frozenset[str] = frozenset()
    leases: frozenset[str] = frozenset()
    payments: frozenset[str] = frozenset()
    maintenance: frozenset[str] = frozenset()
    messages: frozenset[str] = frozenset()
    activities: frozenset[str] = frozenset()
    # users whose records the actor may see (self, counterparts, contacts)
    users: frozenset[str] = frozenset()
    # users the actor may message
    contacts: frozenset[str] = frozenset()

    @classmethod
    def empty(cls) -> "ScopedIds":
        return cls()

    def contains(self, kind: str, entity_id: str) -> bool:
        ids = getattr(self, kind, None)
        if ids is None:
            raise KeyError(f"unknown scope collection: {kind}")
        return entity_id in ids

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


def _ids(rows: Iterable) -> frozenset[str]:
    return frozenset(r.id for r in rows)


def _admin_scope(actor: Actor, g: EntityGraph) -> ScopedIds:
    return ScopedIds(
        properties=_ids(g.properties),
        units=_ids(g.units),
        applications=_ids(g.applications),
        leases=_ids(g.leases),
        payments=_ids(g.payments),
        maintenance=_ids(g.maintenance),
        messages=_ids(g.messages),
        activities=_ids(g.activities),
        users=_ids(g.users),
        contacts=frozenset(u.id for u in g.users if u.id != actor.id),
    )


def _landlord_scope(actor: Actor, g: EntityGraph) -> ScopedIds:
    property_ids = frozenset(p.id for p in g.properties if p.landlord_id == actor.id)
    # units must point at a property of this landlord; a unit whose property is
    # missing from the snapshot can never satisfy this and drops out
    unit_ids = frozenset(u.id for u in g.units if u.property_id in property_ids)
    leases = [l for l in g.leases if l.unit_id in unit_ids]
    lease_ids = _ids(leases)
    payment_ids = frozenset(p.id for p in g.payments if p.lease_id in lease_ids)
    maintenance_ids = frozenset(m.id for m in g.maintenance if m.unit_id in unit_ids)
    applications = [a for a in g.applications if a.unit_id in unit_ids]
    message_ids = frozenset(
        m.id for m in g.messages if m.sender_id == actor.id or m.receiver_id == actor.id
    )

    known_users = _ids(g.users)
    tenant_ids = frozenset(l.tenant_id for l in leases) & known_users
    applicant_ids = frozenset(a.tenant_id for a in applications) & known_users
    contacts = tenant_ids | g.admin_ids

    counterpart_ids = frozenset(
        uid
        for m in g.messages
        if m.id in message_ids
        for uid in (m.sender_id, m.receiver_id)
    ) & known_users

    return ScopedIds(
        properties=property_ids,
        units=unit_ids,
        applications=_ids(applications),
        leases=lease_ids,
        payments=payment_ids,
        maintenance=maintenance_ids,
        messages=message_ids,
        activities=frozenset(a.id for a in g.activities if a.user_id == actor.id),
        users=(contacts | applicant_ids | counterpart_ids | {actor.id}) & known_users,
        contacts=contacts - {actor.id},
    )


def _tenant_scope(actor: Actor, g: EntityGraph) -> ScopedIds:
    leases = [l for l in g.leases if l.tenant_id == actor.id]
    applications = [a for a in g.applications if a.tenant_id == actor.id]
    payment_ids = frozenset(p.id for p in g.payments if p.tenant_id == actor.id)
    requests = [m for m in g.maintenance if m.tenant_id == actor.id]
    message_ids = frozenset(
        m.id for m in g.messages if m.sender_id == actor.id or m.receiver_id == actor.id
    )

    # units the tenant has a relationship with; references to missing units drop out
    unit_ids = frozenset(
        r.unit_id for r in [*leases, *applications, *requests] if g.unit(r.unit_id) is not None
    )
    property_ids = frozenset(
        g.unit(uid).property_id for uid in unit_ids if g.property(g.unit(uid).property_id) is not None
    )

    known_users = _ids(g.users)
    leased_property_ids = frozenset(
        g.unit(l.unit_id).property_id for l in leases if g.unit(l.unit_id) is not None
    )
    landlord_ids = frozenset(
        g.property(pid).landlord_id for pid in leased_property_ids if g.property(pid) is not None
    ) & known_users
    contacts = landlord_ids | g.admin_ids

    counterpart_ids = frozenset(
        uid
        for m in g.messages
        if m.id in message_ids
        for uid in (m.sender_id, m.receiver_id)
    ) & known_users

    return ScopedIds(
        properties=property_ids,
        units=unit_ids,
        applications=_ids(applications),
        leases=_ids(leases),
        payments=payment_ids,
        maintenance=_ids(requests),
        messages=message_ids,
        activities=frozenset(a.id for a in g.activities if a.user_id == actor.id),
        users=(contacts | counterpart_ids | {actor.id}) & known_users,
        contacts=contacts - {actor.id},
    )


_RESOLVERS = {
    "admin": _admin_scope,
    "landlord": _landlord_scope,
    "tenant": _tenant_scope,
}


def resolve_scope(actor: Actor, graph: EntityGraph) -> ScopedIds:
    """Strict resolution: raises InvalidRole for a role outside admin|landlord|tenant."""
    resolver = _RESOLVERS.get(actor.role)
    if resolver is None:
        raise InvalidRole(actor.role)
    return resolver(actor, graph)


def scope(actor: Actor, graph: EntityGraph) -> ScopedIds:
    """
    Ids of every entity the actor can see.

    Fails closed: an unrecognized role yields an empty scope instead of raising.
    """
    try:
        return resolve_scope(actor, graph)
    except InvalidRole as e:
        log.warning(e.message, extra={"actor_id": actor.id, "role": str(actor.role)})
        return ScopedIds.empty()


def restrict(graph: EntityGraph, scoped: ScopedIds) -> EntityGraph:
    """Sub-graph holding only the scoped rows of each collection."""
    return EntityGraph.build(
        **{
            name: [row for row in getattr(graph, name) if row.id in getattr(scoped, name)]
            for name in COLLECTIONS
        }
    )
