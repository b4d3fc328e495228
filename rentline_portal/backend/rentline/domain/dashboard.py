# backend/rentline/domain/dashboard.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from ..schemas import Activity, AdminStats, LandlordStats, Payment, TenantStats, Unit, utcnow
from .errors import InvalidRole
from .graph import EntityGraph
from .scoping import Actor
from .taxonomy import OPEN_MAINTENANCE, PAYABLE

StatsSnapshot = Union[AdminStats, LandlordStats, TenantStats]


def occupancy_rate(units: tuple[Unit, ...]) -> float:
    """Percentage of units occupied; 0 when there are no units."""
    if not units:
        return 0.0
    occupied = sum(1 for u in units if u.status == "occupied")
    return float(occupied) / float(len(units)) * 100.0


def _count(rows, status) -> int:
    if isinstance(status, str):
        return sum(1 for r in rows if r.status == status)
    return sum(1 for r in rows if r.status in status)


def next_payment_due(payments: tuple[Payment, ...], *, as_of: date) -> Optional[Payment]:
    candidates = [p for p in payments if p.status in PAYABLE and p.due_date >= as_of]
    if not candidates:
        return None
    return min(candidates, key=lambda p: (p.due_date, p.id))


def _admin(g: EntityGraph) -> AdminStats:
    return AdminStats(
        total_properties=len(g.properties),
        total_units=len(g.units),
        occupancy_rate=occupancy_rate(g.units),
        total_revenue=float(sum(p.amount for p in g.payments if p.status == "paid")),
        pending_applications=_count(g.applications, "pending"),
        open_maintenance_requests=_count(g.maintenance, OPEN_MAINTENANCE),
        overdue_payments=_count(g.payments, "overdue"),
        active_leases=_count(g.leases, "active"),
    )


def _landlord(g: EntityGraph) -> LandlordStats:
    return LandlordStats(
        my_properties=len(g.properties),
        my_units=len(g.units),
        occupancy_rate=occupancy_rate(g.units),
        pending_applications=_count(g.applications, "pending"),
        open_maintenance_requests=_count(g.maintenance, OPEN_MAINTENANCE),
        overdue_payments=_count(g.payments, "overdue"),
        active_leases=_count(g.leases, "active"),
    )


def _tenant(g: EntityGraph, actor: Actor, now: datetime) -> TenantStats:
    mine = tuple(p for p in g.payments if p.tenant_id == actor.id)
    current = next((l for l in g.leases if l.tenant_id == actor.id and l.status == "active"), None)
    return TenantStats(
        current_lease=current,
        next_payment_due=next_payment_due(mine, as_of=now.date()),
        open_maintenance_requests=sum(
            1 for m in g.maintenance if m.tenant_id == actor.id and m.status in OPEN_MAINTENANCE
        ),
        unread_messages=sum(1 for m in g.messages if m.receiver_id == actor.id and not m.read),
    )


def aggregate(
    role: str,
    scoped: EntityGraph,
    *,
    actor: Optional[Actor] = None,
    now: Optional[datetime] = None,
) -> StatsSnapshot:
    """
    Reduce an already-scoped graph to the role's dashboard counters.

    Every number is recomputed from `scoped` on each call. Tenant stats need the
    actor (unread messages and next payment are per-person).
    """
    if role == "admin":
        return _admin(scoped)
    if role == "landlord":
        return _landlord(scoped)
    if role == "tenant":
        if actor is None:
            raise ValueError("tenant stats require the actor")
        return _tenant(scoped, actor, now or utcnow())
    raise InvalidRole(role)


def recent_activities(g: EntityGraph, limit: Optional[int] = None) -> list[Activity]:
    rows = sorted(g.activities, key=lambda a: a.created_at, reverse=True)
    return rows[:limit] if limit else rows
