# backend/rentline/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import sessionmaker

from ..db import SessionLocal, init_db
from ..schemas import (
    Activity,
    Application,
    Lease,
    MaintenanceRequest,
    Message,
    Payment,
    Property,
    Record,
    Unit,
    User,
)
from ..store.sql import SqlEntityStore

ADMIN_EMAIL = "admin@rentline.local"


@dataclass(frozen=True)
class SeedResult:
    created: bool
    counts: dict[str, int]
    admin_id: str


def demo_records(now: Optional[datetime] = None) -> dict[str, list[Record]]:
    """
    A small two-landlord portfolio with fixed ids, so tokens minted for the
    demo users keep working across reseeds.
    """
    ts = now or datetime(2026, 1, 5, 9, 0, 0)

    def user(uid: str, first: str, last: str, role: str, email: str, phone: str) -> User:
        return User(
            id=uid, email=email, first_name=first, last_name=last, phone=phone,
            role=role, created_at=ts, updated_at=ts,
        )

    users = [
        user("user-admin", "Amina", "Otieno", "admin", ADMIN_EMAIL, "+254700000001"),
        user("user-landlord1", "Peter", "Kamau", "landlord", "peter@rentline.local", "+254700000002"),
        user("user-landlord2", "Grace", "Wanjiru", "landlord", "grace@rentline.local", "+254700000003"),
        user("user-tenant1", "John", "Mwangi", "tenant", "john@rentline.local", "+254700000004"),
        user("user-tenant2", "Mary", "Achieng", "tenant", "mary@rentline.local", "+254700000005"),
        user("user-tenant3", "David", "Kiprop", "tenant", "david@rentline.local", "+254700000006"),
    ]

    properties = [
        Property(
            id="prop-1", name="Kilimani Heights", address="12 Argwings Kodhek Rd", city="Nairobi",
            county="Nairobi", landlord_id="user-landlord1", total_units=3, occupied_units=1,
            amenities=("parking", "borehole"), created_at=ts, updated_at=ts,
        ),
        Property(
            id="prop-2", name="Nyali Gardens", address="4 Links Rd", city="Mombasa",
            county="Mombasa", landlord_id="user-landlord2", total_units=2, occupied_units=1,
            amenities=("pool",), created_at=ts, updated_at=ts,
        ),
    ]

    def unit(uid: str, pid: str, number: str, kind: str, beds: int, rent: float, status: str, sqm: float) -> Unit:
        return Unit(
            id=uid, property_id=pid, unit_number=number, type=kind, bedrooms=beds, bathrooms=max(beds, 1),
            square_meters=sqm, rent_amount=rent, deposit_amount=rent, status=status,
            created_at=ts, updated_at=ts,
        )

    units = [
        unit("unit-1a", "prop-1", "A1", "2br", 2, 45000, "occupied", 85),
        unit("unit-1b", "prop-1", "A2", "1br", 1, 30000, "available", 55),
        unit("unit-1c", "prop-1", "B1", "studio", 0, 18000, "available", 30),
        unit("unit-2a", "prop-2", "G1", "3br", 3, 60000, "occupied", 120),
        unit("unit-2b", "prop-2", "G2", "2br", 2, 40000, "available", 80),
    ]

    leases = [
        Lease(
            id="lease-1", unit_id="unit-1a", tenant_id="user-tenant1", start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 31), rent_amount=45000, deposit_amount=45000, status="active",
            created_at=ts, updated_at=ts,
        ),
        Lease(
            id="lease-2", unit_id="unit-2a", tenant_id="user-tenant2", start_date=date(2026, 3, 1),
            end_date=date(2027, 2, 28), rent_amount=60000, deposit_amount=60000, status="active",
            created_at=ts, updated_at=ts,
        ),
    ]

    payments = [
        Payment(
            id="pay-1", lease_id="lease-1", tenant_id="user-tenant1", amount=45000, due_date=date(2026, 9, 1),
            paid_date=date(2026, 9, 1), status="paid", method="mpesa", transaction_ref="QWE123RTY",
            created_at=ts, updated_at=ts,
        ),
        Payment(
            id="pay-2", lease_id="lease-1", tenant_id="user-tenant1", amount=45000, due_date=date(2026, 10, 1),
            status="overdue", late_fee=2250, created_at=ts, updated_at=ts,
        ),
        Payment(
            id="pay-3", lease_id="lease-1", tenant_id="user-tenant1", amount=45000, due_date=date(2026, 11, 1),
            status="pending", created_at=ts, updated_at=ts,
        ),
        Payment(
            id="pay-4", lease_id="lease-2", tenant_id="user-tenant2", amount=60000, due_date=date(2026, 10, 1),
            paid_date=date(2026, 9, 29), status="paid", method="bank_transfer", created_at=ts, updated_at=ts,
        ),
    ]

    applications = [
        Application(
            id="app-1", unit_id="unit-1b", tenant_id="user-tenant3", employment_status="employed",
            monthly_income=120000, emergency_contact="Ruth Kiprop", emergency_phone="+254700000007",
            move_in_date=date(2026, 11, 1), created_at=ts, updated_at=ts,
        ),
        Application(
            id="app-2", unit_id="unit-2b", tenant_id="user-tenant3", landlord_recommendation="recommended",
            landlord_notes="Good references", employment_status="self-employed", monthly_income=150000,
            created_at=ts, updated_at=ts,
        ),
    ]

    maintenance = [
        MaintenanceRequest(
            id="maint-1", unit_id="unit-1a", tenant_id="user-tenant1", category="plumbing",
            title="Kitchen sink leaking", description="Water pooling under the sink", priority="high",
            created_at=ts, updated_at=ts,
        ),
        MaintenanceRequest(
            id="maint-2", unit_id="unit-2a", tenant_id="user-tenant2", category="electrical",
            title="Bedroom socket sparks", priority="urgent", status="in_progress",
            assigned_to="user-landlord2", created_at=ts, updated_at=ts,
        ),
    ]

    messages = [
        Message(
            id="msg-1", sender_id="user-tenant1", receiver_id="user-landlord1", subject="Sink",
            content="The kitchen sink is leaking again.", created_at=ts,
        ),
        Message(
            id="msg-2", sender_id="user-admin", receiver_id="user-tenant2", subject="Welcome",
            content="Welcome to Nyali Gardens.", read=True, created_at=ts,
        ),
    ]

    activities = [
        Activity(
            id="act-1", type="payment_received", user_id="user-admin",
            description="Payment of 45,000.00 received", metadata={"paymentId": "pay-1"}, created_at=ts,
        ),
    ]

    return {
        "users": users,
        "properties": properties,
        "units": units,
        "applications": applications,
        "leases": leases,
        "payments": payments,
        "maintenance": maintenance,
        "messages": messages,
        "activities": activities,
    }


def seed_demo(session_factory: Optional[sessionmaker] = None) -> SeedResult:
    """Load the demo portfolio unless the demo admin already exists."""
    if session_factory is None:
        init_db()
        session_factory = SessionLocal
    store = SqlEntityStore(session_factory)

    records = demo_records()
    counts = {name: len(rows) for name, rows in records.items()}

    existing = store.find_user_by_email(ADMIN_EMAIL)
    if existing is not None:
        return SeedResult(created=False, counts=counts, admin_id=existing.id)

    for name, rows in records.items():
        store.insert_records(name, rows)
    return SeedResult(created=True, counts=counts, admin_id="user-admin")
