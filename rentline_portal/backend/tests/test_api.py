# backend/tests/test_api.py
from __future__ import annotations

from rentline.auth import mint_token
from rentline.schemas import Envelope

from conftest import as_user


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.headers.get("X-Request-ID")


def test_missing_actor_is_401(client):
    assert client.get("/api/leases").status_code == 401
    assert client.get("/api/leases", headers=as_user("user-nobody")).status_code == 401


def test_bearer_token_resolves_actor(client):
    token = mint_token("user-landlord1")
    r = client.get("/api/properties", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert [p["id"] for p in r.json()] == ["prop-1"]


def test_dashboard_stats_follow_role(client):
    admin = client.get("/api/dashboard/stats", headers=as_user("user-admin")).json()
    assert admin["role"] == "admin"
    assert admin["totalProperties"] == 2

    landlord = client.get("/api/dashboard/stats", headers=as_user("user-landlord1")).json()
    assert landlord["role"] == "landlord"
    assert landlord["myUnits"] == 3
    assert landlord["overduePayments"] == 1


def test_payments_are_enriched_and_scoped(client):
    r = client.get("/api/payments", headers=as_user("user-tenant2"))
    assert r.status_code == 200
    (row,) = r.json()
    assert row["id"] == "pay-4"
    assert row["unit"]["unitNumber"] == "G1"
    assert row["property"]["name"] == "Nyali Gardens"
    assert row["tenant"]["firstName"] == "Mary"


def test_list_query_parameters(client):
    r = client.get("/api/payments?status=paid&sort=amount&order=asc", headers=as_user("user-admin"))
    assert [p["id"] for p in r.json()] == ["pay-1", "pay-4"]

    r = client.get("/api/maintenance?q=socket", headers=as_user("user-admin"))
    assert [m["id"] for m in r.json()] == ["maint-2"]


def test_reject_without_notes_maps_to_422_then_409(client):
    admin = as_user("user-admin")
    r = client.patch("/api/applications/app-1/status", json={"status": "rejected"}, headers=admin)
    assert r.status_code == 422
    assert r.json()["error"] == "missing_required_note"

    r = client.patch(
        "/api/applications/app-1/status", json={"status": "rejected", "notes": "No references"}, headers=admin
    )
    assert r.status_code == 200
    assert r.json()["adminNotes"] == "No references"

    r = client.patch("/api/applications/app-1/status", json={"status": "approved"}, headers=admin)
    assert r.status_code == 409
    assert r.json()["error"] == "invalid_transition"


def test_other_landlords_rows_are_404(client):
    r = client.patch(
        "/api/maintenance/maint-2/status", json={"status": "completed"}, headers=as_user("user-landlord1")
    )
    assert r.status_code == 404


def test_role_policy_is_403(client):
    r = client.post("/api/payments/pay-3/record", json={"method": "mpesa"}, headers=as_user("user-tenant1"))
    assert r.status_code == 403
    assert r.json()["error"] == "permission_denied"


def test_record_payment_and_activity_feed(client):
    admin = as_user("user-admin")
    r = client.post("/api/payments/pay-3/record", json={"method": "cheque", "transactionRef": "CHQ-9"}, headers=admin)
    assert r.status_code == 200
    assert r.json()["status"] == "paid"

    feed = client.get("/api/dashboard/activities?limit=1", headers=admin).json()
    assert feed[0]["type"] == "payment_received"


def test_messages_contacts_and_read(client):
    landlord = as_user("user-landlord1")
    contacts = client.get("/api/messages/contacts", headers=landlord).json()
    assert {c["id"] for c in contacts} == {"user-admin", "user-tenant1"}

    r = client.post("/api/messages/msg-1/read", headers=landlord)
    assert r.json()["read"] is True

    r = client.post(
        "/api/messages",
        json={"receiverId": "user-tenant1", "subject": "Plumber", "content": "Coming Tuesday"},
        headers=landlord,
    )
    assert r.status_code == 200
    assert r.json()["senderId"] == "user-landlord1"


def test_tenant_opens_request_and_applies(client):
    tenant = as_user("user-tenant1")
    r = client.post("/api/maintenance", json={"unitId": "unit-1a", "title": "Window latch"}, headers=tenant)
    assert r.status_code == 200
    assert r.json()["status"] == "open"

    r = client.post("/api/applications", json={"unitId": "unit-2b", "monthlyIncome": 80000}, headers=tenant)
    assert r.status_code == 200
    assert r.json()["monthlyIncome"] == 80000


def test_listings_are_public_and_paginated(client):
    r = client.get("/api/listings?sort=price_low")
    body = r.json()
    assert r.status_code == 200
    assert body["total"] == 3
    assert body["data"][0]["id"] == "unit-1c"
    assert body["data"][0]["property"]["name"] == "Kilimani Heights"

    assert client.get("/api/listings?sort=cheapest").status_code == 400


def test_me_round_trip(client):
    tenant = as_user("user-tenant1")
    assert client.get("/api/me", headers=tenant).json()["email"] == "john@rentline.local"
    r = client.patch("/api/me", json={"firstName": "Johnny"}, headers=tenant)
    assert r.json()["firstName"] == "Johnny"
    assert r.json()["role"] == "tenant"


def test_store_surface_is_admin_only(client):
    assert client.get("/api/store/units", headers=as_user("user-tenant1")).status_code == 403

    r = client.get("/api/store/units", headers=as_user("user-admin"))
    env = Envelope.model_validate(r.json())
    assert env.success and len(env.data) == 5

    r = client.get("/api/store/leases?field=tenant_id&value=user-tenant2", headers=as_user("user-admin"))
    assert [row["id"] for row in r.json()["data"]] == ["lease-2"]

    assert client.get("/api/store/widgets", headers=as_user("user-admin")).status_code == 404


def test_raw_store_patch_cannot_move_lifecycle_fields(client):
    admin = as_user("user-admin")

    r = client.patch("/api/store/payments/pay-1", json={"status": "pending"}, headers=admin)
    assert r.status_code == 409
    assert r.json()["error"] == "invalid_transition"

    r = client.patch("/api/store/payments/pay-3", json={"status": "paid"}, headers=admin)
    assert r.status_code == 403

    r = client.patch("/api/store/applications/app-2", json={"landlordRecommendation": "not_recommended"}, headers=admin)
    assert r.status_code == 409

    r = client.get("/api/store/payments/pay-1", headers=admin)
    assert r.json()["data"]["status"] == "paid"

    r = client.patch("/api/store/payments/pay-1", json={"notes": "reconciled"}, headers=admin)
    assert r.status_code == 200
    assert r.json()["data"]["notes"] == "reconciled"


def test_service_key_patches_are_not_guarded(client, monkeypatch):
    from rentline.config import settings

    monkeypatch.setattr(settings, "entity_store_api_key", "svc-key")
    r = client.patch(
        "/api/store/payments/pay-3", json={"status": "overdue"}, headers={"Authorization": "Bearer svc-key"}
    )
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "overdue"


def test_admin_creates_lease_and_invoice(client):
    admin = as_user("user-admin")
    body = {"unitId": "unit-2b", "tenantId": "user-tenant3", "startDate": "2026-11-01", "endDate": "2027-10-31"}

    assert client.post("/api/leases", json=body, headers=as_user("user-landlord2")).status_code == 403
    bad = {**body, "endDate": "2026-10-01"}
    assert client.post("/api/leases", json=bad, headers=admin).status_code == 422

    r = client.post("/api/leases", json=body, headers=admin)
    assert r.status_code == 200
    lease = r.json()
    assert lease["rentAmount"] == 40000
    assert lease["status"] == "active"

    r = client.post("/api/payments", json={"leaseId": lease["id"], "amount": 40000, "dueDate": "2026-11-01"}, headers=admin)
    assert r.status_code == 200
    assert r.json()["tenantId"] == "user-tenant3"
    assert r.json()["status"] == "pending"

    assert client.post("/api/payments", json={"leaseId": lease["id"], "amount": 0, "dueDate": "2026-11-01"}, headers=admin).status_code == 422

    tenant3 = client.get("/api/payments", headers=as_user("user-tenant3")).json()
    assert [p["leaseId"] for p in tenant3] == [lease["id"]]


def test_user_management(client):
    admin = as_user("user-admin")
    body = {"email": "otieno@rentline.local", "firstName": "Otieno", "lastName": "Odhiambo", "role": "landlord"}

    assert client.post("/api/users", json=body, headers=as_user("user-landlord1")).status_code == 403
    r = client.post("/api/users", json=body, headers=admin)
    assert r.status_code == 200
    assert r.json()["role"] == "landlord"

    r = client.post("/api/users", json=body, headers=admin)
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"

    landlords = client.get("/api/users?role=landlord", headers=admin).json()
    assert "otieno@rentline.local" in {u["email"] for u in landlords}
    assert client.get("/api/users", headers=as_user("user-tenant1")).status_code == 403

    r = client.patch("/api/users/user-tenant2/status", json={"status": "suspended"}, headers=admin)
    assert r.status_code == 200
    assert client.get("/api/leases", headers=as_user("user-tenant2")).status_code == 403


def test_profile_email_collision_is_409(client):
    r = client.patch("/api/me", json={"email": "grace@rentline.local"}, headers=as_user("user-tenant1"))
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"
