# backend/tests/test_store_unavailable.py
from __future__ import annotations

from fastapi.testclient import TestClient

from rentline.main import create_app
from rentline.schemas import Envelope

from conftest import as_user
from test_view_session import ProxyStore


class BrokenReads(ProxyStore):
    async def get_all(self, collection):
        return Envelope.fail("connection reset")


def test_view_degrades_to_empty_list_with_503(sql_store):
    client = TestClient(create_app(store=BrokenReads(sql_store)))
    r = client.get("/api/leases", headers=as_user("user-admin"))
    assert r.status_code == 503
    assert r.json() == {"error": "store_unavailable", "detail": "connection reset", "data": []}
