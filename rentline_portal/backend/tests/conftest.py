# backend/tests/conftest.py
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from rentline.cli.seed_demo import demo_records
from rentline.db import init_db, make_engine, make_sessionmaker
from rentline.domain.graph import EntityGraph
from rentline.domain.scoping import Actor
from rentline.store.sql import SqlEntityStore

ADMIN = Actor(id="user-admin", role="admin")
LANDLORD1 = Actor(id="user-landlord1", role="landlord")
LANDLORD2 = Actor(id="user-landlord2", role="landlord")
TENANT1 = Actor(id="user-tenant1", role="tenant")
TENANT2 = Actor(id="user-tenant2", role="tenant")
TENANT3 = Actor(id="user-tenant3", role="tenant")


@pytest.fixture
def graph() -> EntityGraph:
    return EntityGraph.build(**demo_records())


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_sessionmaker(engine)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory) -> SqlEntityStore:
    store = SqlEntityStore(session_factory)
    for name, rows in demo_records().items():
        store.insert_records(name, rows)
    return store


@pytest.fixture
def client(sql_store):
    from rentline.main import create_app

    with TestClient(create_app(store=sql_store)) as c:
        yield c


def as_user(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}
