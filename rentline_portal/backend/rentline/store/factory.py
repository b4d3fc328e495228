# backend/rentline/store/factory.py
from __future__ import annotations

from typing import Optional

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from ..config import settings
from .base import EntityStore


def make_store(session_factory: Optional[sessionmaker] = None) -> EntityStore:
    backend = (settings.entity_store_backend or "sql").strip().lower()
    if backend == "http":
        from ..clients.entity_store import HttpEntityStore

        return HttpEntityStore()

    from ..db import SessionLocal, init_db
    from .sql import SqlEntityStore

    if session_factory is None:
        init_db()
        session_factory = SessionLocal
    return SqlEntityStore(session_factory)


def get_store(request: Request) -> EntityStore:
    return request.app.state.store
