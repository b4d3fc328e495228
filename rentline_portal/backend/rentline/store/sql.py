# backend/rentline/store/sql.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError
from sqlalchemy import desc, or_, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models import (
    ActivityRow,
    ApplicationRow,
    LeaseRow,
    MaintenanceCommentRow,
    MaintenanceRequestRow,
    MessageRow,
    PaymentRow,
    PropertyRow,
    UnitRow,
    UserRow,
)
from ..schemas import Envelope, Record
from .base import CONFLICT, PARTICIPANT, CollectionSpec, EntityStore, build_new, describe_error, merge_patch, spec_for

log = logging.getLogger("rentline.store.sql")

ROWS: dict[str, type] = {
    "users": UserRow,
    "properties": PropertyRow,
    "units": UnitRow,
    "applications": ApplicationRow,
    "leases": LeaseRow,
    "payments": PaymentRow,
    "maintenance": MaintenanceRequestRow,
    "messages": MessageRow,
    "activities": ActivityRow,
}

# python attribute on the row -> record field name
_RENAMES = {"meta": "metadata"}
_RENAMES_BACK = {v: k for k, v in _RENAMES.items()}


def _row_values(row: Any) -> dict[str, Any]:
    values = {
        _RENAMES.get(attr.key, attr.key): getattr(row, attr.key)
        for attr in sa_inspect(row).mapper.column_attrs
    }
    if isinstance(row, MaintenanceRequestRow):
        values["comments"] = [_row_values(c) for c in row.comments]
    return values


def _to_record(spec: CollectionSpec, row: Any) -> Record:
    return spec.record.model_validate(_row_values(row))


def _apply(row: Any, record: Record) -> None:
    """Copy record fields onto a row; maintenance comments are appended, never removed."""
    data = record.model_dump()
    comments = data.pop("comments", None)
    for k, v in data.items():
        setattr(row, _RENAMES_BACK.get(k, k), list(v) if isinstance(v, tuple) else v)
    if comments is not None:
        have = {c.id for c in row.comments}
        for c in comments:
            if c["id"] not in have:
                row.comments.append(MaintenanceCommentRow(**c))


class SqlEntityStore(EntityStore):
    """
    Entity store over the SQLAlchemy tables in models.py.

    Session work is synchronous; every call runs in a worker thread so the
    event loop is never blocked on the database.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    async def _run(self, op: str, collection: str, fn: Callable[[Session], Envelope]) -> Envelope:
        return await asyncio.to_thread(self._in_session, op, collection, fn)

    def _in_session(self, op: str, collection: str, fn: Callable[[Session], Envelope]) -> Envelope:
        db = self.session_factory()
        try:
            return fn(db)
        except IntegrityError as e:
            db.rollback()
            log.warning("store %s on %s violated a constraint", op, collection, extra={"entity_type": collection})
            return Envelope.fail(f"constraint violation: {e.orig}", error=CONFLICT)
        except SQLAlchemyError:
            db.rollback()
            log.exception("store %s on %s failed", op, collection, extra={"entity_type": collection})
            return Envelope.fail(f"store error during {op} on {collection}")
        finally:
            db.close()

    # ---- reads ----

    async def get_all(self, collection: str) -> Envelope:
        spec = spec_for(collection)
        model = ROWS[collection]

        def q(db: Session) -> Envelope:
            rows = db.scalars(select(model).order_by(desc(model.created_at))).all()
            return Envelope.ok([_to_record(spec, r) for r in rows])

        return await self._run("get_all", collection, q)

    async def get_by_id(self, collection: str, entity_id: str) -> Envelope:
        spec = spec_for(collection)
        model = ROWS[collection]

        def q(db: Session) -> Envelope:
            row = db.get(model, entity_id)
            # missing rows are a successful empty read, not a failure
            return Envelope.ok(_to_record(spec, row) if row is not None else None)

        return await self._run("get_by_id", collection, q)

    async def get_by_related(self, collection: str, field: str, value: str) -> Envelope:
        spec = spec_for(collection)
        model = ROWS[collection]
        if field not in spec.related_fields:
            return Envelope.fail(f"{collection} cannot be looked up by {field}")

        def q(db: Session) -> Envelope:
            if field == PARTICIPANT:
                cond = or_(model.sender_id == value, model.receiver_id == value)
            else:
                cond = getattr(model, field) == value
            rows = db.scalars(select(model).where(cond).order_by(desc(model.created_at))).all()
            return Envelope.ok([_to_record(spec, r) for r in rows])

        return await self._run("get_by_related", collection, q)

    # ---- writes ----

    async def create(self, collection: str, payload: dict[str, Any]) -> Envelope:
        spec = spec_for(collection)
        model = ROWS[collection]
        try:
            record = build_new(spec, payload)
        except (ValidationError, ValueError) as e:
            return Envelope.fail(describe_error(e))

        def q(db: Session) -> Envelope:
            row = model()
            _apply(row, record)
            db.add(row)
            db.commit()
            db.refresh(row)
            return Envelope.ok(_to_record(spec, row))

        return await self._run("create", collection, q)

    async def update(self, collection: str, entity_id: str, patch: dict[str, Any]) -> Envelope:
        spec = spec_for(collection)
        model = ROWS[collection]

        def q(db: Session) -> Envelope:
            row = db.get(model, entity_id)
            if row is None:
                return Envelope.fail(f"{spec.record.__name__} not found")
            try:
                record = merge_patch(spec, _to_record(spec, row), patch)
            except (ValidationError, ValueError) as e:
                return Envelope.fail(describe_error(e))
            _apply(row, record)
            db.commit()
            db.refresh(row)
            return Envelope.ok(_to_record(spec, row))

        return await self._run("update", collection, q)

    # ---- bulk load (seeding / tests) ----

    def insert_records(self, collection: str, records: list[Record]) -> None:
        model = ROWS[collection]
        db = self.session_factory()
        try:
            for rec in records:
                row = model()
                _apply(row, rec)
                db.add(row)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def find_user_by_email(self, email: str) -> Optional[Record]:
        db = self.session_factory()
        try:
            row = db.scalar(select(UserRow).where(UserRow.email == email))
            return _to_record(spec_for("users"), row) if row is not None else None
        finally:
            db.close()
