# backend/rentline/store/base.py
from __future__ import annotations

import abc
import uuid
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from pydantic import ValidationError

from ..domain.errors import Conflict, StoreUnavailable
from ..schemas import (
    Activity,
    Application,
    Envelope,
    Lease,
    MaintenanceRequest,
    Message,
    Payment,
    Property,
    Record,
    Unit,
    User,
    utcnow,
)

R = TypeVar("R", bound=Record)

# pseudo-field for "sender or receiver" on messages
PARTICIPANT = "participant_id"


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    record: type
    id_prefix: str
    related_fields: tuple[str, ...]
    # fields a create call may not set; the store owns them
    server_fields: tuple[str, ...] = ("id", "created_at", "updated_at")


SPECS: dict[str, CollectionSpec] = {
    s.name: s
    for s in (
        CollectionSpec("users", User, "user", ()),
        CollectionSpec("properties", Property, "prop", ("landlord_id",)),
        CollectionSpec("units", Unit, "unit", ("property_id",)),
        CollectionSpec("applications", Application, "app", ("tenant_id", "unit_id")),
        CollectionSpec("leases", Lease, "lease", ("tenant_id", "unit_id")),
        CollectionSpec("payments", Payment, "pay", ("tenant_id", "lease_id")),
        CollectionSpec("maintenance", MaintenanceRequest, "maint", ("tenant_id", "unit_id")),
        CollectionSpec("messages", Message, "msg", ("sender_id", "receiver_id", PARTICIPANT)),
        CollectionSpec("activities", Activity, "act", ("user_id",)),
    )
}

COMMENT_PREFIX = "comm"

# Envelope.error for a write that violated a uniqueness constraint
CONFLICT = "conflict"


def spec_for(collection: str) -> CollectionSpec:
    try:
        return SPECS[collection]
    except KeyError:
        raise KeyError(f"unknown collection: {collection!r}") from None


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def normalize_keys(record: type, data: dict[str, Any]) -> dict[str, Any]:
    """Accept camelCase or snake_case keys; return snake_case field names."""
    by_alias = {f.alias: name for name, f in record.model_fields.items() if f.alias}
    out: dict[str, Any] = {}
    for k, v in (data or {}).items():
        name = by_alias.get(k, k)
        if name not in record.model_fields:
            raise ValueError(f"unknown field for {record.__name__}: {k!r}")
        out[name] = v
    return out


def build_new(spec: CollectionSpec, payload: dict[str, Any]) -> Record:
    """Fill server-owned fields and validate a create payload into a record."""
    values = normalize_keys(spec.record, payload)
    for f in spec.server_fields:
        values.pop(f, None)
    now = utcnow()
    values["id"] = new_id(spec.id_prefix)
    if "created_at" in spec.record.model_fields:
        values["created_at"] = now
    if "updated_at" in spec.record.model_fields:
        values["updated_at"] = now
    return spec.record.model_validate(values)


def merge_patch(spec: CollectionSpec, current: Record, patch: dict[str, Any]) -> Record:
    """Shallow merge of a partial patch over the current record, re-validated."""
    values = normalize_keys(spec.record, patch)
    for f in ("id", "created_at"):
        if f in values and values[f] != getattr(current, f):
            raise ValueError(f"{f} cannot be changed")
        values.pop(f, None)
    merged = current.model_dump()
    merged.update(values)
    if "updated_at" in spec.record.model_fields:
        merged["updated_at"] = utcnow()
    row = spec.record.model_validate(merged)

    # comments are append-only
    if isinstance(current, MaintenanceRequest):
        kept = {c.id for c in row.comments}
        if any(c.id not in kept for c in current.comments):
            raise ValueError("maintenance comments are append-only")
    return row


def describe_error(e: Exception) -> str:
    if isinstance(e, ValidationError):
        return "; ".join(f"{'.'.join(str(x) for x in err['loc']) or 'record'}: {err['msg']}" for err in e.errors())
    return str(e)


class EntityStore(abc.ABC):
    """
    The store collaborator: typed get/create/update per collection, every
    result wrapped in an Envelope. Implementations never raise for store-side
    failures; they return Envelope(success=False, message=...).
    """

    @abc.abstractmethod
    async def get_all(self, collection: str) -> Envelope:
        ...

    @abc.abstractmethod
    async def get_by_id(self, collection: str, entity_id: str) -> Envelope:
        ...

    @abc.abstractmethod
    async def get_by_related(self, collection: str, field: str, value: str) -> Envelope:
        ...

    @abc.abstractmethod
    async def create(self, collection: str, payload: dict[str, Any]) -> Envelope:
        ...

    @abc.abstractmethod
    async def update(self, collection: str, entity_id: str, patch: dict[str, Any]) -> Envelope:
        ...

    async def aclose(self) -> None:
        return None

    def collection(self, name: str) -> "Collection":
        return Collection(self, spec_for(name))

    # typed accessors, e.g. store.leases.get_by_related("tenant_id", "u-1")
    @property
    def users(self) -> "Collection[User]":
        return self.collection("users")

    @property
    def properties(self) -> "Collection[Property]":
        return self.collection("properties")

    @property
    def units(self) -> "Collection[Unit]":
        return self.collection("units")

    @property
    def applications(self) -> "Collection[Application]":
        return self.collection("applications")

    @property
    def leases(self) -> "Collection[Lease]":
        return self.collection("leases")

    @property
    def payments(self) -> "Collection[Payment]":
        return self.collection("payments")

    @property
    def maintenance(self) -> "Collection[MaintenanceRequest]":
        return self.collection("maintenance")

    @property
    def messages(self) -> "Collection[Message]":
        return self.collection("messages")

    @property
    def activities(self) -> "Collection[Activity]":
        return self.collection("activities")


class Collection(Generic[R]):
    def __init__(self, store: EntityStore, spec: CollectionSpec) -> None:
        self.store = store
        self.spec = spec

    @property
    def name(self) -> str:
        return self.spec.name

    async def get_all(self) -> Envelope:
        return await self.store.get_all(self.name)

    async def get_by_id(self, entity_id: str) -> Envelope:
        return await self.store.get_by_id(self.name, entity_id)

    async def get_by_related(self, field: str, value: str) -> Envelope:
        return await self.store.get_by_related(self.name, field, value)

    async def create(self, payload: dict[str, Any]) -> Envelope:
        return await self.store.create(self.name, payload)

    async def update(self, entity_id: str, patch: dict[str, Any]) -> Envelope:
        return await self.store.update(self.name, entity_id, patch)


def unwrap(env: Envelope, *, what: Optional[str] = None) -> Any:
    """
    Trust `data` only after `success`. A conflict envelope becomes Conflict;
    any other failed envelope becomes StoreUnavailable.
    """
    if not env.success:
        if env.error == CONFLICT:
            raise Conflict(env.message or "write conflicts with an existing row")
        raise StoreUnavailable(env.message or f"store request failed{f' ({what})' if what else ''}")
    return env.data
