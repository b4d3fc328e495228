# backend/rentline/routers/store.py
from __future__ import annotations

import hmac
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from ..auth import get_current_user
from ..config import settings
from ..schemas import Envelope
from ..services.transitions import guard_raw_patch
from ..store.base import CONFLICT, SPECS, EntityStore
from ..store.factory import get_store

router = APIRouter(prefix="/store", tags=["store"])


SERVICE_CLIENT = "service"
ADMIN_CLIENT = "admin"


async def require_store_client(
    request: Request,
    store: EntityStore = Depends(get_store),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """
    The raw store surface bypasses scoping, so it is open only to the
    service key (when configured) or to an admin user. Returns which of the
    two is calling.
    """
    key = settings.entity_store_api_key
    if key and authorization and hmac.compare_digest(authorization, f"Bearer {key}"):
        return SERVICE_CLIENT
    user = await get_current_user(request, store, authorization)
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Requires role admin")
    return ADMIN_CLIENT


def _collection(collection: str) -> str:
    if collection not in SPECS:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {collection}")
    return collection


def _respond(env: Envelope) -> JSONResponse:
    body = env.model_dump(mode="json", by_alias=True)
    if env.success:
        return JSONResponse(body, status_code=200)
    return JSONResponse(body, status_code=409 if env.error == CONFLICT else 400)


@router.get("/{collection}", dependencies=[Depends(require_store_client)])
async def get_all(
    collection: str,
    field: Optional[str] = None,
    value: Optional[str] = None,
    store: EntityStore = Depends(get_store),
):
    name = _collection(collection)
    if field is not None:
        if value is None:
            raise HTTPException(status_code=400, detail="value is required with field")
        return _respond(await store.get_by_related(name, field, value))
    return _respond(await store.get_all(name))


@router.get("/{collection}/{entity_id}", dependencies=[Depends(require_store_client)])
async def get_by_id(collection: str, entity_id: str, store: EntityStore = Depends(get_store)):
    return _respond(await store.get_by_id(_collection(collection), entity_id))


@router.post("/{collection}", dependencies=[Depends(require_store_client)])
async def create(
    collection: str,
    payload: dict[str, Any] = Body(...),
    store: EntityStore = Depends(get_store),
):
    return _respond(await store.create(_collection(collection), payload))


@router.patch("/{collection}/{entity_id}")
async def update(
    collection: str,
    entity_id: str,
    patch: dict[str, Any] = Body(...),
    client: str = Depends(require_store_client),
    store: EntityStore = Depends(get_store),
):
    name = _collection(collection)
    # the service key is the write services' own store client; admins editing
    # rows by hand may not move lifecycle fields
    if client != SERVICE_CLIENT:
        await guard_raw_patch(store, name, entity_id, patch)
    return _respond(await store.update(name, entity_id, patch))
