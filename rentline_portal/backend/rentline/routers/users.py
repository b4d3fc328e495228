# backend/rentline/routers/users.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ..auth import get_actor, require_admin
from ..domain.scoping import Actor
from ..schemas import User, UserIn, UserStatusIn
from ..services import transitions
from ..store.base import EntityStore, unwrap
from ..store.factory import get_store

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[User])
async def list_users(
    role: Optional[str] = None,
    _: Actor = Depends(require_admin),
    store: EntityStore = Depends(get_store),
):
    users = unwrap(await store.users.get_all(), what="users.get_all") or []
    return [u for u in users if role is None or u.role == role]


@router.post("", response_model=User)
async def create_user(
    payload: UserIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.create_user(
        store,
        actor,
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=payload.role,
        status=payload.status,
    )


@router.patch("/{user_id}/status", response_model=User)
async def set_user_status(
    user_id: str,
    payload: UserStatusIn,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.set_user_status(store, actor, user_id, status=payload.status)
