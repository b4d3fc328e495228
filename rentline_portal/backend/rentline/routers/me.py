# backend/rentline/routers/me.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_actor, get_current_user
from ..domain.scoping import Actor
from ..schemas import ProfilePatch, User
from ..services import transitions
from ..store.base import EntityStore
from ..store.factory import get_store

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=User)
async def me(user: User = Depends(get_current_user)):
    return user


@router.patch("", response_model=User)
async def update_me(
    payload: ProfilePatch,
    actor: Actor = Depends(get_actor),
    store: EntityStore = Depends(get_store),
):
    return await transitions.update_profile(store, actor, payload.model_dump(exclude_unset=True))
