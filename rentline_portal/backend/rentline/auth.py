# backend/rentline/auth.py
from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, Header, HTTPException, Request

from .config import settings
from .domain.scoping import Actor
from .schemas import User
from .store.base import EntityStore, unwrap
from .store.factory import get_store


# -------------------------
# JWT helpers
# -------------------------
def _b64(x: bytes) -> str:
    return base64.urlsafe_b64encode(x).decode().rstrip("=")


def _ub64(s: str) -> bytes:
    return base64.urlsafe_b64decode((s + "=" * (-len(s) % 4)).encode())


def _now_ts() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def _jwt_sign(payload: dict[str, Any]) -> str:
    # Minimal HS256 JWT (no pyjwt dependency)
    header = {"alg": "HS256", "typ": "JWT"}
    header_b = _b64(json.dumps(header, separators=(",", ":")).encode())
    payload_b = _b64(json.dumps(payload, separators=(",", ":")).encode())
    msg = f"{header_b}.{payload_b}".encode()
    sig = hmac.new(settings.jwt_secret.encode(), msg, hashlib.sha256).digest()
    return f"{header_b}.{payload_b}.{_b64(sig)}"


def _jwt_verify(token: str) -> dict[str, Any]:
    try:
        header_b, payload_b, sig_b = token.split(".", 2)
        msg = f"{header_b}.{payload_b}".encode()
        expected = hmac.new(settings.jwt_secret.encode(), msg, hashlib.sha256).digest()
        if not hmac.compare_digest(_ub64(sig_b), expected):
            raise HTTPException(status_code=401, detail="Invalid token signature")

        payload = json.loads(_ub64(payload_b).decode())
    except HTTPException:
        raise
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid token")

    if not isinstance(payload, dict):
        raise HTTPException(status_code=401, detail="Invalid token")
    exp = payload.get("exp")
    if exp is not None and int(exp) < _now_ts():
        raise HTTPException(status_code=401, detail="Token expired")
    return payload


def mint_token(user_id: str, *, minutes: Optional[int] = None) -> str:
    ttl = timedelta(minutes=minutes if minutes is not None else settings.jwt_exp_minutes)
    now = _now_ts()
    return _jwt_sign({"sub": user_id, "iat": now, "exp": now + int(ttl.total_seconds())})


# -------------------------
# Actor resolution
# -------------------------
async def _load_user(store: EntityStore, user_id: str) -> User:
    user = unwrap(await store.users.get_by_id(user_id), what="users.get_by_id")
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    if user.status == "suspended":
        raise HTTPException(status_code=403, detail="Account suspended")
    return user


async def get_current_user(
    request: Request,
    store: EntityStore = Depends(get_store),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> User:
    """
    Auth modes supported (in priority order):
      1) Authorization: Bearer <token>, sub = user id
      2) dev header (ONLY if settings.auth_mode == "dev")

    The role is read from the stored user, never from the request.
    """
    token = None
    if authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()

    if token:
        sub = str(_jwt_verify(token).get("sub") or "")
        if not sub:
            raise HTTPException(status_code=401, detail="Token missing sub")
        return await _load_user(store, sub)

    if (settings.auth_mode or "").strip().lower() == "dev":
        user_id = (request.headers.get(settings.dev_header_user_id) or "").strip()
        if not user_id:
            raise HTTPException(status_code=401, detail=f"Missing {settings.dev_header_user_id} for dev auth")
        return await _load_user(store, user_id)

    raise HTTPException(status_code=401, detail="Not authenticated")


async def get_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor(id=user.id, role=user.role, email=user.email)


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != "admin":
        raise HTTPException(status_code=403, detail="Requires role admin")
    return actor
