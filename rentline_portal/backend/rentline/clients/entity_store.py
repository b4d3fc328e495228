# backend/rentline/clients/entity_store.py
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from ..config import settings
from ..schemas import Envelope
from ..store.base import EntityStore, describe_error, spec_for

log = logging.getLogger("rentline.clients.entity_store")


class HttpEntityStore(EntityStore):
    """
    Entity store reached over HTTP. The remote side answers every call with the
    {data, success, message} envelope; transport errors, non-2xx responses and
    unparseable bodies all come back as failed envelopes.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base = (base_url or settings.entity_store_base_url).rstrip("/")
        headers = {"Accept": "application/json"}
        key = api_key if api_key is not None else settings.entity_store_api_key
        if key:
            headers["Authorization"] = f"Bearer {key}"
        self._client = httpx.AsyncClient(
            base_url=self.base,
            timeout=timeout if timeout is not None else settings.entity_store_timeout_seconds,
            headers=headers,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        method: str,
        path: str,
        collection: str,
        *,
        many: bool,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> Envelope:
        spec = spec_for(collection)
        payload = to_jsonable_python(json, by_alias=True) if json is not None else None
        try:
            r = await self._client.request(method, path, json=payload, params=params)
            body = r.json()
        except httpx.HTTPError as e:
            log.warning("entity store %s %s failed: %s", method, path, e, extra={"entity_type": collection})
            return Envelope.fail(f"entity store unreachable: {e}")
        except ValueError:
            return Envelope.fail(f"entity store returned non-JSON body (status {r.status_code})")

        if not isinstance(body, dict) or "success" not in body:
            return Envelope.fail(f"entity store returned a malformed envelope (status {r.status_code})")
        if r.status_code >= 400 or not body.get("success"):
            return Envelope.fail(
                str(body.get("message") or f"entity store error (status {r.status_code})"),
                error=body.get("error"),
            )

        data = body.get("data")
        try:
            if data is None:
                parsed = None
            elif many:
                parsed = [spec.record.model_validate(x) for x in data]
            else:
                parsed = spec.record.model_validate(data)
        except (ValidationError, TypeError) as e:
            return Envelope.fail(f"entity store returned invalid {collection}: {describe_error(e)}")
        return Envelope(data=parsed, success=True, message=body.get("message"))

    async def get_all(self, collection: str) -> Envelope:
        return await self._call("GET", f"/{collection}", collection, many=True)

    async def get_by_id(self, collection: str, entity_id: str) -> Envelope:
        return await self._call("GET", f"/{collection}/{entity_id}", collection, many=False)

    async def get_by_related(self, collection: str, field: str, value: str) -> Envelope:
        return await self._call(
            "GET", f"/{collection}", collection, many=True, params={"field": field, "value": value}
        )

    async def create(self, collection: str, payload: dict[str, Any]) -> Envelope:
        return await self._call("POST", f"/{collection}", collection, many=False, json=payload)

    async def update(self, collection: str, entity_id: str, patch: dict[str, Any]) -> Envelope:
        return await self._call("PATCH", f"/{collection}/{entity_id}", collection, many=False, json=patch)
