# backend/tests/test_logging.py
from __future__ import annotations

import json
import logging

from rentline.logging_config import JsonFormatter
from rentline.middleware.request_id import accept_request_id, request_id_ctx


def _record(**extra) -> logging.LogRecord:
    rec = logging.LogRecord("rentline.transitions", logging.INFO, __file__, 1, "Payment %s: %s", ("pay-1", "paid"), None)
    for k, v in extra.items():
        setattr(rec, k, v)
    return rec


def test_json_line_carries_request_id_and_whitelisted_extras():
    token = request_id_ctx.set("req-42")
    try:
        line = json.loads(JsonFormatter(env="test").format(_record(actor_id="user-admin", entity_id="pay-1", secret="x")))
    finally:
        request_id_ctx.reset(token)

    assert line["message"] == "Payment pay-1: paid"
    assert line["env"] == "test"
    assert line["request_id"] == "req-42"
    assert line["actor_id"] == "user-admin"
    assert line["entity_id"] == "pay-1"
    assert "secret" not in line
    assert "role" not in line


def test_inbound_request_ids_are_kept_only_when_safe():
    assert accept_request_id("abc-123.x_y") == "abc-123.x_y"
    for raw in (None, "", "has space", "a" * 65, "line\nbreak"):
        rid = accept_request_id(raw)
        assert rid != raw
        assert len(rid) == 32


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "trace-7"})
    assert r.headers["X-Request-ID"] == "trace-7"
    r = client.get("/api/health", headers={"X-Request-ID": "bad id"})
    assert r.headers["X-Request-ID"] != "bad id"
