# backend/tests/test_seed_demo.py
from __future__ import annotations

from rentline.cli.seed_demo import seed_demo


def test_seed_is_idempotent(session_factory):
    first = seed_demo(session_factory)
    second = seed_demo(session_factory)
    assert first.created is True
    assert second.created is False
    assert second.admin_id == "user-admin"
    assert first.counts["units"] == 5
