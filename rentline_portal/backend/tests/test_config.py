# backend/tests/test_config.py
from __future__ import annotations

import pytest

from rentline.config import Settings


def test_local_defaults_are_permissive():
    s = Settings(_env_file=None)
    assert s.auth_mode == "dev"
    assert s.entity_store_backend == "sql"


def test_prod_refuses_dev_auth():
    with pytest.raises(ValueError):
        Settings(_env_file=None, app_env="prod", auth_mode="dev", jwt_secret="s3cret", cors_allow_origins=["https://a"])


def test_prod_refuses_default_secret_and_wildcard_cors():
    with pytest.raises(ValueError):
        Settings(_env_file=None, app_env="prod", auth_mode="jwt", cors_allow_origins=["https://a"])
    with pytest.raises(ValueError):
        Settings(_env_file=None, app_env="prod", auth_mode="jwt", jwt_secret="s3cret")


def test_prod_accepts_locked_down_settings():
    s = Settings(_env_file=None, app_env="prod", auth_mode="jwt", jwt_secret="s3cret", cors_allow_origins=["https://a"])
    assert s.app_env == "prod"


def test_unknown_store_backend():
    with pytest.raises(ValueError):
        Settings(_env_file=None, entity_store_backend="redis")
