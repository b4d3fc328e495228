# backend/rentline/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .config import settings
from .middleware.request_id import get_request_id

# structured extras a call site may pass via `extra=`; anything else stays out of the line
EXTRA_KEYS = ("actor_id", "role", "entity_type", "entity_id", "load_token")

# chatty third-party loggers and the level they are held at
QUIET_LOGGERS = {"httpx": "WARNING", "httpcore": "WARNING"}


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: timestamp of the record itself, level, logger,
    message, the deployment env, the current request id and any whitelisted
    extras. Values that are not JSON-native are stringified.
    """

    def __init__(self, env: Optional[str] = None) -> None:
        super().__init__()
        self.env = env if env is not None else settings.app_env

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "env": self.env,
            "message": record.getMessage(),
        }

        rid = get_request_id()
        if rid:
            payload["request_id"] = rid

        extras = {k: getattr(record, k) for k in EXTRA_KEYS if getattr(record, k, None) is not None}
        payload.update(extras)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None) -> None:
    """Route the root logger to stdout as JSON; safe to call more than once."""
    lvl = (level or settings.log_level or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(lvl)

    # uvicorn --reload re-imports main; drop the handlers a previous import left
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(lvl)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(lvl)
    logging.getLogger("sqlalchemy.engine").setLevel((settings.sql_log_level or "WARNING").upper())
    for name, quiet in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet)
