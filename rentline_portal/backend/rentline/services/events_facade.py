# backend/rentline/services/events_facade.py
from __future__ import annotations

import logging
from typing import Any, Optional

from ..schemas import Activity
from ..store.base import EntityStore

log = logging.getLogger("rentline.activity")


class ActivityFacade:
    """
    Appends entries to the activity log after a successful write.

    The write itself has already landed in the store, so a failed append is
    logged and reported as None rather than failing the caller.

    Services import:
        from .events_facade import activity
    """

    async def emit(
        self,
        store: EntityStore,
        *,
        type: str,
        user_id: str,
        description: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[Activity]:
        if not type:
            raise ValueError("activity type required")

        env = await store.activities.create(
            {
                "type": type,
                "userId": user_id,
                "description": description,
                "metadata": metadata or {},
            }
        )
        if not env.success:
            log.warning(
                "activity append failed: %s",
                env.message,
                extra={"actor_id": user_id, "entity_type": "Activity"},
            )
            return None
        return env.data


activity = ActivityFacade()
