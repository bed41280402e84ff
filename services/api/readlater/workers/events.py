from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from readlater.core.config import settings
from readlater.core.redis import get_redis

logger = logging.getLogger(__name__)


class EntityType(str, Enum):
    PAGE = "page"


class EventPublisher(Protocol):
    def entity_created(self, kind: EntityType, entity: dict[str, Any], user_id: str) -> None: ...

    def entity_updated(self, kind: EntityType, patch: dict[str, Any], user_id: str) -> None: ...


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


class RedisEventPublisher:
    """Publishes entity change events on ``entity:{user_id}``; delivery is not tracked."""

    def __init__(self, redis_url: str | None = None):
        self.redis_url = redis_url or settings.redis_url

    def _publish(self, *, type_: str, kind: EntityType, payload: dict[str, Any], user_id: str) -> None:
        r = get_redis(self.redis_url)
        body = {
            "type": type_,
            "entity_type": kind.value,
            "payload": payload,
            "ts": datetime.now(timezone.utc).isoformat(),
        }
        r.publish(f"entity:{user_id}", json.dumps(body, default=_json_default))

    def entity_created(self, kind: EntityType, entity: dict[str, Any], user_id: str) -> None:
        self._publish(type_="created", kind=kind, payload=entity, user_id=user_id)

    def entity_updated(self, kind: EntityType, patch: dict[str, Any], user_id: str) -> None:
        self._publish(type_="updated", kind=kind, payload=patch, user_id=user_id)


def get_publisher() -> EventPublisher:
    return RedisEventPublisher()


def publish_best_effort(fn_name: str, publisher: EventPublisher | None, **kwargs: Any) -> None:
    """Call ``publisher.<fn_name>(**kwargs)``, logging instead of raising on failure.

    Only ever called after the transaction has committed.
    """
    try:
        target = publisher if publisher is not None else get_publisher()
        getattr(target, fn_name)(**kwargs)
    except Exception:
        logger.exception("publish failed", extra={"fn": fn_name, "user_id": kwargs.get("user_id")})
