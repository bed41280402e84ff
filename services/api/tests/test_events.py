import json
import logging

from readlater.workers import events
from readlater.workers.events import EntityType, RedisEventPublisher, publish_best_effort


class FakeRedis:
    def __init__(self):
        self.published: list[tuple[str, str]] = []

    def publish(self, channel, message):
        self.published.append((channel, message))
        return 1


def test_redis_publisher_writes_to_user_channel(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(events, "get_redis", lambda url: fake)

    RedisEventPublisher("redis://test").entity_updated(
        EntityType.PAGE, {"id": "item-1", "state": "ARCHIVED"}, "user-1"
    )

    ((channel, message),) = fake.published
    assert channel == "entity:user-1"
    body = json.loads(message)
    assert body["type"] == "updated"
    assert body["entity_type"] == "page"
    assert body["payload"] == {"id": "item-1", "state": "ARCHIVED"}


def test_best_effort_swallows_publisher_errors(caplog):
    class Broken:
        def entity_created(self, **kwargs):
            raise ConnectionError("redis down")

    with caplog.at_level(logging.ERROR, logger="readlater.workers.events"):
        publish_best_effort("entity_created", Broken(), kind=EntityType.PAGE, entity={}, user_id="u")

    assert "publish failed" in caplog.text


def test_best_effort_uses_default_publisher(monkeypatch):
    calls = []

    class Recorder:
        def entity_created(self, kind, entity, user_id):
            calls.append((kind, entity, user_id))

    monkeypatch.setattr(events, "get_publisher", lambda: Recorder())
    publish_best_effort("entity_created", None, kind=EntityType.PAGE, entity={"id": 1}, user_id="u")

    assert calls == [(EntityType.PAGE, {"id": 1}, "u")]
