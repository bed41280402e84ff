import pytest
from readlater.core.errors import LibraryItemNotFound
from readlater.domain.states import LibraryItemState
from readlater.models import EntityLabel, Highlight, LibraryItem
from readlater.models.base import utcnow
from readlater.services.library_items import (
    create_library_item,
    create_library_items,
    delete_library_item_by_id,
    delete_library_item_by_url,
    delete_library_items,
    delete_library_items_by_user_id,
    find_library_item_by_id,
    find_library_item_by_url,
    restore_library_item,
    update_library_item,
)
from readlater.workers.events import EntityType
from sqlalchemy import select


def test_create_counts_words_and_publishes(user, publisher):
    item = create_library_item(
        {
            "original_url": "https://example.com/hello",
            "title": "Hello World",
            "readable_content": "<p>one <em>two</em> three</p>",
        },
        user.id,
        publisher,
    )

    assert item.word_count == 3
    assert item.slug == "hello-world"
    assert item.state == LibraryItemState.SUCCEEDED.value

    ((kind, entity, user_id),) = publisher.created
    assert kind is EntityType.PAGE
    assert entity["id"] == item.id
    assert "readable_content" not in entity
    assert user_id == user.id


def test_create_many_publishes_nothing(db_session, user, publisher):
    created = create_library_items(
        [
            {"original_url": "https://example.com/1", "title": "One"},
            {"original_url": "https://example.com/2", "title": "Two"},
        ],
        user.id,
    )

    assert len(created) == 2
    assert publisher.created == []
    stored = db_session.execute(select(LibraryItem).where(LibraryItem.user_id == user.id)).scalars()
    assert sorted(i.title for i in stored) == ["One", "Two"]


def test_archiving_stamps_archived_at(make_item, user, publisher):
    item = make_item()

    updated = update_library_item(item.id, {"state": "ARCHIVED"}, user.id, publisher)

    assert updated.state == "ARCHIVED"
    assert updated.archived_at is not None
    assert updated.deleted_at is None
    ((kind, patch, _),) = publisher.updated
    assert kind is EntityType.PAGE
    assert patch["id"] == item.id
    assert patch["state"] == "ARCHIVED"


def test_succeeded_clears_both_timestamps(make_item, user, publisher):
    now = utcnow()
    item = make_item(state="DELETED", archived_at=now, deleted_at=now)

    updated = update_library_item(item.id, {"state": LibraryItemState.SUCCEEDED}, user.id, publisher)

    assert updated.archived_at is None
    assert updated.deleted_at is None


def test_update_of_missing_item_raises(db_session, user, publisher):
    with pytest.raises(LibraryItemNotFound) as exc:
        update_library_item("no-such-id", {"title": "x"}, user.id, publisher)

    assert exc.value.item_id == "no-such-id"
    assert publisher.updated == []


def test_update_rejects_unknown_fields(make_item, user):
    item = make_item()
    with pytest.raises(ValueError):
        update_library_item(item.id, {"search_tsv": "x"}, user.id)


def test_update_succeeds_when_publishing_fails(make_item, user, failing_publisher, caplog):
    item = make_item(title="before")

    updated = update_library_item(item.id, {"title": "after"}, user.id, failing_publisher)

    assert updated.title == "after"
    assert "publish failed" in caplog.text


def test_update_returns_labels_and_highlights(db_session, make_item, make_label, user):
    item = make_item()
    label = make_label("Later")
    db_session.add(EntityLabel(label_id=label.id, library_item_id=item.id))
    db_session.add(Highlight(user_id=user.id, library_item_id=item.id, quote="quoted"))
    db_session.commit()

    updated = update_library_item(item.id, {"reading_progress_top_percent": 50}, user.id)

    assert [lbl.name for lbl in updated.labels] == ["Later"]
    assert [h.quote for h in updated.highlights] == ["quoted"]
    assert updated.highlights[0].user.id == user.id


def test_restore_brings_item_back(make_item, user, publisher):
    now = utcnow()
    item = make_item(state="DELETED", deleted_at=now)

    restored = restore_library_item(item.id, user.id, publisher)

    assert restored.state == "SUCCEEDED"
    assert restored.deleted_at is None
    assert restored.saved_at >= now


def test_find_by_id_and_url_are_scoped_to_user(make_item, user):
    item = make_item(original_url="https://example.com/find-me")

    assert find_library_item_by_id(item.id, user.id).id == item.id
    assert find_library_item_by_url("https://example.com/find-me", user.id).id == item.id
    assert find_library_item_by_id(item.id, "someone-else") is None


def test_deletes_report_affected_rows(make_item, user):
    a = make_item(original_url="https://example.com/a")
    b = make_item()
    c = make_item()
    make_item()

    assert delete_library_item_by_id(a.id, user.id) == 1
    assert delete_library_item_by_id(a.id, user.id) == 0
    assert delete_library_items([b, c], user.id) == 2
    assert delete_library_item_by_url("https://example.com/a", user.id) == 0
    assert delete_library_items_by_user_id(user.id) == 1
