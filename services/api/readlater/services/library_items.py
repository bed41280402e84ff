from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from readlater.core.config import settings
from readlater.core.errors import LibraryItemNotFound
from readlater.crud import library_items as items_crud
from readlater.db.session import run_in_transaction
from readlater.domain.states import LibraryItemState, derive_timestamps
from readlater.models.library_item import LibraryItem
from readlater.schemas.search import SearchArgs, Sort, SortOrder
from readlater.services.normalization import count_words, slugify
from readlater.services.search.predicates import EPOCH, SearchPredicate, build_search_predicate
from readlater.workers.events import EntityType, EventPublisher, publish_best_effort
from sqlalchemy import Select, func, select, update
from sqlalchemy.dialects.postgresql import TSVECTOR
from sqlalchemy.orm import Session, defer, selectinload

logger = logging.getLogger(__name__)

# Columns a caller may patch; ids, ownership and generated columns are not writable.
UPDATABLE_FIELDS = frozenset(
    c.key
    for c in LibraryItem.__table__.columns
    if c.key not in {"id", "user_id", "created_at"} and c.computed is None
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SearchResult:
    items: list[LibraryItem]
    count: int


def item_payload(item: LibraryItem) -> dict[str, Any]:
    """Column values of ``item`` suitable for an event payload."""
    return {
        c.key: getattr(item, c.key)
        for c in LibraryItem.__table__.columns
        if not isinstance(c.type, TSVECTOR) and c.key != "readable_content"
    }


def build_search_statements(
    args: SearchArgs, user_id: str, *, now: datetime | None = None
) -> tuple[Select, Select, SearchPredicate]:
    """Return the page SELECT, the COUNT SELECT and the predicate they share.

    Order: relevance rank first when a free-text query is present, then the
    requested sort (default saved_at DESC), NULLs last in either direction.
    """
    size = args.size if args.size is not None else settings.search_default_size
    size = min(size, settings.search_max_size)
    sort = args.sort or Sort()

    predicate = build_search_predicate(args, now=now)

    sort_column = getattr(LibraryItem, sort.by.value)
    ordering = sort_column.asc() if sort.order == SortOrder.ASCENDING else sort_column.desc()

    page = predicate.apply(select(LibraryItem).where(LibraryItem.user_id == user_id))
    if predicate.rank is not None:
        page = page.order_by(predicate.rank.desc())
    page = (
        page.order_by(ordering.nulls_last(), LibraryItem.id)
        .offset(args.from_)
        .limit(size)
        .options(selectinload(LibraryItem.labels), selectinload(LibraryItem.highlights))
    )
    if not args.include_content:
        page = page.options(defer(LibraryItem.readable_content, raiseload=True))

    total = predicate.apply(
        select(func.count()).select_from(LibraryItem).where(LibraryItem.user_id == user_id)
    )
    return page, total, predicate


def search_library_items(
    args: SearchArgs, user_id: str, *, now: datetime | None = None
) -> SearchResult:
    """Return one page of the user's items matching ``args`` plus the total match count."""
    page, total, predicate = build_search_statements(args, user_id, now=now)

    def work(db: Session) -> SearchResult:
        items = list(db.execute(page).scalars().all())
        count = int(db.execute(total).scalar_one())
        return SearchResult(items=items, count=count)

    result = run_in_transaction(work, user_id=user_id)
    logger.debug(
        "search finished",
        extra={"user_id": user_id, "rules": predicate.applied_rules, "count": result.count},
    )
    return result


def find_library_item_by_id(item_id: str, user_id: str) -> LibraryItem | None:
    return run_in_transaction(
        lambda db: items_crud.get_library_item(db, item_id=item_id, user_id=user_id),
        user_id=user_id,
    )


def find_library_item_by_url(url: str, user_id: str) -> LibraryItem | None:
    return run_in_transaction(
        lambda db: items_crud.get_library_item_by_url(db, url=url, user_id=user_id),
        user_id=user_id,
    )


def find_library_items_by_prefix(
    prefix: str, limit: int | None = None, *, user_id: str | None = None
) -> list[LibraryItem]:
    limit = settings.prefix_search_limit if limit is None else limit
    return run_in_transaction(
        lambda db: items_crud.list_library_items_by_prefix(
            db, prefix=prefix, limit=limit, user_id=user_id
        ),
        user_id=user_id,
    )


def count_library_items_by_created_at(
    user_id: str, start_date: datetime | None = None, end_date: datetime | None = None
) -> int:
    start = start_date or EPOCH
    end = end_date or utcnow()
    return run_in_transaction(
        lambda db: items_crud.count_library_items_created_between(
            db, user_id=user_id, start_date=start, end_date=end
        ),
        user_id=user_id,
    )


def _prepare_new_item(item: dict[str, Any]) -> dict[str, Any]:
    values = dict(item)
    if values.get("state") is not None:
        values["state"] = LibraryItemState(values["state"]).value
    if values.get("word_count") is None:
        values["word_count"] = count_words(values.get("readable_content"))
    if not values.get("slug"):
        values["slug"] = slugify(values.get("title") or "")
    return values


def create_library_items(items: Iterable[dict[str, Any]], user_id: str) -> list[LibraryItem]:
    """Insert several items in one transaction. No notifications are published."""
    prepared = [_prepare_new_item(item) for item in items]
    return run_in_transaction(
        lambda db: items_crud.insert_library_items(db, user_id=user_id, items=prepared),
        user_id=user_id,
    )


def create_library_item(
    item: dict[str, Any], user_id: str, publisher: EventPublisher | None = None
) -> LibraryItem:
    values = _prepare_new_item(item)

    def work(db: Session) -> LibraryItem:
        (created,) = items_crud.insert_library_items(db, user_id=user_id, items=[values])
        loaded = items_crud.get_library_item(db, item_id=created.id, user_id=user_id)
        if loaded is None:
            raise LibraryItemNotFound(created.id)
        return loaded

    created = run_in_transaction(work, user_id=user_id)

    publish_best_effort(
        "entity_created",
        publisher,
        kind=EntityType.PAGE,
        entity=item_payload(created),
        user_id=user_id,
    )
    return created


def _normalize_patch(patch: dict[str, Any], now: datetime) -> dict[str, Any]:
    unknown = set(patch) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"cannot update library item fields: {sorted(unknown)}")

    values = dict(patch)
    if values.get("state") is not None:
        state = LibraryItemState(values["state"])
        values["state"] = state.value
        values.update(derive_timestamps(None, state, now))
    return values


def update_library_item(
    item_id: str,
    patch: dict[str, Any],
    user_id: str,
    publisher: EventPublisher | None = None,
    *,
    now: datetime | None = None,
) -> LibraryItem:
    """Apply ``patch`` to the item and return the re-read row.

    A state change also sets archived_at/deleted_at (see derive_timestamps).
    Raises LibraryItemNotFound, rolling the transaction back, when the row
    cannot be read back after the write.
    """
    values = _normalize_patch(patch, now or utcnow())

    def work(db: Session) -> LibraryItem:
        if values:
            db.execute(
                update(LibraryItem)
                .where(LibraryItem.id == item_id, LibraryItem.user_id == user_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        item = items_crud.get_library_item(db, item_id=item_id, user_id=user_id)
        if item is None:
            raise LibraryItemNotFound(item_id)
        return item

    updated = run_in_transaction(work, user_id=user_id)

    publish_best_effort(
        "entity_updated",
        publisher,
        kind=EntityType.PAGE,
        patch={**values, "id": item_id},
        user_id=user_id,
    )
    return updated


def restore_library_item(
    item_id: str, user_id: str, publisher: EventPublisher | None = None
) -> LibraryItem:
    now = utcnow()
    return update_library_item(
        item_id,
        {
            "state": LibraryItemState.SUCCEEDED,
            "saved_at": now,
            "archived_at": None,
            "deleted_at": None,
        },
        user_id,
        publisher,
        now=now,
    )


def delete_library_item_by_id(item_id: str, user_id: str | None = None) -> int:
    return run_in_transaction(
        lambda db: items_crud.delete_library_item(db, item_id=item_id, user_id=user_id),
        user_id=user_id,
    )


def delete_library_items(items: Iterable[LibraryItem], user_id: str | None = None) -> int:
    rows = list(items)
    return run_in_transaction(
        lambda db: items_crud.delete_library_items(db, items=rows, user_id=user_id),
        user_id=user_id,
    )


def delete_library_item_by_url(url: str, user_id: str | None = None) -> int:
    return run_in_transaction(
        lambda db: items_crud.delete_library_item_by_url(db, url=url, user_id=user_id),
        user_id=user_id,
    )


def delete_library_items_by_user_id(user_id: str) -> int:
    return run_in_transaction(
        lambda db: items_crud.delete_library_items_for_user(db, user_id=user_id),
        user_id=user_id,
    )
