from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence, cast

from readlater.core.errors import InvalidBulkAction
from readlater.db.session import run_in_transaction
from readlater.domain.states import LibraryItemState
from readlater.models.label import EntityLabel, Label
from readlater.models.library_item import LibraryItem
from readlater.schemas.search import SearchArgs
from readlater.services.search.predicates import SearchPredicate, build_search_predicate
from sqlalchemy import insert, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class BulkActionType(str, Enum):
    ARCHIVE = "ARCHIVE"
    DELETE = "DELETE"
    ADD_LABELS = "ADD_LABELS"
    MARK_AS_READ = "MARK_AS_READ"


def bulk_values(action: BulkActionType, now: datetime) -> dict[str, Any]:
    """Column values written to every matching row for set-wide actions."""
    if action is BulkActionType.ARCHIVE:
        return {"archived_at": now, "state": LibraryItemState.ARCHIVED.value}
    if action is BulkActionType.DELETE:
        return {"deleted_at": now, "state": LibraryItemState.DELETED.value}
    if action is BulkActionType.MARK_AS_READ:
        return {
            "read_at": now,
            "reading_progress_top_percent": 100,
            "reading_progress_bottom_percent": 100,
        }
    raise InvalidBulkAction(f"{action.value} is not a set-wide update")


def _label_id(label: Label | str) -> str:
    return label if isinstance(label, str) else label.id


def _add_labels(
    db: Session, *, predicate: SearchPredicate, user_id: str, label_ids: list[str]
) -> int:
    owned = set(
        db.execute(
            select(Label.id).where(Label.user_id == user_id, Label.id.in_(label_ids))
        ).scalars()
    )
    missing = [lid for lid in label_ids if lid not in owned]
    if missing:
        raise InvalidBulkAction(f"unknown labels: {missing}")

    item_ids = list(
        db.execute(
            predicate.apply(select(LibraryItem.id).where(LibraryItem.user_id == user_id))
        ).scalars()
    )
    if not item_ids:
        return 0

    attached = {
        (item_id, label_id)
        for item_id, label_id in db.execute(
            select(EntityLabel.library_item_id, EntityLabel.label_id).where(
                EntityLabel.library_item_id.in_(item_ids),
                EntityLabel.label_id.in_(label_ids),
            )
        ).tuples()
    }

    # (label_id, library_item_id) is unique; only attach what is not there yet.
    rows = [
        {"label_id": label_id, "library_item_id": item_id, "source": "bulk"}
        for item_id in item_ids
        for label_id in label_ids
        if (item_id, label_id) not in attached
    ]
    if rows:
        db.execute(insert(EntityLabel), rows)
    return len(rows)


def bulk_update_library_items(
    action: BulkActionType | str,
    args: SearchArgs,
    user_id: str,
    labels: Sequence[Label | str] | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """Apply ``action`` to every item of ``user_id`` matching ``args``.

    ARCHIVE, DELETE and MARK_AS_READ issue a single UPDATE. ADD_LABELS reads the
    matching ids and inserts the missing entity_labels rows in one statement.
    Returns the number of rows updated or inserted.

    Raises InvalidBulkAction before anything is written when the action is
    unknown or ADD_LABELS comes without labels.
    """
    try:
        action = BulkActionType(action)
    except ValueError as e:
        raise InvalidBulkAction(f"invalid bulk action: {action!r}") from e

    now = now or datetime.now(timezone.utc)
    predicate = build_search_predicate(args, now=now)

    if action is BulkActionType.ADD_LABELS:
        if not labels:
            raise InvalidBulkAction("labels are required for this action")
        label_ids = list(dict.fromkeys(_label_id(label) for label in labels))

        def add_work(db: Session) -> int:
            return _add_labels(db, predicate=predicate, user_id=user_id, label_ids=label_ids)

        added = run_in_transaction(add_work, user_id=user_id)
        logger.info("bulk labels added", extra={"user_id": user_id, "rows": added})
        return added

    values = bulk_values(action, now)
    stmt = (
        predicate.apply(update(LibraryItem).where(LibraryItem.user_id == user_id))
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    def update_work(db: Session) -> int:
        res = cast(CursorResult[Any], db.execute(stmt))
        return int(res.rowcount or 0)

    updated = run_in_transaction(update_work, user_id=user_id)
    logger.info(
        "bulk action applied",
        extra={"user_id": user_id, "action": action.value, "rows": updated},
    )
    return updated
