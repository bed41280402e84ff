from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, cast

from readlater.models.highlight import Highlight
from readlater.models.library_item import LibraryItem
from readlater.models.recommendation import Recommendation
from readlater.models.user import User
from sqlalchemy import delete, func, or_, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session, selectinload


def _escape_like(s: str) -> str:
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_library_item(db: Session, *, item_id: str, user_id: str | None = None) -> LibraryItem | None:
    """Return the item with its labels, highlights and highlight authors loaded."""
    stmt = (
        select(LibraryItem)
        .where(LibraryItem.id == item_id)
        .options(
            selectinload(LibraryItem.labels),
            selectinload(LibraryItem.highlights).selectinload(Highlight.user),
        )
        .execution_options(populate_existing=True)
    )
    if user_id is not None:
        stmt = stmt.where(LibraryItem.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def get_library_item_by_url(db: Session, *, url: str, user_id: str | None = None) -> LibraryItem | None:
    """Return the item saved from ``url`` with labels, highlights and recommendations loaded."""
    stmt = (
        select(LibraryItem)
        .where(LibraryItem.original_url == url)
        .options(
            selectinload(LibraryItem.labels),
            selectinload(LibraryItem.highlights),
            selectinload(LibraryItem.recommendations)
            .selectinload(Recommendation.recommender)
            .selectinload(User.profile),
            selectinload(LibraryItem.recommendations).selectinload(Recommendation.group),
        )
    )
    if user_id is not None:
        stmt = stmt.where(LibraryItem.user_id == user_id)
    # (user_id, original_url) is unique, but without a user several rows can match.
    return db.execute(stmt.order_by(LibraryItem.saved_at.desc()).limit(1)).scalar_one_or_none()


def list_library_items_by_prefix(
    db: Session, *, prefix: str, limit: int, user_id: str | None = None
) -> list[LibraryItem]:
    """Items whose title or site name starts with ``prefix`` (case-insensitive), newest first."""
    pattern = f"{_escape_like(prefix)}%"
    stmt = select(LibraryItem).where(
        or_(
            LibraryItem.title.ilike(pattern, escape="\\"),
            LibraryItem.site_name.ilike(pattern, escape="\\"),
        )
    )
    if user_id is not None:
        stmt = stmt.where(LibraryItem.user_id == user_id)
    stmt = stmt.order_by(LibraryItem.saved_at.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def count_library_items_created_between(
    db: Session, *, user_id: str, start_date: datetime, end_date: datetime
) -> int:
    return int(
        db.execute(
            select(func.count())
            .select_from(LibraryItem)
            .where(
                LibraryItem.user_id == user_id,
                LibraryItem.created_at.between(start_date, end_date),
            )
        ).scalar_one()
    )


def insert_library_items(db: Session, *, user_id: str, items: Iterable[dict[str, Any]]) -> list[LibraryItem]:
    rows = [LibraryItem(**{**item, "user_id": user_id}) for item in items]
    db.add_all(rows)
    db.flush()
    return rows


def delete_library_item(db: Session, *, item_id: str, user_id: str | None = None) -> int:
    stmt = delete(LibraryItem).where(LibraryItem.id == item_id)
    if user_id is not None:
        stmt = stmt.where(LibraryItem.user_id == user_id)
    res = cast(CursorResult[Any], db.execute(stmt))
    return int(res.rowcount or 0)


def delete_library_items(db: Session, *, items: Iterable[LibraryItem], user_id: str | None = None) -> int:
    ids = [item.id for item in items]
    if not ids:
        return 0
    stmt = delete(LibraryItem).where(LibraryItem.id.in_(ids))
    if user_id is not None:
        stmt = stmt.where(LibraryItem.user_id == user_id)
    res = cast(CursorResult[Any], db.execute(stmt))
    return int(res.rowcount or 0)


def delete_library_item_by_url(db: Session, *, url: str, user_id: str | None = None) -> int:
    stmt = delete(LibraryItem).where(LibraryItem.original_url == url)
    if user_id is not None:
        stmt = stmt.where(LibraryItem.user_id == user_id)
    res = cast(CursorResult[Any], db.execute(stmt))
    return int(res.rowcount or 0)


def delete_library_items_for_user(db: Session, *, user_id: str) -> int:
    res = cast(CursorResult[Any], db.execute(delete(LibraryItem).where(LibraryItem.user_id == user_id)))
    return int(res.rowcount or 0)
