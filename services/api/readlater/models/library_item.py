from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from readlater.domain.states import LibraryItemState
from readlater.models.base import Base, utcnow
from sqlalchemy import (
    Computed,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, TSVECTOR
from sqlalchemy.orm import Mapped, mapped_column, relationship


# Generated vectors and search queries must use the same configuration.
TEXT_SEARCH_CONFIG = "english"


def _to_tsvector(column: str) -> str:
    return f"to_tsvector('{TEXT_SEARCH_CONFIG}'::regconfig, coalesce({column}, ''))"


def _tsv(column: str) -> Computed:
    return Computed(_to_tsvector(column), persisted=True)


SEARCH_TSV_EXPR = " || ".join(
    f"setweight({_to_tsvector(column)}, '{weight}')"
    for column, weight in (
        ("title", "A"),
        ("author", "B"),
        ("description", "C"),
        ("site_name", "C"),
        ("readable_content", "D"),
    )
)


def _text_array(**kwargs):
    return mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default=text("'{}'::text[]"), **kwargs
    )


class LibraryItem(Base):
    __tablename__ = "library_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # PROCESSING | SUCCEEDED | ARCHIVED | DELETED
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LibraryItemState.SUCCEEDED.value
    )

    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(600), nullable=False, default="")
    title: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    item_type: Mapped[str] = mapped_column(String(40), nullable=False, default="ARTICLE")
    site_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    site_icon: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail: Mapped[str | None] = mapped_column(Text, nullable=True)
    readable_content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Name of the feed/newsletter this item arrived through, if any
    subscription: Mapped[str | None] = mapped_column(Text, nullable=True)

    saved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    reading_progress_top_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    reading_progress_bottom_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    reading_progress_highest_read_anchor: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    word_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Mirrors of labels/highlights/recommendations, maintained outside this service.
    label_names: Mapped[list[str]] = _text_array()
    highlight_labels: Mapped[list[str]] = _text_array()
    highlight_annotations: Mapped[list[str]] = _text_array()
    recommender_names: Mapped[list[str]] = _text_array()

    search_tsv: Mapped[str | None] = mapped_column(
        TSVECTOR, Computed(SEARCH_TSV_EXPR, persisted=True), deferred=True
    )
    title_tsv: Mapped[str | None] = mapped_column(TSVECTOR, _tsv("title"), deferred=True)
    author_tsv: Mapped[str | None] = mapped_column(TSVECTOR, _tsv("author"), deferred=True)
    description_tsv: Mapped[str | None] = mapped_column(TSVECTOR, _tsv("description"), deferred=True)
    content_tsv: Mapped[str | None] = mapped_column(TSVECTOR, _tsv("readable_content"), deferred=True)
    site_tsv: Mapped[str | None] = mapped_column(TSVECTOR, _tsv("site_name"), deferred=True)

    user = relationship("User", back_populates="library_items")
    labels = relationship(
        "Label", secondary="entity_labels", viewonly=True, order_by="Label.position"
    )
    highlights = relationship(
        "Highlight", back_populates="library_item", cascade="all, delete-orphan"
    )
    recommendations = relationship(
        "Recommendation", back_populates="library_item", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "original_url", name="uq_library_items_user_url"),
        Index("ix_library_items_user_saved_at", "user_id", "saved_at"),
        Index("ix_library_items_search_tsv", "search_tsv", postgresql_using="gin"),
        Index("ix_library_items_label_names", "label_names", postgresql_using="gin"),
    )
