from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from readlater.models.base import Base, utcnow
from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Label(Base):
    __tablename__ = "labels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#000000")
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    user = relationship("User", back_populates="labels")


Index(
    "ix_labels_user_lower_name_unique",
    Label.user_id,
    func.lower(Label.name),
    unique=True,
)


class EntityLabel(Base):
    """Attaches a label to a library item or to a highlight. Rows are never updated."""

    __tablename__ = "entity_labels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    label_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("labels.id", ondelete="CASCADE"), index=True, nullable=False
    )
    library_item_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("library_items.id", ondelete="CASCADE"), index=True, nullable=True
    )
    highlight_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("highlights.id", ondelete="CASCADE"), index=True, nullable=True
    )

    # user | system | bulk
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="user")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("label_id", "library_item_id", name="uq_entity_labels_label_item"),
    )
