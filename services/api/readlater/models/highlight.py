from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from readlater.models.base import Base, utcnow
from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Highlight(Base):
    __tablename__ = "highlights"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    library_item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("library_items.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # HIGHLIGHT | NOTE | REDACTION
    highlight_type: Mapped[str] = mapped_column(String(20), nullable=False, default="HIGHLIGHT")
    quote: Mapped[str | None] = mapped_column(Text, nullable=True)
    annotation: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    user = relationship("User")
    library_item = relationship("LibraryItem", back_populates="highlights")
    labels = relationship("Label", secondary="entity_labels", viewonly=True)
