from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from readlater.models.base import Base, utcnow
from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column


class Group(Base):
    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
