from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from readlater.domain.states import LibraryItemState


class LabelOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: str
    description: str | None = None


class HighlightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    highlight_type: str
    quote: str | None = None
    annotation: str | None = None
    created_at: datetime


class LibraryItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    state: LibraryItemState
    original_url: str
    slug: str
    title: str
    author: str | None
    description: str | None
    item_type: str
    site_name: str | None
    site_icon: str | None
    thumbnail: str | None
    subscription: str | None

    saved_at: datetime
    archived_at: datetime | None
    deleted_at: datetime | None
    read_at: datetime | None
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime

    reading_progress_top_percent: float
    reading_progress_bottom_percent: float
    reading_progress_highest_read_anchor: int
    word_count: int | None


class LibraryItemDetailOut(LibraryItemOut):
    labels: list[LabelOut] = Field(default_factory=list)
    highlights: list[HighlightOut] = Field(default_factory=list)


class SearchItemOut(LibraryItemDetailOut):
    content: str | None = None


class PageOut(BaseModel):
    offset: int
    size: int
    total: int


class SearchResultOut(BaseModel):
    page: PageOut
    items: list[SearchItemOut]


class LibraryItemCreateIn(BaseModel):
    original_url: str
    title: str
    author: str | None = None
    description: str | None = None
    item_type: str = "ARTICLE"
    site_name: str | None = None
    site_icon: str | None = None
    thumbnail: str | None = None
    readable_content: str = ""
    subscription: str | None = None
    published_at: datetime | None = None
    word_count: int | None = None
    state: LibraryItemState = LibraryItemState.SUCCEEDED


class LibraryItemUpdateIn(BaseModel):
    title: str | None = None
    author: str | None = None
    description: str | None = None
    state: LibraryItemState | None = None
    read_at: datetime | None = None
    reading_progress_top_percent: float | None = Field(default=None, ge=0, le=100)
    reading_progress_bottom_percent: float | None = Field(default=None, ge=0, le=100)
    reading_progress_highest_read_anchor: int | None = Field(default=None, ge=0)


class BulkActionIn(BaseModel):
    action: str
    query: str = ""
    label_ids: list[str] | None = None


class BulkActionOut(BaseModel):
    action: str
    updated: int
