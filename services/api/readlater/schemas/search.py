from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class InFilter(str, Enum):
    ALL = "ALL"
    INBOX = "INBOX"
    ARCHIVE = "ARCHIVE"
    TRASH = "TRASH"
    SUBSCRIPTION = "SUBSCRIPTION"
    LIBRARY = "LIBRARY"


class ReadFilter(str, Enum):
    ALL = "ALL"
    READ = "READ"
    UNREAD = "UNREAD"


class HasFilter(str, Enum):
    HIGHLIGHTS = "HIGHLIGHTS"
    LABELS = "LABELS"


class LabelFilterType(str, Enum):
    INCLUDE = "INCLUDE"
    EXCLUDE = "EXCLUDE"


class SortBy(str, Enum):
    SAVED = "saved_at"
    UPDATED = "updated_at"
    PUBLISHED = "published_at"
    READ = "read_at"
    WORDS_COUNT = "word_count"


class SortOrder(str, Enum):
    ASCENDING = "ASC"
    DESCENDING = "DESC"


class Sort(BaseModel):
    by: SortBy = SortBy.SAVED
    order: SortOrder = SortOrder.DESCENDING


class LabelFilter(BaseModel):
    labels: list[str]
    type: LabelFilterType = LabelFilterType.INCLUDE


class DateFilter(BaseModel):
    field: str
    start_date: datetime | None = None
    end_date: datetime | None = None


class FieldFilter(BaseModel):
    field: str
    value: str


class NoFilter(BaseModel):
    field: str


class SearchArgs(BaseModel):
    """Filters for searching and bulk-updating library items.

    Every filter is optional; an absent or empty filter adds no predicate.
    ``from_`` is exposed as ``from`` when parsed from JSON.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_: int = Field(default=0, ge=0, alias="from")
    size: int | None = Field(default=None, ge=0)
    sort: Sort | None = None

    query: str | None = None
    in_filter: InFilter = InFilter.ALL
    read_filter: ReadFilter = ReadFilter.ALL
    type_filter: str | None = None
    label_filters: list[LabelFilter] = Field(default_factory=list)
    has_filters: list[HasFilter] = Field(default_factory=list)
    date_filters: list[DateFilter] = Field(default_factory=list)
    term_filters: list[FieldFilter] = Field(default_factory=list)
    match_filters: list[FieldFilter] = Field(default_factory=list)
    ids: list[str] = Field(default_factory=list)
    include_pending: bool = False
    include_deleted: bool = False
    recommended_by: str | None = None
    include_content: bool = False
    no_filters: list[NoFilter] = Field(default_factory=list)
