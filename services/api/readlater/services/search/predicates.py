"""Translate ``SearchArgs`` filters into WHERE conditions.

Each filter is an independent rule guarded by the presence of its input. A rule
that does not apply adds nothing: there are no default-true or default-false
placeholders. Every bound parameter carries an explicit name suffixed with the
rule's index or field so repeated filters of the same kind never collide.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, TypeVar

from readlater.core.config import settings
from readlater.core.errors import InvalidSearchFilter
from readlater.domain.states import LibraryItemState
from readlater.models.library_item import TEXT_SEARCH_CONFIG, LibraryItem
from readlater.schemas.search import (
    HasFilter,
    InFilter,
    LabelFilterType,
    ReadFilter,
    SearchArgs,
)
from sqlalchemy import DateTime, String, Text, any_, bindparam, cast, func, literal_column, not_, or_
from sqlalchemy.dialects.postgresql import ARRAY, TSVECTOR
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.types import ARRAY as GenericARRAY

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Items carrying this label stay in the library even when they came from a subscription.
LIBRARY_LABEL = "library"

_EMPTY_TEXT_ARRAY = literal_column("'{}'::text[]")

StatementT = TypeVar("StatementT")


@dataclass
class SearchPredicate:
    """Accumulated WHERE conditions plus the relevance rank of a free-text query."""

    now: datetime
    conditions: list[ColumnElement[bool]] = field(default_factory=list)
    rank: ColumnElement | None = None
    applied_rules: list[str] = field(default_factory=list)

    def add(self, *conditions: ColumnElement[bool]) -> None:
        self.conditions.extend(conditions)

    def apply(self, stmt: StatementT) -> StatementT:
        """Attach the conditions to a SELECT or UPDATE statement."""
        if not self.conditions:
            return stmt
        return stmt.where(*self.conditions)  # type: ignore[attr-defined]


def _regconfig() -> ColumnElement:
    return literal_column(f"'{TEXT_SEARCH_CONFIG}'::regconfig")


def _tsquery(param: str, value: str) -> ColumnElement:
    return func.websearch_to_tsquery(_regconfig(), bindparam(param, value, type_=Text))


def _folded_label_names() -> ColumnElement:
    """lower(label_names || highlight_labels) as text[]"""
    merged = func.array_cat(LibraryItem.label_names, LibraryItem.highlight_labels)
    return cast(func.lower(cast(merged, Text)), ARRAY(Text))


def _item_column(name: str, kind: type, what: str):
    col = LibraryItem.__table__.c.get(name)
    if col is None or not isinstance(col.type, kind) or isinstance(col.type, TSVECTOR):
        raise InvalidSearchFilter(f"{name!r} is not a {what} field of library items")
    return col


def _dedupe(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for v in values:
        seen.setdefault(v, None)
    return list(seen)


# ---- rules ----------------------------------------------------------------


def _query(args: SearchArgs, p: SearchPredicate) -> None:
    tsq = _tsquery("query", args.query or "")
    p.rank = func.ts_rank_cd(LibraryItem.search_tsv, tsq)
    p.add(LibraryItem.search_tsv.bool_op("@@")(tsq))


def _type(args: SearchArgs, p: SearchPredicate) -> None:
    p.add(func.lower(LibraryItem.item_type) == bindparam("type_filter", (args.type_filter or "").lower()))


def _scope(args: SearchArgs, p: SearchPredicate) -> None:
    library_label = bindparam("library_label", LIBRARY_LABEL)
    has_library_label = library_label.op("ILIKE", is_comparison=True)(any_(LibraryItem.label_names))

    scope = args.in_filter
    if scope == InFilter.INBOX:
        p.add(LibraryItem.archived_at.is_(None))
    elif scope == InFilter.ARCHIVE:
        p.add(LibraryItem.archived_at.is_not(None))
    elif scope == InFilter.TRASH:
        cutoff = p.now - timedelta(days=settings.trash_retention_days)
        p.add(LibraryItem.deleted_at >= bindparam("trash_cutoff", cutoff, type_=DateTime(timezone=True)))
    elif scope == InFilter.SUBSCRIPTION:
        p.add(
            LibraryItem.subscription.is_not(None),
            not_(has_library_label),
            LibraryItem.archived_at.is_(None),
        )
    elif scope == InFilter.LIBRARY:
        p.add(
            or_(LibraryItem.subscription.is_(None), has_library_label),
            LibraryItem.archived_at.is_(None),
        )


def _read(args: SearchArgs, p: SearchPredicate) -> None:
    threshold = bindparam("read_threshold", settings.read_threshold_percent)
    if args.read_filter == ReadFilter.READ:
        p.add(LibraryItem.reading_progress_top_percent >= threshold)
    elif args.read_filter == ReadFilter.UNREAD:
        p.add(LibraryItem.reading_progress_top_percent < threshold)


def _has(args: SearchArgs, p: SearchPredicate) -> None:
    for has in _dedupe(args.has_filters):
        if has == HasFilter.HIGHLIGHTS:
            p.add(func.array_length(LibraryItem.highlight_annotations, 1) > 0)
        elif has == HasFilter.LABELS:
            p.add(func.array_length(LibraryItem.label_names, 1) > 0)


def _labels(args: SearchArgs, p: SearchPredicate) -> None:
    include = [f for f in args.label_filters if f.type == LabelFilterType.INCLUDE and f.labels]
    exclude = [f for f in args.label_filters if f.type == LabelFilterType.EXCLUDE and f.labels]

    # AND of ORs: every include entry must overlap on its own.
    for i, entry in enumerate(include):
        wanted = _dedupe(label.lower() for label in entry.labels)
        p.add(
            _folded_label_names().overlap(
                bindparam(f"include_labels_{i}", wanted, type_=ARRAY(Text))
            )
        )

    if exclude:
        unwanted = _dedupe(label.lower() for entry in exclude for label in entry.labels)
        p.add(
            not_(
                _folded_label_names().overlap(
                    bindparam("exclude_labels", unwanted, type_=ARRAY(Text))
                )
            )
        )


def _dates(args: SearchArgs, p: SearchPredicate) -> None:
    for i, f in enumerate(args.date_filters):
        col = _item_column(f.field, DateTime, "date")
        p.add(
            col.between(
                bindparam(f"date_{f.field}_start_{i}", f.start_date or EPOCH, type_=DateTime(timezone=True)),
                bindparam(f"date_{f.field}_end_{i}", f.end_date or p.now, type_=DateTime(timezone=True)),
            )
        )


def _terms(args: SearchArgs, p: SearchPredicate) -> None:
    for i, f in enumerate(args.term_filters):
        col = _item_column(f.field, String, "text")
        p.add(func.lower(col) == bindparam(f"term_{f.field}_{i}", f.value.lower()))


def _matches(args: SearchArgs, p: SearchPredicate) -> None:
    for i, f in enumerate(args.match_filters):
        tsv = LibraryItem.__table__.c.get(f"{f.field}_tsv")
        if tsv is None:
            raise InvalidSearchFilter(f"{f.field!r} is not a searchable field of library items")
        p.add(tsv.bool_op("@@")(_tsquery(f"match_{f.field}_{i}", f.value)))


def _ids(args: SearchArgs, p: SearchPredicate) -> None:
    p.add(LibraryItem.id.in_(bindparam("ids", list(args.ids), expanding=True)))


def _exclude_pending(args: SearchArgs, p: SearchPredicate) -> None:
    p.add(LibraryItem.state != bindparam("exclude_state_processing", LibraryItemState.PROCESSING.value))


def _exclude_deleted(args: SearchArgs, p: SearchPredicate) -> None:
    p.add(LibraryItem.state != bindparam("exclude_state_deleted", LibraryItemState.DELETED.value))


def _no(args: SearchArgs, p: SearchPredicate) -> None:
    for f in args.no_filters:
        col = _item_column(f.field, GenericARRAY, "list")
        p.add(col == _EMPTY_TEXT_ARRAY)


def _recommended_by(args: SearchArgs, p: SearchPredicate) -> None:
    who = args.recommended_by or ""
    if who == "*":
        p.add(LibraryItem.recommender_names != _EMPTY_TEXT_ARRAY)
        return
    folded = cast(func.lower(cast(LibraryItem.recommender_names, Text)), ARRAY(Text))
    p.add(folded.overlap(bindparam("recommended_by", [who.lower()], type_=ARRAY(Text))))


@dataclass(frozen=True)
class PredicateRule:
    name: str
    applies: Callable[[SearchArgs], bool]
    build: Callable[[SearchArgs, SearchPredicate], None]


RULES: tuple[PredicateRule, ...] = (
    PredicateRule("query", lambda a: bool(a.query), _query),
    PredicateRule("type", lambda a: bool(a.type_filter), _type),
    PredicateRule("in", lambda a: a.in_filter != InFilter.ALL, _scope),
    PredicateRule("read", lambda a: a.read_filter != ReadFilter.ALL, _read),
    PredicateRule("has", lambda a: bool(a.has_filters), _has),
    PredicateRule("labels", lambda a: any(f.labels for f in a.label_filters), _labels),
    PredicateRule("dates", lambda a: bool(a.date_filters), _dates),
    PredicateRule("terms", lambda a: bool(a.term_filters), _terms),
    PredicateRule("matches", lambda a: bool(a.match_filters), _matches),
    PredicateRule("ids", lambda a: bool(a.ids), _ids),
    PredicateRule("pending", lambda a: not a.include_pending, _exclude_pending),
    PredicateRule(
        "deleted",
        lambda a: not a.include_deleted and a.in_filter != InFilter.TRASH,
        _exclude_deleted,
    ),
    PredicateRule("no", lambda a: bool(a.no_filters), _no),
    PredicateRule("recommended_by", lambda a: bool(a.recommended_by), _recommended_by),
)


def build_search_predicate(args: SearchArgs, *, now: datetime | None = None) -> SearchPredicate:
    """Evaluate every rule against ``args``.

    Raises InvalidSearchFilter when a filter names a field that does not exist
    (or has the wrong type); nothing has touched the database at that point.
    """
    predicate = SearchPredicate(now=now or datetime.now(timezone.utc))
    for rule in RULES:
        if not rule.applies(args):
            continue
        rule.build(args, predicate)
        predicate.applied_rules.append(rule.name)

    logger.debug("search predicate built", extra={"rules": predicate.applied_rules})
    return predicate
