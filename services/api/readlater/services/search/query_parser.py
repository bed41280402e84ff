"""Parse a user-typed search string into ``SearchArgs``.

Recognized keywords (case-insensitive keys):

    in:inbox|archive|trash|subscription|library|all
    is:read|unread
    type:<item type>
    label:a,b        -label:a        (comma = any of, repeated = all of)
    has:highlights|labels
    saved: read: published: updated:   YYYY-MM-DD, YYYY-MM-DD..YYYY-MM-DD, *..YYYY-MM-DD
    sort:saved|updated|published|read|wordscount[-asc|-desc]
    author:<name>    site:<name>                  (exact, case-insensitive)
    title: description: content:                 (full-text on that field)
    recommendedBy:<name>|*
    no:label|highlight
    includes:pending|deleted

Values may be double-quoted. A leading "-" on any key other than label raises
InvalidSearchFilter. Anything else is kept as free text and handed to the
full-text query.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone

from readlater.core.errors import InvalidSearchFilter
from readlater.schemas.search import (
    DateFilter,
    FieldFilter,
    HasFilter,
    InFilter,
    LabelFilter,
    LabelFilterType,
    NoFilter,
    ReadFilter,
    SearchArgs,
    Sort,
    SortBy,
    SortOrder,
)

logger = logging.getLogger(__name__)

_token = re.compile(
    r'(?P<neg>-)?(?P<key>[A-Za-z]+):(?:"(?P<qval>[^"]*)"|(?P<val>\S+))'
    r'|(?P<phrase>"[^"]*")'
    r"|(?P<word>\S+)"
)

_IN = {f.value.lower(): f for f in InFilter}
_READ = {"read": ReadFilter.READ, "unread": ReadFilter.UNREAD}
_HAS = {"highlights": HasFilter.HIGHLIGHTS, "labels": HasFilter.LABELS}
_DATE_FIELDS = {
    "saved": "saved_at",
    "read": "read_at",
    "published": "published_at",
    "updated": "updated_at",
}
_SORT = {
    "saved": SortBy.SAVED,
    "updated": SortBy.UPDATED,
    "published": SortBy.PUBLISHED,
    "read": SortBy.READ,
    "wordscount": SortBy.WORDS_COUNT,
}
_TERM_FIELDS = {"author": "author", "site": "site_name"}
_MATCH_FIELDS = {"title": "title", "description": "description", "content": "content"}
_NO_FIELDS = {"label": "label_names", "highlight": "highlight_annotations"}


def _parse_day(raw: str, param: str) -> date | None:
    if raw in ("", "*"):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as e:
        raise InvalidSearchFilter(f"invalid date for {param}: {raw!r}") from e


def _start_of(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def parse_date_range(field: str, raw: str) -> DateFilter:
    """``2024-01-01`` covers that whole day; ``a..b`` is inclusive of both days."""
    if ".." in raw:
        start_raw, end_raw = raw.split("..", 1)
        start = _parse_day(start_raw, field)
        end = _parse_day(end_raw, field)
    else:
        start = end = _parse_day(raw, field)

    return DateFilter(
        field=field,
        start_date=_start_of(start) if start else None,
        end_date=_start_of(end) + timedelta(days=1) - timedelta(microseconds=1) if end else None,
    )


def _parse_sort(raw: str) -> Sort | None:
    name, _, direction = raw.lower().partition("-")
    by = _SORT.get(name)
    if by is None:
        return None
    order = SortOrder.ASCENDING if direction == "asc" else SortOrder.DESCENDING
    return Sort(by=by, order=order)


def parse_search_query(text: str | None) -> SearchArgs:
    args = SearchArgs()
    free_text: list[str] = []

    for m in _token.finditer(text or ""):
        if m.group("phrase") is not None:
            free_text.append(m.group("phrase"))
            continue
        if m.group("word") is not None:
            free_text.append(m.group("word"))
            continue

        negated = bool(m.group("neg"))
        key = m.group("key").lower()
        value = m.group("qval") if m.group("qval") is not None else m.group("val")
        lowered = value.strip().lower()

        # Only labels can be negated; "-in:archive" must not select the archive.
        if negated and key != "label":
            raise InvalidSearchFilter(f"{m.group(0)!r}: only label filters can be negated")

        if key == "in" and lowered in _IN:
            args.in_filter = _IN[lowered]
        elif key == "is" and lowered in _READ:
            args.read_filter = _READ[lowered]
        elif key == "type":
            args.type_filter = lowered
        elif key == "label":
            labels = [label.strip() for label in lowered.split(",") if label.strip()]
            if labels:
                mode = LabelFilterType.EXCLUDE if negated else LabelFilterType.INCLUDE
                args.label_filters.append(LabelFilter(labels=labels, type=mode))
        elif key == "has" and lowered in _HAS:
            args.has_filters.append(_HAS[lowered])
        elif key in _DATE_FIELDS:
            args.date_filters.append(parse_date_range(_DATE_FIELDS[key], lowered))
        elif key == "sort":
            sort = _parse_sort(lowered)
            if sort is not None:
                args.sort = sort
        elif key in _TERM_FIELDS:
            args.term_filters.append(FieldFilter(field=_TERM_FIELDS[key], value=value.strip()))
        elif key in _MATCH_FIELDS:
            args.match_filters.append(FieldFilter(field=_MATCH_FIELDS[key], value=value.strip()))
        elif key == "recommendedby":
            args.recommended_by = value.strip()
        elif key == "no" and lowered in _NO_FIELDS:
            args.no_filters.append(NoFilter(field=_NO_FIELDS[lowered]))
        elif key == "includes" and lowered in ("pending", "deleted"):
            if lowered == "pending":
                args.include_pending = True
            else:
                args.include_deleted = True
        else:
            logger.debug("unrecognized search keyword kept as text: %s", m.group(0))
            free_text.append(m.group(0))

    query = " ".join(free_text).strip()
    args.query = query or None
    return args
