from datetime import datetime, timezone

import pytest
from readlater.core.errors import InvalidSearchFilter
from readlater.schemas.search import (
    HasFilter,
    InFilter,
    LabelFilterType,
    ReadFilter,
    SortBy,
    SortOrder,
)
from readlater.services.search.query_parser import parse_date_range, parse_search_query


def test_empty_query_yields_default_args():
    args = parse_search_query("")
    assert args.query is None
    assert args.in_filter == InFilter.ALL
    assert args.label_filters == []


def test_keywords_and_free_text_are_separated():
    args = parse_search_query('in:archive is:unread "machine learning" rust sort:wordscount-asc')

    assert args.in_filter == InFilter.ARCHIVE
    assert args.read_filter == ReadFilter.UNREAD
    assert args.query == '"machine learning" rust'
    assert args.sort is not None
    assert args.sort.by == SortBy.WORDS_COUNT
    assert args.sort.order == SortOrder.ASCENDING


def test_label_entries_keep_and_of_or_shape():
    args = parse_search_query("label:News,Tech label:later -label:spam")

    include = [f for f in args.label_filters if f.type == LabelFilterType.INCLUDE]
    exclude = [f for f in args.label_filters if f.type == LabelFilterType.EXCLUDE]
    assert [f.labels for f in include] == [["news", "tech"], ["later"]]
    assert [f.labels for f in exclude] == [["spam"]]


def test_field_keywords():
    args = parse_search_query(
        'author:"Ada Lovelace" site:example.com title:engines has:highlights '
        "no:label recommendedBy:* includes:deleted type:Article"
    )

    assert [(f.field, f.value) for f in args.term_filters] == [
        ("author", "Ada Lovelace"),
        ("site_name", "example.com"),
    ]
    assert [(f.field, f.value) for f in args.match_filters] == [("title", "engines")]
    assert args.has_filters == [HasFilter.HIGHLIGHTS]
    assert [f.field for f in args.no_filters] == ["label_names"]
    assert args.recommended_by == "*"
    assert args.include_deleted is True
    assert args.include_pending is False
    assert args.type_filter == "article"
    assert args.query is None


def test_unknown_keyword_is_kept_as_text():
    args = parse_search_query("colour:blue in:nowhere")
    assert args.query == "colour:blue in:nowhere"
    assert args.in_filter == InFilter.ALL


def test_single_day_covers_whole_day():
    f = parse_date_range("saved_at", "2024-03-05")
    assert f.start_date == datetime(2024, 3, 5, tzinfo=timezone.utc)
    assert f.end_date == datetime(2024, 3, 5, 23, 59, 59, 999999, tzinfo=timezone.utc)


def test_open_ended_ranges():
    f = parse_date_range("published_at", "*..2024-01-31")
    assert f.start_date is None
    assert f.end_date.date().isoformat() == "2024-01-31"

    g = parse_date_range("published_at", "2024-01-01..")
    assert g.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert g.end_date is None


def test_date_keyword_maps_to_column():
    args = parse_search_query("saved:2024-01-01..2024-01-31")
    (f,) = args.date_filters
    assert f.field == "saved_at"


def test_bad_date_is_rejected():
    with pytest.raises(InvalidSearchFilter):
        parse_search_query("read:yesterday")


@pytest.mark.parametrize("text", ["-is:read", "-in:archive", "-has:labels", "-includes:deleted"])
def test_only_labels_can_be_negated(text):
    with pytest.raises(InvalidSearchFilter):
        parse_search_query(f"rust {text}")
