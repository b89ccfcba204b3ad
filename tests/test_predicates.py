"""Tests for predicate compilation, day bucketing and local query execution."""

from datetime import date, datetime, time, timedelta

import polars as pl
import pytest

from reflex_filter_grid.models import FilterPredicateEntry
from reflex_filter_grid.predicates import (
    Predicate,
    Query,
    get_date_predicate,
    set_date_object,
)


def _ids(frame: pl.DataFrame, predicate: Predicate, id_field: str = "id") -> list[int]:
    result = Query().where(predicate).execute_local(frame).result
    return sorted(result.get_column(id_field).to_list())


@pytest.fixture
def people() -> pl.DataFrame:
    return pl.DataFrame(
        {
            "id": [1, 2, 3, 4, 5],
            "name": ["Smith", "smithers", "Jones", "", None],
            "age": [30, 41, None, 25, 52],
        }
    )


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------

def test_equal_never_matches_null(people: pl.DataFrame) -> None:
    assert _ids(people, Predicate("age", "equal", 30)) == [1]


def test_not_equal_keeps_null_rows(people: pl.DataFrame) -> None:
    assert _ids(people, Predicate("age", "notEqual", 30)) == [2, 3, 4, 5]


def test_none_value_matches_blank_strings_and_nulls(people: pl.DataFrame) -> None:
    assert _ids(people, Predicate("name", "equal", None)) == [4, 5]
    assert _ids(people, Predicate("name", "notEqual", None)) == [1, 2, 3]


def test_ignore_case_applies_to_string_operators(people: pl.DataFrame) -> None:
    assert _ids(people, Predicate("name", "startsWith", "SMITH", ignore_case=True)) == [1, 2]
    assert _ids(people, Predicate("name", "startsWith", "smith", ignore_case=False)) == [2]


def test_relational_operators_on_numbers(people: pl.DataFrame) -> None:
    assert _ids(people, Predicate("age", "greaterThanOrEqual", 41)) == [2, 5]
    assert _ids(people, Predicate("age", "lessThan", "30")) == [4]


def test_unknown_field_is_skipped(people: pl.DataFrame) -> None:
    predicate = Predicate("nope", "equal", 1).and_(Predicate("age", "equal", 25))
    assert _ids(people, predicate) == [4]


def test_empty_groups(people: pl.DataFrame) -> None:
    assert _ids(people, Predicate.and_all([])) == [1, 2, 3, 4, 5]
    assert _ids(people, Predicate.or_all([])) == []


def test_nested_groups(people: pl.DataFrame) -> None:
    predicate = Predicate("age", "lessThan", 35).or_(Predicate("age", "greaterThan", 50))
    predicate = predicate.and_(Predicate("name", "notEqual", None))
    assert _ids(people, predicate) == [1]


# ---------------------------------------------------------------------------
# Day bucketing
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("clock", [time(0, 0), time(0, 0, 1), time(12, 30), time(23, 59, 59)])
def test_day_bucket_accepts_every_time_of_the_day(clock: time) -> None:
    day = date(2024, 3, 10)
    frame = pl.DataFrame(
        {
            "id": [1, 2, 3, 4],
            "ts": [
                datetime.combine(day, clock),
                datetime.combine(day - timedelta(days=1), clock),
                datetime.combine(day + timedelta(days=1), clock),
                None,
            ],
        }
    )
    equal = get_date_predicate(FilterPredicateEntry("ts", "equal", day))
    not_equal = get_date_predicate(FilterPredicateEntry("ts", "notEqual", day))

    assert _ids(frame, equal) == [1]
    assert _ids(frame, not_equal) == [2, 3, 4]


def test_day_bucket_uses_calendar_day_of_a_timestamp_value() -> None:
    frame = pl.DataFrame(
        {"id": [1, 2], "d": [date(2024, 3, 10), date(2024, 3, 11)]}
    )
    predicate = get_date_predicate(
        FilterPredicateEntry("d", "equal", datetime(2024, 3, 10, 18, 45))
    )
    assert _ids(frame, predicate) == [1]


def test_day_bucket_structure() -> None:
    predicate = get_date_predicate(FilterPredicateEntry("d", "equal", date(2024, 1, 1)))
    assert predicate.condition == "and"
    assert [(p.operator, p.value) for p in predicate.predicates] == [
        ("greaterThan", date(2023, 12, 31)),
        ("lessThan", date(2024, 1, 2)),
    ]


def test_day_bucket_leaves_other_operators_alone() -> None:
    predicate = get_date_predicate(FilterPredicateEntry("d", "greaterThan", date(2024, 1, 1)))
    assert not predicate.is_complex
    assert predicate.operator == "greaterThan"


def test_set_date_object_marks_entry() -> None:
    entry = set_date_object(FilterPredicateEntry("d", "equal", date(2024, 1, 1)))
    assert entry.type == "date"
    assert entry.date_predicate is not None

    blank = set_date_object(FilterPredicateEntry("d", "equal", None))
    assert blank.type is None
    assert blank.date_predicate is None


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------

def test_execute_local_counts_before_paging(people: pl.DataFrame) -> None:
    query = (
        Query()
        .where("age", "greaterThan", 20)
        .sort_by("age", "desc")
        .page(1, 2)
        .requires_count()
    )
    result = query.execute_local(people)
    assert result.count == 4
    assert result.result.get_column("id").to_list() == [5, 2]


def test_sort_puts_nulls_last(people: pl.DataFrame) -> None:
    result = Query().sort_by("age").execute_local(people).result
    assert result.get_column("id").to_list() == [4, 1, 2, 5, 3]


def test_search_across_string_columns(people: pl.DataFrame) -> None:
    result = Query().search("ONE").execute_local(people).result
    assert result.get_column("id").to_list() == [3]


def test_group_counts(people: pl.DataFrame) -> None:
    frame = people.with_columns(pl.col("age").fill_null(0) > 35)
    result = Query().group("age").execute_local(frame)
    assert {g["age"]: g["len"] for g in result.groups} == {False: 3, True: 2}


def test_operations_are_recorded_in_call_order() -> None:
    query = Query().where("a", "equal", 1).search("x").sort_by("a").page(2, 10).group("a")
    assert [name for name, _ in query.operations] == ["where", "search", "sortBy", "page", "group"]
    clone = query.clone()
    clone.sort_by("b")
    assert len(query.sorts) == 1
    assert len(clone.sorts) == 2
