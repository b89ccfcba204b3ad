"""Tests for the filter controller: filter-bar parsing, debounce and list upkeep."""

import asyncio
from datetime import date

import pytest

from conftest import order_columns, result_ids
from reflex_filter_grid.data_source import LocalDataSource
from reflex_filter_grid.events import FILTER_BEGIN, FILTER_COMPLETE
from reflex_filter_grid.filter_controller import get_operator
from reflex_filter_grid.grid import FilterGrid, FilterSettings
from reflex_filter_grid.models import Column, FilterPredicateEntry, build_columns_from_schema


def _bar(grid, field: str, text: str) -> None:
    grid.on_filter_bar_input(field, text, key="Enter")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (">=10", ("greaterThanOrEqual", "10")),
        ("<=10", ("lessThanOrEqual", "10")),
        ("!=10", ("notEqual", "10")),
        ("==10", ("equal", "10")),
        (">10", ("greaterThan", "10")),
        ("<10", ("lessThan", "10")),
        ("!10", ("notEqual", "10")),
        ("=10", ("equal", "10")),
        ("10", (None, "10")),
    ],
)
def test_get_operator(text: str, expected: tuple) -> None:
    assert get_operator(text) == expected


def test_numeric_comparison_text(orders_grid) -> None:
    column = orders_grid.get_column_by_field("freight")
    assert orders_grid.filter_module.validate_filter_value(column, ">=100") == (
        "greaterThanOrEqual",
        100,
        True,
    )


def test_leading_star_means_case_insensitive_starts_with(orders_grid) -> None:
    column = orders_grid.get_column_by_field("customer")
    assert orders_grid.filter_module.validate_filter_value(column, "*smith") == (
        "startsWith",
        "smith",
        False,
    )


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("smith%", ("startsWith", "smith")),
        ("%son", ("endsWith", "son")),
        ("Jo", ("startsWith", "Jo")),
    ],
)
def test_string_wildcards(orders_grid, text: str, expected: tuple) -> None:
    column = orders_grid.get_column_by_field("customer")
    operator, value, _ = orders_grid.filter_module.validate_filter_value(column, text)
    assert (operator, value) == expected


def test_text_before_a_numeric_operator_is_dropped(orders_grid) -> None:
    column = orders_grid.get_column_by_field("freight")
    assert orders_grid.filter_module.validate_filter_value(column, "abc>5") == (
        "greaterThan",
        5,
        True,
    )


def test_date_and_boolean_text(orders_grid) -> None:
    module = orders_grid.filter_module
    dates = orders_grid.get_column_by_field("order_date")
    flags = orders_grid.get_column_by_field("verified")
    assert module.validate_filter_value(dates, ">2024-01-02") == (
        "greaterThan",
        date(2024, 1, 2),
        True,
    )
    assert module.validate_filter_value(dates, "2024-13-40") is None
    assert module.validate_filter_value(flags, "TRUE") == ("equal", True, True)
    assert module.validate_filter_value(flags, "0") == ("equal", False, True)
    assert module.validate_filter_value(flags, "maybe") is None


# ---------------------------------------------------------------------------
# Filter bar end to end
# ---------------------------------------------------------------------------

def test_filter_bar_filters_rows(orders_grid) -> None:
    _bar(orders_grid, "freight", ">=100")
    _bar(orders_grid, "customer", "*smith")
    asyncio.run(orders_grid.refresh())

    assert result_ids(orders_grid) == [2, 6]
    assert orders_grid.external_message == "Freight: >=100 && Customer: *smith"
    assert orders_grid.filtered_headers == {"freight", "customer"}


def test_filter_bar_date_and_boolean(orders_grid) -> None:
    _bar(orders_grid, "order_date", "2024-01-02")
    asyncio.run(orders_grid.refresh())
    assert result_ids(orders_grid) == [2, 3]

    orders_grid.clear_filtering()
    _bar(orders_grid, "verified", "true")
    asyncio.run(orders_grid.refresh())
    assert result_ids(orders_grid) == [1, 3, 4]


def test_filter_bar_on_foreign_key_column_uses_display_text(orders_grid) -> None:
    asyncio.run(orders_grid.initialize())
    _bar(orders_grid, "employee_id", "na")
    asyncio.run(orders_grid.refresh())

    entry = orders_grid.filter_columns[0]
    assert (entry.field, entry.actual_operator, entry.actual_filter_value) == (
        "employee_id",
        "startsWith",
        "na",
    )
    assert result_ids(orders_grid) == [1, 3, 4, 6]


def test_invalid_text_sets_status_and_keeps_list(orders_grid) -> None:
    _bar(orders_grid, "freight", ">=100")
    version = orders_grid.query_version

    _bar(orders_grid, "freight", "abc")
    assert orders_grid.external_message == "Invalid Filter Data"
    assert [e.value for e in orders_grid.filter_columns] == [100]
    assert orders_grid.query_version == version


def test_comparison_character_inside_string_is_rejected(orders_grid) -> None:
    _bar(orders_grid, "customer", "a<b")
    assert orders_grid.filter_columns == []
    assert orders_grid.external_message == "Invalid Filter Data"


def test_rejected_input_keeps_error_over_active_filters(orders_grid) -> None:
    _bar(orders_grid, "freight", ">=100")
    assert orders_grid.external_message == "Freight: >=100"

    _bar(orders_grid, "customer", "a<b")
    assert orders_grid.external_message == "Invalid Filter Data"
    assert [e.field for e in orders_grid.filter_columns] == ["freight"]

    _bar(orders_grid, "customer", "*smith")
    assert orders_grid.external_message == "Freight: >=100 && Customer: *smith"


def test_bare_operator_is_ignored(orders_grid) -> None:
    _bar(orders_grid, "freight", ">=")
    assert orders_grid.filter_columns == []
    assert orders_grid.query_version == 0


def test_clearing_the_text_removes_the_filter(orders_grid) -> None:
    _bar(orders_grid, "freight", ">=100")
    _bar(orders_grid, "freight", "   ")
    assert orders_grid.filter_columns == []
    assert "freight" not in orders_grid.filtered_headers


# ---------------------------------------------------------------------------
# Debounce
# ---------------------------------------------------------------------------

def test_rapid_keystrokes_apply_once_with_the_last_value(orders_grid, scheduler) -> None:
    for text in (">", ">1", ">10", ">100"):
        orders_grid.on_filter_bar_input("freight", text)
        scheduler.advance(0.5)

    assert orders_grid.filter_columns == []
    assert len(scheduler.active) == 1

    scheduler.advance(1.5)
    assert orders_grid.query_version == 1
    assert [(e.operator, e.value) for e in orders_grid.filter_columns] == [("greaterThan", 100)]
    assert not orders_grid.filter_module.timer.pending


def test_enter_preempts_pending_timer(orders_grid, scheduler) -> None:
    orders_grid.on_filter_bar_input("freight", ">1")
    orders_grid.on_filter_bar_input("freight", ">10", key="Enter")

    assert [e.value for e in orders_grid.filter_columns] == [10]
    assert scheduler.active == []
    scheduler.advance(10)
    assert orders_grid.query_version == 1


def test_onenter_mode_waits_for_enter(make_grid, orders, scheduler) -> None:
    grid = make_grid(orders, mode="onenter")
    grid.on_filter_bar_input("freight", ">10")
    scheduler.advance(10)
    assert grid.filter_columns == []

    grid.on_filter_bar_input("freight", ">10", key="Enter")
    assert len(grid.filter_columns) == 1


def test_keystrokes_without_event_loop_wait_for_flush(orders, employees) -> None:
    grid = FilterGrid(LocalDataSource(orders), order_columns(employees))
    for text in ("s", "sm", "smi"):
        grid.on_filter_bar_input("customer", text)

    assert grid.query_version == 0
    assert grid.filter_module.timer.pending

    grid.flush_filter_bar()
    assert grid.query_version == 1
    assert [e.value for e in grid.filter_columns] == ["smi"]
    assert not grid.filter_module.timer.pending


def test_custom_delay(make_grid, orders, scheduler) -> None:
    grid = make_grid(orders, immediate_mode_delay=200)
    grid.on_filter_bar_input("freight", "12.5")
    scheduler.advance(0.2)
    assert [e.value for e in grid.filter_columns] == [12.5]


# ---------------------------------------------------------------------------
# Canonical list upkeep
# ---------------------------------------------------------------------------

def test_second_filter_bar_value_replaces_the_first(orders_grid) -> None:
    _bar(orders_grid, "customer", "jo")
    _bar(orders_grid, "freight", "10")
    _bar(orders_grid, "customer", "sm")

    assert [(e.field, e.value) for e in orders_grid.filter_columns] == [
        ("customer", "sm"),
        ("freight", 10),
    ]


def test_reapplying_the_same_filter_is_a_no_op(orders_grid) -> None:
    orders_grid.filter_by_column("customer", "equal", "Jones", match_case=True)
    version = orders_grid.query_version
    orders_grid.filter_by_column("customer", "equal", "Jones", match_case=True)

    assert len(orders_grid.filter_columns) == 1
    assert orders_grid.query_version == version


def test_dialog_grids_append_entries(make_grid, orders) -> None:
    grid = make_grid(orders, filter_type="menu")
    grid.filter_by_column("freight", "greaterThan", 10)
    grid.filter_by_column("freight", "lessThan", 200)
    assert len(grid.filter_columns) == 2


def test_filter_by_column_sets_bar_text(orders_grid) -> None:
    orders_grid.filter_by_column("order_date", "equal", date(2024, 1, 5))
    assert orders_grid.filter_module.filter_bar_values["order_date"] == "2024-01-05"
    assert orders_grid.filter_columns[0].match_case is True


def test_non_filterable_and_unknown_columns_are_ignored(make_grid, orders) -> None:
    columns = [Column("order_id", type="number", allow_filtering=False), Column("customer")]
    grid = make_grid(orders, columns)
    grid.filter_by_column("order_id", "equal", 1)
    grid.filter_by_column("missing", "equal", 1)
    assert grid.filter_columns == []


def test_remove_and_clear_fire_one_query_each(orders_grid) -> None:
    began: list = []
    orders_grid.events.on(FILTER_BEGIN, began.append)
    _bar(orders_grid, "customer", "sm")
    _bar(orders_grid, "freight", "10")

    version = orders_grid.query_version
    orders_grid.remove_filtered_cols_by_field("customer")
    assert orders_grid.query_version == version + 1
    assert [e.field for e in orders_grid.filter_columns] == ["freight"]
    assert "customer" not in orders_grid.filter_module.filter_bar_values

    orders_grid.clear_filtering()
    assert orders_grid.query_version == version + 2
    assert orders_grid.filter_columns == []
    assert orders_grid.filtered_headers == set()
    assert [args.request_type for args in began][-1] == "clear-filter"
    assert began[-1].columns == []


def test_filter_complete_fires_after_refresh(orders_grid) -> None:
    completed: list = []
    orders_grid.events.on(FILTER_COMPLETE, completed.append)
    _bar(orders_grid, "freight", ">100")
    assert completed == []

    asyncio.run(orders_grid.refresh())
    assert len(completed) == 1
    assert completed[0].field == "freight"
    assert [e.value for e in completed[0].columns] == [100]


def test_batch_edit_defers_filter_calls(orders_grid) -> None:
    orders_grid.begin_batch_edit()
    orders_grid.filter_by_column("freight", "greaterThan", 10)
    orders_grid.clear_filtering()
    orders_grid.filter_by_column("customer", "startsWith", "s")
    assert orders_grid.filter_columns == []

    orders_grid.end_batch_edit()
    assert [e.field for e in orders_grid.filter_columns] == ["customer"]


def test_initial_filters_share_one_query(orders, scheduler) -> None:
    settings = FilterSettings(
        type="menu",
        columns=[
            FilterPredicateEntry("freight", "greaterThan", 50),
            FilterPredicateEntry("customer", "startsWith", "s"),
        ],
    )
    grid = FilterGrid(
        LocalDataSource(orders),
        build_columns_from_schema(orders.schema),
        settings,
        scheduler=scheduler,
    )
    asyncio.run(grid.initialize())

    assert grid.query_version == 1
    assert len(grid.filter_columns) == 2
    assert result_ids(grid) == [2, 6]


def test_load_filters_replaces_the_list(orders_grid) -> None:
    _bar(orders_grid, "customer", "sm")
    entries = [
        FilterPredicateEntry("freight", "greaterThan", 100, match_case=True),
        FilterPredicateEntry("nope", "equal", 1),
    ]
    orders_grid.filter_module.load_filters(entries)
    asyncio.run(orders_grid.refresh())

    assert [e.field for e in orders_grid.filter_columns] == ["freight"]
    assert orders_grid.filtered_headers == {"freight"}
    assert result_ids(orders_grid) == [3, 6]


def test_load_filters_shows_falsy_display_values(orders_grid) -> None:
    orders_grid.filter_module.load_filters(
        [FilterPredicateEntry("verified", "equal", 0, actual_filter_value=False)]
    )
    assert orders_grid.filter_module.filter_bar_values == {"verified": "False"}


def test_saved_filters_reload_to_the_same_rows(orders_grid) -> None:
    _bar(orders_grid, "order_date", ">=2024-01-02")
    asyncio.run(orders_grid.refresh())
    before = result_ids(orders_grid)

    saved = [e.to_dict() for e in orders_grid.filter_columns]
    assert saved == [
        {
            "field": "order_date",
            "operator": "greaterThanOrEqual",
            "value": "2024-01-02",
            "predicate": "and",
            "matchCase": True,
        }
    ]

    orders_grid.clear_filtering()
    orders_grid.filter_module.load_filters([FilterPredicateEntry.from_dict(d) for d in saved])
    asyncio.run(orders_grid.refresh())
    assert before == [2, 3, 4, 6]
    assert result_ids(orders_grid) == before
