"""Tests for the single-condition menu dialog."""

import asyncio

from conftest import order_columns, result_ids
from reflex_filter_grid.menu_filter import MenuFilterDialog


def _open(grid, field: str) -> MenuFilterDialog:
    asyncio.run(grid.open_filter_dialog(field))
    dialog = grid.filter_module.dialog
    assert isinstance(dialog, MenuFilterDialog)
    return dialog


def test_menu_is_used_for_filter_bar_grids(orders_grid) -> None:
    dialog = _open(orders_grid, "customer")
    assert dialog.operator == "startsWith"
    assert [o["value"] for o in dialog.operators] == [
        "startsWith",
        "endsWith",
        "contains",
        "equal",
        "notEqual",
    ]
    assert dialog.operators[0]["text"] == "Starts With"


def test_apply_numeric_condition(make_grid, orders, employees) -> None:
    grid = make_grid(orders, order_columns(employees), filter_type="menu")
    dialog = _open(grid, "freight")
    assert dialog.operator == "equal"

    assert dialog.apply("greaterThan", "100")
    assert not dialog.is_open
    assert [(e.operator, e.value) for e in grid.filter_columns] == [("greaterThan", 100)]
    asyncio.run(grid.refresh())
    assert result_ids(grid) == [3, 6]


def test_apply_replaces_the_column_entry(make_grid, orders, employees) -> None:
    grid = make_grid(orders, order_columns(employees), filter_type="menu")
    _open(grid, "freight").apply("greaterThan", "100")
    _open(grid, "freight").apply("lessThan", "50")
    assert [(e.operator, e.value) for e in grid.filter_columns] == [("lessThan", 50)]


def test_invalid_value_keeps_dialog_open(make_grid, orders, employees) -> None:
    grid = make_grid(orders, order_columns(employees), filter_type="menu")
    dialog = _open(grid, "order_date")

    assert not dialog.apply("equal", "yesterday")
    assert dialog.error == "Invalid Filter Data"
    assert dialog.is_open
    assert grid.filter_columns == []


def test_empty_value_clears(make_grid, orders, employees) -> None:
    grid = make_grid(orders, order_columns(employees), filter_type="menu")
    _open(grid, "freight").apply("greaterThan", "100")

    dialog = _open(grid, "freight")
    assert (dialog.operator, dialog.value_text) == ("greaterThan", "100")
    assert dialog.apply(text="")
    assert grid.filter_columns == []


def test_foreign_key_condition_goes_through_lookup(make_grid, orders, employees) -> None:
    grid = make_grid(orders, order_columns(employees), filter_type="menu")
    asyncio.run(grid.initialize())
    _open(grid, "employee_id").apply("equal", "andrew")

    entry = grid.filter_columns[0]
    assert (entry.actual_operator, entry.actual_filter_value) == ("equal", "andrew")
    asyncio.run(grid.refresh())
    assert result_ids(grid) == [2, 5]

    dialog = _open(grid, "employee_id")
    assert dialog.value_text == "andrew"
