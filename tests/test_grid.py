"""Tests for the host grid: sorting, paging, search and column definitions."""

import asyncio

from conftest import order_columns
from reflex_filter_grid.data_source import LocalDataSource
from reflex_filter_grid.grid import FilterGrid, PageSettings


def _ids(grid: FilterGrid) -> list[int]:
    asyncio.run(grid.refresh())
    return [row["order_id"] for row in grid.current_view_data]


def test_sort_and_page_after_filtering(orders, employees) -> None:
    grid = FilterGrid(
        LocalDataSource(orders),
        order_columns(employees),
        page_settings=PageSettings(page_size=2),
        allow_paging=True,
    )
    grid.filter_by_column("freight", "greaterThan", 50)
    grid.sort_column("freight", "desc")
    assert _ids(grid) == [3, 6]
    assert grid.total_count == 4

    grid.go_to_page(2)
    assert _ids(grid) == [2, 4]


def test_search_runs_after_filters(orders_grid) -> None:
    orders_grid.filter_by_column("freight", "lessThan", 200)
    orders_grid.search("SMITH")
    assert sorted(_ids(orders_grid)) == [1, 2, 4, 6]


def test_rows_are_json_safe(orders_grid) -> None:
    orders_grid.filter_by_column("order_id", "equal", 2)
    asyncio.run(orders_grid.refresh())
    assert orders_grid.current_view_data[0]["order_date"] == "2024-01-02"


def test_column_defs_carry_filtered_flag(orders_grid) -> None:
    orders_grid.filter_by_column("customer", "startsWith", "s")
    defs = {d["field"]: d for d in orders_grid.column_defs()}
    assert defs["customer"]["filtered"] is True
    assert defs["freight"]["filtered"] is False
    assert defs["order_date"]["headerName"] == "Order Date"


def test_destroy_drops_filters_and_listeners(orders_grid) -> None:
    fired: list = []
    orders_grid.events.on("filter-begin", fired.append)
    orders_grid.filter_by_column("customer", "startsWith", "s")
    orders_grid.destroy()
    orders_grid.filter_by_column("customer", "startsWith", "j")

    assert len(fired) == 1
    assert [e.value for e in orders_grid.filter_columns] == ["j"]
