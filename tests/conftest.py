"""Shared fixtures: small frames, a manual-clock scheduler and grid builders."""

from collections.abc import Callable
from datetime import date
from typing import Any

import polars as pl
import pytest

from reflex_filter_grid.data_source import LocalDataSource
from reflex_filter_grid.grid import FilterGrid, FilterSettings
from reflex_filter_grid.models import Column, ForeignKeyDef, build_columns_from_schema


# ---------------------------------------------------------------------------
# Manual clock
# ---------------------------------------------------------------------------

class FakeHandle:
    def __init__(self, due: float, callback: Callable[[], Any]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler whose timers only fire when :meth:`advance` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[FakeHandle] = []

    def __call__(self, delay_s: float, callback: Callable[[], Any]) -> FakeHandle:
        handle = FakeHandle(self.now + delay_s, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [h for h in self.active if h.due <= self.now]
        self.handles = [h for h in self.active if h.due > self.now]
        for handle in due:
            handle.callback()


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------

@pytest.fixture
def cities() -> pl.DataFrame:
    return pl.DataFrame({"id": [1, 2, 3, 4], "City": ["NY", "LA", "NY", None]})


@pytest.fixture
def orders() -> pl.DataFrame:
    return pl.DataFrame(
        {
            "order_id": [1, 2, 3, 4, 5, 6],
            "customer": ["Smithson", "smith & co", "Jones", "Blacksmith", None, "SMITHERS"],
            "employee_id": [1, 2, 3, 1, 2, 3],
            "freight": [12.5, 100.0, 250.75, 99.99, None, 140.0],
            "order_date": [
                date(2024, 1, 1),
                date(2024, 1, 2),
                date(2024, 1, 2),
                date(2024, 1, 3),
                None,
                date(2024, 1, 5),
            ],
            "verified": [True, False, True, True, False, None],
        }
    )


@pytest.fixture
def employees() -> pl.DataFrame:
    return pl.DataFrame({"employee_id": [1, 2, 3], "first_name": ["Nancy", "Andrew", "Nadia"]})


def order_columns(employees: pl.DataFrame) -> list[Column]:
    return [
        Column("order_id", "Order ID", type="number"),
        Column("customer", "Customer"),
        Column(
            "employee_id",
            "Employee",
            type="number",
            foreign_key=ForeignKeyDef(LocalDataSource(employees), "first_name"),
        ),
        Column("freight", "Freight", type="number"),
        Column("order_date", "Order Date", type="date"),
        Column("verified", "Verified", type="boolean"),
    ]


# ---------------------------------------------------------------------------
# Grids
# ---------------------------------------------------------------------------

@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def make_grid(scheduler: FakeScheduler) -> Callable[..., FilterGrid]:
    """Build a grid over *frame*; columns are inferred when not given."""

    def build(
        frame: pl.DataFrame,
        columns: list[Column] | None = None,
        filter_type: str = "filterbar",
        **settings: Any,
    ) -> FilterGrid:
        if columns is None:
            columns = build_columns_from_schema(frame.schema)
        return FilterGrid(
            LocalDataSource(frame),
            columns,
            FilterSettings(type=filter_type, **settings),  # type: ignore[arg-type]
            scheduler=scheduler,
        )

    return build


@pytest.fixture
def orders_grid(make_grid, orders, employees) -> FilterGrid:
    return make_grid(orders, order_columns(employees))


def result_ids(grid: FilterGrid, id_field: str = "order_id") -> list[int]:
    assert grid.current_frame is not None
    return sorted(grid.current_frame.get_column(id_field).to_list())
