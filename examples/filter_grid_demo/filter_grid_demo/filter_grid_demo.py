"""Example Reflex app demonstrating the filter grid.

Three tabs:
  1. Orders -- filter bar with typed operators (``>=100``, ``*smith``,
     ``%Horn``) on strings, numbers and dates.
  2. Orders (checkbox) -- value-list dialogs; the ``employee_id`` column
     is a foreign key shown by employee name.
  3. Orders (Excel) -- value list plus a two-condition custom filter.

Every tab is its own ``FilterGridMixin`` subclass, so the grids keep
independent filters.
"""

import datetime as dt
import logging

import polars as pl
import reflex as rx

from reflex_filter_grid import (
    Column,
    FilterGridMixin,
    FilterPredicateEntry,
    ForeignKeyDef,
    LocalDataSource,
    filter_grid,
    setup_logging,
)

setup_logging(logging.INFO)


# ---------------------------------------------------------------------------
# Sample data builders
# ---------------------------------------------------------------------------

_CITIES: list[str | None] = ["Berlin", "Madrid", "Lyon", None, "Graz", "Bern", "Reims"]
_SHIP_NAMES: list[str] = [
    "Alfreds Futterkiste", "Ana Trujillo", "Antonio Moreno", "Around the Horn",
    "Berglunds snabbkop", "Blauer See", "Blondel pere et fils", "Bolido Comidas",
]


def _build_orders() -> pl.DataFrame:
    """Create a sample order table with every column type."""
    n = 60
    start = dt.date(1996, 7, 4)
    return pl.DataFrame(
        {
            "order_id": list(range(10248, 10248 + n)),
            "customer": [_SHIP_NAMES[i % len(_SHIP_NAMES)] for i in range(n)],
            "employee_id": [(i % 5) + 1 for i in range(n)],
            "ship_city": [_CITIES[i % len(_CITIES)] for i in range(n)],
            "freight": [round(12.5 + (i * 37) % 250 + (i % 3) * 0.25, 2) for i in range(n)],
            "order_date": [start + dt.timedelta(days=i // 2) for i in range(n)],
            "verified": [i % 4 != 0 for i in range(n)],
        }
    )


def _build_employees() -> pl.DataFrame:
    return pl.DataFrame(
        {
            "employee_id": [1, 2, 3, 4, 5],
            "first_name": ["Nancy", "Andrew", "Janet", "Margaret", "Steven"],
        }
    )


def _order_columns() -> list[Column]:
    return [
        Column("order_id", "Order ID", type="number"),
        Column("customer", "Customer"),
        Column(
            "employee_id",
            "Employee",
            type="number",
            foreign_key=ForeignKeyDef(LocalDataSource(_build_employees()), "first_name"),
        ),
        Column("ship_city", "Ship City"),
        Column("freight", "Freight", type="number"),
        Column("order_date", "Order Date", type="date"),
        Column("verified", "Verified", type="boolean"),
    ]


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class OrdersState(FilterGridMixin, rx.State):
    """Filter-bar grid with an initial ``freight >= 20`` filter."""

    async def load_data(self):
        initial = [FilterPredicateEntry("freight", "greaterThanOrEqual", 20)]
        async for _ in self.set_filter_grid(
            _build_orders(),
            _order_columns(),
            filter_type="filterbar",
            page_size=15,
            initial_filters=initial,
        ):
            yield


class CheckboxOrdersState(FilterGridMixin, rx.State):
    async def load_data(self):
        async for _ in self.set_filter_grid(
            _build_orders(), _order_columns(), filter_type="checkbox", page_size=15
        ):
            yield


class ExcelOrdersState(FilterGridMixin, rx.State):
    async def load_data(self):
        async for _ in self.set_filter_grid(
            _build_orders(), _order_columns(), filter_type="excel", page_size=15
        ):
            yield


# ---------------------------------------------------------------------------
# UI
# ---------------------------------------------------------------------------

def _tab(state_cls: type, description: str) -> rx.Component:
    return rx.vstack(
        rx.text(description, size="2", color="var(--gray-11)"),
        rx.cond(
            state_cls.fg_loaded,
            filter_grid(state_cls, height="520px"),
            rx.button("Load data", on_click=state_cls.load_data),
        ),
        rx.upload(
            rx.button("Upload filter preset", size="1", variant="outline"),
            id=f"{state_cls.__name__}_preset",
            accept={"application/json": [".json"]},
            max_files=1,
            on_drop=state_cls.handle_fg_preset_upload(
                rx.upload_files(upload_id=f"{state_cls.__name__}_preset")
            ),
        ),
        spacing="3",
        width="100%",
        padding_top="1em",
    )


def index() -> rx.Component:
    """Render the main page with tabs."""
    return rx.box(
        rx.heading("Filter Grid Demo", size="7", margin_bottom="0.5em"),
        rx.tabs.root(
            rx.tabs.list(
                rx.tabs.trigger("Orders (filter bar)", value="filterbar"),
                rx.tabs.trigger("Orders (checkbox)", value="checkbox"),
                rx.tabs.trigger("Orders (Excel)", value="excel"),
            ),
            rx.tabs.content(
                _tab(OrdersState, "Type >=100, *Ana, %Horn or a date like 1996-07-05 and wait or press Enter."),
                value="filterbar",
            ),
            rx.tabs.content(
                _tab(CheckboxOrdersState, "Open a column's value list with the filter icon."),
                value="checkbox",
            ),
            rx.tabs.content(
                _tab(ExcelOrdersState, "Value list with OK / Cancel buttons."),
                value="excel",
            ),
            default_value="filterbar",
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=OrdersState.load_data)
