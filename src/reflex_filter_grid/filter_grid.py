"""Reusable Reflex filter grid: state mixin and UI helpers.

Users inherit from :class:`FilterGridMixin` **and** ``rx.State``, call
:meth:`FilterGridMixin.set_filter_grid` with a polars frame (or any data
source) and render with :func:`filter_grid`.

``FilterGridMixin`` is a Reflex **state mixin** (``mixin=True``).  Each
subclass gets its own independent set of ``fg_*`` reactive variables,
so multiple grids on the same page do not interfere with each other.

Typical usage::

    from reflex_filter_grid import FilterGridMixin, filter_grid, scan_file

    class MyState(FilterGridMixin, rx.State):
        async def load_data(self):
            async for _ in self.set_filter_grid(scan_file(Path("orders.csv")).collect()):
                yield

    def index():
        return rx.cond(MyState.fg_loaded, filter_grid(MyState))
"""

import json
import logging
import math
import time
from typing import Any

import polars as pl
import reflex as rx

from reflex_filter_grid.checkbox_filter import CheckboxFilterDialog
from reflex_filter_grid.data_source import DataSource, LocalDataSource
from reflex_filter_grid.grid import FilterGrid, FilterSettings, PageSettings
from reflex_filter_grid.menu_filter import MenuFilterDialog
from reflex_filter_grid.models import (
    Column,
    FilterBarMode,
    FilterPredicateEntry,
    FilterType,
    build_columns_from_schema,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Module-level grid registry
# ---------------------------------------------------------------------------

_DEFAULT_PAGE_SIZE: int = 50

# FilterGrid objects hold frames, timers and callbacks, so they cannot
# live inside ``rx.State``.  They are kept here keyed by state class name.
_grid_registry: dict[str, FilterGrid] = {}


def _get_grid(cache_id: str) -> FilterGrid | None:
    """Return the grid registered for *cache_id*, if any."""
    if not cache_id:
        return None
    return _grid_registry.get(cache_id)


# ---------------------------------------------------------------------------
# FilterGridMixin
# ---------------------------------------------------------------------------

class FilterGridMixin(rx.State, mixin=True):
    """Reflex State mixin wiring a :class:`FilterGrid` to the UI.

    Inherit from this class **and** ``rx.State``::

        class MyGrid(FilterGridMixin, rx.State):
            ...

    The grid itself lives in a module-level registry; the state only
    holds JSON-safe snapshots (rows, columns, filter-bar texts, dialog
    contents) that are refreshed after every handler.

    All state variable names are prefixed with ``fg_`` to avoid
    collisions when composed with other state.
    """

    # -- Frontend state vars --
    fg_rows: list[dict[str, Any]] = []
    fg_columns: list[dict[str, Any]] = []
    fg_row_count: int = 0
    fg_loading: bool = False
    fg_loaded: bool = False
    fg_status: str = ""
    fg_stats: str = ""
    fg_filter_type: str = "filterbar"
    fg_filter_delay: int = 1500
    fg_filter_bar_values: dict[str, str] = {}
    fg_filtered_fields: list[str] = []
    fg_page: int = 1
    fg_page_count: int = 1
    fg_filter_json: str = ""

    # Dialog
    fg_dialog_open: bool = False
    fg_dialog_loading: bool = False
    fg_dialog_kind: str = ""
    fg_dialog_field: str = ""
    fg_dialog_title: str = ""
    fg_dialog_items: list[dict[str, Any]] = []
    fg_dialog_select_all: str = "unchecked"
    fg_dialog_search: str = ""
    fg_dialog_can_commit: bool = False
    fg_dialog_message: str = ""
    fg_dialog_ok_label: str = "Filter"
    fg_dialog_cancel_label: str = "Clear"
    fg_menu_operator: str = ""
    fg_menu_value: str = ""
    fg_menu_operators: list[dict[str, str]] = []

    # -- Backend-only vars (not sent to frontend) --
    _fg_cache_id: str = ""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def set_filter_grid(
        self,
        data: pl.DataFrame | pl.LazyFrame | DataSource,
        columns: list[Column] | None = None,
        filter_type: FilterType = "filterbar",
        filter_mode: FilterBarMode = "immediate",
        immediate_mode_delay: int = 1500,
        page_size: int = _DEFAULT_PAGE_SIZE,
        initial_filters: list[FilterPredicateEntry] | None = None,
        locale_strings: dict[str, str] | None = None,
    ):
        """Create the grid for this state and load the first page.

        This is an **async generator**: iterate it inside your own async
        event handler and ``yield`` so the loading state reaches the
        frontend immediately.

        Args:
            data: A polars frame, or any data source.
            columns: Column metadata.  Inferred from the frame schema
                when omitted (required for other data sources).
            filter_type: ``"filterbar"``, ``"menu"``, ``"checkbox"`` or
                ``"excel"``.
            filter_mode: ``"immediate"`` applies typed text after
                *immediate_mode_delay* ms, ``"onenter"`` on Enter only.
            immediate_mode_delay: Filter-bar debounce in milliseconds.
            page_size: Rows per page.
            initial_filters: Filters applied once the data is loaded.
            locale_strings: Overrides for the English UI strings.

        Raises:
            ValueError: If *columns* is missing for a non-frame source.
        """
        self.fg_loading = True  # type: ignore[assignment]
        self.fg_stats = "Preparing grid..."  # type: ignore[assignment]
        yield

        t0 = time.perf_counter()
        if isinstance(data, (pl.DataFrame, pl.LazyFrame)):
            source: DataSource = LocalDataSource(data)
            if columns is None:
                columns = build_columns_from_schema(data.lazy().collect_schema())
        else:
            source = data
        if columns is None:
            raise ValueError("columns are required when data is not a polars frame")

        cache_id = type(self).__name__
        previous = _grid_registry.pop(cache_id, None)
        if previous is not None:
            previous.destroy()

        grid = FilterGrid(
            source,
            columns,
            FilterSettings(
                type=filter_type,
                mode=filter_mode,
                immediate_mode_delay=immediate_mode_delay,
                columns=list(initial_filters or []),
            ),
            page_settings=PageSettings(page_size=page_size),
            allow_paging=True,
            locale_strings=locale_strings,
        )
        _grid_registry[cache_id] = grid
        self._fg_cache_id = cache_id  # type: ignore[assignment]
        await grid.initialize()

        self.fg_filter_type = filter_type  # type: ignore[assignment]
        self.fg_filter_delay = immediate_mode_delay  # type: ignore[assignment]
        self._sync_fg_state(grid)
        self.fg_loaded = True  # type: ignore[assignment]
        self.fg_loading = False  # type: ignore[assignment]
        logger.info(
            "filter grid ready: %s, %d columns (%.1fms)",
            cache_id,
            len(columns),
            (time.perf_counter() - t0) * 1000,
        )

    # ------------------------------------------------------------------
    # Filter bar
    # ------------------------------------------------------------------

    async def handle_fg_filter_bar_change(self, field: str, text: str):
        """Apply filter-bar text.

        The input is already debounced in the browser, so in immediate
        mode the text is applied right away.  In ``onenter`` mode it is
        only recorded until :meth:`handle_fg_filter_bar_key` sees Enter.
        """
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        self.fg_filter_bar_values = {**self.fg_filter_bar_values, field: text}  # type: ignore[assignment]
        if grid.filter_settings.mode != "immediate":
            grid.on_filter_bar_input(field, text)
            return
        self.fg_loading = True  # type: ignore[assignment]
        yield
        grid.on_filter_bar_input(field, text, key="Enter")
        await self._refresh_fg_grid(grid)

    async def handle_fg_filter_bar_key(self, field: str, key: str):
        grid = _get_grid(self._fg_cache_id)
        if grid is None or key != "Enter":
            return
        self.fg_loading = True  # type: ignore[assignment]
        yield
        grid.on_filter_bar_input(field, self.fg_filter_bar_values.get(field, ""), key="Enter")
        await self._refresh_fg_grid(grid)

    async def clear_fg_filters(self):
        """Remove every filter with a single re-query."""
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        self.fg_loading = True  # type: ignore[assignment]
        self.fg_stats = "Clearing filters..."  # type: ignore[assignment]
        yield
        grid.clear_filtering()
        await self._refresh_fg_grid(grid)

    async def remove_fg_filter(self, field: str):
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        self.fg_loading = True  # type: ignore[assignment]
        yield
        grid.remove_filtered_cols_by_field(field)
        await self._refresh_fg_grid(grid)

    # ------------------------------------------------------------------
    # Dialog
    # ------------------------------------------------------------------

    async def open_fg_filter_dialog(self, field: str):
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        self.fg_dialog_loading = True  # type: ignore[assignment]
        self.fg_dialog_field = field  # type: ignore[assignment]
        yield
        await grid.open_filter_dialog(field)
        self._sync_fg_dialog(grid)

    def close_fg_filter_dialog(self) -> None:
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        grid.filter_module.close_filter_dialog()
        self._sync_fg_dialog(grid)

    def toggle_fg_filter_item(self, uid: str) -> None:
        grid = _get_grid(self._fg_cache_id)
        dialog = self._checkbox_dialog(grid)
        if grid is None or dialog is None:
            return
        dialog.toggle(uid)
        self._sync_fg_dialog(grid)

    def toggle_fg_select_all(self) -> None:
        grid = _get_grid(self._fg_cache_id)
        dialog = self._checkbox_dialog(grid)
        if grid is None or dialog is None:
            return
        dialog.toggle_select_all()
        self._sync_fg_dialog(grid)

    def search_fg_filter_items(self, text: str) -> None:
        grid = _get_grid(self._fg_cache_id)
        dialog = self._checkbox_dialog(grid)
        if grid is None or dialog is None:
            return
        dialog.search(text)
        self._sync_fg_dialog(grid)
        self.fg_dialog_search = text  # type: ignore[assignment]

    async def commit_fg_filter_dialog(self):
        """OK / Filter button of the checkbox dialog."""
        grid = _get_grid(self._fg_cache_id)
        dialog = self._checkbox_dialog(grid)
        if grid is None or dialog is None or not dialog.can_commit:
            return
        self.fg_loading = True  # type: ignore[assignment]
        yield
        dialog.commit()
        await self._refresh_fg_grid(grid)

    async def secondary_fg_filter_dialog(self):
        """Clear button (checkbox/menu) or Cancel button (excel)."""
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        dialog = grid.filter_module.dialog
        if dialog is None or not dialog.is_open:
            return
        if dialog.kind == "excel":
            dialog.close()
            self._sync_fg_dialog(grid)
            return
        self.fg_loading = True  # type: ignore[assignment]
        yield
        dialog.clear()
        await self._refresh_fg_grid(grid)

    def set_fg_menu_operator(self, operator: str) -> None:
        self.fg_menu_operator = operator  # type: ignore[assignment]

    def set_fg_menu_value(self, value: str) -> None:
        self.fg_menu_value = value  # type: ignore[assignment]

    async def apply_fg_menu_filter(self):
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        dialog = grid.filter_module.dialog
        if not isinstance(dialog, MenuFilterDialog):
            return
        if not dialog.apply(self.fg_menu_operator or None, self.fg_menu_value):
            self._sync_fg_dialog(grid)
            return
        self.fg_loading = True  # type: ignore[assignment]
        yield
        await self._refresh_fg_grid(grid)

    # ------------------------------------------------------------------
    # Sort / paging
    # ------------------------------------------------------------------

    async def handle_fg_sort(self, field: str):
        """Cycle *field* through ascending, descending and unsorted."""
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        self.fg_loading = True  # type: ignore[assignment]
        self.fg_stats = "Sorting..."  # type: ignore[assignment]
        yield
        current = dict(grid.sort_settings.columns).get(field)
        if current == "asc":
            grid.sort_column(field, "desc")
        elif current == "desc":
            grid.clear_sorting()
        else:
            grid.sort_column(field, "asc")
        await self._refresh_fg_grid(grid)

    async def fg_go_to_page(self, page: int):
        grid = _get_grid(self._fg_cache_id)
        if grid is None:
            return
        page = min(max(int(page), 1), self.fg_page_count)
        self.fg_loading = True  # type: ignore[assignment]
        yield
        grid.go_to_page(page)
        await self._refresh_fg_grid(grid)

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    def download_fg_filter_preset(self) -> rx.event.EventSpec:
        """Download the active filters and sorts as ``filter_preset.json``."""
        grid = _get_grid(self._fg_cache_id)
        preset: dict[str, Any] = {"filters": [], "sorts": []}
        if grid is not None:
            preset = self._preset_for(grid)
        return rx.download(  # type: ignore[return-value]
            data=json.dumps(preset, indent=2, ensure_ascii=False),
            filename="filter_preset.json",
        )

    async def handle_fg_preset_upload(self, files: list[rx.UploadFile]):
        """Apply a JSON preset written by :meth:`download_fg_filter_preset`."""
        grid = _get_grid(self._fg_cache_id)
        if grid is None or not files:
            return
        self.fg_loading = True  # type: ignore[assignment]
        self.fg_stats = "Applying preset..."  # type: ignore[assignment]
        yield

        content = await files[0].read()
        text = content.decode("utf-8") if isinstance(content, bytes) else content
        preset = json.loads(text)
        entries = [FilterPredicateEntry.from_dict(item) for item in preset.get("filters", [])]
        grid.sort_settings.columns = [
            (s["field"], s.get("direction", "asc")) for s in preset.get("sorts", [])
        ]
        grid.filter_module.load_filters(entries)
        await self._refresh_fg_grid(grid)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _checkbox_dialog(grid: FilterGrid | None) -> CheckboxFilterDialog | None:
        if grid is None:
            return None
        dialog = grid.filter_module.dialog
        if isinstance(dialog, CheckboxFilterDialog) and dialog.is_open:
            return dialog
        return None

    @staticmethod
    def _preset_for(grid: FilterGrid) -> dict[str, Any]:
        return {
            "filters": [e.to_dict() for e in grid.filter_columns],
            "sorts": [
                {"field": name, "direction": direction}
                for name, direction in grid.sort_settings.columns
            ],
        }

    async def _refresh_fg_grid(self, grid: FilterGrid) -> None:
        t0 = time.perf_counter()
        await grid.refresh()
        self._sync_fg_state(grid)
        self.fg_loading = False  # type: ignore[assignment]
        elapsed_ms = (time.perf_counter() - t0) * 1000
        self.fg_stats = (  # type: ignore[assignment]
            f"page {self.fg_page}/{self.fg_page_count}  "
            f"{len(self.fg_rows)} of {self.fg_row_count:,} rows  {elapsed_ms:.0f}ms"
        )

    def _sync_fg_state(self, grid: FilterGrid) -> None:
        controller = grid.filter_module
        self.fg_rows = grid.current_view_data  # type: ignore[assignment]
        self.fg_row_count = grid.total_count  # type: ignore[assignment]
        self.fg_columns = grid.column_defs()  # type: ignore[assignment]
        self.fg_filter_bar_values = {  # type: ignore[assignment]
            c.field: controller.filter_bar_values.get(c.field, "") for c in grid.columns
        }
        self.fg_status = grid.external_message  # type: ignore[assignment]
        self.fg_filtered_fields = sorted(grid.filtered_headers)  # type: ignore[assignment]
        self.fg_page = grid.page_settings.current_page  # type: ignore[assignment]
        self.fg_page_count = max(  # type: ignore[assignment]
            1, math.ceil(grid.total_count / max(grid.page_settings.page_size, 1))
        )
        self.fg_filter_json = json.dumps(  # type: ignore[assignment]
            self._preset_for(grid), indent=2, ensure_ascii=False
        )
        self._sync_fg_dialog(grid)

    def _sync_fg_dialog(self, grid: FilterGrid) -> None:
        dialog = grid.filter_module.dialog
        if dialog is None or not dialog.is_open:
            self.fg_dialog_open = False  # type: ignore[assignment]
            self.fg_dialog_loading = False  # type: ignore[assignment]
            self.fg_dialog_kind = ""  # type: ignore[assignment]
            self.fg_dialog_items = []  # type: ignore[assignment]
            self.fg_dialog_search = ""  # type: ignore[assignment]
            return

        column = grid.get_column_by_field(dialog.field or "")
        self.fg_dialog_open = True  # type: ignore[assignment]
        self.fg_dialog_kind = dialog.kind  # type: ignore[assignment]
        self.fg_dialog_field = dialog.field or ""  # type: ignore[assignment]
        self.fg_dialog_title = column.get_header_text() if column else ""  # type: ignore[assignment]

        if isinstance(dialog, CheckboxFilterDialog):
            items = dialog.items
            self.fg_dialog_loading = dialog.loading  # type: ignore[assignment]
            self.fg_dialog_items = [  # type: ignore[assignment]
                {"uid": i.uid, "display": i.display, "checked": i.checked} for i in items
            ]
            self.fg_dialog_select_all = dialog.select_all_state  # type: ignore[assignment]
            self.fg_dialog_can_commit = dialog.can_commit  # type: ignore[assignment]
            self.fg_dialog_message = "" if items else dialog.no_result_label  # type: ignore[assignment]
            self.fg_dialog_ok_label = dialog.ok_label  # type: ignore[assignment]
            self.fg_dialog_cancel_label = dialog.cancel_label  # type: ignore[assignment]
        elif isinstance(dialog, MenuFilterDialog):
            self.fg_dialog_loading = False  # type: ignore[assignment]
            self.fg_menu_operator = dialog.operator  # type: ignore[assignment]
            self.fg_menu_value = dialog.value_text  # type: ignore[assignment]
            self.fg_menu_operators = dialog.operators  # type: ignore[assignment]
            self.fg_dialog_message = dialog.error  # type: ignore[assignment]
            self.fg_dialog_ok_label = grid.l10n.get("FilterButton")  # type: ignore[assignment]
            self.fg_dialog_cancel_label = grid.l10n.get("ClearButton")  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# UI helpers
# ---------------------------------------------------------------------------

def _header_cell(state_cls: type, col: Any, show_dialog_button: bool) -> rx.Component:
    return rx.table.column_header_cell(
        rx.hstack(
            rx.text(col["headerName"], weight="bold", size="2"),
            rx.cond(
                col["filtered"],
                rx.icon("filter", size=12, color="var(--accent-9)"),
            ),
            rx.spacer(),
            rx.icon_button(
                rx.icon("arrow_up_down", size=12),
                size="1",
                variant="ghost",
                on_click=state_cls.handle_fg_sort(col["field"]),
            ),
            rx.cond(
                show_dialog_button,
                rx.icon_button(
                    rx.icon("list_filter", size=12),
                    size="1",
                    variant="ghost",
                    on_click=state_cls.open_fg_filter_dialog(col["field"]),
                ),
            ),
            align="center",
            spacing="1",
        ),
    )


def _filter_bar_cell(state_cls: type, col: Any) -> rx.Component:
    return rx.table.cell(
        rx.debounce_input(
            rx.input(
                value=state_cls.fg_filter_bar_values[col["field"]],
                on_change=lambda value: state_cls.handle_fg_filter_bar_change(col["field"], value),
                on_key_down=lambda key: state_cls.handle_fg_filter_bar_key(col["field"], key),
                size="1",
                width="100%",
            ),
            debounce_timeout=state_cls.fg_filter_delay,
        ),
        padding="2px",
    )


def filter_grid(
    state_cls: type,
    *,
    height: str = "600px",
    width: str = "100%",
    show_status_bar: bool = True,
    show_dialog: bool = True,
    show_pager: bool = True,
) -> rx.Component:
    """Return a table bound to a :class:`FilterGridMixin` state.

    Renders a header row (sort and dialog buttons), a filter-bar row in
    ``filterbar`` mode, and the current page of rows.

    Args:
        state_cls: The ``rx.State`` subclass that also inherits from
            :class:`FilterGridMixin`.
        height: CSS height of the scroll area.
        width: CSS width of the grid container.
        show_status_bar: Show :func:`filter_grid_status_bar` above the table.
        show_dialog: Show :func:`filter_dialog_panel` next to the table.
        show_pager: Show previous/next page buttons below the table.

    Returns:
        A Reflex component.
    """
    header = rx.table.row(
        rx.foreach(
            state_cls.fg_columns,
            lambda col: _header_cell(state_cls, col, show_dialog),
        ),
    )
    filter_bar = rx.cond(
        state_cls.fg_filter_type == "filterbar",
        rx.table.row(
            rx.foreach(state_cls.fg_columns, lambda col: _filter_bar_cell(state_cls, col)),
        ),
    )
    body = rx.table.body(
        rx.foreach(
            state_cls.fg_rows,
            lambda row: rx.table.row(
                rx.foreach(
                    state_cls.fg_columns,
                    lambda col: rx.table.cell(row[col["field"]].to(str)),  # type: ignore[index]
                ),
            ),
        ),
    )
    table = rx.scroll_area(
        rx.table.root(
            rx.table.header(header, filter_bar),
            body,
            size="1",
            variant="surface",
            width="100%",
        ),
        height=height,
        type="auto",
    )

    children: list[rx.Component] = []
    if show_status_bar:
        children.append(filter_grid_status_bar(state_cls))
    children.append(table)
    if show_pager:
        children.append(filter_grid_pager(state_cls))

    grid = rx.vstack(*children, width=width, spacing="2")
    if not show_dialog:
        return grid
    return rx.hstack(
        rx.box(grid, flex="1 1 auto", min_width="0"),
        filter_dialog_panel(state_cls),
        align="start",
        spacing="3",
        width=width,
    )


def filter_grid_status_bar(state_cls: type) -> rx.Component:
    """Return a bar with the filtered row count and the filter status message.

    Args:
        state_cls: The ``rx.State`` subclass that inherits from
            :class:`FilterGridMixin`.

    Returns:
        A Reflex component.
    """
    return rx.box(
        rx.hstack(
            rx.text(
                state_cls.fg_row_count.to(str),  # type: ignore[union-attr]
                " rows (filtered)",
                size="2",
                weight="medium",
            ),
            rx.text("|", size="2", color="var(--gray-7)"),
            rx.text(state_cls.fg_status, size="1", color="var(--gray-11)"),
            rx.spacer(),
            rx.text(state_cls.fg_stats, size="1", color="var(--gray-9)", font_family="monospace"),
            rx.button(
                rx.icon("download", size=12),
                "Preset",
                size="1",
                variant="ghost",
                on_click=state_cls.download_fg_filter_preset,
            ),
            rx.button(
                rx.icon("x", size=12),
                "Clear All",
                size="1",
                variant="outline",
                color_scheme="orange",
                on_click=state_cls.clear_fg_filters,
            ),
            spacing="2",
            align="center",
            width="100%",
        ),
        padding="0.4em 0.8em",
        border_radius="6px",
        background="var(--blue-a2)",
        border="1px solid var(--blue-a5)",
        width="100%",
    )


def filter_grid_pager(state_cls: type) -> rx.Component:
    return rx.hstack(
        rx.icon_button(
            rx.icon("chevron_left", size=14),
            size="1",
            variant="soft",
            disabled=state_cls.fg_page <= 1,
            on_click=state_cls.fg_go_to_page(state_cls.fg_page - 1),
        ),
        rx.text(
            state_cls.fg_page.to(str),  # type: ignore[union-attr]
            " / ",
            state_cls.fg_page_count.to(str),  # type: ignore[union-attr]
            size="1",
        ),
        rx.icon_button(
            rx.icon("chevron_right", size=14),
            size="1",
            variant="soft",
            disabled=state_cls.fg_page >= state_cls.fg_page_count,
            on_click=state_cls.fg_go_to_page(state_cls.fg_page + 1),
        ),
        align="center",
        spacing="2",
    )


def _checkbox_dialog_body(state_cls: type) -> rx.Component:
    return rx.vstack(
        rx.debounce_input(
            rx.input(
                placeholder="Search",
                value=state_cls.fg_dialog_search,
                on_change=state_cls.search_fg_filter_items,
                size="1",
                width="100%",
            ),
            debounce_timeout=300,
        ),
        rx.checkbox(
            "Select All",
            # Radix takes "indeterminate" as well as a boolean here.
            checked=rx.cond(
                state_cls.fg_dialog_select_all == "indeterminate",
                "indeterminate",
                state_cls.fg_dialog_select_all == "checked",
            ).to(bool),
            on_change=lambda _checked: state_cls.toggle_fg_select_all(),
        ),
        rx.scroll_area(
            rx.vstack(
                rx.foreach(
                    state_cls.fg_dialog_items,
                    lambda item: rx.checkbox(
                        item["display"],
                        checked=item["checked"].to(bool),  # type: ignore[union-attr]
                        on_change=lambda _checked: state_cls.toggle_fg_filter_item(item["uid"]),
                    ),
                ),
                spacing="1",
            ),
            max_height="260px",
            type="auto",
        ),
        rx.hstack(
            rx.button(
                state_cls.fg_dialog_ok_label,
                size="1",
                disabled=~state_cls.fg_dialog_can_commit,
                on_click=state_cls.commit_fg_filter_dialog,
            ),
            rx.button(
                state_cls.fg_dialog_cancel_label,
                size="1",
                variant="outline",
                on_click=state_cls.secondary_fg_filter_dialog,
            ),
            spacing="2",
        ),
        spacing="2",
        width="100%",
    )


def _menu_dialog_body(state_cls: type) -> rx.Component:
    return rx.vstack(
        rx.select.root(
            rx.select.trigger(width="100%"),
            rx.select.content(
                rx.foreach(
                    state_cls.fg_menu_operators,
                    lambda op: rx.select.item(op["text"], value=op["value"]),
                ),
            ),
            value=state_cls.fg_menu_operator,
            on_change=state_cls.set_fg_menu_operator,
            size="1",
        ),
        rx.input(
            value=state_cls.fg_menu_value,
            on_change=state_cls.set_fg_menu_value,
            size="1",
            width="100%",
        ),
        rx.hstack(
            rx.button(
                state_cls.fg_dialog_ok_label,
                size="1",
                on_click=state_cls.apply_fg_menu_filter,
            ),
            rx.button(
                state_cls.fg_dialog_cancel_label,
                size="1",
                variant="outline",
                on_click=state_cls.secondary_fg_filter_dialog,
            ),
            spacing="2",
        ),
        spacing="2",
        width="100%",
    )


def filter_dialog_panel(state_cls: type) -> rx.Component:
    """Return the panel showing the open filter dialog (if any).

    Args:
        state_cls: The ``rx.State`` subclass that inherits from
            :class:`FilterGridMixin`.

    Returns:
        A Reflex component.
    """
    return rx.cond(
        state_cls.fg_dialog_open,
        rx.card(
            rx.vstack(
                rx.hstack(
                    rx.icon("list_filter", size=14),
                    rx.text(state_cls.fg_dialog_title, weight="bold", size="2"),
                    rx.spacer(),
                    rx.icon_button(
                        rx.icon("x", size=12),
                        size="1",
                        variant="ghost",
                        on_click=state_cls.close_fg_filter_dialog,
                    ),
                    align="center",
                    width="100%",
                ),
                rx.cond(
                    state_cls.fg_dialog_loading,
                    rx.center(rx.spinner(), width="100%", padding="1em"),
                    rx.cond(
                        state_cls.fg_dialog_kind == "menu",
                        _menu_dialog_body(state_cls),
                        _checkbox_dialog_body(state_cls),
                    ),
                ),
                rx.cond(
                    state_cls.fg_dialog_message != "",
                    rx.text(state_cls.fg_dialog_message, size="1", color="var(--red-11)"),
                ),
                spacing="2",
                width="100%",
            ),
            width="260px",
        ),
    )
