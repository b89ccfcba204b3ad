"""Host grid: settings, batch-edit context and the query/refresh cycle.

:class:`FilterGrid` is the non-visual grid the filter controller works
against.  It holds the columns and settings, keeps the filtered-header
marks and the status message, builds the query through the composer on
every :meth:`FilterGrid.data_bind` and executes it on
:meth:`FilterGrid.refresh`.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import polars as pl

from reflex_filter_grid.data_source import DataSource
from reflex_filter_grid.events import GridEvents, RequestType
from reflex_filter_grid.filter_controller import FilterController
from reflex_filter_grid.locale import L10n, ValueFormatter
from reflex_filter_grid.models import (
    Column,
    ColumnDef,
    FilterBarMode,
    FilterOperator,
    FilterPredicateEntry,
    FilterType,
    PredicateJoin,
)
from reflex_filter_grid.predicates import Query, SortDirection
from reflex_filter_grid.query import GridQuerySettings, generate_query
from reflex_filter_grid.timer import Scheduler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

_DEFAULT_FILTER_BAR_DELAY_MS: int = 1500
_DEFAULT_PAGE_SIZE: int = 12


@dataclass
class FilterSettings:
    """Filter configuration.

    ``columns`` holds filters to apply once the grid has data; the live
    filter list belongs to the controller.
    """

    type: FilterType = "filterbar"
    mode: FilterBarMode = "immediate"
    immediate_mode_delay: int = _DEFAULT_FILTER_BAR_DELAY_MS
    show_filter_bar_status: bool = True
    columns: list[FilterPredicateEntry] = field(default_factory=list)
    enable_case_sensitivity: bool = False


@dataclass
class SortSettings:
    columns: list[tuple[str, SortDirection]] = field(default_factory=list)


@dataclass
class SearchSettings:
    key: str = ""
    fields: list[str] = field(default_factory=list)
    operator: str = "contains"
    ignore_case: bool = True


@dataclass
class PageSettings:
    current_page: int = 1
    page_size: int = _DEFAULT_PAGE_SIZE


@dataclass
class GroupSettings:
    columns: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------

def _dataframe_to_dicts(df: pl.DataFrame) -> list[dict[str, Any]]:
    """Convert a DataFrame to a list of JSON-safe dicts.

    Temporal columns become ISO-8601 strings and List/Struct columns are
    cast to String.  Other types are left as-is.
    """
    exprs: list[pl.Expr] = []
    needs_cast = False
    for name, dtype in df.schema.items():
        if isinstance(dtype, (pl.Date, pl.Datetime, pl.Time, pl.Duration, pl.Struct)):
            exprs.append(pl.col(name).cast(pl.String))
            needs_cast = True
        elif isinstance(dtype, pl.List):
            exprs.append(pl.col(name).cast(pl.List(pl.String)).list.join(","))
            needs_cast = True
        else:
            exprs.append(pl.col(name))
    if not needs_cast:
        return df.to_dicts()
    return df.select(exprs).to_dicts()


# ---------------------------------------------------------------------------
# FilterGrid
# ---------------------------------------------------------------------------

class FilterGrid:
    """Non-visual grid that owns a :class:`FilterController`.

    Args:
        data_source: Where rows come from.
        columns: Column metadata.
        filter_settings: Filter configuration (type, mode, delay, ...).
        sort_settings: Active sort columns.
        search_settings: Grid-wide search.
        page_settings: Paging window, used when *allow_paging* is on.
        group_settings: Group columns, used when *allow_grouping* is on.
        allow_filtering: Master switch for filtering.
        allow_sorting: Master switch for sorting.
        allow_paging: Slice results into pages.
        allow_grouping: Group results.
        locale_strings: Overrides for the English locale strings.
        scheduler: Timer scheduler for the filter-bar debounce.
    """

    def __init__(
        self,
        data_source: DataSource,
        columns: list[Column],
        filter_settings: FilterSettings | None = None,
        sort_settings: SortSettings | None = None,
        search_settings: SearchSettings | None = None,
        page_settings: PageSettings | None = None,
        group_settings: GroupSettings | None = None,
        *,
        allow_filtering: bool = True,
        allow_sorting: bool = True,
        allow_paging: bool = False,
        allow_grouping: bool = False,
        locale_strings: dict[str, str] | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.data_source = data_source
        self.columns: list[Column] = list(columns)
        self.filter_settings = filter_settings or FilterSettings()
        self.sort_settings = sort_settings or SortSettings()
        self.search_settings = search_settings or SearchSettings()
        self.page_settings = page_settings or PageSettings()
        self.group_settings = group_settings or GroupSettings()
        self.allow_filtering = allow_filtering
        self.allow_sorting = allow_sorting
        self.allow_paging = allow_paging
        self.allow_grouping = allow_grouping

        self.l10n = L10n(locale_strings)
        self.value_formatter = ValueFormatter(self.l10n)
        self.events = GridEvents()

        self.filtered_headers: set[str] = set()
        self.external_message: str = ""
        self.foreign_key_data: dict[str, pl.DataFrame] = {}

        self.query: Query | None = None
        self.query_version: int = 0
        self.current_view_data: list[dict[str, Any]] = []
        self.current_frame: pl.DataFrame | None = None
        self.total_count: int = 0
        self._pending_request: RequestType | None = None

        self._batch_edit_active: bool = False
        self._deferred: list[Callable[[], Any]] = []

        self.filter_module = FilterController(self, scheduler=scheduler)

    # ------------------------------------------------------------------
    # Columns and headers
    # ------------------------------------------------------------------

    def get_column_by_field(self, field: str) -> Column | None:
        for column in self.columns:
            if column.field == field:
                return column
        return None

    def get_foreign_key_columns(self) -> list[Column]:
        return [c for c in self.columns if c.is_foreign_column()]

    def mark_header_filtered(self, field: str, filtered: bool) -> None:
        if filtered:
            self.filtered_headers.add(field)
        else:
            self.filtered_headers.discard(field)

    def column_defs(self) -> list[dict[str, Any]]:
        """Frontend column definitions, serialised via PropsBase."""
        defs: list[ColumnDef] = [
            c.to_column_def(filtered=c.field in self.filtered_headers) for c in self.columns
        ]
        return [d.dict() for d in defs]

    # ------------------------------------------------------------------
    # Batch edit
    # ------------------------------------------------------------------

    def begin_batch_edit(self) -> None:
        self._batch_edit_active = True

    def end_batch_edit(self) -> None:
        """Leave batch edit and replay deferred filter calls in order."""
        self._batch_edit_active = False
        deferred, self._deferred = self._deferred, []
        for call in deferred:
            call()

    def is_action_prevented(self) -> bool:
        return self._batch_edit_active

    def prevent_batch(self, callback: Callable[[], Any]) -> None:
        logger.debug("Deferring filter action until batch edit ends")
        self._deferred.append(callback)

    # ------------------------------------------------------------------
    # Query cycle
    # ------------------------------------------------------------------

    @property
    def filter_columns(self) -> list[FilterPredicateEntry]:
        return self.filter_module.filter_columns

    def query_settings(self) -> GridQuerySettings:
        return GridQuerySettings(
            filter_columns=list(self.filter_module.filter_columns),
            search_key=self.search_settings.key,
            search_fields=list(self.search_settings.fields),
            search_operator=self.search_settings.operator,
            search_ignore_case=self.search_settings.ignore_case,
            sorts=list(self.sort_settings.columns),
            group_fields=list(self.group_settings.columns),
            page_index=self.page_settings.current_page,
            page_size=self.page_settings.page_size,
            allow_filtering=self.allow_filtering,
            allow_sorting=self.allow_sorting,
            allow_paging=self.allow_paging,
            allow_grouping=self.allow_grouping,
        )

    def data_bind(self, request_type: RequestType | str = "refresh") -> Query:
        """Rebuild the query from the current settings (one per re-query)."""
        self.query = generate_query(self.query_settings(), self.columns, self.foreign_key_data)
        self.query_version += 1
        self._pending_request = request_type  # type: ignore[assignment]
        logger.debug(
            "data bind #%d (%s): %d filter entries",
            self.query_version,
            request_type,
            len(self.filter_module.filter_columns),
        )
        return self.query

    async def refresh(self) -> None:
        """Execute the current query and store the resulting page."""
        if self.query is None:
            self.data_bind()
        assert self.query is not None
        t0 = time.perf_counter()
        result = await self.data_source.execute_query(self.query)
        self.current_frame = result.result
        self.current_view_data = _dataframe_to_dicts(result.result)
        self.total_count = result.count
        logger.info(
            "page refresh: rows=%d, count=%d, elapsed=%.1fms",
            len(self.current_view_data),
            self.total_count,
            (time.perf_counter() - t0) * 1000,
        )

        request, self._pending_request = self._pending_request, None
        if request in ("filtering", "clear-filter"):
            self.filter_module.on_action_complete(request)  # type: ignore[arg-type]

    async def initialize(self) -> None:
        """Load foreign-key lookups, apply initial filters and fetch rows."""
        fk_columns = self.get_foreign_key_columns()
        if fk_columns:
            results = await asyncio.gather(
                *(c.foreign_key.data_source.execute_query(Query()) for c in fk_columns),  # type: ignore[union-attr]
                return_exceptions=True,
            )
            for column, result in zip(fk_columns, results):
                if isinstance(result, BaseException):
                    logger.warning("Lookup fetch failed for %r: %s", column.field, result)
                    continue
                self.foreign_key_data[column.field] = result.result

        self.filter_module.apply_initial_filters()
        if self.query is None:
            self.data_bind()
        await self.refresh()

    # ------------------------------------------------------------------
    # Non-filter query inputs
    # ------------------------------------------------------------------

    def search(self, key: str) -> None:
        self.search_settings.key = key
        self.page_settings.current_page = 1
        self.data_bind("searching")

    def sort_column(self, field: str, direction: SortDirection = "asc", multi: bool = False) -> None:
        if not self.allow_sorting:
            return
        sorts = [s for s in self.sort_settings.columns if s[0] != field] if multi else []
        sorts.append((field, direction))
        self.sort_settings.columns = sorts
        self.data_bind("sorting")

    def clear_sorting(self) -> None:
        self.sort_settings.columns = []
        self.data_bind("sorting")

    def go_to_page(self, page: int) -> None:
        self.page_settings.current_page = max(page, 1)
        self.data_bind("paging")

    # ------------------------------------------------------------------
    # Public filter API
    # ------------------------------------------------------------------

    def filter_by_column(
        self,
        field: str,
        operator: FilterOperator,
        value: Any,
        predicate: PredicateJoin = "and",
        match_case: bool | None = None,
        actual_filter_value: Any = None,
        actual_operator: FilterOperator | None = None,
    ) -> None:
        self.filter_module.filter_by_column(
            field, operator, value, predicate, match_case, actual_filter_value, actual_operator
        )

    def remove_filtered_cols_by_field(self, field: str, is_clear_filter_bar: bool = False) -> None:
        self.filter_module.remove_filtered_cols_by_field(field, is_clear_filter_bar)

    def clear_filtering(self) -> None:
        self.filter_module.clear_filtering()

    async def open_filter_dialog(self, field: str) -> None:
        await self.filter_module.open_filter_dialog(field)

    def on_filter_bar_input(self, field: str, text: str, key: str | None = None) -> None:
        self.filter_module.on_filter_bar_input(field, text, key)

    def flush_filter_bar(self) -> None:
        self.filter_module.flush_filter_bar()

    def destroy(self) -> None:
        self.filter_module.destroy()
        self.events = GridEvents()
