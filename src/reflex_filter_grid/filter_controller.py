"""Filter controller: owner of the canonical filter list.

Every filter change goes through :class:`FilterController`.  Filter-bar
text is parsed into an operator and a typed value and applied through
:meth:`FilterController.filter_by_column`; dialogs hand back complete
entry groups through :meth:`FilterController.filter_handler`.  Each
accepted change mutates the list synchronously and asks the grid for one
re-query.

Typical usage::

    grid = FilterGrid(LocalDataSource(df), columns)
    grid.filter_by_column("City", "equal", "NY")
    grid.on_filter_bar_input("Freight", ">=100", key="Enter")
    await grid.refresh()
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from reflex_filter_grid.checkbox_filter import CheckboxFilterDialog, ExcelFilterDialog
from reflex_filter_grid.dialog import (
    BaseFilterDialog,
    FilterDialogOptions,
    FilterHandlerArgs,
)
from reflex_filter_grid.events import (
    FILTER_BEGIN,
    FILTER_COMPLETE,
    FILTER_DIALOG_CLOSE,
    FILTER_DIALOG_OPEN,
    FilterEventArgs,
    RequestType,
)
from reflex_filter_grid.menu_filter import MenuFilterDialog
from reflex_filter_grid.models import (
    Column,
    FilterDialogKind,
    FilterOperator,
    FilterPredicateEntry,
    PredicateJoin,
)
from reflex_filter_grid.timer import DebounceTimer, Scheduler

if TYPE_CHECKING:
    from reflex_filter_grid.grid import FilterGrid

logger = logging.getLogger(__name__)


FILTER_DIALOGS: dict[FilterDialogKind, Callable[[], BaseFilterDialog]] = {
    "menu": MenuFilterDialog,
    "checkbox": CheckboxFilterDialog,
    "excel": ExcelFilterDialog,
}

# Two-character prefixes are matched before one-character ones.
_TWO_CHAR_OPERATORS: dict[str, FilterOperator] = {
    ">=": "greaterThanOrEqual",
    "<=": "lessThanOrEqual",
    "!=": "notEqual",
    "==": "equal",
}
_ONE_CHAR_OPERATORS: dict[str, FilterOperator] = {
    "=": "equal",
    "!": "notEqual",
    ">": "greaterThan",
    "<": "lessThan",
}
OPERATOR_SYMBOLS: frozenset[str] = frozenset(
    {"<", ">", "<=", ">=", "==", "!=", "*=", "$=", "^="}
)
_COMPARISON_CHARS = (">", "<", "=", "!")
_NUMBER_SKIP_INPUT = ("=", " ", "!")


def get_operator(text: str) -> tuple[FilterOperator | None, str]:
    """Split a leading comparison prefix off *text*.

    Returns:
        ``(operator, remainder)``; *operator* is ``None`` when *text*
        has no recognised prefix.
    """
    if text[:2] in _TWO_CHAR_OPERATORS:
        return _TWO_CHAR_OPERATORS[text[:2]], text[2:]
    if text[:1] in _ONE_CHAR_OPERATORS:
        return _ONE_CHAR_OPERATORS[text[:1]], text[1:]
    return None, text


class FilterController:
    """Single source of truth for a grid's active filters.

    Args:
        grid: The owning :class:`~reflex_filter_grid.grid.FilterGrid`.
        scheduler: Optional timer scheduler for the filter-bar debounce
            (see :class:`~reflex_filter_grid.timer.DebounceTimer`).
    """

    def __init__(self, grid: "FilterGrid", scheduler: Scheduler | None = None) -> None:
        self.grid = grid
        self.settings = grid.filter_settings
        self.l10n = grid.l10n
        self.value_formatter = grid.value_formatter

        # Canonical filter list.
        self.filter_columns: list[FilterPredicateEntry] = []
        self._initial_filters: list[FilterPredicateEntry] = list(self.settings.columns)

        # Filter bar
        self.filter_bar_values: dict[str, str] = {}
        self.filter_status_msg: str = ""
        self.timer = DebounceTimer(scheduler)
        self._bar_field: str | None = None

        # Last applied request
        self.column: Column | None = None
        self.operator: FilterOperator | None = None
        self.value: Any = None
        self.predicate: PredicateJoin = "and"
        self.match_case: bool = False
        self.current_filter_object: FilterPredicateEntry | None = None

        # Dialogs
        self.dialog: BaseFilterDialog | None = None
        self.actual_predicate: dict[str, list[FilterPredicateEntry]] = {}
        self.custom_operators = self.get_custom_operators()

        self._batching_queries: bool = False
        self._query_requested: RequestType | None = None

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
        """Filter *field* with one condition.

        Ignored for unknown or non-filterable columns.  While a batch
        edit is active the call is queued and replayed afterwards.  An
        empty value, or one the column type cannot take, only updates the
        status message.  Re-applying an equivalent condition does
        nothing.

        Args:
            field: Column field (the key field for foreign-key columns).
            operator: Filter operator.
            value: Typed filter value.
            predicate: How the entry joins the column's other entries.
            match_case: Exact-case matching for string columns.  Number
                and date columns always match exactly.  Defaults to
                ``FilterSettings.enable_case_sensitivity``.
            actual_filter_value: Display-level value for foreign-key
                columns.
            actual_operator: Display-level operator for foreign-key
                columns.
        """
        column = self.grid.get_column_by_field(field)
        if column is None:
            logger.debug("filter_by_column: unknown field %r", field)
            return
        if not self.grid.allow_filtering or not column.allow_filtering:
            logger.debug("filter_by_column: filtering disabled for %r", field)
            return
        if self.grid.is_action_prevented():
            self.grid.prevent_batch(
                lambda: self.filter_by_column(
                    field, operator, value, predicate, match_case, actual_filter_value, actual_operator
                )
            )
            return

        if match_case is None:
            match_case = self.settings.enable_case_sensitivity
        if column.type in ("number", "date", "datetime") and not column.is_foreign_column():
            match_case = True

        self.column = column
        self.operator = operator
        self.value = value
        self.predicate = predicate
        self.match_case = match_case

        if self._is_empty(value):
            self.filter_status_msg = ""
            self.update_filter_message()
            return
        if self.check_for_skip_input(column, value):
            self.filter_status_msg = self.l10n.get("InvalidFilterMessage")
            self.update_filter_message()
            return

        entry = FilterPredicateEntry(
            field=field,
            operator=operator,
            value=value,
            predicate=predicate,
            match_case=match_case,
            actual_filter_value=actual_filter_value,
            actual_operator=actual_operator,
        )
        if any(existing.is_equivalent(entry) for existing in self.filter_columns):
            logger.debug("filter_by_column: %r already filtered by %r", field, value)
            return

        if self.settings.type == "filterbar" and self._bar_field != field:
            self.filter_bar_values[field] = self.value_formatter.to_view(
                value, column.formatter, column.type, column.format
            )
        self._update_model(entry)

    def remove_filtered_cols_by_field(self, field: str, is_clear_filter_bar: bool = False) -> None:
        """Remove every entry of *field*.

        Args:
            field: Column field.
            is_clear_filter_bar: ``True`` when the caller is clearing the
                filter-bar text itself; the stored text is then kept.
        """
        if self.grid.is_action_prevented():
            self.grid.prevent_batch(
                lambda: self.remove_filtered_cols_by_field(field, is_clear_filter_bar)
            )
            return

        remaining = [e for e in self.filter_columns if e.field != field]
        removed = len(remaining) != len(self.filter_columns)
        self.filter_columns = remaining
        if self.settings.type == "filterbar" and not is_clear_filter_bar:
            self.filter_bar_values.pop(field, None)
        self.actual_predicate.pop(field, None)
        self.grid.mark_header_filtered(field, False)
        self.filter_status_msg = ""

        if removed:
            self._trigger(FILTER_BEGIN, field, "filtering")
            self._request_query("filtering")
        self.update_filter_message()

    def clear_filtering(self) -> None:
        """Remove every entry with exactly one re-query."""
        if self.grid.is_action_prevented():
            self.grid.prevent_batch(self.clear_filtering)
            return

        self.filter_columns = []
        self.actual_predicate = {}
        if self.settings.type == "filterbar":
            self.filter_bar_values = {}
        for field in list(self.grid.filtered_headers):
            self.grid.mark_header_filtered(field, False)

        self.filter_status_msg = ""
        self._trigger(FILTER_BEGIN, None, "clear-filter")
        self._request_query("clear-filter")
        self.update_filter_message()

    def load_filters(self, entries: list[FilterPredicateEntry]) -> None:
        """Replace the whole filter list, e.g. from a saved preset.

        Entries for unknown or non-filterable columns are dropped.  One
        re-query follows.
        """
        if self.grid.is_action_prevented():
            self.grid.prevent_batch(lambda: self.load_filters(entries))
            return

        accepted: list[FilterPredicateEntry] = []
        for entry in entries:
            column = self.grid.get_column_by_field(entry.field)
            if column is None or not column.allow_filtering:
                logger.debug("load_filters: skipping entry for %r", entry.field)
                continue
            accepted.append(entry)

        self.filter_columns = accepted
        self.actual_predicate = {}
        self.filter_status_msg = ""
        for field in list(self.grid.filtered_headers):
            self.grid.mark_header_filtered(field, False)
        self.filter_bar_values = {}
        for entry in accepted:
            self.grid.mark_header_filtered(entry.field, True)
            shown = entry.value if entry.actual_filter_value is None else entry.actual_filter_value
            self.filter_bar_values.setdefault(entry.field, self.value_formatter.to_view(shown))

        self._trigger(FILTER_BEGIN, None, "filtering")
        self._request_query("filtering")
        self.update_filter_message()

    def apply_initial_filters(self) -> None:
        """Apply the filters configured in ``FilterSettings.columns``.

        Called once the grid has its data.  All initial filters share a
        single re-query.
        """
        initial, self._initial_filters = self._initial_filters, []
        if not initial or not self.grid.columns:
            return
        with self._single_query():
            for entry in initial:
                self.filter_by_column(
                    entry.field,
                    entry.operator,
                    entry.value,
                    entry.predicate,
                    entry.match_case,
                    entry.actual_filter_value,
                    entry.actual_operator,
                )
        self.update_filter_message()

    # ------------------------------------------------------------------
    # Filter bar
    # ------------------------------------------------------------------

    def on_filter_bar_input(self, field: str, text: str, key: str | None = None) -> None:
        """Record filter-bar *text* for *field* and schedule its application.

        In ``immediate`` mode every change restarts the debounce timer;
        ``Enter`` cancels the timer and applies right away.  ``Tab`` is
        ignored.
        """
        column = self.grid.get_column_by_field(field)
        if column is None or key == "Tab":
            return
        self.filter_bar_values[field] = text
        if self.settings.mode != "immediate" and key != "Enter":
            return

        if key == "Enter":
            self.timer.cancel()
            self._on_timer_tick(field)
            return
        self.timer.start(self.settings.immediate_mode_delay, lambda: self._on_timer_tick(field))

    def flush_filter_bar(self) -> None:
        """Apply pending filter-bar input now instead of waiting for the delay."""
        self.timer.flush()

    def _on_timer_tick(self, field: str) -> None:
        column = self.grid.get_column_by_field(field)
        if column is None:
            return
        text = self.filter_bar_values.get(field, "").strip()
        if text == "":
            self.remove_filtered_cols_by_field(field)
            return

        parsed = self.validate_filter_value(column, text)
        if parsed is None:
            self.filter_status_msg = self.l10n.get("InvalidFilterMessage")
            self.update_filter_message()
            return

        operator, value, match_case = parsed
        self.filter_status_msg = ""
        self._bar_field = field
        try:
            if column.is_foreign_column():
                self.filter_by_column(
                    field, operator, value, "and", match_case,
                    actual_filter_value=value, actual_operator=operator,
                )
            else:
                self.filter_by_column(field, operator, value, "and", match_case)
        finally:
            self._bar_field = None
        self.update_filter_message()

    def validate_filter_value(
        self, column: Column, text: str
    ) -> tuple[FilterOperator, Any, bool] | None:
        """Infer operator and typed value from filter-bar *text*.

        * Strings (and foreign-key display text): a leading ``*`` or a
          trailing ``%`` mean ``startsWith``, a leading ``%`` means
          ``endsWith``; anything else is ``startsWith``.
          Case-insensitive unless case sensitivity is enabled.
        * Numbers: scanning stops at the first comparison character;
          what precedes it is dropped and the rest is parsed.
        * Dates: an optional comparison prefix, then the date.
        * Booleans: the localized true/false words, ``1`` or ``0``.

        Returns:
            ``(operator, value, match_case)``, or ``None`` when the text
            does not parse for the column type.  An operator with
            nothing after it yields an empty value.
        """
        if column.is_foreign_column() or column.type == "string":
            return self._parse_string(text)

        if column.type == "number":
            index = next((i for i, ch in enumerate(text) if ch in _COMPARISON_CHARS), None)
            operator: FilterOperator | None = "equal"
            rest = text
            if index is not None:
                operator, rest = get_operator(text[index:])
            return self._parse_typed(column, operator or "equal", rest)

        if column.type in ("date", "datetime"):
            operator, rest = get_operator(text)
            return self._parse_typed(column, operator or "equal", rest)

        if column.type == "boolean":
            value = self.value_formatter.from_view(text, column.parser, "boolean")
            if value is None:
                return None
            return "equal", value, True

        return "equal", text, True

    def _parse_string(self, text: str) -> tuple[FilterOperator, Any, bool]:
        match_case = self.settings.enable_case_sensitivity
        if text.startswith("*"):
            return "startsWith", text[1:], match_case
        if text.endswith("%"):
            return "startsWith", text[:-1], match_case
        if text.startswith("%"):
            return "endsWith", text[1:], match_case
        return "startsWith", text, match_case

    def _parse_typed(
        self, column: Column, operator: FilterOperator, rest: str
    ) -> tuple[FilterOperator, Any, bool] | None:
        rest = rest.strip()
        if rest == "":
            return operator, "", True
        value = self.value_formatter.from_view(rest, column.parser, column.type, column.format)
        if value is None:
            return None
        return operator, value, True

    def check_for_skip_input(self, column: Column, value: Any) -> bool:
        """Return True for values the column type must not be filtered by."""
        if column.is_foreign_column():
            return False
        text = str(value)
        if column.type == "number":
            return text in OPERATOR_SYMBOLS or text in _NUMBER_SKIP_INPUT
        if column.type == "string":
            return any(ch in text for ch in _COMPARISON_CHARS)
        return False

    def update_filter_message(self) -> None:
        """Show the active filter-bar filters (or the error) as the grid message."""
        if self.settings.type != "filterbar" or not self.settings.show_filter_bar_status:
            return
        invalid = self.l10n.get("InvalidFilterMessage")
        if self.filter_status_msg == invalid:
            message = invalid
        else:
            parts: list[str] = []
            seen: set[str] = set()
            for entry in self.filter_columns:
                if entry.field in seen:
                    continue
                seen.add(entry.field)
                column = self.grid.get_column_by_field(entry.field)
                header = column.get_header_text() if column is not None else entry.field
                text = self.filter_bar_values.get(entry.field)
                if text is None:
                    text = self.value_formatter.to_view(entry.value)
                parts.append(f"{header}: {text}")
            message = " && ".join(parts)
        self.grid.external_message = message

    # ------------------------------------------------------------------
    # Dialogs
    # ------------------------------------------------------------------

    async def open_filter_dialog(self, field: str) -> None:
        """Open the filter dialog for *field*, closing any other one first."""
        column = self.grid.get_column_by_field(field)
        if column is None or not self.grid.allow_filtering or not column.allow_filtering:
            return
        if self.dialog is not None and self.dialog.is_open:
            if self.dialog.field == field:
                return
            self.dialog.close()

        kind: str = column.filter_type or self.settings.type
        if kind == "filterbar":
            kind = "menu"
        dialog = FILTER_DIALOGS[kind]()  # type: ignore[index]
        self.dialog = dialog
        self._trigger(FILTER_DIALOG_OPEN, field, "filter-dialog", kind=kind)

        options = FilterDialogOptions(
            column=column,
            data_source=self.grid.data_source,
            filtered_columns=list(self.filter_columns),
            columns=self.grid.columns,
            handler=self.filter_handler,
            l10n=self.l10n,
            value_formatter=self.value_formatter,
            foreign_key_data=self.grid.foreign_key_data,
            operators=self.custom_operators,
            on_close=self._on_dialog_closed,
            allow_case_sensitive=self.settings.enable_case_sensitivity,
        )
        await dialog.open(options)

    def close_filter_dialog(self) -> None:
        if self.dialog is not None:
            self.dialog.close()

    def _on_dialog_closed(self, field: str) -> None:
        kind = self.dialog.kind if self.dialog is not None else None
        self._trigger(FILTER_DIALOG_CLOSE, field, "filter-dialog", kind=kind)

    def filter_handler(self, args: FilterHandlerArgs) -> None:
        """Replace the entry group of ``args.field`` with a dialog's result."""
        self.actual_predicate[args.field] = list(args.actual_predicate)
        self.filter_columns = [e for e in self.filter_columns if e.field != args.field]
        self.filter_status_msg = ""

        if args.action == "filtering":
            self.filter_columns.extend(args.filter_collection)
            self.grid.mark_header_filtered(args.field, bool(args.filter_collection))
            self._trigger(FILTER_BEGIN, args.field, "filtering")
            self._request_query("filtering")
        else:
            self.actual_predicate.pop(args.field, None)
            self.grid.mark_header_filtered(args.field, False)
            self._trigger(FILTER_BEGIN, args.field, "clear-filter")
            self._request_query("clear-filter")
        self.update_filter_message()

    def get_custom_operators(self) -> dict[str, list[dict[str, str]]]:
        """Localized operator choices per column type."""

        def options(*names: str) -> list[dict[str, str]]:
            return [{"value": n, "text": self.l10n.operator_label(n)} for n in names]

        relational = options(
            "equal",
            "greaterThan",
            "greaterThanOrEqual",
            "lessThan",
            "lessThanOrEqual",
            "notEqual",
        )
        return {
            "string": options("startsWith", "endsWith", "contains", "equal", "notEqual"),
            "number": relational,
            "date": relational,
            "datetime": relational,
            "boolean": options("equal", "notEqual"),
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def on_action_complete(self, request_type: RequestType = "filtering") -> None:
        """Fire ``filter-complete`` once the grid has the filtered rows."""
        self._trigger(FILTER_COMPLETE, self.column.field if self.column else None, request_type)

    def destroy(self) -> None:
        if self.dialog is not None:
            self.dialog.destroy()
            self.dialog = None
        self.timer.cancel()
        self.filter_columns = []
        self.filter_bar_values = {}
        self.actual_predicate = {}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _update_model(self, entry: FilterPredicateEntry) -> None:
        if self.settings.type == "filterbar":
            index = next(
                (i for i, e in enumerate(self.filter_columns) if e.field == entry.field), None
            )
            self.filter_columns = [e for e in self.filter_columns if e.field != entry.field]
            if index is None:
                self.filter_columns.append(entry)
            else:
                self.filter_columns.insert(index, entry)
        else:
            self.filter_columns.append(entry)

        self.filter_status_msg = ""
        self.current_filter_object = entry
        self.grid.mark_header_filtered(entry.field, True)
        self._trigger(FILTER_BEGIN, entry.field, "filtering")
        self._request_query("filtering")
        self.update_filter_message()

    @staticmethod
    def _is_empty(value: Any) -> bool:
        return value is None or (isinstance(value, str) and value.strip() == "")

    def _trigger(
        self,
        name: str,
        field: str | None,
        request_type: RequestType,
        kind: str | None = None,
    ) -> None:
        self.grid.events.trigger(
            name,
            FilterEventArgs(
                field=field,
                columns=list(self.filter_columns),
                request_type=request_type,
                kind=kind,
            ),
        )

    def _request_query(self, request_type: RequestType) -> None:
        if self._batching_queries:
            self._query_requested = request_type
            return
        self.grid.data_bind(request_type)

    @contextmanager
    def _single_query(self) -> Iterator[None]:
        """Collapse the re-queries requested inside the block into one."""
        self._batching_queries = True
        self._query_requested = None
        try:
            yield
        finally:
            self._batching_queries = False
            requested, self._query_requested = self._query_requested, None
            if requested is not None:
                self.grid.data_bind(requested)
