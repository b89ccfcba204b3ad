"""Value-list (checkbox) filter dialog and its excel-style variant.

The dialog fetches the column's data (and foreign-key lookup) when it
opens, narrows it by every *other* active column filter, and shows one
checkbox per distinct raw value plus a trailing ``Blanks`` item.  On
commit it emits either an OR of the checked values or, when more than
half are checked, an AND of ``notEqual`` over the unchecked ones.  Both
encodings select the same rows.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal

import polars as pl

from reflex_filter_grid.dialog import (
    BaseFilterDialog,
    FilterDialogOptions,
    FilterHandlerArgs,
)
from reflex_filter_grid.models import Column, FilterPredicateEntry, PredicateJoin
from reflex_filter_grid.predicates import (
    Predicate,
    Query,
    blank_expr,
    get_date_predicate,
    set_date_object,
)
from reflex_filter_grid.query import build_filter_predicate

logger = logging.getLogger(__name__)

SelectAllState = Literal["checked", "unchecked", "indeterminate"]

_ROW_NR = "__row_nr__"
_uid_counter = itertools.count(1)


def _next_uid() -> str:
    return f"cbox{next(_uid_counter)}"


@dataclass
class FilterItem:
    """One checkbox of the list.  ``value`` is ``None`` for the Blanks item."""

    uid: str
    value: Any
    display: str
    checked: bool = True


@dataclass
class DialogSession:
    """Data held while one dialog is open; discarded on close."""

    full_data: pl.DataFrame
    distinct: pl.DataFrame
    items: list[FilterItem] = field(default_factory=list)
    values: dict[str, Any] = field(default_factory=dict)
    membership: set[Any] = field(default_factory=set)
    foreign_key_data: pl.DataFrame | None = None


# ---------------------------------------------------------------------------
# Distinct values
# ---------------------------------------------------------------------------

def get_distinct(frame: pl.DataFrame, field_name: str) -> tuple[pl.DataFrame, bool]:
    """Return one representative row per distinct non-blank value of *field_name*.

    Rows are scanned from last to first and the first row met for each
    value is kept, so the representative is the *last* occurrence in the
    original order.  The result is sorted ascending on the raw value.

    Returns:
        ``(representatives, has_blanks)`` where *has_blanks* tells whether
        any row holds a blank (null, or ``""`` for strings).
    """
    if field_name not in frame.columns or frame.height == 0:
        return frame.clear(), False

    dtype = frame.schema[field_name]
    is_blank = blank_expr(pl.col(field_name), dtype)
    has_blanks = bool(frame.select(is_blank.any()).item())

    representatives = (
        frame.with_row_index(_ROW_NR)
        .reverse()
        .filter(~is_blank)
        .unique(subset=[field_name], keep="first", maintain_order=True)
        .sort(field_name, maintain_order=True)
        .drop(_ROW_NR)
    )
    return representatives, has_blanks


def _foreign_key_display_map(column: Column, lookup: pl.DataFrame | None) -> dict[Any, Any]:
    key_field = column.foreign_key_field
    value_field = column.foreign_key_value
    if lookup is None or key_field is None or value_field is None:
        return {}
    if key_field not in lookup.columns or value_field not in lookup.columns:
        logger.warning("Lookup for %r lacks %r/%r", column.field, key_field, value_field)
        return {}
    rows = lookup.unique(subset=[key_field], keep="first", maintain_order=True)
    return dict(zip(rows.get_column(key_field).to_list(), rows.get_column(value_field).to_list()))


def _normalize_blank(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    return value


# ---------------------------------------------------------------------------
# Checkbox dialog
# ---------------------------------------------------------------------------

class CheckboxFilterDialog(BaseFilterDialog):
    """Tri-state checklist of a column's distinct values."""

    kind = "checkbox"

    def __init__(self) -> None:
        super().__init__()
        self.session: DialogSession | None = None
        self.search_text: str = ""
        self.loading: bool = False

    # -- labels --

    @property
    def ok_label(self) -> str:
        return self.l10n.get("FilterButton")

    @property
    def cancel_label(self) -> str:
        return self.l10n.get("ClearButton")

    @property
    def no_result_label(self) -> str:
        return self.l10n.get("NoResult")

    # -- lifecycle --

    async def open(self, options: FilterDialogOptions) -> None:
        """Fetch data and build the checklist.

        Data and lookup are fetched concurrently; a failed fetch is
        logged and treated as empty.  Results arriving after the dialog
        was closed or reopened are ignored.
        """
        token = self._begin_session(options)
        self.loading = True
        self.search_text = ""
        self.session = None

        t0 = time.perf_counter()
        full_data, lookup = await self._fetch(options)
        if not self._is_current(token):
            logger.debug("Ignoring stale filter data for %r", options.field)
            return

        self.session = self._build_session(options, full_data, lookup)
        self.state = "open"
        self.loading = False
        logger.info(
            "value options: %r -> %d items (%.1fms)",
            options.field,
            len(self.session.items),
            (time.perf_counter() - t0) * 1000,
        )

    async def _fetch(
        self, options: FilterDialogOptions
    ) -> tuple[pl.DataFrame, pl.DataFrame | None]:
        column = options.column
        requests = [options.data_source.execute_query(Query().requires_count())]
        if column.foreign_key is not None:
            requests.append(column.foreign_key.data_source.execute_query(Query()))

        results = await asyncio.gather(*requests, return_exceptions=True)
        frames: list[pl.DataFrame | None] = []
        for result in results:
            if isinstance(result, BaseException):
                logger.warning("Filter data fetch failed for %r: %s", options.field, result)
                frames.append(None)
            else:
                frames.append(result.result)

        full_data = frames[0] if frames[0] is not None else pl.DataFrame()
        lookup = frames[1] if len(frames) > 1 else None
        return full_data, lookup

    def _build_session(
        self,
        options: FilterDialogOptions,
        full_data: pl.DataFrame,
        lookup: pl.DataFrame | None,
    ) -> DialogSession:
        column = options.column
        fk_data = dict(options.foreign_key_data)
        if lookup is not None:
            fk_data[column.field] = lookup

        candidates = full_data
        if full_data.height:
            others = build_filter_predicate(options.other_filters(), options.columns, fk_data)
            if others is not None:
                candidates = Query().where(others).execute_local(full_data).result

        distinct, has_blanks = get_distinct(candidates, column.field)
        display_map = _foreign_key_display_map(column, lookup)
        formatter = options.value_formatter

        session = DialogSession(full_data=full_data, distinct=distinct, foreign_key_data=lookup)
        session.membership = self._filtered_membership(options, full_data, fk_data)
        is_filtered = bool(options.own_filters())

        raw_values = distinct.get_column(column.field).to_list() if distinct.height else []
        for raw in raw_values:
            if column.foreign_key is not None:
                display = formatter.to_view(display_map.get(raw, raw))
            else:
                display = formatter.to_view(raw, column.formatter, column.type, column.format)
            session.items.append(FilterItem(_next_uid(), raw, display))
        if has_blanks:
            session.items.append(FilterItem(_next_uid(), None, options.l10n.get("Blanks")))

        for item in session.items:
            session.values[item.uid] = item.value
            item.checked = not is_filtered or item.value in session.membership
        return session

    def _filtered_membership(
        self,
        options: FilterDialogOptions,
        full_data: pl.DataFrame,
        fk_data: dict[str, pl.DataFrame],
    ) -> set[Any]:
        """Raw values present in the rows that pass every active filter."""
        field_name = options.field
        if field_name not in full_data.columns:
            return set()
        predicate = build_filter_predicate(options.filtered_columns, options.columns, fk_data)
        query = Query()
        if predicate is not None:
            query.where(predicate)
        rows = query.execute_local(full_data).result
        return {_normalize_blank(v) for v in rows.get_column(field_name).to_list()}

    def _reset(self) -> None:
        self.session = None
        self.search_text = ""
        self.loading = False

    def cancel(self) -> None:
        """Close without emitting anything."""
        self.close()

    # -- checklist state --

    @property
    def items(self) -> list[FilterItem]:
        """Currently visible items (narrowed by :meth:`search`)."""
        if self.session is None:
            return []
        if not self.search_text:
            return self.session.items
        return self._search_items(self.search_text)

    def toggle(self, uid: str) -> None:
        if self.session is None:
            return
        for item in self.session.items:
            if item.uid == uid:
                item.checked = not item.checked
                return

    def toggle_select_all(self) -> None:
        """Check every visible item, or uncheck all when all are checked."""
        target = self.select_all_state != "checked"
        for item in self.items:
            item.checked = target

    @property
    def checked_count(self) -> int:
        return sum(1 for item in self.items if item.checked)

    @property
    def select_all_state(self) -> SelectAllState:
        visible = self.items
        selected = sum(1 for item in visible if item.checked)
        if visible and selected == len(visible):
            return "checked"
        if selected:
            return "indeterminate"
        return "unchecked"

    @property
    def can_commit(self) -> bool:
        return self.state == "open" and self.checked_count > 0

    # -- search --

    def search(self, text: str) -> None:
        """Narrow the visible items to those matching *text*.

        Check state is kept per raw value, so an item that reappears
        after the search changes keeps its checkbox.  Unparsable date
        text leaves the list as it is.
        """
        if self.session is None or self.options is None:
            return
        text = text.strip()
        if text and self.options.type in ("date", "datetime"):
            parsed = self.options.value_formatter.from_view(
                text, self.options.column.parser, "date", self.options.column.format
            )
            if parsed is None:
                return
        self.search_text = text

    def _search_items(self, text: str) -> list[FilterItem]:
        assert self.session is not None and self.options is not None
        items = [i for i in self.session.items if i.value is not None]
        if not items:
            return []

        if self.options.type in ("date", "datetime"):
            day = self.options.value_formatter.from_view(
                text, self.options.column.parser, "date", self.options.column.format
            )
            if day is None:
                return self.session.items
            frame = pl.DataFrame({"uid": [i.uid for i in items]}).with_columns(
                self.session.distinct.get_column(self.options.field).alias("value")
            )
            predicate: Predicate = get_date_predicate(
                FilterPredicateEntry(field="value", operator="equal", value=day, match_case=True)
            )
        else:
            frame = pl.DataFrame(
                {"uid": [i.uid for i in items], "display": [i.display for i in items]}
            )
            predicate = Predicate("display", "contains", text, ignore_case=True)

        matched = set(Query().where(predicate).execute_local(frame).result.get_column("uid").to_list())
        return [i for i in items if i.uid in matched]

    # -- commit --

    def commit(self) -> None:
        """Emit the checked values as one entry group and close."""
        if not self.can_commit or self.options is None:
            return
        visible = self.items
        checked = [i for i in visible if i.checked]
        unchecked = [i for i in visible if not i.checked]

        invert = (
            not self.search_text
            and len(checked) != len(visible)
            and len(visible) - len(checked) < len(checked)
        )
        chosen = unchecked if invert else checked
        operator = "notEqual" if invert else "equal"
        join: PredicateJoin = "and" if invert else "or"

        collection = [self._make_entry(item.value, operator, join) for item in chosen]
        self._emit(
            FilterHandlerArgs(
                action="filtering",
                field=self.options.field,
                filter_collection=collection,
                actual_predicate=list(collection),
            )
        )
        self.close()

    def _make_entry(self, value: Any, operator: str, join: PredicateJoin) -> FilterPredicateEntry:
        assert self.options is not None
        entry = FilterPredicateEntry(
            field=self.options.field,
            operator=operator,  # type: ignore[arg-type]
            value=value,
            predicate=join,
            match_case=True,
        )
        if value is None:
            return entry
        if self.options.type == "date":
            return set_date_object(entry)
        if self.options.type == "datetime":
            # Exact timestamps; day bucketing would merge distinct items.
            entry.type = "datetime"
        return entry


# ---------------------------------------------------------------------------
# Excel dialog
# ---------------------------------------------------------------------------

class ExcelFilterDialog(CheckboxFilterDialog):
    """Checkbox dialog with OK/Cancel buttons and a two-condition custom filter."""

    kind = "excel"

    @property
    def ok_label(self) -> str:
        return self.l10n.get("OKButton")

    @property
    def cancel_label(self) -> str:
        return self.l10n.get("CancelButton")

    def custom_filter(
        self,
        first_operator: str,
        first_value: Any,
        join: PredicateJoin = "and",
        second_operator: str | None = None,
        second_value: Any = None,
        match_case: bool = False,
    ) -> None:
        """Replace the column filter with one or two typed conditions."""
        if self.state != "open" or self.options is None:
            return
        column = self.options.column
        case = match_case or column.type != "string"
        entries = [
            FilterPredicateEntry(
                field=column.field,
                operator=first_operator,  # type: ignore[arg-type]
                value=first_value,
                predicate=join,
                match_case=case,
            )
        ]
        if second_operator is not None and second_value not in (None, ""):
            entries.append(
                FilterPredicateEntry(
                    field=column.field,
                    operator=second_operator,  # type: ignore[arg-type]
                    value=second_value,
                    predicate=join,
                    match_case=case,
                )
            )
        self._emit(
            FilterHandlerArgs(
                action="filtering",
                field=column.field,
                filter_collection=entries,
                actual_predicate=list(entries),
            )
        )
        self.close()
