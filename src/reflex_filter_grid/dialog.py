"""Shared pieces of the filter dialogs (menu, checkbox, excel)."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import polars as pl

from reflex_filter_grid.data_source import DataSource
from reflex_filter_grid.locale import L10n, ValueFormatter
from reflex_filter_grid.models import Column, FilterPredicateEntry

DialogState = Literal["closed", "opening", "open"]
FilterAction = Literal["filtering", "clear-filter"]


@dataclass
class FilterHandlerArgs:
    """What a dialog hands back to the controller on commit or clear.

    ``filter_collection`` is the complete new entry group for ``field``;
    it replaces every existing entry of that field.
    """

    action: FilterAction
    field: str
    filter_collection: list[FilterPredicateEntry] = field(default_factory=list)
    actual_predicate: list[FilterPredicateEntry] = field(default_factory=list)


@dataclass
class FilterDialogOptions:
    """Everything a dialog captures from the grid when it opens."""

    column: Column
    data_source: DataSource
    filtered_columns: list[FilterPredicateEntry]
    columns: list[Column]
    handler: Callable[[FilterHandlerArgs], Any]
    l10n: L10n
    value_formatter: ValueFormatter
    foreign_key_data: dict[str, pl.DataFrame] = field(default_factory=dict)
    operators: dict[str, list[dict[str, str]]] = field(default_factory=dict)
    on_close: Callable[[str], Any] | None = None
    allow_case_sensitive: bool = False

    @property
    def field(self) -> str:
        return self.column.field

    @property
    def type(self) -> str:
        return self.column.type

    def other_filters(self) -> list[FilterPredicateEntry]:
        """Active entries of every column except this one."""
        return [e for e in self.filtered_columns if e.field != self.column.field]

    def own_filters(self) -> list[FilterPredicateEntry]:
        return [e for e in self.filtered_columns if e.field == self.column.field]


class FilterDialog(Protocol):
    """Capability interface every dialog kind implements."""

    state: DialogState

    @property
    def field(self) -> str | None: ...

    @property
    def is_open(self) -> bool: ...

    async def open(self, options: FilterDialogOptions) -> None: ...

    def close(self) -> None: ...

    def destroy(self) -> None: ...


class BaseFilterDialog:
    """State handling common to every dialog kind.

    ``state`` moves ``closed -> opening -> open -> closed``.  Every
    :meth:`open` takes a new session token; work that finishes after the
    token changed (a later open, or a close) must be dropped.
    """

    kind: str = "menu"

    def __init__(self) -> None:
        self.state: DialogState = "closed"
        self.options: FilterDialogOptions | None = None
        self._token: int = 0

    @property
    def field(self) -> str | None:
        return self.options.field if self.options is not None else None

    @property
    def is_open(self) -> bool:
        return self.state != "closed"

    @property
    def l10n(self) -> L10n:
        return self.options.l10n if self.options is not None else L10n()

    def _begin_session(self, options: FilterDialogOptions) -> int:
        self._token += 1
        self.options = options
        self.state = "opening"
        return self._token

    def _is_current(self, token: int) -> bool:
        return token == self._token and self.state == "opening"

    def close(self) -> None:
        if self.state == "closed":
            return
        self._token += 1
        self.state = "closed"
        self._reset()
        if self.options is not None and self.options.on_close is not None:
            self.options.on_close(self.options.field)

    def destroy(self) -> None:
        self.close()
        self.options = None

    def _reset(self) -> None:
        """Drop per-session data."""

    def _emit(self, args: FilterHandlerArgs) -> None:
        if self.options is not None:
            self.options.handler(args)

    def clear(self) -> None:
        """Remove this column's filter and close; no-op when closed."""
        if self.state != "open" or self.options is None:
            return
        field_name = self.options.field
        self._emit(FilterHandlerArgs(action="clear-filter", field=field_name))
        self.close()
