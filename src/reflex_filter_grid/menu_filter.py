"""Single-condition menu filter dialog."""

import logging
from typing import Any

from reflex_filter_grid.dialog import BaseFilterDialog, FilterDialogOptions, FilterHandlerArgs
from reflex_filter_grid.models import FilterPredicateEntry

logger = logging.getLogger(__name__)


class MenuFilterDialog(BaseFilterDialog):
    """One operator plus one value, pre-filled from the active entry."""

    kind = "menu"

    def __init__(self) -> None:
        super().__init__()
        self.operator: str = "equal"
        self.value_text: str = ""
        self.match_case: bool = False
        self.error: str = ""

    @property
    def operators(self) -> list[dict[str, str]]:
        if self.options is None:
            return []
        return self.options.operators.get(self.options.type, [])

    async def open(self, options: FilterDialogOptions) -> None:
        self._begin_session(options)
        column = options.column
        self.error = ""
        self.match_case = options.allow_case_sensitive
        self.operator = "startsWith" if column.type == "string" else "equal"
        self.value_text = ""

        existing = options.own_filters()
        if existing:
            entry = existing[0]
            value: Any = entry.value
            self.operator = entry.operator
            if entry.actual_operator is not None:
                self.operator = entry.actual_operator
                value = entry.actual_filter_value
            self.match_case = entry.match_case
            self.value_text = options.value_formatter.to_view(
                value, column.formatter, column.type, column.format
            )
        self.state = "open"

    def _reset(self) -> None:
        self.error = ""

    def apply(self, operator: str | None = None, text: str | None = None) -> bool:
        """Emit the condition as the column's only entry and close.

        Returns:
            ``False`` when the dialog is closed or *text* does not parse
            for the column type (``error`` then holds the message).
        """
        if self.state != "open" or self.options is None:
            return False
        if operator is not None:
            self.operator = operator
        if text is not None:
            self.value_text = text

        column = self.options.column
        raw = self.value_text.strip()
        if not raw:
            self.clear()
            return True

        if column.is_foreign_column() or column.type == "string":
            value: Any = raw
        else:
            value = self.options.value_formatter.from_view(
                raw, column.parser, column.type, column.format
            )
            if value is None:
                self.error = self.options.l10n.get("InvalidFilterMessage")
                logger.debug("Menu filter rejected %r for %r", raw, column.field)
                return False

        entry = FilterPredicateEntry(
            field=column.field,
            operator=self.operator,  # type: ignore[arg-type]
            value=value,
            predicate="and",
            match_case=self.match_case or column.type != "string",
        )
        if column.is_foreign_column():
            entry.match_case = self.match_case
            entry.actual_operator = self.operator  # type: ignore[assignment]
            entry.actual_filter_value = value

        self._emit(
            FilterHandlerArgs(
                action="filtering",
                field=column.field,
                filter_collection=[entry],
                actual_predicate=[entry],
            )
        )
        self.close()
        return True
