"""Localized strings and the default value parser/formatter."""

import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from reflex_filter_grid.models import ColumnType

logger = logging.getLogger(__name__)

DEFAULT_LOCALE_STRINGS: dict[str, str] = {
    "Search": "Search",
    "OKButton": "OK",
    "CancelButton": "Cancel",
    "FilterButton": "Filter",
    "ClearButton": "Clear",
    "SelectAll": "Select All",
    "Blanks": "Blanks",
    "FilterTrue": "True",
    "FilterFalse": "False",
    "NoResult": "No Matches Found",
    "InvalidFilterMessage": "Invalid Filter Data",
    "CustomFilter": "Custom Filter",
    "MatchCase": "Match Case",
    "Equal": "Equal",
    "NotEqual": "Not Equal",
    "GreaterThan": "Greater Than",
    "GreaterThanOrEqual": "Greater Than Or Equal",
    "LessThan": "Less Than",
    "LessThanOrEqual": "Less Than Or Equal",
    "StartsWith": "Starts With",
    "EndsWith": "Ends With",
    "Contains": "Contains",
    "DecimalSeparator": ".",
    "GroupSeparator": ",",
}


class L10n:
    """Locale string table: English defaults with per-key overrides."""

    def __init__(self, overrides: dict[str, str] | None = None) -> None:
        self._strings = dict(DEFAULT_LOCALE_STRINGS)
        if overrides:
            self._strings.update(overrides)

    def get(self, key: str) -> str:
        return self._strings.get(key, key)

    def set(self, key: str, value: str) -> None:
        self._strings[key] = value

    def operator_label(self, operator: str) -> str:
        """Return the label for an operator name such as ``"notEqual"``."""
        return self.get(operator[:1].upper() + operator[1:])


# ---------------------------------------------------------------------------
# Value formatter
# ---------------------------------------------------------------------------

class ValueFormatter:
    """Locale-aware conversion between typed cell values and display text."""

    def __init__(self, l10n: L10n | None = None) -> None:
        self.l10n = l10n or L10n()

    def from_view(
        self,
        text: str,
        parser: Callable[[str], Any] | None = None,
        type: ColumnType = "string",
        format: str | None = None,
    ) -> Any:
        """Parse display *text* into a typed value.

        Args:
            text: Text as typed by the user (operator prefix removed).
            parser: Optional column parser; takes precedence over the
                built-in parsing when given.
            type: Column type that decides how *text* is parsed.
            format: ``strptime`` format for date/datetime columns.  ISO
                8601 is accepted when it is ``None``.

        Returns:
            The parsed value, or ``None`` when *text* cannot be parsed.
        """
        if parser is not None:
            try:
                return parser(text)
            except (ValueError, TypeError) as exc:
                logger.debug("Column parser rejected %r: %s", text, exc)
                return None

        if type == "number":
            return self._parse_number(text)
        if type in ("date", "datetime"):
            return self._parse_date(text, type, format)
        if type == "boolean":
            return self._parse_boolean(text)
        return text

    def to_view(
        self,
        value: Any,
        formatter: Callable[[Any], str] | None = None,
        type: ColumnType = "string",
        format: str | None = None,
    ) -> str:
        """Render a typed value as display text."""
        if value is None:
            return ""
        if formatter is not None:
            return formatter(value)
        if isinstance(value, bool):
            return self.l10n.get("FilterTrue" if value else "FilterFalse")
        if isinstance(value, (date, datetime)):
            if format:
                return value.strftime(format)
            return value.isoformat()
        return str(value)

    # -- parsers --

    def _parse_number(self, text: str) -> int | float | None:
        cleaned = text.strip().replace(self.l10n.get("GroupSeparator"), "")
        decimal = self.l10n.get("DecimalSeparator")
        if decimal != ".":
            cleaned = cleaned.replace(decimal, ".")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        if number.is_integer() and "e" not in cleaned.lower() and "." not in cleaned:
            return int(number)
        return number

    def _parse_date(
        self,
        text: str,
        type: ColumnType,
        format: str | None,
    ) -> date | datetime | None:
        text = text.strip()
        try:
            if format:
                parsed = datetime.strptime(text, format)
            else:
                parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if type == "date":
            return parsed.date()
        return parsed

    def _parse_boolean(self, text: str) -> bool | None:
        token = text.strip().lower()
        if token in (self.l10n.get("FilterTrue").lower(), "1"):
            return True
        if token in (self.l10n.get("FilterFalse").lower(), "0"):
            return False
        return None
