"""Column metadata and filter entries shared by the controller and the dialogs."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Literal

import polars as pl
from reflex.components.props import PropsBase

if TYPE_CHECKING:
    from reflex_filter_grid.data_source import DataSource
    from reflex_filter_grid.predicates import Predicate


ColumnType = Literal["string", "number", "boolean", "date", "datetime"]
FilterType = Literal["filterbar", "menu", "checkbox", "excel"]
FilterDialogKind = Literal["menu", "checkbox", "excel"]
FilterBarMode = Literal["immediate", "onenter"]
PredicateJoin = Literal["and", "or"]
FilterOperator = Literal[
    "equal",
    "notEqual",
    "greaterThan",
    "greaterThanOrEqual",
    "lessThan",
    "lessThanOrEqual",
    "startsWith",
    "endsWith",
    "contains",
]


class ColumnDef(PropsBase):
    """Frontend column description for the filter grid header.

    Attributes are automatically converted from snake_case to camelCase
    when serialized via PropsBase.
    """

    field: str
    header_name: str | None = None
    width: int | None = None
    type: ColumnType = "string"
    filterable: bool = True
    filtered: bool = False
    filter_type: FilterDialogKind | None = None
    description: str | None = None


@dataclass
class ForeignKeyDef:
    """Lookup table that maps a column's raw key to a display value.

    Args:
        data_source: Source of the lookup rows, queried once with an
            empty query.
        foreign_key_value: Display field in the lookup rows.
        foreign_key_field: Key field in the lookup rows.  Defaults to the
            owning column's field.
    """

    data_source: "DataSource"
    foreign_key_value: str
    foreign_key_field: str | None = None


@dataclass
class Column:
    """Grid column as seen by the filtering subsystem."""

    field: str
    header_text: str | None = None
    type: ColumnType = "string"
    format: str | None = None
    allow_filtering: bool = True
    filter_type: FilterDialogKind | None = None
    hide_search_box: bool = False
    foreign_key: ForeignKeyDef | None = None
    parser: Callable[[str], Any] | None = None
    formatter: Callable[[Any], str] | None = None
    description: str | None = None

    def is_foreign_column(self) -> bool:
        return self.foreign_key is not None

    @property
    def foreign_key_field(self) -> str | None:
        if self.foreign_key is None:
            return None
        return self.foreign_key.foreign_key_field or self.field

    @property
    def foreign_key_value(self) -> str | None:
        if self.foreign_key is None:
            return None
        return self.foreign_key.foreign_key_value

    def get_header_text(self) -> str:
        return self.header_text or _humanize_field_name(self.field)

    def to_column_def(self, *, filtered: bool = False) -> ColumnDef:
        return ColumnDef(
            field=self.field,
            header_name=self.get_header_text(),
            type=self.type,
            filterable=self.allow_filtering,
            filtered=filtered,
            filter_type=self.filter_type,
            description=self.description,
        )


@dataclass
class FilterPredicateEntry:
    """One leaf filter condition of the canonical filter list.

    ``field`` is the storage field: for foreign-key columns the key field,
    never the display field.  ``actual_filter_value``/``actual_operator``
    hold the display-level condition typed into the filter bar of a
    foreign-key column; the query composer resolves them through the
    lookup table.  ``type``/``date_predicate`` are set when the entry was
    already day-bucketed by the value-list dialog; ``type == "datetime"``
    marks an exact timestamp picked from that dialog, never bucketed.
    """

    field: str
    operator: FilterOperator
    value: Any
    predicate: PredicateJoin = "and"
    match_case: bool = False
    actual_filter_value: Any = None
    actual_operator: FilterOperator | None = None
    type: str | None = None
    date_predicate: "Predicate | None" = field(default=None, repr=False, compare=False)

    def is_equivalent(self, other: "FilterPredicateEntry") -> bool:
        """Return True if *other* would re-apply the same condition."""
        return (
            self.field == other.field
            and self.value == other.value
            and self.operator == other.operator
            and self.predicate == other.predicate
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "field": self.field,
            "operator": self.operator,
            "value": _json_safe(self.value),
            "predicate": self.predicate,
            "matchCase": self.match_case,
        }
        if self.actual_operator is not None:
            data["actualOperator"] = self.actual_operator
            data["actualFilterValue"] = _json_safe(self.actual_filter_value)
        if self.type is not None:
            data["type"] = self.type
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilterPredicateEntry":
        value = data.get("value")
        if data.get("type") == "date" and isinstance(value, str):
            value = _parse_iso(value)
        return cls(
            field=data["field"],
            operator=data.get("operator", "equal"),
            value=value,
            predicate=data.get("predicate", "and"),
            match_case=data.get("matchCase", False),
            actual_filter_value=data.get("actualFilterValue"),
            actual_operator=data.get("actualOperator"),
            type=data.get("type"),
        )


def _json_safe(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _parse_iso(text: str) -> date | datetime | str:
    try:
        if "T" in text or " " in text:
            return datetime.fromisoformat(text)
        return date.fromisoformat(text)
    except ValueError:
        return text


def _humanize_field_name(field_name: str) -> str:
    """Convert a snake_case or raw field name to a human-friendly header.

    Examples:
        ``"first_name"`` -> ``"First Name"``
        ``"OrderID"`` -> ``"Orderid"``
    """
    return field_name.strip("_").replace("_", " ").title()


def column_type_from_dtype(dtype: pl.DataType) -> ColumnType:
    """Map a polars DataType to the closest filter column type.

    Uses polars' built-in type-checking helpers for robustness across
    polars versions.
    """
    if isinstance(dtype, pl.Boolean):
        return "boolean"
    if dtype.is_numeric():
        return "number"
    if isinstance(dtype, pl.Date):
        return "date"
    if isinstance(dtype, pl.Datetime):
        return "datetime"
    # Everything else (String, Categorical, Enum, List, Struct, Duration, ...)
    return "string"


def build_columns_from_schema(
    schema: pl.Schema,
    *,
    filter_type: FilterDialogKind | None = None,
    column_descriptions: dict[str, str] | None = None,
    hidden_fields: set[str] | None = None,
) -> list[Column]:
    """Build a list of :class:`Column` from a polars Schema without collecting data.

    Args:
        schema: A polars ``Schema`` (e.g. ``lf.collect_schema()``).
        filter_type: Optional dialog kind forced on every column.
        column_descriptions: Optional ``{column: description}`` mapping
            for header tooltips.
        hidden_fields: Columns to leave out (row ids and the like).

    Returns:
        A list of :class:`Column` instances inferred from *schema*.
    """
    hidden = hidden_fields or set()
    columns: list[Column] = []
    for col_name, dtype in schema.items():
        if col_name in hidden:
            continue
        description: str | None = None
        if column_descriptions is not None:
            description = column_descriptions.get(col_name)
        columns.append(
            Column(
                field=col_name,
                header_text=_humanize_field_name(col_name),
                type=column_type_from_dtype(dtype),
                filter_type=filter_type,
                description=description,
            )
        )
    return columns
