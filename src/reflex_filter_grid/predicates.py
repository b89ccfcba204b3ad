"""Predicate trees and queries compiled to polars expressions.

The filtering code never evaluates a predicate row by row.  It builds a
:class:`Predicate` tree (leaf conditions joined with ``and``/``or``) and a
:class:`Query` describing filter, search, sort, page and group steps, and
hands both to polars via :meth:`Query.execute_local`.

Leaf semantics worth knowing:

* ``equal`` / ``notEqual`` are missing-aware: a null cell never equals a
  value and always differs from one.
* A ``None`` value means *blank*: null, or the empty string for string
  columns.
* ``ignore_case`` lower-cases both sides on string columns only.
* A plain ``date`` value compared against a ``Datetime`` column compares
  the calendar-date part of the column.
"""

import dataclasses
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Literal

import polars as pl

from reflex_filter_grid.models import FilterPredicateEntry, PredicateJoin

logger = logging.getLogger(__name__)

SortDirection = Literal["asc", "desc"]

_STRING_OPERATORS: frozenset[str] = frozenset({"startsWith", "endsWith", "contains"})


# ---------------------------------------------------------------------------
# Expression helpers
# ---------------------------------------------------------------------------

def _is_string_dtype(dtype: pl.DataType) -> bool:
    return isinstance(dtype, (pl.String, pl.Categorical, pl.Enum))


def _col_to_str_expr(col: pl.Expr, dtype: pl.DataType) -> pl.Expr:
    """Convert a column expression to a String, handling List/Struct types.

    * ``List(T)`` / ``Array(T, n)`` -> cast to ``List(String)``, then
      ``list.join(",")``
    * Everything else -> ``cast(pl.String)``
    """
    if isinstance(dtype, (pl.List, pl.Array)):
        return col.cast(pl.List(pl.String)).list.join(",")
    return col.cast(pl.String)


def _coerce_numeric(value: Any) -> int | float | None:
    """Try to coerce *value* to a number."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        for conv in (int, float):
            try:
                return conv(value)
            except ValueError:
                continue
    return None


def _coerce_temporal(value: Any) -> Any:
    """Parse ISO strings so they can be compared against temporal columns."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    try:
        if "T" in text or " " in text:
            return datetime.fromisoformat(text)
        return date.fromisoformat(text)
    except ValueError:
        return None


def _coerce_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1"):
            return True
        if text in ("false", "0"):
            return False
    return None


def blank_expr(col: pl.Expr, dtype: pl.DataType) -> pl.Expr:
    """Return an expression that is true for blank cells of *col*."""
    if _is_string_dtype(dtype):
        return col.is_null() | (col.cast(pl.String) == "")
    return col.is_null()


def _compare(col: pl.Expr, operator: str, value: Any) -> pl.Expr | None:
    if operator == "equal":
        return col.eq_missing(value)
    if operator == "notEqual":
        return col.ne_missing(value)
    if operator == "greaterThan":
        return col > value
    if operator == "greaterThanOrEqual":
        return col >= value
    if operator == "lessThan":
        return col < value
    if operator == "lessThanOrEqual":
        return col <= value
    return None


def _string_match(col: pl.Expr, operator: str, value: str) -> pl.Expr:
    if operator == "startsWith":
        return col.str.starts_with(value)
    if operator == "endsWith":
        return col.str.ends_with(value)
    return col.str.contains(value, literal=True)


# ---------------------------------------------------------------------------
# Predicate tree
# ---------------------------------------------------------------------------

@dataclass
class Predicate:
    """A leaf condition or an ``and``/``or`` group of predicates.

    Leaves carry ``field``/``operator``/``value``/``ignore_case``; groups
    carry ``condition`` and ``predicates``.  An empty ``and`` group is
    always true and an empty ``or`` group is always false.
    """

    field: str | None = None
    operator: str | None = None
    value: Any = None
    ignore_case: bool = False
    condition: PredicateJoin | None = None
    predicates: list["Predicate"] = dataclasses.field(default_factory=list)

    @property
    def is_complex(self) -> bool:
        return self.condition is not None

    # -- combinators --

    def and_(self, *others: "Predicate") -> "Predicate":
        return Predicate(condition="and", predicates=[self, *others])

    def or_(self, *others: "Predicate") -> "Predicate":
        return Predicate(condition="or", predicates=[self, *others])

    @staticmethod
    def and_all(predicates: list["Predicate"]) -> "Predicate":
        return Predicate(condition="and", predicates=list(predicates))

    @staticmethod
    def or_all(predicates: list["Predicate"]) -> "Predicate":
        return Predicate(condition="or", predicates=list(predicates))

    # -- compilation --

    def to_expr(self, schema: pl.Schema) -> pl.Expr | None:
        """Compile this predicate to a polars boolean expression.

        Args:
            schema: Schema of the frame the expression will run on.

        Returns:
            A polars expression, or ``None`` for a leaf that cannot be
            translated (unknown field or an operator/value combination
            the column type does not support).  Untranslatable leaves are
            skipped inside groups.
        """
        if self.is_complex:
            exprs = [e for p in self.predicates if (e := p.to_expr(schema)) is not None]
            if self.condition == "or":
                if not exprs:
                    return pl.lit(False)
                combined = exprs[0]
                for e in exprs[1:]:
                    combined = combined | e
                return combined
            if not exprs:
                return pl.lit(True)
            combined = exprs[0]
            for e in exprs[1:]:
                combined = combined & e
            return combined
        return self._leaf_expr(schema)

    def _leaf_expr(self, schema: pl.Schema) -> pl.Expr | None:
        field_name = self.field
        operator = self.operator
        if field_name is None or operator is None or field_name not in schema:
            logger.debug("Skipping predicate on unknown field %r", field_name)
            return None

        col = pl.col(field_name)
        dtype = schema[field_name]
        value = self.value

        # Blank semantics: None matches null (and "" for strings).
        if value is None:
            if operator == "equal":
                return blank_expr(col, dtype)
            if operator == "notEqual":
                return ~blank_expr(col, dtype)
            logger.debug("Skipping %s with empty value on %r", operator, field_name)
            return None

        if operator in _STRING_OPERATORS:
            text = str(value)
            str_col = _col_to_str_expr(col, dtype)
            if self.ignore_case:
                str_col = str_col.str.to_lowercase()
                text = text.lower()
            return _string_match(str_col, operator, text)

        if _is_string_dtype(dtype):
            str_col = col.cast(pl.String)
            text = str(value)
            if self.ignore_case:
                str_col = str_col.str.to_lowercase()
                text = text.lower()
            return _compare(str_col, operator, text)

        if dtype.is_numeric():
            num_value = _coerce_numeric(value)
            if num_value is None:
                return None
            return _compare(col, operator, num_value)

        if isinstance(dtype, pl.Boolean):
            bool_value = _coerce_boolean(value)
            if bool_value is None:
                return None
            return _compare(col, operator, bool_value)

        if isinstance(dtype, (pl.Date, pl.Datetime)):
            temporal = _coerce_temporal(value)
            if temporal is None:
                return None
            if isinstance(dtype, pl.Datetime) and not isinstance(temporal, datetime):
                # Plain date against a timestamp column: compare calendar days.
                return _compare(col.dt.date(), operator, temporal)
            if isinstance(dtype, pl.Date) and isinstance(temporal, datetime):
                temporal = temporal.date()
            return _compare(col, operator, temporal)

        return _compare(_col_to_str_expr(col, dtype), operator, str(value))


# ---------------------------------------------------------------------------
# Day bucketing
# ---------------------------------------------------------------------------

def _calendar_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = _coerce_temporal(value)
    if isinstance(parsed, datetime):
        return parsed.date()
    return parsed


def get_date_predicate(entry: FilterPredicateEntry) -> Predicate:
    """Expand a date ``equal``/``notEqual`` entry into a day interval.

    ``prev`` and ``next`` are the days before and after the calendar day
    of ``entry.value``.  ``equal`` becomes ``field > prev AND field < next``
    which accepts any timestamp on that day; ``notEqual`` becomes
    ``field <= prev OR field >= next OR field is blank``.  Any other
    operator is returned as a plain leaf on the original value.
    """
    ignore_case = not entry.match_case
    day = _calendar_date(entry.value)
    if day is None or entry.operator not in ("equal", "notEqual"):
        return Predicate(entry.field, entry.operator, entry.value, ignore_case)

    prev_day = day - timedelta(days=1)
    next_day = day + timedelta(days=1)
    if entry.operator == "equal":
        return Predicate.and_all(
            [
                Predicate(entry.field, "greaterThan", prev_day, ignore_case),
                Predicate(entry.field, "lessThan", next_day, ignore_case),
            ]
        )
    return Predicate.or_all(
        [
            Predicate(entry.field, "lessThanOrEqual", prev_day, ignore_case),
            Predicate(entry.field, "greaterThanOrEqual", next_day, ignore_case),
            Predicate(entry.field, "equal", None, ignore_case),
        ]
    )


def set_date_object(entry: FilterPredicateEntry) -> FilterPredicateEntry:
    """Attach the day-bucketed predicate to *entry* and mark it as a date."""
    if entry.value is not None:
        entry.type = "date"
        entry.date_predicate = get_date_predicate(entry)
    return entry


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------

@dataclass
class QueryResult:
    """Rows produced by a query plus the pre-paging row count."""

    result: pl.DataFrame
    count: int
    groups: list[dict[str, Any]] = dataclasses.field(default_factory=list)


@dataclass
class _SearchStep:
    key: str
    fields: list[str]
    operator: str
    ignore_case: bool


class Query:
    """Builder for one filter/search/sort/page/group query.

    Every builder call is also recorded in :attr:`operations` as
    ``(name, args)`` so callers can inspect the order the query was
    assembled in.  Execution always runs filter, search, sort, page and
    group, in that order.
    """

    def __init__(self) -> None:
        self.operations: list[tuple[str, Any]] = []
        self._where: list[Predicate] = []
        self._search: _SearchStep | None = None
        self._sorts: list[tuple[str, SortDirection]] = []
        self._page: tuple[int, int] | None = None
        self._groups: list[str] = []
        self._requires_count: bool = False

    # -- builder --

    def where(
        self,
        field_or_predicate: "str | Predicate",
        operator: str | None = None,
        value: Any = None,
        ignore_case: bool = False,
    ) -> "Query":
        if isinstance(field_or_predicate, Predicate):
            predicate = field_or_predicate
        else:
            predicate = Predicate(field_or_predicate, operator, value, ignore_case)
        self._where.append(predicate)
        self.operations.append(("where", predicate))
        return self

    def search(
        self,
        key: str,
        fields: list[str] | None = None,
        operator: str = "contains",
        ignore_case: bool = True,
    ) -> "Query":
        self._search = _SearchStep(key, list(fields or []), operator, ignore_case)
        self.operations.append(("search", self._search))
        return self

    def sort_by(self, field_name: str, direction: SortDirection = "asc") -> "Query":
        self._sorts.append((field_name, direction))
        self.operations.append(("sortBy", (field_name, direction)))
        return self

    def page(self, index: int, size: int) -> "Query":
        """Restrict the result to page *index* (1-based) of *size* rows."""
        self._page = (index, size)
        self.operations.append(("page", (index, size)))
        return self

    def group(self, field_name: str) -> "Query":
        self._groups.append(field_name)
        self.operations.append(("group", field_name))
        return self

    def requires_count(self) -> "Query":
        self._requires_count = True
        return self

    def clone(self) -> "Query":
        other = Query()
        other.operations = list(self.operations)
        other._where = list(self._where)
        other._search = self._search
        other._sorts = list(self._sorts)
        other._page = self._page
        other._groups = list(self._groups)
        other._requires_count = self._requires_count
        return other

    # -- inspection --

    @property
    def predicate(self) -> Predicate | None:
        if not self._where:
            return None
        if len(self._where) == 1:
            return self._where[0]
        return Predicate.and_all(self._where)

    @property
    def sorts(self) -> list[tuple[str, SortDirection]]:
        return list(self._sorts)

    @property
    def groups(self) -> list[str]:
        return list(self._groups)

    @property
    def page_settings(self) -> tuple[int, int] | None:
        return self._page

    @property
    def search_settings(self) -> _SearchStep | None:
        return self._search

    # -- execution --

    def build_lazy(self, frame: pl.DataFrame | pl.LazyFrame) -> pl.LazyFrame:
        """Apply the filter and search steps to *frame* (no collect)."""
        lf = frame.lazy()
        schema = lf.collect_schema()

        predicate = self.predicate
        if predicate is not None:
            expr = predicate.to_expr(schema)
            if expr is not None:
                lf = lf.filter(expr)

        if self._search is not None and self._search.key:
            fields = self._search.fields or [
                name for name, dtype in schema.items() if _is_string_dtype(dtype)
            ]
            search_predicate = Predicate.or_all(
                [
                    Predicate(f, self._search.operator, self._search.key, self._search.ignore_case)
                    for f in fields
                ]
            )
            expr = search_predicate.to_expr(schema)
            if expr is not None:
                lf = lf.filter(expr)
        return lf

    def execute_local(self, frame: pl.DataFrame | pl.LazyFrame) -> QueryResult:
        """Run the query against an in-memory frame.

        Builds a lazy query: filter -> search -> count -> sort -> slice,
        then collects only the requested slice.
        """
        t0 = time.perf_counter()
        lf = self.build_lazy(frame)

        count: int | None = None
        if self._requires_count or self._page is not None:
            count = lf.select(pl.len()).collect().item()

        if self._sorts:
            lf = lf.sort(
                by=[name for name, _ in self._sorts],
                descending=[direction == "desc" for _, direction in self._sorts],
                nulls_last=True,
                maintain_order=True,
            )

        if self._page is not None:
            index, size = self._page
            lf = lf.slice(max(index - 1, 0) * size, size)

        result = lf.collect()
        if count is None:
            count = result.height

        groups: list[dict[str, Any]] = []
        if self._groups:
            groups = result.group_by(self._groups, maintain_order=True).len().to_dicts()

        logger.debug(
            "query executed: rows=%d, count=%d, elapsed=%.1fms",
            result.height,
            count,
            (time.perf_counter() - t0) * 1000,
        )
        return QueryResult(result=result, count=count, groups=groups)
