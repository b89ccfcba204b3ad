"""Turn grid settings and the canonical filter list into one :class:`Query`."""

import logging
from dataclasses import dataclass, field

import polars as pl

from reflex_filter_grid.models import Column, FilterPredicateEntry
from reflex_filter_grid.predicates import (
    Predicate,
    Query,
    SortDirection,
    get_date_predicate,
)

logger = logging.getLogger(__name__)


@dataclass
class GridQuerySettings:
    """Everything the composer reads from the grid."""

    filter_columns: list[FilterPredicateEntry] = field(default_factory=list)
    search_key: str = ""
    search_fields: list[str] = field(default_factory=list)
    search_operator: str = "contains"
    search_ignore_case: bool = True
    sorts: list[tuple[str, SortDirection]] = field(default_factory=list)
    group_fields: list[str] = field(default_factory=list)
    page_index: int = 1
    page_size: int = 12
    allow_filtering: bool = True
    allow_searching: bool = True
    allow_sorting: bool = True
    allow_paging: bool = False
    allow_grouping: bool = False


def generate_query(
    settings: GridQuerySettings,
    columns: list[Column],
    foreign_key_data: dict[str, pl.DataFrame] | None = None,
) -> Query:
    """Build the grid query in the order filter, search, sort, page, group.

    Args:
        settings: Current filter/search/sort/page/group inputs.
        columns: Grid columns, used for types and foreign-key lookups.
        foreign_key_data: Loaded lookup tables keyed by column field.

    Returns:
        A new :class:`Query`.  Building it has no side effects.
    """
    query = Query().requires_count()

    if settings.allow_filtering and settings.filter_columns:
        predicate = build_filter_predicate(settings.filter_columns, columns, foreign_key_data)
        if predicate is not None:
            query.where(predicate)

    if settings.allow_searching and settings.search_key:
        query.search(
            settings.search_key,
            settings.search_fields,
            settings.search_operator,
            settings.search_ignore_case,
        )

    for field_name, direction in _ordered_sorts(settings):
        query.sort_by(field_name, direction)

    if settings.allow_paging:
        query.page(settings.page_index, settings.page_size)

    if settings.allow_grouping:
        for field_name in settings.group_fields:
            query.group(field_name)

    return query


def _ordered_sorts(settings: GridQuerySettings) -> list[tuple[str, SortDirection]]:
    """Grouped columns sort first (ascending unless sorted), then the rest."""
    sorts = list(settings.sorts) if settings.allow_sorting else []
    if not (settings.allow_grouping and settings.group_fields):
        return sorts
    directions = dict(sorts)
    ordered: list[tuple[str, SortDirection]] = [
        (name, directions.get(name, "asc")) for name in settings.group_fields
    ]
    ordered.extend((name, d) for name, d in sorts if name not in settings.group_fields)
    return ordered


# ---------------------------------------------------------------------------
# Filter predicate
# ---------------------------------------------------------------------------

def build_filter_predicate(
    entries: list[FilterPredicateEntry],
    columns: list[Column],
    foreign_key_data: dict[str, pl.DataFrame] | None = None,
) -> Predicate | None:
    """Combine the canonical filter list into one predicate.

    Entries are grouped by field in order of first appearance.  Inside a
    group each entry is joined to the running result with its own
    ``predicate`` (``"and"``/``"or"``); the groups are then AND-ed.

    Returns:
        The combined predicate, or ``None`` when *entries* is empty.
    """
    if not entries:
        return None

    by_field = {c.field: c for c in columns}
    groups: dict[str, list[FilterPredicateEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.field, []).append(entry)

    field_predicates: list[Predicate] = []
    for field_name, group in groups.items():
        column = by_field.get(field_name)
        combined = _entry_predicate(group[0], column, foreign_key_data)
        for entry in group[1:]:
            leaf = _entry_predicate(entry, column, foreign_key_data)
            combined = combined.or_(leaf) if entry.predicate == "or" else combined.and_(leaf)
        field_predicates.append(combined)

    if len(field_predicates) == 1:
        return field_predicates[0]
    return Predicate.and_all(field_predicates)


def _entry_predicate(
    entry: FilterPredicateEntry,
    column: Column | None,
    foreign_key_data: dict[str, pl.DataFrame] | None,
) -> Predicate:
    if column is not None and column.is_foreign_column() and entry.actual_operator is not None:
        return _resolve_foreign_key(entry, column, foreign_key_data or {})

    if entry.date_predicate is not None:
        return entry.date_predicate

    if (
        column is not None
        and column.type in ("date", "datetime")
        and entry.type != "datetime"
        and entry.operator in ("equal", "notEqual")
        and entry.value is not None
    ):
        return get_date_predicate(entry)

    return Predicate(entry.field, entry.operator, entry.value, not entry.match_case)


def _resolve_foreign_key(
    entry: FilterPredicateEntry,
    column: Column,
    foreign_key_data: dict[str, pl.DataFrame],
) -> Predicate:
    """Translate a display-level condition into an OR of matching keys."""
    lookup = foreign_key_data.get(column.field)
    key_field = column.foreign_key_field
    value_field = column.foreign_key_value
    if lookup is None or key_field is None or value_field is None:
        logger.warning("No lookup data for foreign-key column %r", column.field)
        return Predicate.or_all([])

    display_query = Query().where(
        value_field,
        entry.actual_operator,
        entry.actual_filter_value,
        not entry.match_case,
    )
    keys = display_query.execute_local(lookup).result.get_column(key_field).unique(
        maintain_order=True
    )
    return Predicate.or_all(
        [Predicate(entry.field, "equal", key, False) for key in keys.to_list()]
    )
