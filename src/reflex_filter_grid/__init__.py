"""reflex-filter-grid – column filtering for polars-backed Reflex grids.

Filter bar, menu, checkbox and Excel-style value-list dialogs driving a
polars query::

    pip install reflex-filter-grid
"""

from reflex_filter_grid.checkbox_filter import CheckboxFilterDialog, ExcelFilterDialog, get_distinct
from reflex_filter_grid.data_source import DataSource, LocalDataSource, RemoteDataSource, scan_file
from reflex_filter_grid.dialog import FilterDialogOptions, FilterHandlerArgs
from reflex_filter_grid.events import (
    FILTER_BEGIN,
    FILTER_COMPLETE,
    FILTER_DIALOG_CLOSE,
    FILTER_DIALOG_OPEN,
    FilterEventArgs,
)
from reflex_filter_grid.filter_controller import FilterController, get_operator
from reflex_filter_grid.filter_grid import (
    FilterGridMixin,
    filter_dialog_panel,
    filter_grid,
    filter_grid_pager,
    filter_grid_status_bar,
)
from reflex_filter_grid.grid import (
    FilterGrid,
    FilterSettings,
    GroupSettings,
    PageSettings,
    SearchSettings,
    SortSettings,
)
from reflex_filter_grid.locale import L10n, ValueFormatter
from reflex_filter_grid.logging_config import setup_logging
from reflex_filter_grid.menu_filter import MenuFilterDialog
from reflex_filter_grid.models import (
    Column,
    ColumnDef,
    FilterPredicateEntry,
    ForeignKeyDef,
    build_columns_from_schema,
    column_type_from_dtype,
)
from reflex_filter_grid.predicates import Predicate, Query, QueryResult, get_date_predicate
from reflex_filter_grid.query import build_filter_predicate, generate_query
