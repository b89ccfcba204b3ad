"""Data sources the filter grid queries, plus a file scanner.

A data source is anything with an ``async execute_query(query)`` method
returning a :class:`~reflex_filter_grid.predicates.QueryResult`.  The
grid, the value-list dialog and foreign-key lookups all talk to data
through this single method.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import polars as pl

from reflex_filter_grid.predicates import Query, QueryResult

logger = logging.getLogger(__name__)


@runtime_checkable
class DataSource(Protocol):
    """Anything that can run a :class:`Query` asynchronously."""

    async def execute_query(self, query: Query) -> QueryResult: ...


class LocalDataSource:
    """Runs queries against an in-memory polars DataFrame or LazyFrame."""

    def __init__(self, frame: pl.DataFrame | pl.LazyFrame) -> None:
        self.frame = frame

    @property
    def schema(self) -> pl.Schema:
        return self.frame.lazy().collect_schema()

    async def execute_query(self, query: Query) -> QueryResult:
        return query.execute_local(self.frame)


FetchRows = Callable[[], Awaitable["list[dict[str, Any]] | pl.DataFrame"]]


class RemoteDataSource:
    """Awaits *fetch* for rows, then runs the query locally on them.

    The transport behind *fetch* is up to the caller (HTTP client,
    database driver, ...).  Each query triggers exactly one fetch.
    """

    def __init__(self, fetch: FetchRows) -> None:
        self.fetch = fetch

    async def execute_query(self, query: Query) -> QueryResult:
        t0 = time.perf_counter()
        rows = await self.fetch()
        frame = rows if isinstance(rows, pl.DataFrame) else pl.DataFrame(rows)
        logger.debug(
            "remote fetch: %d rows (%.1fms)",
            frame.height,
            (time.perf_counter() - t0) * 1000,
        )
        return query.execute_local(frame)


# ---------------------------------------------------------------------------
# File scanner
# ---------------------------------------------------------------------------

def scan_file(path: Path) -> pl.LazyFrame:
    """Scan a data file into a LazyFrame.

    Auto-detects the file format from the extension:

    * ``.parquet`` / ``.pq`` -- uses ``pl.scan_parquet()``.
    * ``.csv`` -- uses ``pl.scan_csv(try_parse_dates=True)``.
    * ``.tsv`` -- uses ``pl.scan_csv(separator="\\t")``.
    * ``.json`` -- uses ``pl.read_json().lazy()`` (no streaming scan).
    * ``.ndjson`` / ``.jsonl`` -- uses ``pl.scan_ndjson()``.
    * ``.ipc`` / ``.arrow`` / ``.feather`` -- uses ``pl.scan_ipc()``.

    Args:
        path: Path to the data file.

    Returns:
        The scanned ``pl.LazyFrame``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file extension is not recognised.
    """
    path = Path(path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()

    if suffix in (".parquet", ".pq"):
        return pl.scan_parquet(path)
    if suffix == ".csv":
        return pl.scan_csv(path, try_parse_dates=True)
    if suffix == ".tsv":
        return pl.scan_csv(path, separator="\t", try_parse_dates=True)
    # JSON (no streaming scan -- read then convert to lazy)
    if suffix == ".json":
        return pl.read_json(path).lazy()
    if suffix in (".ndjson", ".jsonl"):
        return pl.scan_ndjson(path)
    if suffix in (".ipc", ".arrow", ".feather"):
        return pl.scan_ipc(path)

    raise ValueError(
        f"Unsupported file extension: {suffix!r}. "
        "Supported: .parquet, .pq, .csv, .tsv, "
        ".json, .ndjson, .jsonl, .ipc, .arrow, .feather"
    )
