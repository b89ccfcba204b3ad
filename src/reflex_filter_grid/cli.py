"""CLI for reflex-filter-grid -- browse and filter tabular files in the browser.

Usage::

    # View a CSV / TSV / Parquet file with a filter bar
    reflex-filter-grid view data.csv

    # Use checkbox (value-list) dialogs instead of the filter bar
    reflex-filter-grid view orders.parquet --filter-type checkbox

    # Limit rows and set height
    reflex-filter-grid view big_file.parquet --limit 5000 --height 800px

Every format goes through ``scan_file`` and the ``FilterGridMixin``.
"""

import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Annotated, Optional

import typer

from reflex_filter_grid.data_source import scan_file

app = typer.Typer(
    name="reflex-filter-grid",
    help="View tabular data files in a filterable browser grid.",
    no_args_is_help=True,
)

_FILTER_TYPES: tuple[str, ...] = ("filterbar", "menu", "checkbox", "excel")


def _build_app_code(
    file_path: Path,
    limit: int | None,
    filter_type: str,
    height: str,
    title: str,
) -> str:
    """Generate the Reflex app module source code."""
    abs_path = str(file_path.resolve())
    # Escape backslashes and quotes for embedding in Python string literal
    safe_path = abs_path.replace("\\", "\\\\").replace('"', '\\"')

    limit_call = f".head({limit})" if limit else ""

    template = _APP_TEMPLATE
    template = template.replace("__FILENAME__", file_path.name)
    template = template.replace("__SAFE_PATH__", safe_path)
    template = template.replace("__LIMIT_CALL__", limit_call)
    template = template.replace("__FILTER_TYPE__", filter_type)
    template = template.replace("__TITLE__", title)
    template = template.replace("__HEIGHT__", height)
    return template


# ---------------------------------------------------------------------------
# App template -- uses __PLACEHOLDER__ tokens for dynamic parts.
# ---------------------------------------------------------------------------

_APP_TEMPLATE = '''"""Auto-generated viewer app for: __FILENAME__"""

from pathlib import Path

import reflex as rx

from reflex_filter_grid import FilterGridMixin, filter_grid, scan_file, setup_logging

setup_logging()


class ViewerState(FilterGridMixin, rx.State):
    """Viewer state backed by FilterGridMixin."""

    async def load_data(self):
        frame = scan_file(Path("__SAFE_PATH__"))__LIMIT_CALL__.collect()
        async for _ in self.set_filter_grid(frame, filter_type="__FILTER_TYPE__"):
            yield


def index() -> rx.Component:
    return rx.box(
        rx.heading("__TITLE__", size="6", margin_bottom="0.5em"),
        rx.cond(
            ViewerState.fg_loaded,
            filter_grid(ViewerState, height="__HEIGHT__"),
            rx.text("Loading...", color="var(--gray-9)"),
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=ViewerState.load_data)
'''


@app.command()
def view(
    file: Annotated[Path, typer.Argument(help="Path to the data file (CSV, TSV, Parquet, JSON, etc.)")],
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum number of rows to load")] = None,
    filter_type: Annotated[
        str, typer.Option("--filter-type", "-f", help="filterbar, menu, checkbox or excel")
    ] = "filterbar",
    height: Annotated[str, typer.Option("--height", "-h", help="CSS height of the grid")] = "calc(100vh - 240px)",
    port: Annotated[int, typer.Option("--port", "-p", help="Port for the Reflex frontend")] = 3000,
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Page title")] = None,
) -> None:
    """View a data file in a filterable browser grid.

    Supports: CSV, TSV, Parquet, JSON, NDJSON, IPC/Arrow/Feather.
    """
    file = file.resolve()
    if filter_type not in _FILTER_TYPES:
        typer.echo(f"Error: unknown filter type {filter_type!r}", err=True)
        raise typer.Exit(code=1)

    # Validate the path and extension before generating the app.
    try:
        scan_file(file)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    if title is None:
        title = f"{file.name} -- Filter Grid"

    app_code = _build_app_code(file, limit, filter_type, height, title)

    # Create a temporary Reflex app directory.
    tmp_dir = Path(tempfile.mkdtemp(prefix="filter_grid_viewer_"))
    app_name = "viewer_app"
    app_pkg = tmp_dir / app_name
    app_pkg.mkdir()
    (app_pkg / "__init__.py").write_text("")
    (app_pkg / f"{app_name}.py").write_text(app_code)

    rxconfig_code = f"""import reflex as rx
config = rx.Config(app_name="{app_name}", frontend_port={port})
"""
    (tmp_dir / "rxconfig.py").write_text(rxconfig_code)

    typer.echo(f"Launching viewer for: {file}")
    typer.echo(f"Filter: {filter_type} | Limit: {limit or 'all'} | Port: {port}")

    os.chdir(tmp_dir)

    # reflex's CLI calls sys.exit() on completion, hence the subprocess.
    typer.echo("Initializing Reflex project...")
    subprocess.run(
        [sys.executable, "-m", "reflex", "init"],
        cwd=str(tmp_dir),
        check=True,
    )

    typer.echo("Starting viewer...")
    os.execvp(sys.executable, [sys.executable, "-m", "reflex", "run"])


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
