"""Typer CLI entrypoint for coursekit."""

from __future__ import annotations

import asyncio
import csv
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from coursekit.artifacts import (
    QUIZ_QUESTION_TYPE,
    ProjectCreate,
    encode,
)
from coursekit.config import ConfigError, CoursekitConfig, load_config
from coursekit.errors import CoreError
from coursekit.interchange import (
    ImportResult,
    export_records,
    import_records,
    read_rows,
    write_rows,
)
from coursekit.storage import MigratingStorageAdapter, build_storage_adapter

app = typer.Typer(help="Coursekit CLI")
_CONSOLE = Console()
_LOGGING_CONFIGURED = False
_DEFAULT_CONFIG = Path(".coursekit") / "config.yaml"

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        file_okay=True,
        dir_okay=False,
        help="Path to coursekit config YAML/JSON file.",
    ),
]


def _configure_logging() -> None:
    """Configure Rich-backed logging once for CLI commands."""
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
    )
    _LOGGING_CONFIGURED = True


def _load_config_or_exit(config_file: Path) -> CoursekitConfig:
    """Load config, exiting with a readable message when invalid.

    Args:
        config_file: Config file path.

    Returns:
        Parsed configuration.

    Raises:
        Exit: With code 2 when config cannot be loaded.
    """
    try:
        return load_config(config_file)
    except ConfigError as exc:
        _CONSOLE.print(f"[bold red]Invalid config:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=2) from exc


def _adapter(config_file: Path) -> MigratingStorageAdapter:
    return build_storage_adapter(_load_config_or_exit(config_file).storage)


def _fail(exc: CoreError) -> typer.Exit:
    _CONSOLE.print(f"[bold red]{exc.code.value}:[/bold red] {escape(str(exc))}")
    return typer.Exit(code=1)


@app.command("projects")
def projects_command(config_file: ConfigOption = _DEFAULT_CONFIG) -> None:
    """List projects, most recently updated first."""
    _configure_logging()
    storage = _adapter(config_file)
    try:
        projects = asyncio.run(storage.get_projects())
    except CoreError as exc:
        raise _fail(exc) from exc
    table = Table(title="Projects", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="bold", no_wrap=True)
    table.add_column("Name")
    table.add_column("Owner", style="magenta")
    table.add_column("Updated")
    for project in projects:
        table.add_row(
            project.id, project.name, project.owner_id, project.updated_at.isoformat()
        )
    _CONSOLE.print(table)


@app.command("create-project")
def create_project_command(
    name: Annotated[str, typer.Argument(help="Project name.")],
    owner: Annotated[str, typer.Option(help="Owner user id.")],
    description: Annotated[
        str | None, typer.Option(help="Optional project description.")
    ] = None,
    config_file: ConfigOption = _DEFAULT_CONFIG,
) -> None:
    """Create a project and print its id."""
    _configure_logging()
    storage = _adapter(config_file)
    try:
        project = asyncio.run(
            storage.create_project(
                ProjectCreate(name=name, description=description, owner_id=owner)
            )
        )
    except CoreError as exc:
        raise _fail(exc) from exc
    _CONSOLE.print(f"[green]Created project[/green] {project.id}")


@app.command("import-csv")
def import_csv_command(
    path: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, help="Interchange CSV file.")
    ],
    project: Annotated[str, typer.Option(help="Target project id.")],
    user: Annotated[str, typer.Option(help="User recorded as creator.")],
    config_file: ConfigOption = _DEFAULT_CONFIG,
) -> None:
    """Import quiz questions from a CSV file into a project.

    Valid rows are saved; rejected rows are listed with their reason.

    Raises:
        Exit: Code 1 when the file cannot be read, any row was rejected or
            storage failed.
    """
    _configure_logging()
    storage = _adapter(config_file)
    try:
        rows = read_rows(path)
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        _CONSOLE.print(
            f"[bold red]Cannot read {escape(str(path))}:[/bold red] {escape(str(exc))}"
        )
        raise typer.Exit(code=1) from exc
    result = import_records(rows, project_id=project, created_by=user)
    try:
        asyncio.run(_save_imported(storage, result))
    except CoreError as exc:
        raise _fail(exc) from exc
    _CONSOLE.print(
        f"[green]Imported {len(result.artifacts)} question(s)[/green] into {project}"
    )
    if result.errors:
        table = Table(title="Rejected rows", show_header=True, header_style="bold red")
        table.add_column("Row", no_wrap=True)
        table.add_column("Code", style="yellow")
        table.add_column("Reason")
        for error in result.errors:
            table.add_row(str(error.row), error.code.value, error.message)
        _CONSOLE.print(table)
        raise typer.Exit(code=1)


@app.command("export-csv")
def export_csv_command(
    path: Annotated[Path, typer.Argument(dir_okay=False, help="Output CSV file.")],
    project: Annotated[str, typer.Option(help="Source project id.")],
    config_file: ConfigOption = _DEFAULT_CONFIG,
) -> None:
    """Export a project's quiz questions to a CSV file."""
    _configure_logging()
    storage = _adapter(config_file)
    try:
        questions = asyncio.run(storage.get_artifacts(project, QUIZ_QUESTION_TYPE))
        rows = export_records(questions)
    except CoreError as exc:
        raise _fail(exc) from exc
    write_rows(path, rows)
    _CONSOLE.print(f"[green]Exported {len(rows)} question(s)[/green] to {path}")


async def _save_imported(storage: MigratingStorageAdapter, result: ImportResult) -> None:
    for artifact in result.artifacts:
        await storage.save_artifact(encode(artifact))


def main() -> None:
    """Console script entrypoint."""
    app()
