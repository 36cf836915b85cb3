"""
Command line interface for building, serving and inspecting rendered projects.
"""

from __future__ import annotations

import logging
import os
import warnings
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from . import __version__
from .build import BuildReport, run_build
from .config import DEFAULT_CONFIG_FILENAME, ConfigError, ProjectConfig, get_settings, load_config
from .errors import HydrationMismatchWarning, SsrError
from .hydrate import hydrate_project
from .render import RenderMode, inject, load, render
from .server import create_app, create_renderer
from .util import ImportStringError, call_tree_factory, load_tree_factory

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(help="Build, serve and inspect server-rendered component trees.")
logger = logging.getLogger(__name__)

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


def _configure_logging(level_name: str) -> None:
    env_override = os.getenv("SSRKIT_LOG_LEVEL")
    level_str = (env_override or level_name or "info").upper()
    if level_str not in {lvl.upper() for lvl in LOG_LEVELS}:
        level_str = "INFO"
    logging.basicConfig(
        level=getattr(logging, level_str, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.debug("Logging configured at %s", level_str)


def _resolve_config_path(value: Optional[Path]) -> Path:
    """Fall back to SSRKIT_CONFIG, then ./ssrkit.toml; ensure the file exists."""
    candidate = value or get_settings().config_path or Path(DEFAULT_CONFIG_FILENAME)
    resolved = candidate.expanduser().resolve()
    if not resolved.exists():
        raise typer.BadParameter(f"No config file found at {resolved}")
    if not resolved.is_file():
        raise typer.BadParameter(f"Config path must be a file, got directory: {resolved}")
    return resolved


def _load_config_or_exit(path: Path) -> ProjectConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        err_console.print(f"[bold red]Configuration error:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _print_build_report(report: BuildReport) -> None:
    table = Table(title="Build Summary")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key, value in report.summary_rows():
        table.add_row(key, value)
    console.print(table)


ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help=f"Path to the project TOML file (defaults to $SSRKIT_CONFIG or ./{DEFAULT_CONFIG_FILENAME}).",
    callback=_resolve_config_path,
)


@app.callback(invoke_without_command=True)
def _root_command(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show ssrkit version and exit.",
        is_flag=True,
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        help="Logging level (critical, error, warning, info, debug).",
        show_default=True,
        case_sensitive=False,
    ),
) -> None:
    """
    Default command when no subcommand is selected.
    """
    _configure_logging(log_level)

    if version:
        console.print(f"[bold green]ssrkit[/] {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(
            "[bold yellow]ssrkit[/] is ready. Run [cyan]ssrkit build[/] or [cyan]ssrkit serve[/] "
            f"next to a {DEFAULT_CONFIG_FILENAME}.",
        )


@app.command()
def build(config: Path = ConfigOption) -> None:
    """
    Render the tree statically into the output directory, replacing the previous build.
    """
    logger.info("Loading configuration from %s", config)
    project = _load_config_or_exit(config)
    try:
        report = run_build(project)
    except ConfigError as exc:
        err_console.print(f"[bold red]Configuration error:[/] {exc}")
        raise typer.Exit(code=1) from exc
    except SsrError as exc:
        err_console.print(f"[bold red]Build failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    _print_build_report(report)
    console.print("[bold green]Build complete.[/]")


@app.command()
def serve(
    config: Path = ConfigOption,
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind (overrides [server].host)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on (overrides [server].port)."),
) -> None:
    """
    Serve GET / through the request renderer and everything else from the output directory.
    """
    project = _load_config_or_exit(config)
    settings = get_settings()
    bind_host = host or settings.host or project.server.host
    bind_port = port or settings.port or project.server.port
    try:
        application = create_app(project)
    except (ConfigError, SsrError) as exc:
        err_console.print(f"[bold red]Cannot start server:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[bold green]Serving[/] {project.tree_factory} on http://{bind_host}:{bind_port}")
    uvicorn.run(application, host=bind_host, port=bind_port)


@app.command("render")
def render_command(
    config: Path = ConfigOption,
    mode: RenderMode = typer.Option(RenderMode.INTERACTIVE, "--mode", "-m", help="Render mode."),
    fragment: bool = typer.Option(False, "--fragment", help="Print the markup without the shell."),
) -> None:
    """
    Print the rendered document (or bare fragment) to stdout.
    """
    project = _load_config_or_exit(config)
    try:
        factory = load_tree_factory(project.tree_factory, app_dir=project.base_dir)
        markup = render(call_tree_factory(factory), mode, max_depth=project.max_depth)
        output = markup if fragment else inject(load(project.shell_path, project.marker), markup)
    except ImportStringError as exc:
        err_console.print(f"[bold red]Configuration error:[/] {exc}")
        raise typer.Exit(code=1) from exc
    except SsrError as exc:
        err_console.print(f"[bold red]Render failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(output)


@app.command("check-shell")
def check_shell(config: Path = ConfigOption) -> None:
    """
    Validate that the configured shell contains the marker exactly once.
    """
    project = _load_config_or_exit(config)
    try:
        shell = load(project.shell_path, project.marker)
    except SsrError as exc:
        err_console.print(f"[bold red]Shell invalid:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[bold green]Shell OK:[/] {shell.path} contains {shell.marker} once.")


@app.command("check-hydration")
def check_hydration(
    config: Path = ConfigOption,
    document: Optional[Path] = typer.Option(
        None,
        "--document",
        "-d",
        help="Delivered HTML to hydrate (defaults to a fresh interactive render).",
    ),
) -> None:
    """
    Hydrate a delivered document against the configured tree and list any mismatches.
    """
    project = _load_config_or_exit(config)
    try:
        if document is not None:
            markup = document.read_text(encoding="utf-8")
        else:
            markup = create_renderer(project).render_document()
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", HydrationMismatchWarning)
            hydrated = hydrate_project(markup, project)
    except OSError as exc:
        err_console.print(f"[bold red]Cannot read document:[/] {exc}")
        raise typer.Exit(code=1) from exc
    except ConfigError as exc:
        err_console.print(f"[bold red]Configuration error:[/] {exc}")
        raise typer.Exit(code=1) from exc
    except SsrError as exc:
        err_console.print(f"[bold red]Hydration failed:[/] {exc}")
        raise typer.Exit(code=1) from exc

    if not hydrated.mismatches:
        console.print(f"[bold green]Hydration OK:[/] #{project.root_id} matches the tree.")
        return
    table = Table(title="Hydration Mismatches")
    table.add_column("Path", overflow="fold")
    table.add_column("Expected", overflow="fold")
    table.add_column("Found", overflow="fold")
    table.add_column("Action")
    for mismatch in hydrated.mismatches:
        table.add_row(mismatch.path, mismatch.expected, mismatch.found, mismatch.action)
    console.print(table)
    raise typer.Exit(code=1)


@app.command("config-hash")
def config_hash(config: Path = ConfigOption) -> None:
    """
    Output the deterministic hash of a config file for change detection.
    """
    project = _load_config_or_exit(config)
    console.print(f"[bold green]{project.hash}[/]")


def main() -> None:
    """
    Entry-point used by the console script defined in pyproject.toml.
    """
    app()
