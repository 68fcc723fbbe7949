"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from mmdb_cli import __version__
from mmdb_cli.core.release_manager import ReleaseManager
from mmdb_cli.exceptions import ConfigurationError, MmdbCliError
from mmdb_cli.models.config import FeedConfig
from mmdb_cli.storage.config_manager import ConfigManager, default_config_file
from mmdb_cli.utils.structured_logger import create_structured_logger

from .formatters import (
    print_config,
    print_paths,
    print_releases_table,
    print_summary_panel,
)

console = Console()
err_console = Console(stderr=True)

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=err_console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("mmdb_cli")

app = typer.Typer(
    name="mmdb-cli",
    help=(
        "Keep the GeoLite2 databases from GitHub releases cached and current."
        " Use 'mmdb-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

RETRY_BASE_DELAY = 1.5


def _config_file(ctx: typer.Context) -> Path:
    if ctx.obj and ctx.obj.get("config_file"):
        return ctx.obj["config_file"]
    return default_config_file()


def _load_config(ctx: typer.Context, **cli_options) -> FeedConfig:
    return ConfigManager(_config_file(ctx)).load_config(cli_options)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the configuration file (default: ~/.config/mmdb-cli/config.ini).",
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the effective configuration."
    ),
):
    """mmdb-cli: GeoLite2 release cache"""
    if version:
        console.print(f"[bold]mmdb-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("mmdb_cli").setLevel(log_level)

    ctx.obj = {"config_file": config_file, "verbose": verbose}

    if show_config:
        config = _load_config(ctx)
        print_config(_config_file(ctx), config.model_dump())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    ctx: typer.Context,
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", help="Directory to keep downloaded releases in."
    ),
    repo: str | None = typer.Option(
        None, "--repo", help="Base URL of the GitHub repository publishing releases."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with default settings."""
    config_file = _config_file(ctx)
    if (
        config_file.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        key: value
        for key, value in {"cache_dir": cache_dir, "repo_url": repo}.items()
        if value is not None
    }
    # Validate before writing anything
    try:
        FeedConfig(**settings)
    except ValueError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e

    ConfigManager(config_file).save_new_config(settings)
    console.print(f"[bold green]✓ Configuration saved to '{config_file}'[/bold green]")


async def _ensure_with_retries(manager: ReleaseManager, retries: int) -> list[Path]:
    """Runs an acquisition, retrying the whole sequence with back-off."""
    attempts = retries + 1
    for attempt in range(1, attempts + 1):
        try:
            return await manager.ensure_latest()
        except ConfigurationError:
            raise
        except MmdbCliError as e:
            if attempt == attempts:
                raise
            delay = RETRY_BASE_DELAY * (2 ** (attempt - 1))
            log.warning(
                f"[yellow]Attempt {attempt}/{attempts} failed:[/yellow] {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)
    raise RuntimeError("Update loop exited unexpectedly.")


@app.command()
def update(
    ctx: typer.Context,
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", help="Directory to keep downloaded releases in."
    ),
    repo: str | None = typer.Option(
        None, "--repo", help="Base URL of the GitHub repository publishing releases."
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds."
    ),
    retries: int = typer.Option(
        0, "--retries", "-r", min=0, help="Retry the whole update N times on failure."
    ),
    no_lock: bool = typer.Option(
        False, "--no-lock", help="Do not take the cache-root lock."
    ),
    log_dir: Path | None = typer.Option(
        None, "--log-dir", help="Also write structured JSONL event logs here."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only print the database paths, one per line."
    ),
):
    """Download the latest release if needed and activate it."""
    if quiet:
        logging.getLogger("mmdb_cli").setLevel("WARNING")

    config = _load_config(
        ctx,
        cache_dir=cache_dir,
        repo_url=repo,
        timeout=timeout,
        use_lock=False if no_lock else None,
    )

    base_logger, events = create_structured_logger(
        log_dir=log_dir, enable_json=log_dir is not None
    )
    with base_logger:
        base_logger.set_session_context(version=__version__, repo_url=config.repo_url)
        manager = ReleaseManager(config, events=events)
        db_paths = asyncio.run(_ensure_with_retries(manager, retries))

    if quiet:
        for path in db_paths:
            typer.echo(str(path))
        return

    print_summary_panel(
        manager.stats, manager.cache.root_dir(), manager.cache.root.persistent
    )
    print_paths(db_paths, console)


@app.command()
def paths(
    ctx: typer.Context,
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", help="Directory the releases are kept in."
    ),
):
    """Print the active database paths without contacting the network."""
    config = _load_config(ctx, cache_dir=cache_dir)
    manager = ReleaseManager(config)
    for path in manager.active_paths():
        typer.echo(str(path))


@app.command(name="list")
def list_command(
    ctx: typer.Context,
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", help="Directory the releases are kept in."
    ),
):
    """Show the releases kept in the cache."""
    config = _load_config(ctx, cache_dir=cache_dir)
    manager = ReleaseManager(config)
    print_releases_table(manager.releases(), manager.cache.root_dir())
