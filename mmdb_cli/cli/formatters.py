"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mmdb_cli.models.release import Release
from mmdb_cli.models.stats import AcquisitionStats
from mmdb_cli.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ResolutionError": [
            "• Check your internet connection.",
            "• Verify the repository URL (`repo_url`) in the configuration file.",
            "• GitHub may be rate-limiting you; try again in a few minutes.",
        ],
        "DownloadError": [
            "• The release may still be uploading its assets; retry later.",
            "• Use `--retries` to retry the whole update automatically.",
            "• Check free disk space in the cache directory.",
        ],
        "StorageError": [
            "• Check permissions on the cache directory.",
            "• Point `--cache-dir` or MMDB_CACHE_DIR at a writable location.",
        ],
        "LockError": [
            "• Another mmdb-cli process is updating the same cache.",
            "• Wait for it to finish, or pass `--no-lock` if none is running.",
        ],
        "ActivationError": [
            "• Run `mmdb-cli update` to download and activate a release.",
            "• Make sure the filesystem supports symbolic links.",
        ],
        "AcquisitionTimeoutError": [
            "• Increase `deadline` in the configuration file.",
            "• Check your internet speed.",
        ],
        "ConfigurationError": [
            "• Fix the reported value in the configuration file.",
            "• Run `mmdb-cli init --force` to write a fresh default file.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the effective configuration."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        if isinstance(value, (list, tuple)):
            value = ", ".join(value)
        elif value is None:
            value = "[dim]unset[/dim]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_paths(paths: list[Path], console: Console | None = None):
    """Prints one database path per line, without any decoration."""
    console = console or Console()
    for path in paths:
        console.print(str(path), markup=False, highlight=False, soft_wrap=True)


def print_releases_table(releases: list[Release], cache_root: Path):
    """Displays the releases present in the cache."""
    console = Console()
    if not releases:
        console.print(f"[dim]No releases cached in {cache_root}.[/dim]")
        return

    table = Table(title=f"Cached Releases ([dim]{cache_root}[/dim])", box=box.ROUNDED)
    table.add_column("Tag", style="cyan")
    table.add_column("Complete", justify="center")
    table.add_column("Active", justify="center")
    table.add_column("Size", justify="right", style="green")
    for release in releases:
        if release.complete:
            status = "[green]✓[/green]"
        else:
            missing = len(release.missing_files())
            status = f"[yellow]partial ({missing} missing)[/yellow]"
        table.add_row(
            release.tag,
            status,
            "[bold green]●[/bold green]" if release.active else "",
            format_size(release.size_bytes),
        )
    console.print(table)


def print_summary_panel(stats: AcquisitionStats, cache_root: Path, persistent: bool):
    """Displays the outcome of an update run."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=16)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("Release:", f"[bold]{stats.tag}[/bold]")
    if stats.was_cached:
        stats_table.add_row("Status:", "[green]✓ Already cached[/green]")
    else:
        stats_table.add_row(
            "✓ Downloaded:", f"[bold green]{stats.files_downloaded}[/bold green]"
        )
        if stats.files_skipped > 0:
            stats_table.add_row(
                "○ Skipped:", f"[yellow]{stats.files_skipped} (exists)[/yellow]"
            )
        stats_table.add_row("Size:", format_size(stats.bytes_downloaded))
    stats_table.add_row(
        "Activated:", "[green]yes[/green]" if stats.activated else "[dim]unchanged[/dim]"
    )
    stats_table.add_row("Duration:", format_duration(stats.duration))
    cache_label = str(cache_root)
    if not persistent:
        cache_label += " [yellow](temporary)[/yellow]"
    stats_table.add_row("Cache:", cache_label)

    console.print(
        Panel(
            stats_table,
            title="[bold green]Update Complete[/bold green]",
            border_style="green",
            expand=False,
        )
    )
