"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from beatport_cli.models.config import AppConfig, get_quality_info
from beatport_cli.models.stats import BatchStats
from beatport_cli.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Verify the username and password of each account.",
            "• Run `beatport-cli validate` to check the configuration.",
            "• Check your subscription status on beatport.com.",
        ],
        "NoAccountsError": [
            "• None of the configured accounts could log in.",
            "• Add a working account with `beatport-cli init`.",
            "• Check the `proxy` setting if you use one.",
        ],
        "ConfigurationError": [
            "• Run `beatport-cli --show-config` to inspect the file.",
            "• Re-create the account with `beatport-cli init --force`.",
        ],
        "RateLimitError": [
            "• The store is throttling requests.",
            "• Reduce `--download-workers` or add another account.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• The store API might be temporarily unavailable.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, dict[str, str]]):
    """Displays the current configuration, hiding passwords."""
    console = Console()
    lines = []
    for section, values in config_data.items():
        lines.append(f"[bold cyan][{escape(section)}][/bold cyan]")
        for key, value in values.items():
            if key == "password":
                value = "[hidden]"
            lines.append(f"{key} = {escape(value)}")
        lines.append("")

    console.print(
        Panel(
            "\n".join(lines).strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(configs: list[AppConfig]):
    """Displays a summary of the validated settings of every account."""
    console = Console()
    first = configs[0]

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Accounts:", ", ".join(c.account_name for c in configs))
    table.add_row("Quality:", get_quality_info(first.quality)["name"])
    table.add_row("Global Workers:", str(first.max_global_workers))
    table.add_row("Download Workers:", str(first.max_download_workers))
    table.add_row("Downloads Directory:", f"[dim]{first.downloads_directory}[/dim]")
    table.add_row("Output Template:", f"[dim]{escape(first.output_template)}[/dim]")
    table.add_row("Proxy:", first.proxy or "[dim]none[/dim]")
    table.add_row("Tags:", "✓ Enabled" if first.write_tags else "✗ Disabled")
    table.add_row("Error Log:", "✓ Enabled" if first.write_error_log else "✗ Disabled")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_summary_panel(stats: BatchStats, console: Console | None = None):
    """Displays the summary of one finished batch."""
    console = console or Console()
    duration_s = stats.duration

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "URLs:",
        f"[green]{stats.jobs_completed - stats.jobs_failed}[/green]/{stats.jobs_total} ok",
    )
    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{stats.tracks_downloaded}[/bold green]"
    )

    skip_sections = []
    if stats.tracks_skipped_exists > 0:
        skip_sections.append(f"[yellow]{stats.tracks_skipped_exists} (exists)[/yellow]")
    if stats.tracks_skipped_duplicate > 0:
        skip_sections.append(
            f"[yellow]{stats.tracks_skipped_duplicate} (duplicate)[/yellow]"
        )
    if stats.tracks_skipped_cancelled > 0:
        skip_sections.append(
            f"[yellow]{stats.tracks_skipped_cancelled} (interrupted)[/yellow]"
        )
    if skip_sections:
        stats_table.add_row("○ Skipped:", " + ".join(skip_sections))

    if stats.tracks_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.tracks_failed}[/bold red]")
    if stats.account_rotations > 0:
        stats_table.add_row(
            "🔁 Account Switches:", f"[yellow]{stats.account_rotations}[/yellow]"
        )

    stats_table.add_row("", "")
    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"
    )
    avg_speed = stats.total_size_downloaded / duration_s if duration_s > 0 else 0
    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
    )
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")
    stats_table.add_row(
        "Peak Concurrent:", f"[green]{stats.peak_concurrent_downloads}[/green]"
    )

    if stats.jobs_failed:
        title = "⚠ [bold]Batch Finished With Errors[/bold]"
        border_color = "yellow"
    else:
        title = "🎵 [bold]Download Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
