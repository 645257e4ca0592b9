"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from beatport_cli import __version__
from beatport_cli.core.accounts import authenticate_accounts
from beatport_cli.core.download_manager import DownloadManager
from beatport_cli.core.shutdown import ShutdownCoordinator
from beatport_cli.exceptions import BeatportCliError, ConfigurationError
from beatport_cli.media.downloader import close_connection_pool
from beatport_cli.models.config import QUALITY_MAP
from beatport_cli.storage.config_manager import ConfigManager
from beatport_cli.utils.error_log import attach_error_log, find_error_log_file
from beatport_cli.utils.path import create_dir

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_summary_panel,
    print_validation_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("beatport_cli")

app = typer.Typer(
    name="beatport-cli",
    help=(
        "A concurrent downloader for Beatport and Beatsource with multi-account"
        " failover. Use 'beatport-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "beatport-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def read_url_file(path: str) -> list[str]:
    """Reads a newline-delimited URL listing, ignoring blanks and '#' comments."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return [
                line.strip()
                for line in f
                if line.strip() and not line.lstrip().startswith("#")
            ]
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not read URL list '{path}': {e}") from e


def expand_sources(sources: list[str]) -> list[str]:
    """Replaces every '.txt' argument with the URLs listed in that file."""
    urls: list[str] = []
    for source in sources:
        if source.lower().endswith(".txt"):
            log.info(f"Reading URLs from file: [dim]{escape(source)}[/dim]")
            urls.extend(read_url_file(source))
        else:
            urls.append(source)
    return urls


async def prompt_for_urls() -> Optional[list[str]]:
    """Asks for the next batch. Returns None on end of input."""
    try:
        line = await asyncio.to_thread(
            console.input, "\n[bold cyan]Enter URLs or a .txt file:[/bold cyan] "
        )
    except EOFError:
        return None
    try:
        return expand_sources(line.split())
    except ConfigurationError as e:
        log.error(f"[red]{escape(str(e))}[/red]")
        return []


def _force_exit(code: int) -> None:
    console.show_cursor(True)
    console.print("\n[yellow]⚠️  Exiting.[/yellow]")
    os._exit(code)


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
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Beatport Downloader CLI"""
    if version:
        console.print(f"[bold]beatport-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("beatport_cli").setLevel(log_level)

    if show_config:
        try:
            config_data = ConfigManager(CONFIG_FILE).get_config_as_dict()
        except ConfigurationError as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    username: str = typer.Argument(..., help="Beatport username or email."),
    password: str = typer.Argument(..., help="Beatport password."),
    name: str = typer.Option(
        "main", "--name", "-n", help="Name of the account section to write."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing account without asking."
    ),
):
    """Add an account to the configuration (run again to add more accounts)."""
    config_manager = ConfigManager(CONFIG_FILE)
    try:
        existing = (
            config_manager.get_config_as_dict() if CONFIG_FILE.is_file() else {}
        )
        if (
            f"account:{name}" in existing
            and not force
            and not typer.confirm(f"Account '{name}' already exists. Overwrite it?")
        ):
            raise typer.Abort()
        config_manager.save_account(name, username, password)
    except ConfigurationError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Account '{name}' saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to download! Try: [cyan]beatport-cli download <URL>[/cyan]")


@app.command(name="download")
def download_command(
    urls: Optional[list[str]] = typer.Argument(  # noqa: B008
        None, help="Beatport/Beatsource URLs or paths to .txt files containing URLs."
    ),
    quit_after_batch: bool = typer.Option(
        False,
        "-q",
        "--quit",
        help="Quit after the first batch instead of prompting for more URLs.",
    ),
    global_workers: Optional[int] = typer.Option(
        None, "-g", "--global-workers", help="Number of URLs processed at once."
    ),
    download_workers: Optional[int] = typer.Option(
        None, "-w", "--download-workers", help="Number of simultaneous file downloads."
    ),
    quality: Optional[str] = typer.Option(
        None, "--quality", help=f"One of: {', '.join(QUALITY_MAP)}."
    ),
    directory: Optional[str] = typer.Option(
        None, "-d", "--directory", help="Directory downloads are written into."
    ),
):
    """Download tracks, releases, playlists and charts."""
    cli_options = {
        key: value
        for key, value in {
            "max_global_workers": global_workers,
            "max_download_workers": download_workers,
            "quality": quality,
            "downloads_directory": directory,
        }.items()
        if value is not None
    }

    try:
        sources = expand_sources(urls or [])
    except ConfigurationError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    async def _download_async():
        try:
            configs = ConfigManager(CONFIG_FILE).load_accounts(cli_options)
            if configs[0].write_error_log:
                attach_error_log(log, find_error_log_file(CONFIG_DIR))
            try:
                create_dir(Path(configs[0].downloads_directory).expanduser())
            except OSError as e:
                raise ConfigurationError(
                    f"Downloads directory is not writable: {e}"
                ) from e
            accounts = await authenticate_accounts(configs)
        except BeatportCliError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e

        active = await accounts.current()
        manager: Optional[DownloadManager] = None
        shutdown = ShutdownCoordinator(
            has_outstanding_work=lambda: bool(manager and manager.has_outstanding_work),
            exit_func=_force_exit,
        )
        manager = DownloadManager(
            active.config, accounts, shutdown=shutdown, console=console
        )

        shutdown.install()
        try:
            await manager.run(
                sources,
                quit_after_batch,
                prompt_for_urls,
                on_batch_done=lambda stats: print_summary_panel(stats, console),
            )
        finally:
            shutdown.uninstall()
            await close_connection_pool()
            await accounts.close()

    asyncio.run(_download_async())


@app.command()
def validate(
    login: bool = typer.Option(
        False, "--login", help="Also try to log in with every account."
    ),
):
    """Validate the current configuration."""
    try:
        configs = ConfigManager(CONFIG_FILE).load_accounts()
    except ConfigurationError as e:
        console.print(f"[red]✗ Configuration is invalid: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    print_validation_table(configs)

    if login:

        async def _check_logins():
            accounts = await authenticate_accounts(configs)
            try:
                console.print(
                    f"[green]✓ {len(accounts)}/{len(configs)} accounts logged in.[/green]"
                )
            finally:
                await accounts.close()

        try:
            asyncio.run(_check_logins())
        except BeatportCliError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
