"""GitClock Command Line Interface.

Usage:
    gitclock login           Authorize GitClock and create the log repository
    gitclock logout          Forget the stored access token
    gitclock watch [PATH]    Log working tree activity every interval
    gitclock sync [PATH]     Run a single scan-and-log tick
    gitclock scan [PATH]     Show what the next tick would log
    gitclock status          Show configuration and authentication state
    gitclock config          Manage configuration
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table
from typer import Argument, Option

from gitclock.config import Config, write_default_config
from gitclock.paths import paths

# Main app
app = typer.Typer(
    name="gitclock",
    help="GitClock - log uncommitted coding activity to a remote repository",
    add_completion=False,
    no_args_is_help=True,
)

config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()


def _get_version() -> str:
    """Get package version."""
    try:
        from importlib.metadata import version

        return version("gitclock")
    except Exception:  # noqa: BLE001
        return "0.0.0"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"GitClock version {_get_version()}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        Option("--version", "-V", callback=version_callback, is_eager=True, help="Show version"),
    ] = False,
    verbose: Annotated[
        bool,
        Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """GitClock - log uncommitted coding activity to a remote repository."""
    from gitclock.logging_setup import configure_logging

    config = Config.load()
    if verbose:
        config.general.log_level = "DEBUG"
    configure_logging(config.general)
    ctx.obj = config


def _config(ctx: typer.Context) -> Config:
    config = ctx.obj
    if not isinstance(config, Config):
        config = Config.load()
        ctx.obj = config
    return config


# =============================================================================
# Authentication Commands
# =============================================================================


@app.command()
def login(ctx: typer.Context) -> None:
    """Authorize GitClock with GitHub and create the log repository."""
    from gitclock.credentials import store_credential
    from gitclock.errors import AuthorizationError
    from gitclock.github import GitHubClient
    from gitclock.oauth import AuthorizationHandshake
    from gitclock.provisioning import ensure_repository_exists

    config = _config(ctx)
    console.print("[cyan]Opening GitHub login page...[/cyan]")
    console.print(f"[dim]Waiting for callback on {config.github.redirect_uri}[/dim]")

    try:
        token = AuthorizationHandshake(config.github).run()
        store_credential(token)
    except (AuthorizationError, RuntimeError) as e:
        console.print(f"[red]Login failed: {e}[/red]")
        raise typer.Exit(1)

    console.print("[green]GitHub login successful![/green]")

    with GitHubClient(token=token, config=config.github) as client:
        result = ensure_repository_exists(client, config.repository)

    if not result.ok:
        console.print(f"[red]Error checking repository: {result.message}[/red]")
        raise typer.Exit(1)
    if result.created:
        console.print(f"[green]Repository \"{result.full_name}\" created successfully.[/green]")
    else:
        console.print(f"Repository \"{result.full_name}\" exists.")


@app.command()
def logout() -> None:
    """Forget the stored access token."""
    from gitclock.credentials import delete_credential

    if delete_credential():
        console.print("[green]Logged out[/green]")
    else:
        console.print("[yellow]No stored access token found[/yellow]")


# =============================================================================
# Watch Commands
# =============================================================================


def _open_agent(ctx: typer.Context, path: Path | None, *, notify: bool):
    from gitclock.agent import create_agent
    from gitclock.errors import AuthorizationError, ScanUnavailable
    from gitclock.notifications import OutcomeNotifier

    config = _config(ctx)
    try:
        return create_agent(
            config,
            repo_path=path,
            on_outcome=OutcomeNotifier(config.notifications) if notify else None,
        )
    except (AuthorizationError, ScanUnavailable) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def watch(
    ctx: typer.Context,
    path: Annotated[
        Optional[Path],
        Argument(help="Working tree to watch (defaults to the current directory)"),
    ] = None,
    interval: Annotated[
        Optional[int], Option("--interval", "-i", help="Poll interval in seconds")
    ] = None,
) -> None:
    """Log working tree activity every interval until interrupted."""
    config = _config(ctx)
    if interval is not None:
        if interval <= 0:
            console.print("[red]--interval must be positive[/red]")
            raise typer.Exit(1)
        config.polling.interval_seconds = interval

    agent = _open_agent(ctx, path, notify=True)
    target = agent.provisioning.full_name or config.repository.name

    console.print(f"[cyan]Watching repository: {agent.repo_path}[/cyan]")
    console.print(f"[dim]Logging to {target}:{config.repository.log_path}[/dim]")
    console.print(f"[dim]Poll interval: {config.polling.interval_seconds}s[/dim]")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    agent.start()
    try:
        agent.scheduler.wait()
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped watching[/yellow]")
    finally:
        agent.close()


@app.command()
def sync(
    ctx: typer.Context,
    path: Annotated[
        Optional[Path],
        Argument(help="Working tree to scan (defaults to the current directory)"),
    ] = None,
) -> None:
    """Run a single scan-and-log tick."""
    from gitclock.scheduler import TickStatus

    agent = _open_agent(ctx, path, notify=False)
    try:
        outcome = agent.scheduler.run_once()
    finally:
        agent.close()

    if outcome.status is TickStatus.FAILED:
        console.print(f"[red]{outcome.summary()}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{outcome.summary()}[/green]")


@app.command()
def scan(
    ctx: typer.Context,
    path: Annotated[
        Optional[Path],
        Argument(help="Working tree to scan (defaults to the current directory)"),
    ] = None,
    json_output: Annotated[bool, Option("--json", "-j", help="JSON output")] = False,
) -> None:
    """Show the change records the next tick would log."""
    from gitclock.agent import resolve_repo_path
    from gitclock.errors import ScanUnavailable
    from gitclock.git_scan import WorkingTreeScanner
    from gitclock.log_document import format_changes

    config = _config(ctx)
    try:
        repo_path = resolve_repo_path(config, path)
    except ScanUnavailable as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    records = list(WorkingTreeScanner(repo_path, config=config.scan).scan())

    if json_output:
        console.print_json(
            json.dumps([{**asdict(r), "classification": r.classification.value} for r in records])
        )
        return

    if not records:
        console.print("[dim]No uncommitted changes[/dim]")
        return

    table = Table(title=str(repo_path), show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("Changes", justify="right")
    for record in records:
        table.add_row(record.path, record.classification.value, format_changes(record))
    console.print(table)


# =============================================================================
# Status Commands
# =============================================================================


@app.command()
def status(
    ctx: typer.Context,
    json_output: Annotated[bool, Option("--json", "-j", help="JSON output")] = False,
) -> None:
    """Show configuration and authentication state."""
    from gitclock.credentials import get_credential, get_keyring_backend_name

    config = _config(ctx)
    status_data = {
        "authenticated": get_credential(config.github) is not None,
        "keyring_backend": get_keyring_backend_name(),
        "repository": config.repository.name,
        "owner": config.repository.owner,
        "log_path": config.repository.log_path,
        "interval_seconds": config.polling.interval_seconds,
        "config_file": str(paths.config_file),
        "log_file": str(paths.log_path),
    }

    if json_output:
        console.print_json(json.dumps(status_data))
        return

    console.print("[bold cyan]GitClock Status[/bold cyan]\n")

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row(
        "Authenticated",
        "✓ yes" if status_data["authenticated"] else "✗ no (run `gitclock login`)",
    )
    table.add_row("Keyring", str(status_data["keyring_backend"]))
    owner = config.repository.owner or "[dim]authenticated user[/dim]"
    table.add_row("Repository", f"{owner}/{config.repository.name}")
    table.add_row("Log File", config.repository.log_path)
    table.add_row("Interval", f"{config.polling.interval_seconds}s")
    table.add_row("Config File", str(paths.config_file))

    console.print(table)


# =============================================================================
# Config Commands
# =============================================================================


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    json_output: Annotated[bool, Option("--json", "-j", help="JSON output")] = False,
) -> None:
    """Show current configuration."""
    config_data = _config(ctx).to_dict()

    if json_output:
        console.print_json(json.dumps(config_data))
        return

    table = Table(title="GitClock Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for section, values in config_data.items():
        if isinstance(values, dict):
            for key, value in values.items():
                table.add_row(
                    f"{section}.{key}",
                    str(value) if value is not None else "[dim]not set[/dim]",
                )
        else:
            table.add_row(section, str(values) if values is not None else "[dim]not set[/dim]")

    console.print(table)


@config_app.command("path")
def config_path() -> None:
    """Show configuration file path."""
    console.print(str(paths.config_file))


@config_app.command("init")
def config_init(
    force: Annotated[bool, Option("--force", "-f", help="Overwrite an existing file")] = False,
) -> None:
    """Write a default configuration file."""
    if paths.config_file.exists() and not force:
        console.print(f"[yellow]Config already exists at {paths.config_file}[/yellow]")
        raise typer.Exit(1)
    written = write_default_config(paths.config_file)
    console.print(f"[green]Created default config at {written}[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def main_cli() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main_cli()
