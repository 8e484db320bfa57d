"""Command-line interface for gitpoll."""

from pathlib import Path
from typing import List, Optional

import typer
from pydantic import SecretStr, ValidationError
from rich.console import Console
from rich.table import Table

from gitpoll.detection.filters import PathFilter
from gitpoll.exceptions import ConfigurationError, GitPollError
from gitpoll.log import configure_logging
from gitpoll.models import AuthConfig, ChangeType, CommitDiff, PollConfig, Settings
from gitpoll.poller import Poller

app = typer.Typer(
    name="gitpoll",
    help="Poll a remote Git repository and report file changes for every new commit",
    add_completion=False,
)
console = Console()

_CHANGE_STYLES = {
    ChangeType.CREATE: "green",
    ChangeType.UPDATE: "yellow",
    ChangeType.DELETE: "red",
    ChangeType.INIT: "blue",
}


def _build_config(
    remote: Optional[str],
    branch: Optional[str],
    directory: Optional[Path],
    interval: Optional[float],
    ssh_key: Optional[Path],
    username: Optional[str],
    password: Optional[str],
    include_ext: Optional[List[str]],
    exclude: Optional[List[str]],
    settings: Settings,
    **callbacks,
) -> PollConfig:
    overrides = dict(
        remote=remote,
        branch=branch,
        clone_directory=directory,
        interval=interval,
        **callbacks,
    )

    # Credentials given on the command line replace the environment's entirely
    if ssh_key or username or password:
        try:
            overrides["auth"] = AuthConfig(
                ssh_key=ssh_key,
                username=username,
                password=SecretStr(password) if password is not None else None,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid credentials: {e}") from e

    if include_ext or exclude:
        overrides["file_filter"] = PathFilter(
            included_extensions=include_ext or [],
            excluded_paths=[".git/"] + list(exclude or []),
        )

    return settings.to_poll_config(**overrides)


def _print_diff(diff: CommitDiff, as_json: bool) -> None:
    if as_json:
        console.print_json(data=diff.model_dump(mode="json"), indent=None)
        return

    if diff.is_init:
        console.print(
            f"\n[bold blue]Initial snapshot[/bold blue] at [cyan]{diff.to_commit.short_sha}[/cyan] "
            f"({len(diff.changes)} files)"
        )
        return

    console.print(
        f"\n[cyan]{diff.from_commit.short_sha}[/cyan] → [cyan]{diff.to_commit.short_sha}[/cyan] "
        f"{diff.to_commit.summary} [dim]by {diff.to_commit.author.name} "
        f"at {diff.to_commit.when:%Y-%m-%d %H:%M}[/dim]"
    )
    if not diff.changes:
        console.print("  [dim](no matching changes)[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Change", width=8)
    table.add_column("File", style="white")
    for change in diff.changes:
        style = _CHANGE_STYLES[change.change_type]
        table.add_row(f"[{style}]{change.change_type.value}[/{style}]", change.filepath)
    console.print(table)


@app.command()
def watch(
    remote: Optional[str] = typer.Argument(None, help="Remote repository URL (or GITPOLL_REMOTE)"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to poll (default: remote default)"),
    directory: Optional[Path] = typer.Option(None, "--directory", "-d", help="Clone directory (default: cwd)"),
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help="Polling interval in seconds"),
    ssh_key: Optional[Path] = typer.Option(None, "--ssh-key", help="SSH private key file"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Username for HTTP(S) remotes"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Password or token for HTTP(S) remotes"),
    include_ext: Optional[List[str]] = typer.Option(None, "--include-ext", help="Only report these extensions"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="Drop paths containing this fragment"),
    snapshot: bool = typer.Option(False, "--snapshot", help="Report every file once at startup"),
    as_json: bool = typer.Option(False, "--json", help="Print CommitDiffs as JSON"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (default: GITPOLL_LOG_LEVEL)"),
) -> None:
    """Poll a remote repository until interrupted."""
    settings = Settings()
    poller = None
    try:
        configure_logging(log_level or settings.log_level)

        def on_change(diff: CommitDiff) -> None:
            if diff.is_init and not snapshot:
                return
            _print_diff(diff, as_json)

        config = _build_config(
            remote, branch, directory, interval, ssh_key, username, password, include_ext, exclude,
            settings, on_change=on_change,
        )
        poller = Poller(config)

        console.print(f"[bold green]Watching:[/bold green] {config.remote}")
        console.print(f"[bold blue]Directory:[/bold blue] {config.clone_directory}")
        console.print(f"[bold blue]Interval:[/bold blue] {config.interval:g}s\n")

        poller.start()

    except KeyboardInterrupt:
        if poller is not None:
            poller.stop()
        console.print("\n[bold]Stopped.[/bold]")
    except GitPollError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def poll(
    remote: Optional[str] = typer.Argument(None, help="Remote repository URL (or GITPOLL_REMOTE)"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to poll (default: remote default)"),
    directory: Optional[Path] = typer.Option(None, "--directory", "-d", help="Clone directory (default: cwd)"),
    ssh_key: Optional[Path] = typer.Option(None, "--ssh-key", help="SSH private key file"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Username for HTTP(S) remotes"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Password or token for HTTP(S) remotes"),
    include_ext: Optional[List[str]] = typer.Option(None, "--include-ext", help="Only report these extensions"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="Drop paths containing this fragment"),
    as_json: bool = typer.Option(False, "--json", help="Print CommitDiffs as JSON"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (default: GITPOLL_LOG_LEVEL)"),
) -> None:
    """Clone (or open) the repository, poll once and print new commits."""
    settings = Settings()
    try:
        configure_logging(log_level or settings.log_level)

        config = _build_config(
            remote, branch, directory, None, ssh_key, username, password, include_ext, exclude, settings,
        )
        poller = Poller(config)
        poller.setup()
        diffs = poller.poll()

        for diff in diffs:
            _print_diff(diff, as_json)

        if not as_json:
            console.print(f"\n[bold green]✓[/bold green] {len(diffs)} new commits on {poller.branch}")

    except GitPollError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
