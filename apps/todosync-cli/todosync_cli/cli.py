"""todosync CLI commands."""

import logging
import shutil
import signal
import threading
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from todosync_core import LocalReplica, SyncConfig, load_config
from todosync_core.errors import SetupError, TodoSyncError
from todosync_sync import (
    CycleOutcome,
    CycleReport,
    CycleScheduler,
    Direction,
    GitSnapshotLog,
    RemoteStore,
    inspect_replicas,
    reconcile,
)

# Initialize
app = typer.Typer(help="todosync - keep todo.txt/done.txt in sync across Drive, git and a local folder")
console = Console()

# Configure logging (default to WARNING; commands raise it as needed)
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

EXIT_CODES = {CycleOutcome.OK: 0, CycleOutcome.RETRYABLE: 1, CycleOutcome.FATAL: 2}

ConfigOpt = typer.Option(None, "--config", "-c", help="Path to todosync.yaml")
RepoOpt = typer.Option(None, "--repo", help="Git repository holding the tracked files")
LocalOpt = typer.Option(None, "--local", help="Local working directory")
FilesOpt = typer.Option(None, "--file", "-f", help="Tracked file name (repeatable)")


def _set_log_level(level: int) -> None:
    logging.getLogger().setLevel(level)
    for name in ("todosync_core", "todosync_sync", "todosync_cli"):
        logging.getLogger(name).setLevel(level)


def _load(
    config: Path | None,
    repo: Path | None,
    local: Path | None,
    files: list[str] | None,
    interval: float | None = None,
) -> SyncConfig:
    try:
        return load_config(
            config,
            {
                "repo_path": repo,
                "local_dir": local,
                "tracked_files": list(files) if files else None,
                "poll_interval": interval,
            },
        )
    except SetupError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e


def make_remote_store(config: SyncConfig, *, interactive: bool = False) -> RemoteStore:
    """Drive-backed remote store for config (heavy imports stay lazy)."""
    from todosync_cli.gauth import build_drive_service
    from todosync_sync.drive import DriveStore

    return DriveStore(build_drive_service(config, interactive=interactive))


def _check_dirs(cfg: SyncConfig) -> None:
    for label, path in (("Repository", cfg.repo_path), ("Local directory", cfg.local_dir)):
        if not path.is_dir():
            console.print(f"[red]Error: {label} not found at {path}[/red]")
            raise typer.Exit(2)


def _run_cycle(cfg: SyncConfig, remote: RemoteStore) -> CycleReport:
    return reconcile(
        remote,
        GitSnapshotLog(cfg.author_name, cfg.author_email),
        LocalReplica(),
        cfg.tracked_files,
        repo_path=cfg.repo_path,
        local_dir=cfg.local_dir,
        remote_message=cfg.remote_message,
        local_message=cfg.local_message,
    )


def _render_report(report: CycleReport) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Pass")
    table.add_column("Changed")
    table.add_column("Commit")
    table.add_column("Propagated")
    for p in (report.remote_pass, report.local_pass):
        details = ", ".join(p.propagated) or "-"
        if p.restored:
            details += f" (restored locally: {', '.join(p.restored)})"
        table.add_row(
            f"from {p.direction.value}",
            ", ".join(p.changes) or "-",
            (p.snapshot or "-")[:12],
            details,
        )
    console.print(table)
    if report.ok:
        if report.changed:
            console.print("[green][OK] Cycle completed[/green]")
        else:
            console.print("[dim]No changes.[/dim]")
    elif report.outcome is CycleOutcome.RETRYABLE:
        console.print(f"[yellow][WARN] Cycle aborted, retry later:[/yellow] {report.error}")
    else:
        console.print(f"[red][ERROR] Cycle failed:[/red] {report.error}")


def _connect(cfg: SyncConfig) -> RemoteStore:
    try:
        return make_remote_store(cfg)
    except SetupError as e:
        console.print(f"[red]Unable to connect to Google Drive:[/red] {e}")
        raise typer.Exit(2) from e


@app.command()
def once(
    config: Path | None = ConfigOpt,
    repo: Path | None = RepoOpt,
    local: Path | None = LocalOpt,
    file: list[str] | None = FilesOpt,
    debug: bool = typer.Option(False, "--debug", help="Verbose logging"),
):
    """Run a single reconciliation cycle."""
    _set_log_level(logging.DEBUG if debug else logging.WARNING)
    cfg = _load(config, repo, local, file)
    _check_dirs(cfg)
    remote = _connect(cfg)

    report = _run_cycle(cfg, remote)
    _render_report(report)
    code = EXIT_CODES[report.outcome]
    if code:
        raise typer.Exit(code)


@app.command()
def run(
    config: Path | None = ConfigOpt,
    repo: Path | None = RepoOpt,
    local: Path | None = LocalOpt,
    file: list[str] | None = FilesOpt,
    interval: float | None = typer.Option(None, "--interval", "-i", help="Seconds between cycles"),
    cycles: int | None = typer.Option(None, "--cycles", help="Stop after N cycles"),
    keep_going: bool = typer.Option(
        True, "--keep-going/--fail-fast", help="Retry failed cycles on the next tick"
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging"),
):
    """Reconcile on a fixed interval until interrupted."""
    _set_log_level(logging.DEBUG if debug else logging.INFO)
    cfg = _load(config, repo, local, file, interval)
    _check_dirs(cfg)
    remote = _connect(cfg)

    stop = threading.Event()

    def _request_stop(signum, frame):
        logger.info(f"Signal {signum} received; stopping after the current cycle")
        stop.set()

    previous = {sig: signal.signal(sig, _request_stop) for sig in (signal.SIGINT, signal.SIGTERM)}

    scheduler = CycleScheduler(
        lambda: _run_cycle(cfg, remote),
        cfg.poll_interval,
        stop=stop,
        keep_going=keep_going,
        max_cycles=cycles,
    )
    console.print(
        f"[cyan]Syncing {', '.join(cfg.tracked_files)} every {cfg.poll_interval:g}s[/cyan]\n"
        f"  repo: {cfg.repo_path}\n  local: {cfg.local_dir}"
    )
    try:
        outcome = scheduler.run()
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    s = scheduler.stats
    console.print(
        f"Cycles: [bold]{s.cycles}[/bold]   commits: [bold]{s.snapshots}[/bold]   "
        f"failed cycles: [bold]{s.failures}[/bold]"
    )
    code = EXIT_CODES[outcome]
    if code:
        console.print(f"[red][ERROR] Stopped:[/red] {s.last_error}")
        raise typer.Exit(code)


@app.command()
def status(
    config: Path | None = ConfigOpt,
    repo: Path | None = RepoOpt,
    local: Path | None = LocalOpt,
    file: list[str] | None = FilesOpt,
):
    """Show fingerprints of every tracked file in the three replicas."""
    cfg = _load(config, repo, local, file)
    _check_dirs(cfg)
    remote = _connect(cfg)
    try:
        states = inspect_replicas(
            remote,
            LocalReplica(),
            cfg.tracked_files,
            repo_path=cfg.repo_path,
            local_dir=cfg.local_dir,
        )
    except SetupError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2) from e
    except TodoSyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(show_header=True, header_style="bold")
    table.add_column("File")
    table.add_column("Remote")
    table.add_column("Repository")
    table.add_column("Local")
    table.add_column("Next cycle")

    def _short(d: str | None) -> str:
        return d[:10] if d else "[dim]absent[/dim]"

    for st in states:
        pending = st.pending
        if not pending:
            action = "[dim]in sync[/dim]"
        else:
            labels = {Direction.FROM_REMOTE: "pull remote", Direction.FROM_LOCAL: "push local"}
            action = " → ".join(labels[d] for d in pending)
        table.add_row(st.name, _short(st.remote), _short(st.repository), _short(st.local), action)
    console.print(table)


@app.command()
def doctor(
    config: Path | None = ConfigOpt,
    repo: Path | None = RepoOpt,
    local: Path | None = LocalOpt,
    file: list[str] | None = FilesOpt,
):
    """Check configuration, directories and credentials and report issues."""
    cfg = _load(config, repo, local, file)
    issues = []
    warnings = []

    if shutil.which("git") is None:
        issues.append("git executable not found on PATH")
    elif not cfg.repo_path.is_dir():
        issues.append(f"Repository not found at {cfg.repo_path}")
    else:
        try:
            GitSnapshotLog(cfg.author_name, cfg.author_email).open(cfg.repo_path)
        except SetupError as e:
            issues.append(str(e))
        for name in cfg.tracked_files:
            if not (cfg.repo_path / name).exists():
                warnings.append(f"{name} not in repository yet (created on first cycle)")

    if not cfg.local_dir.is_dir():
        issues.append(f"Local directory not found at {cfg.local_dir}")

    if cfg.service_account_file is not None:
        if not cfg.service_account_file.exists():
            issues.append(f"Service account file not found: {cfg.service_account_file}")
    elif not cfg.token_file.exists():
        if cfg.credentials_file.exists():
            warnings.append("No cached OAuth token; run 'todosync auth'")
        else:
            issues.append(f"OAuth client secret not found: {cfg.credentials_file}")

    # Report
    if issues:
        console.print("[red]Issues found:[/red]")
        for issue in issues:
            console.print(f"  [X] {issue}")

    if warnings:
        console.print("[yellow]Warnings:[/yellow]")
        for warning in warnings:
            console.print(f"  [!] {warning}")

    if not issues and not warnings:
        console.print("[green][OK] todosync configuration looks good![/green]")

    raise typer.Exit(0 if not issues else 1)


@app.command()
def auth(
    config: Path | None = ConfigOpt,
):
    """Authorize Google Drive access and cache the token."""
    from todosync_cli.gauth import get_credentials

    try:
        cfg = load_config(config, {"repo_path": Path("."), "local_dir": Path(".")})
        get_credentials(cfg, interactive=True)
    except SetupError as e:
        console.print(f"[red]Authorization failed:[/red] {e}")
        raise typer.Exit(2) from e
    console.print("[green][OK][/green] Google Drive credentials are ready")


if __name__ == "__main__":
    app()
