"""Reconciliation engine: one two-pass cycle over remote, repository and local.

The repository copy is the reference for both comparisons. Pass order is part
of the contract:

  1) remote → repository → local  (commit "from remote")
  2) local  → repository → remote (commit "from local")

Because pass 2 runs after pass 1 unconditionally, a file edited both remotely
and locally in the same cycle ends up with the local content (two commits).

The repository copy only ever moves forward through a commit. A pass that
fails before its commit returns puts the repository files it touched back as
they were, so the next cycle detects the same edits again.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from todosync_core.errors import (
    CycleError,
    DataError,
    MissingRemoteError,
    SetupError,
    TodoSyncError,
)
from todosync_core.models import RemoteObject
from todosync_core.replica import LocalReplica

from todosync_sync.ports import RemoteStore, SnapshotLog

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_MESSAGE = "Push from mobile"
DEFAULT_LOCAL_MESSAGE = "Push from local"


class Direction(Enum):
    """Pass direction."""

    FROM_REMOTE = "remote"
    FROM_LOCAL = "local"


class CycleOutcome(Enum):
    """How a cycle ended."""

    OK = "ok"
    RETRYABLE = "retryable"  # cycle aborted; the next tick starts over
    FATAL = "fatal"  # setup problem; retrying will not help


@dataclass
class PassResult:
    """What one pass changed."""

    direction: Direction
    changes: list[str] = field(default_factory=list)
    snapshot: str | None = None
    # Files written to the far replica (local for pass 1, remote for pass 2)
    propagated: list[str] = field(default_factory=list)
    # Local copies restored from the repository (pass 2 only)
    restored: list[str] = field(default_factory=list)


@dataclass
class CycleReport:
    """Result of one reconcile() call."""

    remote_pass: PassResult = field(default_factory=lambda: PassResult(Direction.FROM_REMOTE))
    local_pass: PassResult = field(default_factory=lambda: PassResult(Direction.FROM_LOCAL))
    outcome: CycleOutcome = CycleOutcome.OK
    error: str | None = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is CycleOutcome.OK

    @property
    def snapshots(self) -> list[str]:
        """Snapshot ids in creation order."""
        return [p.snapshot for p in (self.remote_pass, self.local_pass) if p.snapshot]

    @property
    def changed(self) -> bool:
        return bool(
            self.remote_pass.changes or self.local_pass.changes or self.local_pass.restored
        )


@dataclass
class ReplicaState:
    """Fingerprints of one tracked file in the three replicas."""

    name: str
    remote: str | None
    repository: str | None
    local: str | None
    remote_id: str | None = None

    @property
    def pending(self) -> list[Direction]:
        """Passes that would act on this file in the next cycle."""
        out = []
        if self.remote_id is not None and self.remote != self.repository:
            out.append(Direction.FROM_REMOTE)
        local_changed = self.local != self.repository
        if out:
            # Pass 1 refreshes an untouched local copy; an edited one must
            # still differ from the remote content to matter.
            local_changed = local_changed and self.local != self.remote
        if local_changed:
            out.append(Direction.FROM_LOCAL)
        return out


def inspect_replicas(
    remote: RemoteStore,
    replica: LocalReplica,
    tracked: Sequence[str],
    *,
    repo_path: Path,
    local_dir: Path,
) -> list[ReplicaState]:
    """Read-only view of every tracked file's fingerprints."""
    by_name = {o["name"]: o for o in remote.list_by_name(tracked)}
    states = []
    for name in tracked:
        obj = by_name.get(name)
        states.append(
            ReplicaState(
                name=name,
                remote=remote.fingerprint_of(obj["id"]) if obj else None,
                repository=replica.fingerprint(repo_path / name),
                local=replica.fingerprint(local_dir / name),
                remote_id=obj["id"] if obj else None,
            )
        )
    return states


def _restore(
    replica: LocalReplica, repo_path: Path, originals: dict[str, bytes | None]
) -> None:
    """Put repository files back as they were before an uncommitted pass."""
    for name, data in originals.items():
        path = repo_path / name
        try:
            if data is None:
                replica.remove(path)
            else:
                replica.write(path, data)
        except TodoSyncError as e:
            logger.error(f"Could not restore repository copy of {name}: {e}")
        else:
            logger.info(f"Restored repository copy of {name}")


def _pull_remote(
    remote: RemoteStore,
    log: SnapshotLog,
    replica: LocalReplica,
    objects: Sequence[RemoteObject],
    repo_path: Path,
    local_dir: Path,
    message: str,
    result: PassResult,
) -> None:
    """Pass 1: remote → repository → local."""
    # Repository fingerprints before this pass overwrote anything
    previous: dict[str, str | None] = {}
    originals: dict[str, bytes | None] = {}

    try:
        for obj in objects:
            name = obj["name"]
            repo_file = repo_path / name
            remote_digest = remote.fingerprint_of(obj["id"])
            repo_digest = replica.fingerprint(repo_file)
            if remote_digest == repo_digest:
                logger.info(f"skip, no remote update: {name} {obj['id']}")
                continue

            logger.info(f"Changed remote file: {name}")
            data = remote.download(obj["id"])
            originals[name] = replica.read(repo_file)
            replica.write(repo_file, data)
            previous[name] = repo_digest
            result.changes.append(name)

        if not result.changes:
            return

        result.snapshot = log.commit(repo_path, list(result.changes), message)
    except Exception:
        _restore(replica, repo_path, originals)
        result.changes.clear()
        raise

    for name in result.changes:
        local_file = local_dir / name
        if replica.fingerprint(local_file) != previous[name]:
            # Local edit too: leave it for the local pass, which wins.
            logger.info(f"Local copy of {name} also changed; keeping it for the local pass")
            continue
        replica.copy(repo_path / name, local_file)
        result.propagated.append(name)


def _push_local(
    remote: RemoteStore,
    log: SnapshotLog,
    replica: LocalReplica,
    objects: Sequence[RemoteObject],
    tracked: Sequence[str],
    repo_path: Path,
    local_dir: Path,
    message: str,
    result: PassResult,
) -> None:
    """Pass 2: local → repository → remote."""
    originals: dict[str, bytes | None] = {}

    try:
        for name in tracked:
            local_file = local_dir / name
            repo_file = repo_path / name
            local_digest = replica.fingerprint(local_file)
            repo_digest = replica.fingerprint(repo_file)
            if local_digest == repo_digest:
                logger.info(f"skip, no local update: {name}")
                continue

            if local_digest is None:
                # Deletions are not propagated; bring the file back.
                logger.info(f"Local file missing, restoring from repository: {name}")
                replica.copy(repo_file, local_file)
                result.restored.append(name)
                continue

            logger.info(f"Changed local file: {name}")
            originals[name] = replica.read(repo_file)
            replica.copy(local_file, repo_file)
            result.changes.append(name)

        if not result.changes:
            return

        result.snapshot = log.commit(repo_path, list(result.changes), message)
    except Exception:
        _restore(replica, repo_path, originals)
        result.changes.clear()
        raise

    by_name = {obj["name"]: obj for obj in objects}
    for name in result.changes:
        obj = by_name.get(name)
        if obj is None:
            raise DataError("No remote file with this name", "upload", name)
        data = replica.read(repo_path / name)
        if data is None:
            raise DataError("Repository copy disappeared before upload", "upload", name)
        remote.upload(obj["id"], data)
        result.propagated.append(name)


def reconcile(
    remote: RemoteStore,
    log: SnapshotLog,
    replica: LocalReplica,
    tracked: Sequence[str],
    *,
    repo_path: Path,
    local_dir: Path,
    remote_message: str = DEFAULT_REMOTE_MESSAGE,
    local_message: str = DEFAULT_LOCAL_MESSAGE,
) -> CycleReport:
    """
    Run one reconciliation cycle and report what happened.

    Adapter failures abort the cycle immediately; commits made earlier in the
    same cycle stay. The failure is reported through CycleReport.outcome
    (RETRYABLE for CycleError, FATAL for SetupError) instead of raised.

    Args:
        remote: Remote object store
        log: Snapshot log for the repository
        replica: Local file accessor (repository and working directory)
        tracked: Tracked file names
        repo_path: Repository work tree
        local_dir: Local working directory
        remote_message: Commit message for remote → repository changes
        local_message: Commit message for local → repository changes

    Returns:
        CycleReport
    """
    report = CycleReport()
    try:
        objects = remote.list_by_name(tracked)
        if not objects:
            raise MissingRemoteError("No files found in remote store", "list")
        unknown = [o["name"] for o in objects if o["name"] not in tracked]
        if unknown:
            raise DataError(f"Remote listing returned untracked files: {unknown}", "list")
        names = [o["name"] for o in objects]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise DataError(f"Several remote files share a name: {duplicates}", "list")

        _pull_remote(
            remote, log, replica, objects, repo_path, local_dir, remote_message, report.remote_pass
        )
        _push_local(
            remote,
            log,
            replica,
            objects,
            tracked,
            repo_path,
            local_dir,
            local_message,
            report.local_pass,
        )
    except SetupError as e:
        logger.error(f"Cycle failed (fatal): {e}")
        report.outcome = CycleOutcome.FATAL
        report.error = str(e)
    except CycleError as e:
        logger.error(f"Cycle failed, will retry next tick: {e}")
        report.outcome = CycleOutcome.RETRYABLE
        report.error = str(e)
    finally:
        report.finished_at = datetime.now()

    return report
