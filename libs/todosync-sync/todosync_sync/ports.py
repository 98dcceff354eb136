"""
Adapter interfaces consumed by the reconciliation engine.

Implementations:
- DriveStore: Google Drive v3 (todosync_sync.drive)
- GitSnapshotLog: git working tree (todosync_sync.gitlog)
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from todosync_core.models import RemoteObject


class RemoteStore(ABC):
    """Remote object store keyed by file name. Objects must already exist."""

    @abstractmethod
    def list_by_name(self, names: Iterable[str]) -> list[RemoteObject]:
        """Objects whose name is one of names, ordered by name.

        Raises MissingRemoteError when nothing matches.
        """

    @abstractmethod
    def fingerprint_of(self, object_id: str) -> str | None:
        """Content fingerprint from metadata only (no download)."""

    @abstractmethod
    def download(self, object_id: str) -> bytes:
        """Full object content."""

    @abstractmethod
    def upload(self, object_id: str, data: bytes) -> None:
        """Replace an existing object's content, keeping its metadata."""


class SnapshotLog(ABC):
    """Append-only log of committed file states."""

    @abstractmethod
    def commit(self, repo_path: Path, changed: list[str], message: str) -> str | None:
        """Stage the changed files (base names) and record one snapshot.

        Returns the snapshot id, or None when there was nothing to record.
        """
