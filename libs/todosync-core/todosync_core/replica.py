"""Whole-file access to the local working copy and the repository copy."""

import logging
from pathlib import Path

from todosync_core.digest import fingerprint_of_path
from todosync_core.errors import DataError, TransientError

logger = logging.getLogger(__name__)


class LocalReplica:
    """Read, write and fingerprint files on the local filesystem.

    Holds no state; the same instance serves the repository and the working
    directory. Parent directories are expected to exist.
    """

    def read(self, path: Path) -> bytes | None:
        """Return file content, or None if the file does not exist."""
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise TransientError(f"Can't read file: {e}", "read", str(path), e) from e

    def write(self, path: Path, data: bytes) -> None:
        """Replace the file content (created if absent)."""
        # Write atomically
        temp_path = path.parent / f".{path.name}.todosynctmp"
        try:
            temp_path.write_bytes(data)
            temp_path.replace(path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise TransientError(f"Can't write file: {e}", "write", str(path), e) from e
        logger.debug(f"Wrote {len(data)} bytes to {path}")

    def copy(self, src: Path, dest: Path) -> bytes:
        """Copy src over dest and return the copied bytes."""
        data = self.read(src)
        if data is None:
            raise DataError("Source file disappeared", "copy", str(src))
        self.write(dest, data)
        return data

    def remove(self, path: Path) -> None:
        """Delete the file if it exists."""
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise TransientError(f"Can't remove file: {e}", "remove", str(path), e) from e

    def fingerprint(self, path: Path) -> str | None:
        try:
            return fingerprint_of_path(path)
        except OSError as e:
            raise TransientError(f"Can't open file: {e}", "fingerprint", str(path), e) from e
