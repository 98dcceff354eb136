"""Snapshot log backed by a git working tree (via the git executable)."""

import logging
import os
import subprocess
from pathlib import Path

from todosync_core.errors import DataError, SetupError, TransientError

from todosync_sync.ports import SnapshotLog

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 60


class GitSnapshotLog(SnapshotLog):
    """Commit changed files with a fixed author identity."""

    def __init__(self, author_name: str, author_email: str, *, git: str = "git"):
        self.author_name = author_name
        self.author_email = author_email
        self.git = git

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        env.update(
            {
                "GIT_AUTHOR_NAME": self.author_name,
                "GIT_AUTHOR_EMAIL": self.author_email,
                "GIT_COMMITTER_NAME": self.author_name,
                "GIT_COMMITTER_EMAIL": self.author_email,
            }
        )
        return env

    def _run(self, repo: Path, *args: str, operation: str) -> subprocess.CompletedProcess:
        """Run a git command in repo."""
        cmd = [self.git, *args]
        try:
            return subprocess.run(
                cmd,
                cwd=str(repo),
                env=self._env(),
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT,
            )
        except FileNotFoundError as e:
            # Either the executable or the repository directory is missing
            if not repo.is_dir():
                raise SetupError(f"Can't open repo {repo}", operation, None, e) from e
            raise SetupError(f"git executable not found: {self.git}", operation, None, e) from e
        except subprocess.TimeoutExpired as e:
            raise TransientError(f"git {args[0]} timed out", operation, None, e) from e

    def open(self, repo_path: Path) -> Path:
        """Return the work tree root; SetupError if repo_path is not a git work tree."""
        proc = self._run(repo_path, "rev-parse", "--show-toplevel", operation="open")
        if proc.returncode != 0:
            raise SetupError(
                f"Can't open repo {repo_path}: {proc.stderr.strip()}", "open", str(repo_path)
            )
        return Path(proc.stdout.strip())

    def commit(self, repo_path: Path, changed: list[str], message: str) -> str | None:
        if not changed:
            return None

        self.open(repo_path)

        names = []
        for filename in changed:
            name = Path(filename).name
            if not (repo_path / name).is_file():
                raise DataError("Can't add file to git: not in repository", "stage", name)
            proc = self._run(repo_path, "add", "--", name, operation="stage")
            if proc.returncode != 0:
                raise DataError(
                    f"Can't add file to git: {proc.stderr.strip()}", "stage", name
                )
            logger.info(f"Added file {name}")
            names.append(name)

        # Staged content identical to HEAD: git would refuse an empty commit
        proc = self._run(repo_path, "diff", "--cached", "--quiet", "--", *names, operation="diff")
        if proc.returncode == 0:
            logger.info("Nothing to commit")
            return None

        proc = self._run(
            repo_path, "commit", "--quiet", "-m", message, "--", *names, operation="commit"
        )
        if proc.returncode != 0:
            raise TransientError(
                f"Can't commit to git: {(proc.stderr or proc.stdout).strip()}", "commit"
            )

        proc = self._run(repo_path, "rev-parse", "HEAD", operation="commit")
        commit_id = proc.stdout.strip()
        logger.info(f"Committed with hash: {commit_id}")
        return commit_id
