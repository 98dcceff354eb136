"""Error taxonomy for todosync.

Two families matter to callers:

  • SetupError: the process cannot work at all (bad config or credentials,
    missing repository or remote files). Fatal.
  • CycleError: the current cycle failed but the next tick may succeed.
    The unit of retry is the whole cycle.
"""


class TodoSyncError(Exception):
    """Base exception carrying the failing operation and file."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        filename: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.filename = filename
        self.cause = cause

    def __str__(self) -> str:
        msg = super().__str__()
        ctx = []
        if self.operation:
            ctx.append(f"operation={self.operation}")
        if self.filename:
            ctx.append(f"file={self.filename}")
        if ctx:
            msg = f"{msg} ({', '.join(ctx)})"
        return msg


class SetupError(TodoSyncError):
    """Unrecoverable configuration or environment problem."""

    pass


class ConfigError(SetupError):
    """Configuration is missing or invalid."""

    pass


class MissingRemoteError(SetupError):
    """No remote object matches the tracked file names."""

    pass


class CycleError(TodoSyncError):
    """Failure confined to the current cycle."""

    pass


class TransientError(CycleError):
    """I/O failure that may succeed on the next cycle (network, locked file)."""

    pass


class DataError(CycleError):
    """A replica is not in the expected shape (file vanished, not staged)."""

    pass
