"""todosync core - fingerprints, local replica access, configuration and errors."""

from todosync_core.config import load_config
from todosync_core.digest import compute_fingerprint, fingerprint_of_path
from todosync_core.errors import (
    ConfigError,
    CycleError,
    DataError,
    MissingRemoteError,
    SetupError,
    TodoSyncError,
    TransientError,
)
from todosync_core.models import RemoteObject, SyncConfig
from todosync_core.replica import LocalReplica

__all__ = [
    "compute_fingerprint",
    "fingerprint_of_path",
    "load_config",
    "LocalReplica",
    "RemoteObject",
    "SyncConfig",
    # errors
    "TodoSyncError",
    "SetupError",
    "ConfigError",
    "MissingRemoteError",
    "CycleError",
    "TransientError",
    "DataError",
]

__version__ = "0.1.0"
