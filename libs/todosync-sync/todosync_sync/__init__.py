"""todosync sync - reconciliation engine, adapters and cycle scheduler."""

from todosync_sync.engine import (
    CycleOutcome,
    CycleReport,
    Direction,
    PassResult,
    ReplicaState,
    inspect_replicas,
    reconcile,
)
from todosync_sync.gitlog import GitSnapshotLog
from todosync_sync.ports import RemoteStore, SnapshotLog
from todosync_sync.scheduler import CycleScheduler, SchedulerStats

__all__ = [
    "reconcile",
    "inspect_replicas",
    "CycleOutcome",
    "CycleReport",
    "Direction",
    "PassResult",
    "ReplicaState",
    "RemoteStore",
    "SnapshotLog",
    "GitSnapshotLog",
    "CycleScheduler",
    "SchedulerStats",
]

__version__ = "0.1.0"
