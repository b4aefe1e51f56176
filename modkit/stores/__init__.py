"""Read-only data access for risk profiling and moderation statistics."""

from modkit.stores.base import (
    ContentStore,
    PostRecord,
    ReportRecord,
    ReportStore,
    UserRecord,
    UserStore,
)
from modkit.stores.snapshot import SnapshotStore

__all__ = [
    "ContentStore",
    "PostRecord",
    "ReportRecord",
    "ReportStore",
    "SnapshotStore",
    "UserRecord",
    "UserStore",
]
