"""Collaborator interfaces consumed by the risk profiler and stats aggregator.

The engine only reads through these protocols. Any account mutation that
follows from a risk profile is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

HIGH_RISK_SCORE = 6.0


def ensure_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


@dataclass
class UserRecord:
    """The slice of a user account the engine reads."""

    id: str
    created_at: datetime
    username: str = ""
    warnings: list[dict] = field(default_factory=list)  # {"type": "warning"|"suspension"|"banned", "is_active": bool}
    risk_score: float = 0.0

    def __post_init__(self) -> None:
        self.created_at = ensure_utc(self.created_at)

    def _active(self, kind: str) -> bool:
        return any(w.get("type") == kind and w.get("is_active", True) for w in self.warnings)

    @property
    def is_banned(self) -> bool:
        return self._active("banned")

    @property
    def is_warned(self) -> bool:
        return self._active("warning")


@dataclass
class PostRecord:
    """A post with the engagement and moderation data stored alongside it."""

    id: str
    author_id: str
    content: str
    created_at: datetime
    likes: int = 0
    comments: int = 0
    moderation_severity: int = 0
    status: str = "approved"  # approved | flagged | blocked | pending

    def __post_init__(self) -> None:
        self.created_at = ensure_utc(self.created_at)


@dataclass
class ReportRecord:
    """A user report about content or another user."""

    id: str
    reporter_id: str
    reported_user_id: str
    created_at: datetime
    reason: str = ""
    status: str = "pending"  # pending | reviewing | resolved | dismissed | escalated
    priority: str = "medium"  # low | medium | high | urgent

    def __post_init__(self) -> None:
        self.created_at = ensure_utc(self.created_at)


class UserStore(Protocol):
    def find_user(self, user_id: str) -> Optional[UserRecord]: ...

    def count_users(self, status: str) -> int:
        """Count users by moderation status: banned, warned or high_risk."""
        ...


class ContentStore(Protocol):
    def find_posts(
        self, author_id: str, since: Optional[datetime] = None, limit: Optional[int] = None
    ) -> list[PostRecord]:
        """Posts by *author_id*, newest first."""
        ...

    def count_posts(self, status: str) -> int: ...


class ReportStore(Protocol):
    def find_reports(
        self,
        reported_user_id: Optional[str] = None,
        reporter_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[ReportRecord]: ...

    def count_reports(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> int: ...
