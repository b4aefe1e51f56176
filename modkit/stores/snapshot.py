"""Snapshot-backed implementation of the user, content and report stores.

Loads a single JSON (or YAML) document of the form::

    {
      "users":   [{"id": "u1", "created_at": "2026-01-01T00:00:00Z", ...}],
      "posts":   [{"id": "p1", "author_id": "u1", "content": "...", ...}],
      "reports": [{"id": "r1", "reporter_id": "u2", "reported_user_id": "u1", ...}]
    }

Useful for offline analysis from the CLI and as the store in tests.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import yaml

from modkit.stores.base import (
    HIGH_RISK_SCORE,
    PostRecord,
    ReportRecord,
    UserRecord,
)


def _parse_time(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class SnapshotStore:
    """In-memory store implementing UserStore, ContentStore and ReportStore."""

    def __init__(
        self,
        users: Iterable[UserRecord] = (),
        posts: Iterable[PostRecord] = (),
        reports: Iterable[ReportRecord] = (),
    ) -> None:
        self._users = {u.id: u for u in users}
        self._posts = list(posts)
        self._reports = list(reports)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_file(cls, path: str | Path) -> "SnapshotStore":
        path = Path(path)
        text = path.read_text()
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "SnapshotStore":
        return cls(
            users=[cls._user_from_dict(d) for d in data.get("users", [])],
            posts=[cls._post_from_dict(d) for d in data.get("posts", [])],
            reports=[cls._report_from_dict(d) for d in data.get("reports", [])],
        )

    @staticmethod
    def _user_from_dict(d: dict) -> UserRecord:
        return UserRecord(
            id=str(d["id"]),
            created_at=_parse_time(d.get("created_at")),
            username=d.get("username", ""),
            warnings=list(d.get("warnings", [])),
            risk_score=float(d.get("risk_score", 0.0)),
        )

    @staticmethod
    def _post_from_dict(d: dict) -> PostRecord:
        return PostRecord(
            id=str(d["id"]),
            author_id=str(d["author_id"]),
            content=d.get("content", ""),
            created_at=_parse_time(d.get("created_at")),
            likes=int(d.get("likes", 0)),
            comments=int(d.get("comments", 0)),
            moderation_severity=int(d.get("moderation_severity", 0)),
            status=d.get("status", "approved"),
        )

    @staticmethod
    def _report_from_dict(d: dict) -> ReportRecord:
        return ReportRecord(
            id=str(d["id"]),
            reporter_id=str(d.get("reporter_id", "")),
            reported_user_id=str(d.get("reported_user_id", "")),
            created_at=_parse_time(d.get("created_at")),
            reason=d.get("reason", ""),
            status=d.get("status", "pending"),
            priority=d.get("priority", "medium"),
        )

    # ------------------------------------------------------------------
    # UserStore
    # ------------------------------------------------------------------

    def find_user(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    def count_users(self, status: str) -> int:
        if status == "banned":
            return sum(1 for u in self._users.values() if u.is_banned)
        if status == "warned":
            return sum(1 for u in self._users.values() if u.is_warned)
        if status == "high_risk":
            return sum(1 for u in self._users.values() if u.risk_score >= HIGH_RISK_SCORE)
        raise ValueError(f"Unknown user status: {status}")

    # ------------------------------------------------------------------
    # ContentStore
    # ------------------------------------------------------------------

    def find_posts(
        self, author_id: str, since: Optional[datetime] = None, limit: Optional[int] = None
    ) -> list[PostRecord]:
        posts = [
            p for p in self._posts
            if p.author_id == author_id and (since is None or p.created_at >= since)
        ]
        posts.sort(key=lambda p: p.created_at, reverse=True)
        return posts[:limit] if limit is not None else posts

    def count_posts(self, status: str) -> int:
        return sum(1 for p in self._posts if p.status == status)

    # ------------------------------------------------------------------
    # ReportStore
    # ------------------------------------------------------------------

    def find_reports(
        self,
        reported_user_id: Optional[str] = None,
        reporter_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[ReportRecord]:
        return [
            r for r in self._reports
            if (reported_user_id is None or r.reported_user_id == reported_user_id)
            and (reporter_id is None or r.reporter_id == reporter_id)
            and (since is None or r.created_at >= since)
        ]

    def count_reports(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> int:
        return sum(
            1 for r in self._reports
            if (status is None or r.status == status)
            and (priority is None or r.priority == priority)
            and (since is None or r.created_at >= since)
            and (until is None or r.created_at < until)
        )
