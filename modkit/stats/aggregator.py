"""Moderation dashboard statistics and operational alerts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from modkit.risk.models import RiskLevel
from modkit.stores.base import ContentStore, ReportStore, UserStore
from modkit.utils.concurrency import fan_out

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0
DAILY_BUCKETS = 7

# Alert thresholds
HOURLY_REPORT_SPIKE = 20
URGENT_REPORT_MAX_AGE = timedelta(hours=2)
ESCALATED_BACKLOG = 5


@dataclass
class ModerationAlert:
    type: str  # warning | error | info
    message: str
    priority: str  # low | medium | high | critical
    count: int = 0

    def to_dict(self) -> dict:
        return {"type": self.type, "message": self.message, "priority": self.priority, "count": self.count}


@dataclass
class StatsSnapshot:
    generated_at: datetime
    pending_reports: int = 0
    reports_today: int = 0
    reports_this_week: int = 0
    reports_this_month: int = 0
    reports_previous_week: int = 0
    daily_reports: list[int] = field(default_factory=list)  # oldest day first
    flagged_posts: int = 0
    approved_posts: int = 0
    banned_users: int = 0
    warned_users: int = 0
    high_risk_users: int = 0
    trend_pct: float = 0.0
    moderation_load: int = 0
    risk_level: RiskLevel = RiskLevel.MINIMAL
    alerts: list[ModerationAlert] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "generated_at": self.generated_at.isoformat(),
            "reports": {
                "pending": self.pending_reports,
                "today": self.reports_today,
                "this_week": self.reports_this_week,
                "this_month": self.reports_this_month,
                "previous_week": self.reports_previous_week,
                "daily": list(self.daily_reports),
                "trend_pct": self.trend_pct,
            },
            "content": {"flagged": self.flagged_posts, "approved": self.approved_posts},
            "users": {
                "banned": self.banned_users,
                "warned": self.warned_users,
                "high_risk": self.high_risk_users,
            },
            "moderation_load": self.moderation_load,
            "risk_level": self.risk_level.value,
            "alerts": [a.to_dict() for a in self.alerts],
        }


def report_trend(this_week: int, previous_week: int) -> float:
    """Week-over-week change in percent."""
    if previous_week == 0:
        return 100.0 if this_week > 0 else 0.0
    return round((this_week - previous_week) / previous_week * 100, 2)


def overall_risk(pending_reports: int, flagged_posts: int, high_risk_users: int) -> RiskLevel:
    load = pending_reports + flagged_posts + high_risk_users
    if load >= 100:
        return RiskLevel.CRITICAL
    if load >= 50:
        return RiskLevel.HIGH
    if load >= 20:
        return RiskLevel.MEDIUM
    if load >= 5:
        return RiskLevel.LOW
    return RiskLevel.MINIMAL


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def generate_moderation_alerts(
    report_store: ReportStore, *, now: Optional[datetime] = None
) -> list[ModerationAlert]:
    """Operational alerts for the moderation team."""
    now = now or datetime.now(timezone.utc)
    alerts: list[ModerationAlert] = []

    last_hour = report_store.count_reports(since=now - timedelta(hours=1))
    if last_hour > HOURLY_REPORT_SPIKE:
        alerts.append(ModerationAlert(
            type="warning",
            message=f"High report volume: {last_hour} reports in the last hour",
            priority="high",
            count=last_hour,
        ))

    stale_urgent = report_store.count_reports(
        status="pending", priority="urgent", until=now - URGENT_REPORT_MAX_AGE
    )
    if stale_urgent > 0:
        alerts.append(ModerationAlert(
            type="error",
            message=f"{stale_urgent} urgent reports pending for more than 2 hours",
            priority="critical",
            count=stale_urgent,
        ))

    escalated = report_store.count_reports(status="escalated")
    if escalated > ESCALATED_BACKLOG:
        alerts.append(ModerationAlert(
            type="info",
            message=f"{escalated} escalated reports need senior review",
            priority="medium",
            count=escalated,
        ))

    return alerts


def get_moderation_stats(
    content_store: ContentStore,
    report_store: ReportStore,
    user_store: UserStore,
    *,
    now: Optional[datetime] = None,
    fetch_timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT,
) -> StatsSnapshot:
    """Collect dashboard counts concurrently.

    Raises DataFetchError if any store read fails; a partial dashboard would
    misreport the moderation load.
    """
    now = now or datetime.now(timezone.utc)
    today = _start_of_day(now)
    week_ago = now - timedelta(days=7)

    calls = {
        "pending_reports": lambda: report_store.count_reports(status="pending"),
        "reports_today": lambda: report_store.count_reports(since=today),
        "reports_this_week": lambda: report_store.count_reports(since=week_ago),
        "reports_this_month": lambda: report_store.count_reports(since=now - timedelta(days=30)),
        "reports_previous_week": lambda: report_store.count_reports(
            since=now - timedelta(days=14), until=week_ago
        ),
        "flagged_posts": lambda: content_store.count_posts("flagged"),
        "approved_posts": lambda: content_store.count_posts("approved"),
        "banned_users": lambda: user_store.count_users("banned"),
        "warned_users": lambda: user_store.count_users("warned"),
        "high_risk_users": lambda: user_store.count_users("high_risk"),
        "alerts": lambda: generate_moderation_alerts(report_store, now=now),
    }
    for offset in range(DAILY_BUCKETS):
        day = today - timedelta(days=DAILY_BUCKETS - 1 - offset)
        calls[f"day_{offset}"] = (
            lambda day=day: report_store.count_reports(since=day, until=day + timedelta(days=1))
        )

    data = fan_out(calls, timeout=fetch_timeout)

    snapshot = StatsSnapshot(
        generated_at=now,
        pending_reports=data["pending_reports"],
        reports_today=data["reports_today"],
        reports_this_week=data["reports_this_week"],
        reports_this_month=data["reports_this_month"],
        reports_previous_week=data["reports_previous_week"],
        daily_reports=[data[f"day_{i}"] for i in range(DAILY_BUCKETS)],
        flagged_posts=data["flagged_posts"],
        approved_posts=data["approved_posts"],
        banned_users=data["banned_users"],
        warned_users=data["warned_users"],
        high_risk_users=data["high_risk_users"],
        alerts=data["alerts"],
    )
    snapshot.trend_pct = report_trend(snapshot.reports_this_week, snapshot.reports_previous_week)
    snapshot.moderation_load = snapshot.pending_reports + snapshot.flagged_posts
    snapshot.risk_level = overall_risk(
        snapshot.pending_reports, snapshot.flagged_posts, snapshot.high_risk_users
    )
    logger.debug(
        "Moderation stats: %d pending, %d flagged, risk %s",
        snapshot.pending_reports, snapshot.flagged_posts, snapshot.risk_level.value,
    )
    return snapshot
