"""Tests for moderation statistics and alerts."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from modkit.errors import DataFetchError
from modkit.risk import RiskLevel
from modkit.stats import generate_moderation_alerts, get_moderation_stats
from modkit.stats.aggregator import overall_risk, report_trend
from modkit.stores import PostRecord, ReportRecord, SnapshotStore, UserRecord

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _report(i, ago, status="pending", priority="medium") -> ReportRecord:
    return ReportRecord(
        id=f"r{i}", reporter_id="u9", reported_user_id="u1",
        created_at=NOW - ago, status=status, priority=priority,
    )


def _store(reports=(), posts=(), users=()) -> SnapshotStore:
    return SnapshotStore(users=users, posts=posts, reports=reports)


def _dashboard_store() -> SnapshotStore:
    reports = [
        _report(1, timedelta(hours=1)),
        _report(2, timedelta(hours=3), priority="urgent"),
        _report(3, timedelta(days=2), status="resolved"),
        _report(4, timedelta(days=10), status="resolved"),
    ]
    posts = [
        PostRecord(id=f"p{i}", author_id="u1", content="x", created_at=NOW,
                   status="flagged" if i < 2 else "approved")
        for i in range(5)
    ]
    users = [
        UserRecord(id="u1", created_at=NOW, warnings=[{"type": "banned", "is_active": True}]),
        UserRecord(id="u2", created_at=NOW, warnings=[{"type": "warning", "is_active": True}]),
        UserRecord(id="u3", created_at=NOW, risk_score=7.0),
    ]
    return _store(reports, posts, users)


def test_dashboard_snapshot():
    store = _dashboard_store()
    snapshot = get_moderation_stats(store, store, store, now=NOW)

    assert snapshot.pending_reports == 2
    assert snapshot.reports_today == 2
    assert snapshot.reports_this_week == 3
    assert snapshot.reports_this_month == 4
    assert snapshot.reports_previous_week == 1
    assert snapshot.daily_reports == [0, 0, 0, 0, 1, 0, 2]
    assert snapshot.trend_pct == 200.0
    assert snapshot.flagged_posts == 2
    assert snapshot.approved_posts == 3
    assert (snapshot.banned_users, snapshot.warned_users, snapshot.high_risk_users) == (1, 1, 1)
    assert snapshot.moderation_load == 4
    assert snapshot.risk_level == RiskLevel.LOW
    assert [a.priority for a in snapshot.alerts] == ["critical"]
    assert snapshot.generated_at == NOW


def test_snapshot_serializes():
    store = _dashboard_store()
    data = json.loads(json.dumps(get_moderation_stats(store, store, store, now=NOW).to_dict()))
    assert data["reports"]["pending"] == 2
    assert data["risk_level"] == "LOW"
    assert data["alerts"][0]["type"] == "error"


def test_empty_store():
    store = _store()
    snapshot = get_moderation_stats(store, store, store, now=NOW)
    assert snapshot.trend_pct == 0.0
    assert snapshot.risk_level == RiskLevel.MINIMAL
    assert snapshot.daily_reports == [0] * 7
    assert snapshot.alerts == []


def test_store_failure_propagates():
    class BrokenPosts(SnapshotStore):
        def count_posts(self, status):
            raise RuntimeError("connection reset")

    store = BrokenPosts()
    with pytest.raises(DataFetchError) as exc:
        get_moderation_stats(store, store, store, now=NOW)
    assert exc.value.source in ("flagged_posts", "approved_posts")


@pytest.mark.parametrize("week,prev,expected", [
    (0, 0, 0.0),
    (5, 0, 100.0),
    (5, 10, -50.0),
    (15, 10, 50.0),
])
def test_report_trend(week, prev, expected):
    assert report_trend(week, prev) == expected


@pytest.mark.parametrize("load,level", [
    (0, RiskLevel.MINIMAL),
    (5, RiskLevel.LOW),
    (20, RiskLevel.MEDIUM),
    (50, RiskLevel.HIGH),
    (100, RiskLevel.CRITICAL),
])
def test_overall_risk(load, level):
    assert overall_risk(load, 0, 0) == level


# -- alerts -------------------------------------------------------------------


def test_report_spike_alert():
    reports = [_report(i, timedelta(minutes=i + 1)) for i in range(21)]
    alerts = generate_moderation_alerts(_store(reports), now=NOW)
    assert [(a.type, a.priority, a.count) for a in alerts] == [("warning", "high", 21)]


def test_no_spike_at_threshold():
    reports = [_report(i, timedelta(minutes=i + 1)) for i in range(20)]
    assert generate_moderation_alerts(_store(reports), now=NOW) == []


def test_fresh_urgent_reports_do_not_alert():
    reports = [_report(1, timedelta(minutes=30), priority="urgent")]
    assert generate_moderation_alerts(_store(reports), now=NOW) == []


def test_escalation_backlog_alert():
    reports = [_report(i, timedelta(days=3), status="escalated") for i in range(6)]
    alerts = generate_moderation_alerts(_store(reports), now=NOW)
    assert [(a.type, a.priority, a.count) for a in alerts] == [("info", "medium", 6)]
