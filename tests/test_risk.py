"""Tests for the user risk profiler."""

import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from modkit.moderation.patterns import build_library
from modkit.risk import RecommendedAction, RiskLevel, analyze_user_behavior
from modkit.risk.profiler import (
    score_account_age,
    score_behavior_consistency,
    score_community_interaction,
    score_content_violations,
    score_engagement,
    score_post_frequency,
)
from modkit.risk.signals import bot_like_timing, content_quality_score, duplicate_ratio
from modkit.stores import PostRecord, ReportRecord, SnapshotStore, UserRecord

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
LIBRARY = build_library()


def _user(user_id="u1", age=timedelta(days=400), **kwargs) -> UserRecord:
    return UserRecord(id=user_id, created_at=NOW - age, **kwargs)


def _post(i, author="u1", ago=None, content="just a normal post", **kwargs) -> PostRecord:
    return PostRecord(
        id=f"p{i}",
        author_id=author,
        content=content,
        created_at=NOW - (ago if ago is not None else timedelta(hours=i)),
        **kwargs,
    )


def _report(i, reporter="u2", reported="u1", ago=timedelta(days=1), status="pending") -> ReportRecord:
    return ReportRecord(
        id=f"r{i}", reporter_id=reporter, reported_user_id=reported, created_at=NOW - ago, status=status
    )


def _analyze(store, user_id="u1", **kwargs):
    return analyze_user_behavior(user_id, store, store, store, now=NOW, library=LIBRARY, **kwargs)


# -- profiles -----------------------------------------------------------------


def test_brand_new_user_is_high_risk():
    store = SnapshotStore(users=[_user(age=timedelta(hours=12))])
    profile = _analyze(store)

    assert profile.factors.account_age == 5
    assert profile.risk_score == 6.0
    assert profile.risk_level == RiskLevel.HIGH
    assert profile.recommendations == [
        RecommendedAction.ENHANCED_MONITORING,
        RecommendedAction.NEW_USER_MONITORING,
    ]
    assert profile.next_review_date == NOW + timedelta(days=3)


def test_established_quiet_user_is_minimal():
    profile = _analyze(SnapshotStore(users=[_user()]))
    assert profile.risk_score == 0.0
    assert profile.risk_level == RiskLevel.MINIMAL
    assert profile.recommendations == []
    assert profile.next_review_date == NOW + timedelta(days=30)


def test_heavily_reported_user_is_critical():
    reports = [_report(i, ago=timedelta(days=1, hours=i)) for i in range(6)]
    profile = _analyze(SnapshotStore(users=[_user()], reports=reports))

    assert profile.factors.report_history == 10
    assert profile.risk_score == 10.0
    assert profile.risk_level == RiskLevel.CRITICAL
    assert profile.recommendations == [
        RecommendedAction.IMMEDIATE_REVIEW,
        RecommendedAction.TEMPORARY_SUSPENSION,
        RecommendedAction.INVESTIGATE_REPORTS,
    ]
    assert profile.report_count == 6
    assert profile.next_review_date == NOW + timedelta(days=1)


def test_spam_bot_signals():
    posts = [
        _post(i, ago=timedelta(minutes=5 * (i + 1)), content="Click here to buy now")
        for i in range(12)
    ]
    profile = _analyze(SnapshotStore(users=[_user()], posts=posts))

    assert profile.signals.spam_ratio == 1.0
    assert profile.signals.duplicate_ratio == pytest.approx(11 / 12, abs=0.001)
    assert profile.signals.content_quality == 0.0
    assert profile.signals.bot_like_timing
    assert RecommendedAction.CONTENT_REVIEW in profile.recommendations
    assert RecommendedAction.SPAM_FILTER in profile.recommendations
    assert RecommendedAction.BOT_VERIFICATION in profile.recommendations
    assert profile.recent_post_count == 12


def test_counts_and_serialization():
    user = _user(warnings=[{"type": "warning", "is_active": True}])
    posts = [_post(i) for i in range(3)]
    profile = _analyze(SnapshotStore(users=[user], posts=posts, reports=[_report(0)]))

    assert profile.recent_post_count == 3
    assert profile.report_count == 1
    assert profile.warning_count == 1

    data = json.loads(json.dumps(profile.to_dict()))
    assert data["risk_level"] == profile.risk_level.value
    assert set(data["factors"]) == {
        "account_age", "post_frequency", "report_history", "content_violations",
        "engagement_score", "behavior_consistency", "community_interaction",
    }


def test_unknown_user_returns_none():
    assert _analyze(SnapshotStore(users=[_user()]), user_id="ghost") is None


class _BrokenStore(SnapshotStore):
    def find_posts(self, author_id, since=None, limit=None):
        raise RuntimeError("database unavailable")


class _SlowStore(SnapshotStore):
    def find_reports(self, reported_user_id=None, reporter_id=None, since=None):
        time.sleep(0.5)
        return []


def test_fetch_failure_returns_none(caplog):
    store = _BrokenStore(users=[_user()])
    assert _analyze(store) is None
    assert "database unavailable" in caplog.text


def test_fetch_timeout_returns_none():
    store = _SlowStore(users=[_user()])
    assert _analyze(store, fetch_timeout=0.05) is None


# -- factors ------------------------------------------------------------------


@pytest.mark.parametrize("age,expected", [
    (timedelta(hours=2), 5),
    (timedelta(days=3), 3),
    (timedelta(days=20), 2),
    (timedelta(days=60), 1),
    (timedelta(days=365), 0),
])
def test_account_age(age, expected):
    assert score_account_age(_user(age=age), NOW) == expected


def test_post_frequency_volume_and_bursts():
    spread = [_post(i, ago=timedelta(hours=3 * i)) for i in range(25)]
    assert score_post_frequency(spread) == 2

    burst = [
        PostRecord(id=f"b{i}", author_id="u1", content="x",
                   created_at=datetime(2026, 3, 1, 9, i, tzinfo=timezone.utc))
        for i in range(12)
    ]
    assert score_post_frequency(burst) == 3

    assert score_post_frequency([]) == 0


def test_content_violations():
    posts = [_post(i, moderation_severity=5) for i in range(4)]
    assert score_content_violations(posts) == 4
    heavy = [_post(i, moderation_severity=30) for i in range(4)]
    assert score_content_violations(heavy) == 10


def test_engagement():
    ignored = [_post(i) for i in range(11)]
    assert score_engagement(ignored) == 3
    assert score_engagement(ignored[:10]) == 0
    popular = [_post(i, likes=5) for i in range(11)]
    assert score_engagement(popular) == 0


def test_behavior_consistency():
    same_hour = [
        PostRecord(id=f"c{i}", author_id="u1", content="same length",
                   created_at=datetime(2026, 2, 20 + i, 9, 0, tzinfo=timezone.utc))
        for i in range(5)
    ]
    assert score_behavior_consistency(same_hour) == 1
    assert score_behavior_consistency(same_hour[:4]) == 0


def test_community_interaction():
    mostly_dismissed = [_report(i, reporter="u1", status="dismissed") for i in range(5)]
    mostly_dismissed.append(_report(9, reporter="u1"))
    assert score_community_interaction(mostly_dismissed) == 3

    busy = [_report(i, reporter="u1") for i in range(12)]
    assert score_community_interaction(busy) == 2

    abusive = [_report(i, reporter="u1", status="dismissed") for i in range(25)]
    assert score_community_interaction(abusive) == 8


@pytest.mark.parametrize("score,level", [
    (10, RiskLevel.CRITICAL),
    (8, RiskLevel.CRITICAL),
    (7.99, RiskLevel.HIGH),
    (6, RiskLevel.HIGH),
    (4, RiskLevel.MEDIUM),
    (2, RiskLevel.LOW),
    (1.99, RiskLevel.MINIMAL),
])
def test_risk_level_buckets(score, level):
    assert RiskLevel.from_score(score) == level


# -- signals ------------------------------------------------------------------


def test_duplicate_ratio():
    contents = ["buy cheap watches today", "buy cheap watches today", "totally different words here"]
    assert duplicate_ratio(contents) == pytest.approx(1 / 3)
    assert duplicate_ratio(["only one"]) == 0.0


def test_bot_like_timing():
    regular = [NOW - timedelta(minutes=5 * i) for i in range(12)]
    assert bot_like_timing(regular)
    assert not bot_like_timing(regular[:5])

    irregular = [NOW - timedelta(minutes=i * i * 7) for i in range(12)]
    assert not bot_like_timing(irregular)


def test_content_quality_score():
    assert content_quality_score(0, 0) == 10
    assert content_quality_score(0.5, 0.5) == 4
    assert content_quality_score(1, 1) == 0
