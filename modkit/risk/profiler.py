"""User risk profiler -- weighted behavioral risk score from a user's history.

Seven factors, each scored 0-10, are combined with fixed weights into a
total capped at 10:

=====================  ======  ==============================================
factor                 weight  signal
=====================  ======  ==============================================
account_age            1.2     brand-new accounts
post_frequency         1.0     posting volume and single-hour bursts
report_history         1.5     reports filed against the user
content_violations     2.0     stored moderation severity of recent posts
engagement_score       0.8     prolific posting nobody engages with
behavior_consistency   1.3     erratic post length, robotic or erratic hours
community_interaction  1.1     filing many reports that get dismissed
=====================  ======  ==============================================

The profiler only reads. Acting on a profile (warn, suspend, ban) is left to
the caller.
"""

from __future__ import annotations

import logging
import statistics
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from modkit.errors import DataFetchError
from modkit.moderation.patterns import PatternLibrary, build_library
from modkit.risk.models import (
    BehaviorSignals,
    RecommendedAction,
    RiskFactors,
    RiskLevel,
    RiskProfile,
)
from modkit.risk.signals import compute_signals
from modkit.stores.base import ContentStore, PostRecord, ReportRecord, ReportStore, UserRecord, UserStore
from modkit.utils.concurrency import fan_out

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0
RECENT_POST_LIMIT = 100
REPORT_WINDOW = timedelta(days=30)
ACTIVITY_WINDOW = timedelta(days=7)
MIN_POSTS_FOR_CONSISTENCY = 5
LOW_QUALITY_SCORE = 3.0
HIGH_SPAM_RATIO = 0.3
RECENT_REPORTS_TO_INVESTIGATE = 3


def _clamp(value: float) -> float:
    return max(0.0, min(10.0, float(value)))


# ---------------------------------------------------------------------------
# Factors
# ---------------------------------------------------------------------------


def score_account_age(user: UserRecord, now: datetime) -> float:
    days = (now - user.created_at).total_seconds() / 86400
    if days < 1:
        return 5.0
    if days < 7:
        return 3.0
    if days < 30:
        return 2.0
    if days < 90:
        return 1.0
    return 0.0


def score_post_frequency(week_posts: Sequence[PostRecord]) -> float:
    count = len(week_posts)
    score = 0.0
    if count > 50:
        score = 4.0
    elif count > 30:
        score = 3.0
    elif count > 20:
        score = 2.0
    elif count > 15:
        score = 1.0

    if week_posts:
        per_hour = Counter(
            p.created_at.replace(minute=0, second=0, microsecond=0) for p in week_posts
        )
        busiest = max(per_hour.values())
        if busiest > 10:
            score += 3.0
        elif busiest > 5:
            score += 1.0
    return _clamp(score)


def score_report_history(reports: Sequence[ReportRecord], now: datetime) -> float:
    recent = sum(1 for r in reports if now - r.created_at <= ACTIVITY_WINDOW)
    return _clamp(min(2 * len(reports), 10) + 3 * recent)


def score_content_violations(posts: Sequence[PostRecord]) -> float:
    total = sum(max(0, p.moderation_severity) for p in posts)
    return _clamp(min(total / 5, 10))


def score_engagement(posts: Sequence[PostRecord]) -> float:
    if len(posts) <= 10:
        return 0.0
    average = sum(p.likes + p.comments for p in posts) / len(posts)
    if average < 0.5:
        return 3.0
    if average < 1:
        return 2.0
    if average < 2:
        return 1.0
    return 0.0


def score_behavior_consistency(posts: Sequence[PostRecord]) -> float:
    if len(posts) < MIN_POSTS_FOR_CONSISTENCY:
        return 0.0
    score = 0.0

    lengths = [len(p.content or "") for p in posts]
    mean_length = statistics.fmean(lengths)
    if statistics.pvariance(lengths) > mean_length ** 2:
        score += 2.0

    hours = [p.created_at.hour for p in posts]
    hour_variance = statistics.pvariance(hours)
    if hour_variance < 2:
        score += 1.0  # bot-like
    elif hour_variance > 10:
        score += 1.0  # erratic
    return _clamp(score)


def score_community_interaction(filed: Sequence[ReportRecord]) -> float:
    count = len(filed)
    score = 0.0
    if count > 10:
        score += 2.0
    if count > 20:
        score += 3.0
    if count >= 5:
        dismissed = sum(1 for r in filed if r.status == "dismissed")
        if dismissed / count > 0.7:
            score += 3.0
    return _clamp(score)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


def recommend(
    total: float,
    factors: RiskFactors,
    signals: BehaviorSignals,
    recent_reports: int = 0,
) -> list[RecommendedAction]:
    actions: list[RecommendedAction] = []

    if total >= 8:
        actions.append(RecommendedAction.IMMEDIATE_REVIEW)
        if factors.report_history >= 8:
            actions.append(RecommendedAction.TEMPORARY_SUSPENSION)
    elif total >= 6:
        actions.append(RecommendedAction.ENHANCED_MONITORING)
        if factors.content_violations >= 6:
            actions.append(RecommendedAction.CONTENT_RESTRICTION)
    elif total >= 4:
        actions.append(RecommendedAction.INCREASED_MONITORING)

    if signals.content_quality < LOW_QUALITY_SCORE:
        actions.append(RecommendedAction.CONTENT_REVIEW)
        if signals.spam_ratio > HIGH_SPAM_RATIO:
            actions.append(RecommendedAction.SPAM_FILTER)

    if factors.account_age >= 3:
        actions.append(RecommendedAction.NEW_USER_MONITORING)

    if signals.bot_like_timing:
        actions.append(RecommendedAction.BOT_VERIFICATION)

    if recent_reports >= RECENT_REPORTS_TO_INVESTIGATE:
        actions.append(RecommendedAction.INVESTIGATE_REPORTS)

    return actions


def next_review_date(total: float, now: datetime) -> datetime:
    if total >= 8:
        days = 1
    elif total >= 6:
        days = 3
    elif total >= 4:
        days = 7
    elif total >= 2:
        days = 14
    else:
        days = 30
    return now + timedelta(days=days)


# ---------------------------------------------------------------------------
# Profiler
# ---------------------------------------------------------------------------


class RiskProfiler:
    """Computes RiskProfiles from the user, content and report stores."""

    def __init__(
        self,
        user_store: UserStore,
        content_store: ContentStore,
        report_store: ReportStore,
        library: Optional[PatternLibrary] = None,
        fetch_timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self.users = user_store
        self.content = content_store
        self.reports = report_store
        self.library = library or build_library()
        self.fetch_timeout = fetch_timeout

    def _fetch(self, user_id: str, now: datetime) -> dict:
        return fan_out(
            {
                "user": lambda: self.users.find_user(user_id),
                "week_posts": lambda: self.content.find_posts(user_id, since=now - ACTIVITY_WINDOW),
                "recent_posts": lambda: self.content.find_posts(user_id, limit=RECENT_POST_LIMIT),
                "reports_against": lambda: self.reports.find_reports(
                    reported_user_id=user_id, since=now - REPORT_WINDOW
                ),
                "reports_filed": lambda: self.reports.find_reports(
                    reporter_id=user_id, since=now - REPORT_WINDOW
                ),
            },
            timeout=self.fetch_timeout,
        )

    def analyze(self, user_id: str, now: Optional[datetime] = None) -> Optional[RiskProfile]:
        """Profile *user_id*. Returns None if the user is unknown or data is unavailable."""
        now = now or datetime.now(timezone.utc)
        try:
            data = self._fetch(user_id, now)
        except DataFetchError as e:
            logger.warning("Risk analysis for %s skipped: %s", user_id, e)
            return None

        user: Optional[UserRecord] = data["user"]
        if user is None:
            logger.debug("Risk analysis for %s skipped: user not found", user_id)
            return None

        week_posts = list(data["week_posts"] or [])
        recent_posts = list(data["recent_posts"] or [])
        reports_against = list(data["reports_against"] or [])
        reports_filed = list(data["reports_filed"] or [])

        factors = RiskFactors(
            account_age=score_account_age(user, now),
            post_frequency=score_post_frequency(week_posts),
            report_history=score_report_history(reports_against, now),
            content_violations=score_content_violations(recent_posts),
            engagement_score=score_engagement(recent_posts),
            behavior_consistency=score_behavior_consistency(recent_posts),
            community_interaction=score_community_interaction(reports_filed),
        )
        signals = compute_signals(recent_posts, self.library)
        total = factors.weighted_total()
        recent_reports = sum(1 for r in reports_against if now - r.created_at <= ACTIVITY_WINDOW)

        profile = RiskProfile(
            user_id=user_id,
            risk_score=total,
            risk_level=RiskLevel.from_score(total),
            factors=factors,
            signals=signals,
            recommendations=recommend(total, factors, signals, recent_reports),
            next_review_date=next_review_date(total, now),
            recent_post_count=len(week_posts),
            report_count=len(reports_against),
            warning_count=len(user.warnings),
        )
        logger.debug("Risk profile %s", profile.summary())
        return profile


def analyze_user_behavior(
    user_id: str,
    user_store: UserStore,
    content_store: ContentStore,
    report_store: ReportStore,
    *,
    now: Optional[datetime] = None,
    fetch_timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT,
    library: Optional[PatternLibrary] = None,
) -> Optional[RiskProfile]:
    """Profile one user. ``None`` means "skip", never "error"."""
    if library is None:
        from modkit.moderation.moderator import default_library

        library = default_library()
    profiler = RiskProfiler(
        user_store, content_store, report_store, library=library, fetch_timeout=fetch_timeout
    )
    return profiler.analyze(user_id, now=now)
