"""Data models for behavioral risk profiles."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum


class RiskLevel(str, Enum):
    MINIMAL = "MINIMAL"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_score(cls, score: float) -> "RiskLevel":
        """Bucket a 0-10 risk score."""
        if score >= 8:
            return cls.CRITICAL
        if score >= 6:
            return cls.HIGH
        if score >= 4:
            return cls.MEDIUM
        if score >= 2:
            return cls.LOW
        return cls.MINIMAL


class RecommendedAction(str, Enum):
    """Actions suggested to the (external) moderation-action component."""

    IMMEDIATE_REVIEW = "immediate_review"
    TEMPORARY_SUSPENSION = "temporary_suspension"
    ENHANCED_MONITORING = "enhanced_monitoring"
    CONTENT_RESTRICTION = "content_restriction"
    INCREASED_MONITORING = "increased_monitoring"
    CONTENT_REVIEW = "content_review"
    SPAM_FILTER = "spam_filter"
    NEW_USER_MONITORING = "new_user_monitoring"
    BOT_VERIFICATION = "bot_verification"
    INVESTIGATE_REPORTS = "investigate_reports"


FACTOR_WEIGHTS: dict[str, float] = {
    "account_age": 1.2,
    "post_frequency": 1.0,
    "report_history": 1.5,
    "content_violations": 2.0,
    "engagement_score": 0.8,
    "behavior_consistency": 1.3,
    "community_interaction": 1.1,
}


@dataclass
class RiskFactors:
    """Per-factor scores, each in [0, 10]."""

    account_age: float = 0.0
    post_frequency: float = 0.0
    report_history: float = 0.0
    content_violations: float = 0.0
    engagement_score: float = 0.0
    behavior_consistency: float = 0.0
    community_interaction: float = 0.0

    def weighted_total(self) -> float:
        total = sum(getattr(self, name) * weight for name, weight in FACTOR_WEIGHTS.items())
        return round(min(10.0, total), 2)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BehaviorSignals:
    """Auxiliary signals reported alongside the factors."""

    duplicate_ratio: float = 0.0
    spam_ratio: float = 0.0
    content_quality: float = 10.0
    bot_like_timing: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RiskProfile:
    """Result of analyzing one user's behavior. Not persisted by the engine."""

    user_id: str
    risk_score: float
    risk_level: RiskLevel
    factors: RiskFactors
    next_review_date: datetime
    signals: BehaviorSignals = field(default_factory=BehaviorSignals)
    recommendations: list[RecommendedAction] = field(default_factory=list)
    recent_post_count: int = 0
    report_count: int = 0
    warning_count: int = 0

    def summary(self) -> str:
        return f"{self.user_id}: {self.risk_level.value} ({self.risk_score:.1f}/10)"

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value,
            "factors": self.factors.to_dict(),
            "signals": self.signals.to_dict(),
            "recommendations": [r.value for r in self.recommendations],
            "next_review_date": self.next_review_date.isoformat(),
            "recent_post_count": self.recent_post_count,
            "report_count": self.report_count,
            "warning_count": self.warning_count,
        }
