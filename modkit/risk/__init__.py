"""Behavioral risk profiling for users."""

from modkit.risk.models import (
    BehaviorSignals,
    RecommendedAction,
    RiskFactors,
    RiskLevel,
    RiskProfile,
)
from modkit.risk.profiler import RiskProfiler, analyze_user_behavior

__all__ = [
    "BehaviorSignals",
    "RecommendedAction",
    "RiskFactors",
    "RiskLevel",
    "RiskProfile",
    "RiskProfiler",
    "analyze_user_behavior",
]
