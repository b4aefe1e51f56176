"""modkit: rule-based content moderation and user risk profiling."""

__version__ = "0.3.0"

from modkit.moderation import (  # noqa: E402
    ContentModerator,
    ModerationConfig,
    ModerationResult,
    filter_personal_info,
    moderate_content,
    moderate_content_batch,
)
from modkit.risk import RiskProfile, analyze_user_behavior  # noqa: E402
from modkit.stats import StatsSnapshot, get_moderation_stats  # noqa: E402

__all__ = [
    "ContentModerator",
    "ModerationConfig",
    "ModerationResult",
    "RiskProfile",
    "StatsSnapshot",
    "analyze_user_behavior",
    "filter_personal_info",
    "get_moderation_stats",
    "moderate_content",
    "moderate_content_batch",
]
