"""Moderation dashboard statistics."""

from modkit.stats.aggregator import (
    ModerationAlert,
    StatsSnapshot,
    generate_moderation_alerts,
    get_moderation_stats,
)

__all__ = [
    "ModerationAlert",
    "StatsSnapshot",
    "generate_moderation_alerts",
    "get_moderation_stats",
]
