"""Rule-based content moderation.

This package provides:
- Normalization: canonical text forms resistant to obfuscation
- Pattern library: categorized rules, whitelist and personal-info validators
- Detectors: per-category matching against all text forms
- Moderator: decision rules, redaction and batch processing
"""

from modkit.moderation.models import (
    BatchSummary,
    Category,
    CategoryResult,
    MatchInfo,
    ModerationConfig,
    ModerationResult,
)
from modkit.moderation.moderator import (
    ContentModerator,
    filter_personal_info,
    moderate_content,
    moderate_content_batch,
    summarize_batch,
)

__all__ = [
    "BatchSummary",
    "Category",
    "CategoryResult",
    "ContentModerator",
    "MatchInfo",
    "ModerationConfig",
    "ModerationResult",
    "filter_personal_info",
    "moderate_content",
    "moderate_content_batch",
    "summarize_batch",
]
