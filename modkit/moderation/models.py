"""Data models for the content moderation system."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Category(str, Enum):
    """Detection categories, in pipeline order."""

    PROFANITY = "profanity"
    HATE_SPEECH = "hate_speech"
    SLUR = "slur"
    BULLYING = "bullying"
    SPAM = "spam"
    PERSONAL_INFO = "personal_info"
    QUALITY = "quality"


# Iteration order for results and issues; never derived from loaded data.
CATEGORY_ORDER: tuple[Category, ...] = tuple(Category)

CATEGORY_ISSUES: dict[Category, str] = {
    Category.PROFANITY: "Contains profanity",
    Category.HATE_SPEECH: "Contains hate speech",
    Category.SLUR: "Contains slurs",
    Category.BULLYING: "Contains bullying or harassment",
    Category.SPAM: "Appears to be spam",
    Category.PERSONAL_INFO: "Contains personal information that should be kept private",
}


@dataclass(frozen=True)
class ModerationConfig:
    """Per-call moderation options."""

    strict_mode: bool = False
    allow_mild_profanity: bool = False
    context_aware: bool = True  # allowed-context exemptions and the word-count gate
    personal_info_check: bool = True
    spam_check: bool = True


@dataclass
class MatchInfo:
    """A single rule hit, located in the original text."""

    word: str
    category: Category
    pattern: str  # rule id
    start: int = -1
    end: int = -1
    canonical: str = ""
    severity: int = 0

    @property
    def has_span(self) -> bool:
        return 0 <= self.start < self.end

    def to_dict(self) -> dict:
        return {
            "word": self.word,
            "category": self.category.value,
            "pattern": self.pattern,
            "start": self.start,
            "end": self.end,
            "canonical": self.canonical,
            "severity": self.severity,
        }


@dataclass
class CategoryResult:
    """Outcome of one detector."""

    detected: bool = False
    severity: int = 0
    matches: list[MatchInfo] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)  # quality and spam heuristics that fired

    def to_dict(self) -> dict:
        return {
            "detected": self.detected,
            "severity": self.severity,
            "matches": [m.to_dict() for m in self.matches],
            "notes": list(self.notes),
        }


@dataclass
class ModerationResult:
    """Result of moderating a single piece of content."""

    is_clean: bool = True
    should_block: bool = False
    should_flag: bool = False
    should_warn: bool = False
    severity: int = 0
    confidence: int = 0
    flags: dict[Category, CategoryResult] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)
    cleaned_content: str = ""

    @property
    def flagged_categories(self) -> list[Category]:
        return [c for c in CATEGORY_ORDER if c in self.flags and self.flags[c].detected]

    def flag(self, category: Category) -> CategoryResult:
        """Return the result for *category*, empty if it was never evaluated."""
        return self.flags.get(category) or CategoryResult()

    def to_dict(self) -> dict:
        return {
            "is_clean": self.is_clean,
            "should_block": self.should_block,
            "should_flag": self.should_flag,
            "should_warn": self.should_warn,
            "severity": self.severity,
            "confidence": self.confidence,
            "flags": {c.value: r.to_dict() for c, r in self.flags.items()},
            "issues": list(self.issues),
            "cleaned_content": self.cleaned_content,
        }


@dataclass
class BatchSummary:
    """Counts over a moderated batch."""

    total: int = 0
    blocked: int = 0
    flagged: int = 0
    clean: int = 0

    def summary(self) -> str:
        return (
            f"{self.total} item(s): {self.blocked} blocked, "
            f"{self.flagged} flagged, {self.clean} clean"
        )
