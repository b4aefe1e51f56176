"""Auxiliary behavior signals: duplicate content, spam share and bot-like timing."""

from __future__ import annotations

import re
import statistics
from datetime import datetime
from typing import Sequence

from modkit.moderation.detectors import detect_spam
from modkit.moderation.models import ModerationConfig
from modkit.moderation.normalizer import normalize
from modkit.moderation.patterns import PatternLibrary
from modkit.risk.models import BehaviorSignals
from modkit.stores.base import PostRecord

DUPLICATE_SIMILARITY = 0.8
BOT_TIMING_MIN_POSTS = 10
BOT_TIMING_MAX_CV = 0.1  # interval stdev relative to its mean

_WORD = re.compile(r"\w+")


def jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


def duplicate_ratio(contents: Sequence[str]) -> float:
    """Share of posts that are near-duplicates of an earlier one."""
    word_sets = [set(_WORD.findall(c.lower())) for c in contents]
    word_sets = [s for s in word_sets if s]
    if len(word_sets) < 2:
        return 0.0

    duplicates = 0
    for i in range(1, len(word_sets)):
        if any(jaccard(word_sets[i], word_sets[j]) > DUPLICATE_SIMILARITY for j in range(i)):
            duplicates += 1
    return duplicates / len(word_sets)


def bot_like_timing(timestamps: Sequence[datetime]) -> bool:
    """Posting intervals that are suspiciously regular over more than ten posts."""
    if len(timestamps) <= BOT_TIMING_MIN_POSTS:
        return False
    ordered = sorted(timestamps)
    intervals = [(b - a).total_seconds() for a, b in zip(ordered, ordered[1:])]
    mean = statistics.fmean(intervals)
    if mean <= 0:
        return False
    return statistics.pstdev(intervals) < BOT_TIMING_MAX_CV * mean


def spam_ratio(contents: Sequence[str], library: PatternLibrary) -> float:
    if not contents:
        return 0.0
    config = ModerationConfig()
    spammy = sum(1 for c in contents if detect_spam(normalize(c), config, library).detected)
    return spammy / len(contents)


def content_quality_score(dup_ratio: float, spam: float) -> float:
    return round(max(0.0, min(10.0, 10.0 - 6.0 * dup_ratio - 6.0 * spam)), 2)


def compute_signals(posts: Sequence[PostRecord], library: PatternLibrary) -> BehaviorSignals:
    contents = [p.content for p in posts if p.content]
    dup = duplicate_ratio(contents)
    spam = spam_ratio(contents, library)
    return BehaviorSignals(
        duplicate_ratio=round(dup, 3),
        spam_ratio=round(spam, 3),
        content_quality=content_quality_score(dup, spam),
        bot_like_timing=bot_like_timing([p.created_at for p in posts]),
    )
