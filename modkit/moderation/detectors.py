"""Detector pipeline.

Each detector takes the normalized text, the per-call config and the pattern
library, and returns a CategoryResult. ``detect`` runs them all in a fixed
order; only a whitelist hit stops it early. A detector that raises is logged
and reported as "not detected" so one faulty rule can never block content.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from modkit.errors import ValidationFailure
from modkit.moderation.models import Category, CategoryResult, MatchInfo, ModerationConfig
from modkit.moderation.normalizer import NormalizedText, normalize
from modkit.moderation.patterns import PERSONAL_INFO_SEVERITY, PatternLibrary, PatternRule

logger = logging.getLogger(__name__)

REPEATED_SUBSTRING = re.compile(r"(.{3,50}?)\1{3,}", re.DOTALL)
REPEATED_CHAR = re.compile(r"(\S)\1{9,}")
# Runs left behind by profanity masking.
MASK_RUN = re.compile(r"\*{2,}")
CAPS_RUN = re.compile(r"[A-Z]{10,}")
PUNCTUATION_RUN = re.compile(r"[!?]{5,}")
EMOJI = re.compile(
    "[\U0001F300-\U0001FAFF\U00002600-\U000027BF\U0001F1E6-\U0001F1FF\U0001F000-\U0001F02F]"
)

REPETITION_SCORE = 3
EMOJI_THRESHOLD = 10
EMOJI_MAX_SCORE = 5
SHOUTING_SCORE = 2
SHOUTING_RATIO = 0.7
SHOUTING_MIN_LETTERS = 10

Detector = Callable[[NormalizedText, ModerationConfig, PatternLibrary], CategoryResult]


# ---------------------------------------------------------------------------
# Matching helpers
# ---------------------------------------------------------------------------


def _bounded(nt: NormalizedText, form: str, start: int, end: int) -> bool:
    """True when a match in *form* sits on word boundaries of its text."""
    if form == "compact":
        start = nt.compact_origin[start]
        end = nt.compact_origin[end - 1] + 1
        text = nt.normalized
        # "f u c k" collapses legitimately; "this hit" must not become "shit".
        pieces = text[start:end].split()
        if len(pieces) > 1 and any(len(re.sub(r"\W", "", p)) > 1 for p in pieces):
            return False
    elif form == "original":
        text = nt.original
    else:
        text = nt.normalized

    if start > 0 and text[start - 1].isalnum():
        return False
    if end < len(text) and text[end].isalnum():
        return False
    return True


def _phrase_spans(nt: NormalizedText, phrases) -> list[tuple[int, int]]:
    """Original-text spans of every occurrence of *phrases* in the normalized text."""
    spans = []
    for phrase in phrases:
        folded = normalize(phrase).normalized.strip()
        if not folded:
            continue
        pattern = r"\s+".join(re.escape(part) for part in folded.split())
        for m in re.finditer(pattern, nt.normalized):
            spans.append(nt.original_span("normalized", m.start(), m.end()))
    return spans


def _inside(span: tuple[int, int], containers: list[tuple[int, int]]) -> bool:
    return any(cs <= span[0] and span[1] <= ce for cs, ce in containers)


def scan_rule(rule: PatternRule, nt: NormalizedText, context_aware: bool = True) -> list[MatchInfo]:
    """Find every bounded hit of *rule* across the three text forms."""
    matches: list[MatchInfo] = []
    seen: set[tuple[int, int]] = set()

    for form, text in nt.forms:
        if not text:
            continue
        for m in rule.pattern.finditer(text):
            start, end = m.span()
            if start == end or not _bounded(nt, form, start, end):
                continue
            span = nt.original_span(form, start, end)
            if span in seen:
                continue
            seen.add(span)
            matches.append(
                MatchInfo(
                    word=nt.original[span[0]:span[1]],
                    category=rule.category,
                    pattern=rule.name,
                    start=span[0],
                    end=span[1],
                    canonical=rule.canonical,
                    severity=rule.severity,
                )
            )

    if matches and context_aware and rule.allowed_contexts:
        contexts = _phrase_spans(nt, rule.allowed_contexts)
        matches = [m for m in matches if not _inside((m.start, m.end), contexts)]
    return matches


def _dedupe(matches: list[MatchInfo]) -> list[MatchInfo]:
    """Keep the most severe match per span, ordered by position."""
    best: dict[tuple[int, int], MatchInfo] = {}
    for m in matches:
        key = (m.start, m.end)
        if key not in best or m.severity > best[key].severity:
            best[key] = m
    return sorted(best.values(), key=lambda m: (m.start, m.end))


def _scan_rules(
    rules, nt: NormalizedText, config: ModerationConfig
) -> list[MatchInfo]:
    matches: list[MatchInfo] = []
    for rule in rules:
        if config.context_aware and rule.min_words and nt.word_count < rule.min_words:
            continue
        matches.extend(scan_rule(rule, nt, context_aware=config.context_aware))
    return _dedupe(matches)


def _max_result(matches: list[MatchInfo]) -> CategoryResult:
    if not matches:
        return CategoryResult()
    return CategoryResult(
        detected=True,
        severity=max(m.severity for m in matches),
        matches=matches,
    )


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------


def whitelist_hit(nt: NormalizedText, library: PatternLibrary) -> str | None:
    """Return the first whitelisted term found in the text, if any."""
    lowered = nt.original.lower()
    for term in library.whitelist:
        if term in lowered or term in nt.normalized:
            return term
    return None


def detect_profanity(nt: NormalizedText, config: ModerationConfig, library: PatternLibrary) -> CategoryResult:
    rules = [r for r in library.profanity if not (config.allow_mild_profanity and r.is_mild)]
    return _max_result(_scan_rules(rules, nt, config))


def detect_hate_speech(nt: NormalizedText, config: ModerationConfig, library: PatternLibrary) -> CategoryResult:
    return _max_result(_scan_rules(library.hate_speech, nt, config))


def detect_slurs(nt: NormalizedText, config: ModerationConfig, library: PatternLibrary) -> CategoryResult:
    matches = _scan_rules(library.slurs, nt, config)
    if matches:
        benign = _phrase_spans(nt, library.whitelist)
        matches = [m for m in matches if not _inside((m.start, m.end), benign)]
    return _max_result(matches)


def detect_bullying(nt: NormalizedText, config: ModerationConfig, library: PatternLibrary) -> CategoryResult:
    return _max_result(_scan_rules(library.bullying, nt, config))


def detect_spam(nt: NormalizedText, config: ModerationConfig, library: PatternLibrary) -> CategoryResult:
    if not config.spam_check:
        return CategoryResult()

    matches = _scan_rules(library.spam, nt, config)
    score = sum(m.severity for m in matches)
    notes: list[str] = []

    if REPEATED_SUBSTRING.search(MASK_RUN.sub(" ", nt.original.lower())):
        score += REPETITION_SCORE
        notes.append("Repeated text")

    emoji_count = len(EMOJI.findall(nt.original))
    if emoji_count > EMOJI_THRESHOLD:
        score += min(EMOJI_MAX_SCORE, emoji_count - EMOJI_THRESHOLD)
        notes.append(f"{emoji_count} emoji")

    letters = [c for c in nt.original if c.isalpha()]
    if len(letters) > SHOUTING_MIN_LETTERS:
        upper = sum(1 for c in letters if c.isupper())
        if upper / len(letters) > SHOUTING_RATIO:
            score += SHOUTING_SCORE
            notes.append("Mostly uppercase")

    return CategoryResult(detected=score > 0, severity=score, matches=matches, notes=notes)


def find_personal_info(text: str, library: PatternLibrary) -> list[MatchInfo]:
    """Validated, non-overlapping personal-info matches in *text*."""
    candidates = []
    for order, info in enumerate(library.personal_info):
        for m in info.pattern.finditer(text):
            try:
                info.require(m.group())
            except ValidationFailure as e:
                logger.debug("Ignoring %s candidate at %d: %s", info.kind, m.start(), e)
                continue
            candidates.append(
                (
                    m.start(),
                    -(m.end() - m.start()),
                    order,
                    MatchInfo(
                        word=m.group(),
                        category=Category.PERSONAL_INFO,
                        pattern=info.kind,
                        start=m.start(),
                        end=m.end(),
                        canonical=info.placeholder,
                    ),
                )
            )

    kept: list[MatchInfo] = []
    last_end = -1
    for _, _, _, match in sorted(candidates, key=lambda c: c[:3]):
        if match.start >= last_end:
            kept.append(match)
            last_end = match.end
    return kept


def detect_personal_info(nt: NormalizedText, config: ModerationConfig, library: PatternLibrary) -> CategoryResult:
    if not config.personal_info_check:
        return CategoryResult()

    matches = find_personal_info(nt.original, library)
    for m in matches:
        m.severity = PERSONAL_INFO_SEVERITY
    return _max_result(matches)


def detect_quality(nt: NormalizedText, config: ModerationConfig, library: PatternLibrary) -> CategoryResult:
    text = nt.original
    notes: list[str] = []

    if REPEATED_CHAR.search(MASK_RUN.sub(" ", text)):
        notes.append("Excessive repeated characters")

    letters = [c for c in text if c.isalpha()]
    if len(text) > 20 and letters:
        upper = sum(1 for c in letters if c.isupper())
        if upper / len(letters) > 0.5 and CAPS_RUN.search(text):
            notes.append("Excessive use of capital letters")

    if PUNCTUATION_RUN.search(text):
        notes.append("Excessive punctuation")

    return CategoryResult(detected=bool(notes), severity=len(notes), notes=notes)


DETECTORS: tuple[tuple[Category, Detector], ...] = (
    (Category.PROFANITY, detect_profanity),
    (Category.HATE_SPEECH, detect_hate_speech),
    (Category.SLUR, detect_slurs),
    (Category.BULLYING, detect_bullying),
    (Category.SPAM, detect_spam),
    (Category.PERSONAL_INFO, detect_personal_info),
    (Category.QUALITY, detect_quality),
)


def run_detectors(
    nt: NormalizedText, config: ModerationConfig, library: PatternLibrary
) -> dict[Category, CategoryResult]:
    """Run every detector over already-normalized text."""
    term = whitelist_hit(nt, library)
    if term is not None:
        logger.debug("Whitelisted term %r present; skipping detection", term)
        return {category: CategoryResult() for category, _ in DETECTORS}

    flags: dict[Category, CategoryResult] = {}
    for category, detector in DETECTORS:
        try:
            flags[category] = detector(nt, config, library)
        except Exception:
            logger.exception("%s detector failed; treating as not detected", category.value)
            flags[category] = CategoryResult()
    return flags


def detect(
    text, config: ModerationConfig | None = None, library: PatternLibrary | None = None
) -> dict[Category, CategoryResult]:
    """Normalize *text* and run the full pipeline."""
    if library is None:
        from modkit.moderation.moderator import default_library

        library = default_library()
    return run_detectors(normalize(text), config or ModerationConfig(), library)
