"""Content moderation engine: decision rules, redaction and batch processing.

``ContentModerator`` combines the detector results into a ModerationResult.
It holds nothing but an immutable PatternLibrary, so one instance can serve
any number of threads. The module-level functions delegate to a process-wide
default moderator whose library is built once from the external config.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import Iterable, Optional

from modkit.errors import InputError
from modkit.moderation.config import load_external_config
from modkit.moderation.detectors import find_personal_info, run_detectors
from modkit.moderation.models import (
    CATEGORY_ISSUES,
    CATEGORY_ORDER,
    BatchSummary,
    Category,
    CategoryResult,
    MatchInfo,
    ModerationConfig,
    ModerationResult,
)
from modkit.moderation.normalizer import normalize
from modkit.moderation.patterns import PatternLibrary, build_library

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_MAX_WORKERS = 8

# Decision thresholds
_FLAG_SEVERITY = 3
_FLAG_QUALITY_ISSUES = 2
_BLOCK_BULLYING = 6
_BLOCK_SPAM = 7
_WARN_PROFANITY = 5


def _confidence(flagged: int, severity: int) -> int:
    score = 50 + 15 * flagged + min(severity * 5, 30)
    if severity <= 2:
        score -= 20
    return max(0, min(100, score))


def _replacements(flags: dict[Category, CategoryResult]) -> list[tuple[int, int, str]]:
    edits: list[tuple[int, int, str]] = []
    for m in flags.get(Category.PERSONAL_INFO, CategoryResult()).matches:
        edits.append((m.start, m.end, m.canonical))
    for m in flags.get(Category.PROFANITY, CategoryResult()).matches:
        if m.has_span:
            edits.append((m.start, m.end, "*" * (m.end - m.start)))
    return edits


def apply_replacements(text: str, edits: list[tuple[int, int, str]]) -> str:
    """Apply non-overlapping ``(start, end, replacement)`` edits to *text*.

    Overlapping edits are resolved in favor of the earlier (then longer) one.
    """
    out: list[str] = []
    pos = 0
    for start, end, replacement in sorted(edits, key=lambda e: (e[0], -(e[1] - e[0]))):
        if start < pos:
            continue
        out.append(text[pos:start])
        out.append(replacement)
        pos = end
    out.append(text[pos:])
    return "".join(out)


def aggregate(
    flags: dict[Category, CategoryResult], config: ModerationConfig, text: str
) -> ModerationResult:
    """Turn per-category detector results into a ModerationResult."""
    ordered = {c: flags.get(c, CategoryResult()) for c in CATEGORY_ORDER}
    severity = sum(r.severity for r in ordered.values())
    flagged = [c for c, r in ordered.items() if r.detected]
    quality = ordered[Category.QUALITY]

    should_block = (
        ordered[Category.HATE_SPEECH].detected
        or ordered[Category.SLUR].detected
        or ordered[Category.BULLYING].severity >= _BLOCK_BULLYING
        or ordered[Category.SPAM].severity >= _BLOCK_SPAM
    )
    should_flag = (
        should_block
        or any(ordered[c].severity >= _FLAG_SEVERITY for c in flagged)
        or len(quality.notes) >= _FLAG_QUALITY_ISSUES
    )
    should_warn = ordered[Category.PROFANITY].severity >= _WARN_PROFANITY or config.strict_mode

    issues: list[str] = []
    for category in flagged:
        if category == Category.QUALITY:
            issues.extend(quality.notes)
        else:
            issues.append(CATEGORY_ISSUES[category])

    cleaned = text if should_block else apply_replacements(text, _replacements(ordered))

    return ModerationResult(
        is_clean=severity == 0,
        should_block=should_block,
        should_flag=should_flag,
        should_warn=should_warn,
        severity=severity,
        confidence=_confidence(len(flagged), severity),
        flags=ordered,
        issues=issues,
        cleaned_content=cleaned,
    )


def _require_text(text) -> str:
    if not isinstance(text, str):
        raise InputError(f"expected text, got {type(text).__name__}")
    if not text.strip():
        raise InputError("empty content")
    return text


class ContentModerator:
    """Stateless content moderator over an injected pattern library."""

    def __init__(
        self,
        library: Optional[PatternLibrary] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.library = library or build_library()
        self.max_workers = max(1, max_workers)

    # -- single item ---------------------------------------------------------

    def moderate(self, text, config: Optional[ModerationConfig] = None) -> ModerationResult:
        """Moderate *text*. Never raises; invalid input yields the zero result."""
        config = config or ModerationConfig()
        try:
            text = _require_text(text)
        except InputError as e:
            logger.debug("Skipping moderation: %s", e)
            return ModerationResult(cleaned_content=text if isinstance(text, str) else "")

        flags = run_detectors(normalize(text), config, self.library)
        return aggregate(flags, config, text)

    def filter_personal_info(self, text) -> str:
        """Replace validated personal info in *text* with typed placeholders."""
        if not isinstance(text, str) or not text:
            return ""
        matches: list[MatchInfo] = find_personal_info(text, self.library)
        return apply_replacements(text, [(m.start, m.end, m.canonical) for m in matches])

    # -- batches -------------------------------------------------------------

    def moderate_batch(
        self,
        texts: Iterable,
        config: Optional[ModerationConfig] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> list[ModerationResult]:
        """Moderate *texts* on a bounded worker pool, preserving input order.

        Items are submitted *batch_size* at a time so a huge input never has
        more than one chunk in flight.
        """
        items = list(texts)
        batch_size = max(1, int(batch_size or DEFAULT_BATCH_SIZE))
        config = config or ModerationConfig()
        results: list[ModerationResult] = []
        if not items:
            return results

        workers = min(self.max_workers, batch_size)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="modkit") as pool:
            for start in range(0, len(items), batch_size):
                chunk = items[start:start + batch_size]
                results.extend(pool.map(lambda t: self.moderate(t, config), chunk))
                logger.debug("Moderated %d/%d items", len(results), len(items))
        return results


def summarize_batch(results: Iterable[ModerationResult]) -> BatchSummary:
    summary = BatchSummary()
    for r in results:
        summary.total += 1
        summary.blocked += int(r.should_block)
        summary.flagged += int(r.should_flag)
        summary.clean += int(r.is_clean)
    return summary


# ---------------------------------------------------------------------------
# Process-wide defaults
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def default_library() -> PatternLibrary:
    """Built-in tables merged with the external config, loaded once."""
    return build_library(load_external_config())


@lru_cache(maxsize=1)
def default_moderator() -> ContentModerator:
    return ContentModerator(default_library())


def moderate_content(text, config: Optional[ModerationConfig] = None) -> ModerationResult:
    return default_moderator().moderate(text, config)


def moderate_content_batch(
    texts: Iterable, config: Optional[ModerationConfig] = None, batch_size: int = DEFAULT_BATCH_SIZE
) -> list[ModerationResult]:
    return default_moderator().moderate_batch(texts, config, batch_size)


def filter_personal_info(text) -> str:
    return default_moderator().filter_personal_info(text)
