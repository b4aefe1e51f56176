"""Error taxonomy for the moderation engine.

None of these reach end users: classification fails open, so each error is
either resolved into a result (``InputError``, ``ValidationFailure``) or
logged and replaced by a safe default (``ConfigLoadError``,
``DataFetchError``).
"""

from __future__ import annotations


class ModerationError(Exception):
    """Base class for all modkit errors."""


class InputError(ModerationError):
    """Content is not text or is empty."""


class ConfigLoadError(ModerationError):
    """The external pattern config is unreadable or malformed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot load pattern config {path}: {reason}")
        self.path = path
        self.reason = reason


class DataFetchError(ModerationError):
    """A collaborator store failed or timed out."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Fetching {source} failed: {reason}")
        self.source = source
        self.reason = reason


class ValidationFailure(ModerationError):
    """A structural personal-info match failed its validator."""

    def __init__(self, kind: str, value: str) -> None:
        super().__init__(f"{kind} candidate failed validation")
        self.kind = kind
        self.value = value
