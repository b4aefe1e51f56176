"""Text normalization shared by every detector.

Produces two canonical forms of the input:

- ``normalized``: diacritics stripped, zero-width characters removed,
  lowercased, leetspeak substituted.
- ``compact``: ``normalized`` with every non-alphanumeric character removed,
  which defeats insertion obfuscation such as ``f.u.c.k``.

Both forms carry index maps back to the original text so that a match found
in any form can be located (and redacted) in what the user actually typed.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field

ZERO_WIDTH_CHARS = frozenset("\u200b\u200c\u200d\u200e\u200f\u2060\ufeff\u180e")

LEET_MAP: dict[str, str] = {
    "@": "a",
    "4": "a",
    "3": "e",
    "1": "i",
    "!": "i",
    "|": "i",
    "0": "o",
    "$": "s",
    "5": "s",
    "7": "t",
    "+": "t",
    "8": "b",
    "9": "g",
}


@dataclass(frozen=True)
class NormalizedText:
    """The three representations of one input, with index maps."""

    original: str = ""
    normalized: str = ""
    compact: str = ""
    normalized_origin: tuple[int, ...] = field(default=(), repr=False)  # normalized idx -> original idx
    compact_origin: tuple[int, ...] = field(default=(), repr=False)  # compact idx -> normalized idx

    @property
    def forms(self) -> tuple[tuple[str, str], ...]:
        """(name, text) pairs in the order detectors scan them."""
        return (
            ("original", self.original),
            ("normalized", self.normalized),
            ("compact", self.compact),
        )

    @property
    def word_count(self) -> int:
        return len(self.normalized.split())

    def original_span(self, form: str, start: int, end: int) -> tuple[int, int]:
        """Map a ``[start, end)`` span in *form* back to the original text."""
        if end <= start:
            return (-1, -1)
        if form == "original":
            return (start, end)
        if form == "compact":
            start = self.compact_origin[start]
            end = self.compact_origin[end - 1] + 1
        return (self.normalized_origin[start], self.normalized_origin[end - 1] + 1)


def _fold_char(ch: str) -> str:
    decomposed = unicodedata.normalize("NFKD", ch)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    lowered = stripped.lower()
    return "".join(LEET_MAP.get(c, c) for c in lowered)


def normalize(text) -> NormalizedText:
    """Canonicalize *text*. Never raises; non-strings normalize to empty."""
    if not isinstance(text, str) or not text:
        return NormalizedText()

    normalized_chars: list[str] = []
    normalized_origin: list[int] = []
    for i, ch in enumerate(text):
        if ch in ZERO_WIDTH_CHARS:
            continue
        for out in _fold_char(ch):
            normalized_chars.append(out)
            normalized_origin.append(i)

    normalized = "".join(normalized_chars)

    compact_chars: list[str] = []
    compact_origin: list[int] = []
    for j, ch in enumerate(normalized):
        if ch.isalnum():
            compact_chars.append(ch)
            compact_origin.append(j)

    return NormalizedText(
        original=text,
        normalized=normalized,
        compact="".join(compact_chars),
        normalized_origin=tuple(normalized_origin),
        compact_origin=tuple(compact_origin),
    )
