"""Pattern library: categorized detection rules and the false-positive whitelist.

Rule regexes carry no word-boundary anchors of their own. The detectors find
a match first and then check the surrounding characters (word boundaries,
allowed contexts, whitelist) programmatically, which keeps every pattern
usable against the compact form where spaces no longer exist.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from modkit.errors import ValidationFailure
from modkit.moderation.config import ExternalPatternConfig
from modkit.moderation.models import Category

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Rule types
# ---------------------------------------------------------------------------

MILD = 1
MODERATE = 2
SEVERE = 3

VIOLENCE_SEVERITY = 10
DEHUMANIZATION_SEVERITY = 8
SLUR_SEVERITY = 9
DIRECT_ATTACK_SEVERITY = 6
HARASSMENT_SEVERITY = 4
THREAT_SEVERITY = 8
SPAM_HIT_SEVERITY = 2
PERSONAL_INFO_SEVERITY = 3

CONTEXT_MIN_WORDS = 5


@dataclass(frozen=True)
class PatternRule:
    """One categorized detection rule."""

    name: str
    category: Category
    severity: int
    pattern: re.Pattern[str]
    allowed_contexts: tuple[str, ...] = ()
    canonical: str = ""
    subcategory: str = ""
    min_words: int = 0  # context gate; 0 disables it

    @property
    def is_mild(self) -> bool:
        return self.category == Category.PROFANITY and self.severity <= MILD


@dataclass(frozen=True)
class PersonalInfoPattern:
    """A structural personal-info pattern with its validator."""

    kind: str  # SSN | PHONE | EMAIL | CREDIT_CARD
    pattern: re.Pattern[str]
    validator: Callable[[str], bool]
    placeholder: str

    def validate(self, value: str) -> bool:
        return self.validator(value)

    def require(self, value: str) -> str:
        """Return *value* if it validates, raise ValidationFailure otherwise."""
        if not self.validator(value):
            raise ValidationFailure(self.kind, value)
        return value


def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _literal(word: str) -> re.Pattern[str]:
    return _compile(r"\s+".join(re.escape(part) for part in word.split()))


# Separator tolerated between letters of an obfuscated word.
SEP = r"[\W_]*"

_APOS = "['’]"

# ---------------------------------------------------------------------------
# Profanity
# ---------------------------------------------------------------------------

PROFANITY_TIERS: dict[int, dict[str, tuple[str, ...]]] = {
    MILD: {
        "damn": ("damn good", "damn right", "damn fine"),
        "hell": ("hell yeah", "hell of a", "hells kitchen"),
        "crap": ("crap shoot",),
        "stupid": ("stupid simple",),
        "idiot": ("idiot proof",),
        "dumb": ("dumb luck",),
        "moron": (),
        "loser": (),
        "jerk": ("knee jerk", "jerk chicken"),
    },
    MODERATE: {
        "shit": ("holy shit",),
        "bitch": (),
        "bastard": (),
        "asshole": (),
        "bullshit": (),
        "dick": ("moby dick", "dick tracy", "philip k dick"),
        "piss": (),
        "prick": (),
        "douche": (),
    },
    SEVERE: {
        "fuck": (),
        "fucking": (),
        "fucker": (),
        "motherfucker": (),
        "cunt": (),
    },
}

# canonical word -> (character-class pattern, severity)
OBFUSCATION_PATTERNS: dict[str, tuple[str, int]] = {
    "fuck": (
        rf"f+{SEP}[u*v]+{SEP}(?:[c*]+{SEP})?k+(?:{SEP}(?:ing|in|ed|er|s|face))?",
        SEVERE,
    ),
    "motherfucker": (
        rf"m+{SEP}o+{SEP}t+{SEP}h+{SEP}e+{SEP}r+{SEP}f+{SEP}[u*v]+{SEP}(?:[c*]+{SEP})?k+{SEP}(?:e+{SEP}r+|a+)",
        SEVERE,
    ),
    "cunt": (rf"c+{SEP}[u*v]+{SEP}n+{SEP}t+(?:{SEP}s)?", SEVERE),
    "shit": (rf"s+{SEP}h+{SEP}[i*]+{SEP}t+(?:{SEP}(?:y|s|er|head))?", MODERATE),
    "asshole": (rf"a+{SEP}[s*z]+{SEP}[s*z]+{SEP}h+{SEP}[o*]+{SEP}l+{SEP}e+(?:{SEP}s)?", MODERATE),
    "bitch": (rf"b+{SEP}[i*]+{SEP}(?:t+{SEP})?c+{SEP}h+(?:{SEP}(?:es|y|in))?", MODERATE),
    "bastard": (rf"b+{SEP}a+{SEP}s+{SEP}t+{SEP}a+{SEP}r+{SEP}d+(?:{SEP}s)?", MODERATE),
}

# ---------------------------------------------------------------------------
# Hate speech and bullying
# ---------------------------------------------------------------------------

_TARGETS = r"(?:you|them|him|her|you\s+all|all\s+of\s+(?:you|them)|every\s+(?:one|last)\s+of\s+(?:you|them))"
_GROUP = r"(?:they|those\s+people|these\s+people|their\s+kind|all\s+of\s+them)"

HATE_SPEECH_RULES: dict[str, tuple[int, tuple[str, ...]]] = {
    "violence": (
        VIOLENCE_SEVERITY,
        (
            rf"\b(?:kill|murder|shoot|stab|slaughter|hang|burn)\s+{_TARGETS}\b",
            r"\b(?:should|deserves?\s+to|deserved\s+to|needs?\s+to|ought\s+to)\s+(?:all\s+)?"
            r"(?:be\s+(?:dead|killed|shot|exterminated|wiped\s+out)|die|burn)\b",
            r"\b(?:exterminate|wipe\s+out|eradicate|get\s+rid\s+of)\s+(?:all\s+)?(?:of\s+)?"
            r"(?:them|those\s+people|these\s+people|their\s+kind)\b",
            r"\b(?:bomb|shoot\s+up|blow\s+up)\s+(?:the|this|that|your)\s+"
            r"(?:school|church|mosque|synagogue|temple|office|building|mall)\b",
        ),
    ),
    "dehumanization": (
        DEHUMANIZATION_SEVERITY,
        (
            rf"\b{_GROUP}\s+(?:are|r)\s+(?:just\s+|nothing\s+but\s+)?"
            r"(?:animals|vermin|parasites|cockroaches|rats|subhuman|savages|a\s+disease|a\s+plague|filth)\b",
            r"\b(?:worthless|subhuman|inferior|filthy)\s+(?:race|people|species|breed)\b",
            rf"\b{_GROUP}\s+(?:are|r)\s+not\s+(?:even\s+)?(?:human|people)\b",
        ),
    ),
}

BULLYING_RULES: dict[str, tuple[int, tuple[str, ...]]] = {
    "direct_attacks": (
        DIRECT_ATTACK_SEVERITY,
        (
            rf"\b(?:you\s+are|you{_APOS}re|you\s+r|ur|u\s+r)\s+(?:so\s+|such\s+an?\s+|an?\s+|just\s+an?\s+)?"
            r"(?:worthless|pathetic|disgusting|useless|ugly|fat|loser|failure|waste\s+of\s+space|nobody)\b",
            r"\b(?:worthless|pathetic|scum|trash|garbage)\s+(?:person|human|father|mother|man|woman)\b",
            r"\bnobody\s+(?:likes|loves|cares\s+about|wants)\s+you\b",
            r"\bthe\s+world\s+(?:would\s+be|is)\s+better\s+without\s+you\b",
        ),
    ),
    "harassment": (
        HARASSMENT_SEVERITY,
        (
            r"\b(?:everyone|everybody|we\s+all)\s+hates?\s+you\b",
            r"\bno\s+one\s+wants\s+you\s+(?:here|around)\b",
            rf"\byou\s+(?:don{_APOS}?t|do\s+not)\s+belong\s+here\b",
            r"\b(?:leave|get\s+off|quit)\s+(?:this|the|our)\s+(?:site|group|forum|community|server|platform)\b",
            rf"\bi(?:{_APOS}m|\s+am)\s+(?:going\s+to|gonna)\s+(?:keep\s+)?(?:messaging|following|posting\s+about)\s+you\b",
        ),
    ),
    "threats": (
        THREAT_SEVERITY,
        (
            rf"\b(?:i|we)(?:{_APOS}ll|\s+will|\s+am\s+going\s+to|{_APOS}m\s+going\s+to|{_APOS}m\s+gonna|\s+am\s+gonna|\s+gonna)\s+"
            r"(?:find|hurt|get|beat|kill|end|destroy|ruin)\s+you\b",
            r"\bwatch\s+your\s+back\b",
            rf"\byou(?:{_APOS}ll|\s+will)\s+(?:regret|pay\s+for)\b",
            r"\b(?:kill\s+yourself|kys|go\s+die|drink\s+bleach)\b",
            r"\bi\s+know\s+where\s+you\s+live\b",
        ),
    ),
}

# ---------------------------------------------------------------------------
# Spam
# ---------------------------------------------------------------------------

SPAM_RULES: dict[str, tuple[str, ...]] = {
    "promotional": (
        r"\bclick\s+here\b",
        r"\bbuy\s+now\b",
        r"\blimited\s+time\s+(?:offer|only)\b",
        r"\bact\s+(?:fast|now)\b",
        r"\bcall\s+now\b",
        r"\border\s+now\b",
        r"\bfree\s+money\b",
        r"\bmake\s+\$\s?\d+",
        r"\bguaranteed\s+income\b",
        r"\b100%\s+free\b",
        r"\b(?:viagra|casino|lottery)\b",
    ),
    "suspicious_links": (
        r"\b(?:bit\.ly|tinyurl\.com|goo\.gl|is\.gd|ow\.ly|t\.co)/\S+",
        r"https?://\S+(?:\s+https?://\S+){2,}",
        r"\bhttps?://[^\s/]+\.(?:ru|xyz|top|click|loan|work)\b(?:/\S*)?",
        r"\b(?:dm|message)\s+me\s+for\s+(?:the\s+)?link\b",
    ),
    "crypto_scam": (
        r"\bdouble\s+your\s+(?:bitcoin|btc|crypto|eth|money|investment)\b",
        r"\bsend\s+(?:me\s+)?(?:\d+\s+)?(?:btc|eth|bitcoin|crypto|usdt)\b",
        r"\bguaranteed\s+(?:returns?|profits?|roi)\b",
        r"\b(?:crypto|bitcoin|btc|eth)\s+giveaway\b",
        r"\binvestment\s+opportunity\b",
        r"\b(?:seed|recovery)\s+phrase\b",
    ),
}

# ---------------------------------------------------------------------------
# Whitelist
# ---------------------------------------------------------------------------

# Benign terms that contain or resemble violations. A substring hit on any
# of these clears the whole input.
WHITELIST: tuple[str, ...] = (
    "scunthorpe",
    "penistone",
    "cockburn",
    "middlesex",
    "sussex",
    "essex",
    "shiitake",
    "cockpit",
    "cocktail",
    "dickens",
    "classname",
    "class",
    "async",
    "assert",
)

# ---------------------------------------------------------------------------
# Personal information
# ---------------------------------------------------------------------------

_SEQUENTIAL_SSNS = frozenset({"123456789", "987654321", "012345678", "234567890"})


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value)


def luhn_valid(number: str) -> bool:
    """Standard Luhn checksum over the digits of *number*."""
    digits = _digits(number)
    if not digits:
        return False
    total = 0
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def valid_ssn(value: str) -> bool:
    digits = _digits(value)
    if len(digits) != 9:
        return False
    if len(set(digits)) == 1:
        return False
    return digits not in _SEQUENTIAL_SSNS


def valid_phone(value: str) -> bool:
    digits = _digits(value)
    if len(digits) < 10 or len(digits) > 15:
        return False
    local = digits[-10:]
    # 111-111-1111, 555-000-0000 and similar
    return len(set(local)) > 1 and len(set(local[3:])) > 1


def valid_credit_card(value: str) -> bool:
    digits = _digits(value)
    if len(digits) != 16 or len(set(digits)) == 1:
        return False
    return luhn_valid(digits)


def valid_email(value: str) -> bool:
    if value.count("@") != 1:
        return False
    local, domain = value.split("@")
    if not local or "." not in domain:
        return False
    return all(label for label in domain.split("."))


# Resolution order: earlier kinds win when spans overlap at the same start.
PERSONAL_INFO_PATTERNS: tuple[PersonalInfoPattern, ...] = (
    PersonalInfoPattern(
        kind="CREDIT_CARD",
        pattern=re.compile(r"(?<!\d)(?:\d{4}[\s-]?){3}\d{4}(?!\d)"),
        validator=valid_credit_card,
        placeholder="[CARD]",
    ),
    PersonalInfoPattern(
        kind="SSN",
        pattern=re.compile(r"(?<!\d)\d{3}[\s-]?\d{2}[\s-]?\d{4}(?!\d)"),
        validator=valid_ssn,
        placeholder="[SSN]",
    ),
    PersonalInfoPattern(
        kind="PHONE",
        pattern=re.compile(r"(?<!\d)(?:\+?1[\s.-]?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}(?!\d)"),
        validator=valid_phone,
        placeholder="[PHONE]",
    ),
    PersonalInfoPattern(
        kind="EMAIL",
        pattern=re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
        validator=valid_email,
        placeholder="[EMAIL]",
    ),
)

# ---------------------------------------------------------------------------
# Slurs
# ---------------------------------------------------------------------------

# Letter -> characters accepted in its place (before normalization).
_VARIANTS: dict[str, str] = {
    "a": "a@4",
    "b": "b8",
    "c": "ck",
    "e": "e3",
    "g": "g9",
    "i": "i1!|l",
    "k": "kc",
    "l": "l1|",
    "o": "o0",
    "s": "s$5z",
    "t": "t7+",
    "u": "uv",
    "z": "zs",
}


def tolerant_pattern(term: str) -> re.Pattern[str]:
    """Compile *term* into a regex tolerant of repeats, leet and separators.

    Trailing "er" also accepts the common phonetic spellings "a", "ah" and
    "uh"; "ck" accepts a single "k"/"c".
    """
    letters = re.sub(r"[^a-z0-9]", "", term.lower())
    if not letters:
        raise ValueError("empty term")

    suffix = ""
    if len(letters) > 3 and letters.endswith("er"):
        letters = letters[:-2]
        suffix = rf"{SEP}(?:e+{SEP}r+|a+h*|u+h+)"

    parts: list[str] = []
    i = 0
    while i < len(letters):
        if letters.startswith("ck", i):
            parts.append("[ck]+")
            i += 2
            continue
        ch = letters[i]
        variants = _VARIANTS.get(ch, ch)
        parts.append("[" + re.escape(variants) + "]+")
        i += 1

    return _compile(SEP.join(parts) + suffix + rf"(?:{SEP}s)?")


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------

_CUSTOM_DEFAULT_SEVERITY: dict[Category, int] = {
    Category.PROFANITY: MODERATE,
    Category.HATE_SPEECH: DEHUMANIZATION_SEVERITY,
    Category.SLUR: SLUR_SEVERITY,
    Category.BULLYING: HARASSMENT_SEVERITY,
    Category.SPAM: SPAM_HIT_SEVERITY,
}


@dataclass(frozen=True)
class PatternLibrary:
    """Merged, immutable rule tables injected into the detectors."""

    profanity: tuple[PatternRule, ...] = ()
    hate_speech: tuple[PatternRule, ...] = ()
    slurs: tuple[PatternRule, ...] = ()
    bullying: tuple[PatternRule, ...] = ()
    spam: tuple[PatternRule, ...] = ()
    personal_info: tuple[PersonalInfoPattern, ...] = PERSONAL_INFO_PATTERNS
    whitelist: tuple[str, ...] = WHITELIST
    source: str = "built-in"
    skipped: tuple[str, ...] = field(default=(), compare=False)

    def rules_for(self, category: Category) -> tuple[PatternRule, ...]:
        return {
            Category.PROFANITY: self.profanity,
            Category.HATE_SPEECH: self.hate_speech,
            Category.SLUR: self.slurs,
            Category.BULLYING: self.bullying,
            Category.SPAM: self.spam,
        }.get(category, ())

    def counts(self) -> dict[str, int]:
        return {
            "profanity": len(self.profanity),
            "hate_speech": len(self.hate_speech),
            "slur": len(self.slurs),
            "bullying": len(self.bullying),
            "spam": len(self.spam),
            "personal_info": len(self.personal_info),
            "whitelist": len(self.whitelist),
        }


def _builtin_profanity() -> list[PatternRule]:
    rules = []
    for severity, words in PROFANITY_TIERS.items():
        for word, contexts in words.items():
            rules.append(
                PatternRule(
                    name=f"profanity:{word}",
                    category=Category.PROFANITY,
                    severity=severity,
                    pattern=_literal(word),
                    allowed_contexts=contexts,
                    canonical=word,
                    subcategory={MILD: "mild", MODERATE: "moderate", SEVERE: "severe"}[severity],
                )
            )
    for word, (pattern, severity) in OBFUSCATION_PATTERNS.items():
        rules.append(
            PatternRule(
                name=f"obfuscated:{word}",
                category=Category.PROFANITY,
                severity=severity,
                pattern=_compile(pattern),
                canonical=word,
                subcategory="obfuscated",
            )
        )
    return rules


def _grouped_rules(
    category: Category, groups: dict[str, tuple[int, tuple[str, ...]]], gated: tuple[str, ...] = ()
) -> list[PatternRule]:
    rules = []
    for sub, (severity, patterns) in groups.items():
        for i, pattern in enumerate(patterns):
            rules.append(
                PatternRule(
                    name=f"{sub}:{i}",
                    category=category,
                    severity=severity,
                    pattern=_compile(pattern),
                    subcategory=sub,
                    min_words=CONTEXT_MIN_WORDS if sub in gated else 0,
                )
            )
    return rules


def _spam_rules() -> list[PatternRule]:
    return [
        PatternRule(
            name=f"{group}:{i}",
            category=Category.SPAM,
            severity=SPAM_HIT_SEVERITY,
            pattern=_compile(pattern),
            subcategory=group,
        )
        for group, patterns in SPAM_RULES.items()
        for i, pattern in enumerate(patterns)
    ]


def _custom_rule(entry: dict, index: int) -> PatternRule:
    category = Category(str(entry.get("category", "")).lower())
    if category not in _CUSTOM_DEFAULT_SEVERITY:
        raise ValueError(f"category {category.value!r} cannot take custom patterns")
    pattern = entry.get("pattern")
    if not isinstance(pattern, str) or not pattern:
        raise ValueError("missing 'pattern'")
    severity = int(entry.get("severity", _CUSTOM_DEFAULT_SEVERITY[category]))
    min_words = int(entry.get("minWords", 0))
    return PatternRule(
        name=str(entry.get("name") or f"custom:{index}"),
        category=category,
        severity=severity,
        pattern=_compile(pattern),
        allowed_contexts=tuple(str(c).lower() for c in entry.get("allowedContexts", [])),
        subcategory=str(entry.get("subcategory", "custom")),
        min_words=min_words,
    )


def build_library(external: ExternalPatternConfig | None = None) -> PatternLibrary:
    """Merge the built-in tables with *external* into a PatternLibrary."""
    external = external or ExternalPatternConfig()

    profanity = _builtin_profanity()
    hate_speech = _grouped_rules(
        Category.HATE_SPEECH, HATE_SPEECH_RULES, gated=("violence", "dehumanization")
    )
    bullying = _grouped_rules(Category.BULLYING, BULLYING_RULES)
    spam = _spam_rules()
    slurs: list[PatternRule] = []
    skipped: list[str] = []

    for word in external.custom_profanity:
        profanity.append(
            PatternRule(
                name=f"custom-profanity:{word.lower()}",
                category=Category.PROFANITY,
                severity=MODERATE,
                pattern=_literal(word.lower()),
                canonical=word.lower(),
                subcategory="custom",
            )
        )

    # Slur rules are named by index so no term is echoed into rule ids or logs.
    for i, term in enumerate(external.custom_slurs):
        try:
            pattern = tolerant_pattern(term)
        except ValueError:
            skipped.append(f"slur:{i}")
            continue
        slurs.append(
            PatternRule(
                name=f"slur:{i}",
                category=Category.SLUR,
                severity=SLUR_SEVERITY,
                pattern=pattern,
                subcategory="slurs",
            )
        )

    by_category = {
        Category.PROFANITY: profanity,
        Category.HATE_SPEECH: hate_speech,
        Category.SLUR: slurs,
        Category.BULLYING: bullying,
        Category.SPAM: spam,
    }
    for i, entry in enumerate(external.custom_patterns):
        try:
            rule = _custom_rule(entry, i)
        except (ValueError, TypeError, re.error) as e:
            logger.warning("Skipping custom pattern #%d: %s", i, e)
            skipped.append(str(entry.get("name") or f"custom:{i}"))
            continue
        by_category[rule.category].append(rule)

    whitelist = WHITELIST + tuple(
        t.lower() for t in external.whitelisted_terms if t.lower() not in WHITELIST
    )

    return PatternLibrary(
        profanity=tuple(profanity),
        hate_speech=tuple(hate_speech),
        slurs=tuple(slurs),
        bullying=tuple(bullying),
        spam=tuple(spam),
        whitelist=whitelist,
        source=external.source or "built-in",
        skipped=tuple(skipped),
    )
