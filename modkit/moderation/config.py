"""External pattern configuration.

An optional file extends the built-in pattern tables::

    {
      "customProfanity": ["frak"],
      "customSlurs": ["..."],
      "whitelistedTerms": ["cockpit"],
      "customPatterns": [
        {"name": "crypto-dm", "category": "spam", "pattern": "dm me for (btc|eth)", "severity": 2}
      ]
    }

The path comes from ``MODKIT_PATTERNS_FILE`` or defaults to
``~/.modkit/patterns.json``. JSON is the canonical format; ``.yaml`` and
``.yml`` files are parsed as YAML. A missing or malformed file never stops
the process: the problem is logged and the built-in tables are used alone.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from modkit.errors import ConfigLoadError

logger = logging.getLogger(__name__)

PATTERNS_FILE_ENV = "MODKIT_PATTERNS_FILE"
DEFAULT_PATTERNS_FILE = Path.home() / ".modkit" / "patterns.json"


@dataclass(frozen=True)
class ExternalPatternConfig:
    """Operator-supplied additions to the built-in pattern tables."""

    custom_profanity: tuple[str, ...] = ()
    custom_slurs: tuple[str, ...] = ()
    whitelisted_terms: tuple[str, ...] = ()
    custom_patterns: tuple[dict, ...] = ()
    source: str = ""

    @property
    def is_empty(self) -> bool:
        return not (
            self.custom_profanity
            or self.custom_slurs
            or self.whitelisted_terms
            or self.custom_patterns
        )


def default_patterns_path() -> Path:
    env = os.environ.get(PATTERNS_FILE_ENV)
    return Path(env).expanduser() if env else DEFAULT_PATTERNS_FILE


def _string_list(data: dict, key: str, path: str) -> tuple[str, ...]:
    value = data.get(key, [])
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigLoadError(path, f"'{key}' must be a list")
    return tuple(str(v).strip() for v in value if str(v).strip())


def parse_external_config(data, source: str = "") -> ExternalPatternConfig:
    """Build an ExternalPatternConfig from an already-parsed mapping."""
    if data is None:
        return ExternalPatternConfig(source=source)
    if not isinstance(data, dict):
        raise ConfigLoadError(source, "top level must be an object")

    custom_patterns = data.get("customPatterns", [])
    if not isinstance(custom_patterns, list):
        raise ConfigLoadError(source, "'customPatterns' must be a list")

    return ExternalPatternConfig(
        custom_profanity=_string_list(data, "customProfanity", source),
        custom_slurs=_string_list(data, "customSlurs", source),
        whitelisted_terms=_string_list(data, "whitelistedTerms", source),
        custom_patterns=tuple(p for p in custom_patterns if isinstance(p, dict)),
        source=source,
    )


def read_external_config(path: str | Path) -> ExternalPatternConfig:
    """Read and parse *path*. Raises ConfigLoadError on any problem."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigLoadError(str(path), str(e)) from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigLoadError(str(path), str(e)) from e

    return parse_external_config(data, source=str(path))


def load_external_config(path: str | Path | None = None) -> ExternalPatternConfig:
    """Load the external config, falling back to an empty one on any failure."""
    explicit = path is not None or PATTERNS_FILE_ENV in os.environ
    path = Path(path) if path is not None else default_patterns_path()

    if not path.exists():
        if explicit:
            logger.warning("Pattern config %s not found; using built-in patterns", path)
        else:
            logger.debug("No pattern config at %s; using built-in patterns", path)
        return ExternalPatternConfig()

    try:
        config = read_external_config(path)
    except ConfigLoadError as e:
        logger.warning("%s; using built-in patterns", e)
        return ExternalPatternConfig()

    logger.info(
        "Loaded pattern config %s (%d profanity, %d slurs, %d whitelisted, %d custom patterns)",
        path,
        len(config.custom_profanity),
        len(config.custom_slurs),
        len(config.whitelisted_terms),
        len(config.custom_patterns),
    )
    return config
