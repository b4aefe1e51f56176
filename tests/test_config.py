"""Tests for loading the external pattern config."""

import json
import logging
import tempfile
from pathlib import Path

import pytest
import yaml

from modkit.errors import ConfigLoadError
from modkit.moderation.config import (
    PATTERNS_FILE_ENV,
    default_patterns_path,
    load_external_config,
    parse_external_config,
    read_external_config,
)
from modkit.moderation.models import Category
from modkit.moderation.moderator import default_library, default_moderator, moderate_content

SAMPLE = {
    "customProfanity": ["frak", "  "],
    "customSlurs": ["zorblax"],
    "whitelistedTerms": ["frakville"],
    "customPatterns": [{"name": "promo", "category": "spam", "pattern": "promo code"}],
}


def _write(tmpdir: str, name: str, content: str) -> Path:
    path = Path(tmpdir) / name
    path.write_text(content)
    return path


def test_read_json_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, "patterns.json", json.dumps(SAMPLE))
        config = read_external_config(path)

        assert config.custom_profanity == ("frak",)
        assert config.custom_slurs == ("zorblax",)
        assert config.whitelisted_terms == ("frakville",)
        assert config.custom_patterns[0]["name"] == "promo"
        assert config.source == str(path)
        assert not config.is_empty


def test_read_yaml_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, "patterns.yaml", yaml.dump(SAMPLE))
        config = read_external_config(path)
        assert config.custom_slurs == ("zorblax",)


def test_read_malformed_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, "patterns.json", "{not json")
        with pytest.raises(ConfigLoadError) as exc:
            read_external_config(path)
        assert exc.value.path == str(path)


def test_read_missing_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ConfigLoadError):
            read_external_config(Path(tmpdir) / "absent.json")


def test_parse_rejects_wrong_shapes():
    with pytest.raises(ConfigLoadError):
        parse_external_config(["a", "b"], "x.json")
    with pytest.raises(ConfigLoadError):
        parse_external_config({"customProfanity": "frak"}, "x.json")
    with pytest.raises(ConfigLoadError):
        parse_external_config({"customPatterns": {"name": "x"}}, "x.json")


def test_parse_empty_document():
    assert parse_external_config(None, "x.yaml").is_empty
    assert parse_external_config({}, "x.json").is_empty


def test_load_falls_back_on_malformed(caplog):
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, "patterns.json", "[1, 2")
        with caplog.at_level(logging.WARNING, logger="modkit.moderation.config"):
            config = load_external_config(path)
        assert config.is_empty
        assert "using built-in patterns" in caplog.text


def test_load_explicit_missing_warns(caplog):
    with tempfile.TemporaryDirectory() as tmpdir:
        with caplog.at_level(logging.WARNING, logger="modkit.moderation.config"):
            config = load_external_config(Path(tmpdir) / "absent.json")
        assert config.is_empty
        assert "not found" in caplog.text


def test_env_var_selects_path(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, "custom.json", json.dumps({"customProfanity": ["frak"]}))
        monkeypatch.setenv(PATTERNS_FILE_ENV, str(path))

        assert default_patterns_path() == path
        assert load_external_config().custom_profanity == ("frak",)


def test_read_non_utf8_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "patterns.json"
        path.write_bytes(b'{"customProfanity": ["\xff"]}')
        with pytest.raises(ConfigLoadError):
            read_external_config(path)


def test_load_falls_back_on_non_utf8(caplog):
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "patterns.json"
        path.write_bytes(b'{"customProfanity": ["\xff"]}')
        with caplog.at_level(logging.WARNING, logger="modkit.moderation.config"):
            config = load_external_config(path)
        assert config.is_empty
        assert "using built-in patterns" in caplog.text


def test_undecodable_env_config_keeps_moderation_running(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "patterns.json"
        path.write_bytes(b'{"customProfanity": ["\xff"]}')
        monkeypatch.setenv(PATTERNS_FILE_ENV, str(path))
        default_library.cache_clear()
        default_moderator.cache_clear()
        try:
            assert moderate_content("hello there").is_clean
            assert moderate_content("what the fuck").flag(Category.PROFANITY).detected
        finally:
            default_library.cache_clear()
            default_moderator.cache_clear()
