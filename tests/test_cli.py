"""Tests for the modkit command line."""

import json
import tempfile
from pathlib import Path

import pytest
from click.testing import CliRunner

from modkit import __version__
from modkit.cli import main
from modkit.moderation.config import PATTERNS_FILE_ENV
from modkit.moderation.moderator import default_library, default_moderator

SNAPSHOT = {
    "users": [
        {"id": "u1", "created_at": "2020-01-01T00:00:00Z", "username": "veteran"},
    ],
    "posts": [
        {"id": "p1", "author_id": "u1", "content": "hello all", "created_at": "2020-06-01T00:00:00Z",
         "status": "flagged"},
    ],
    "reports": [],
}


@pytest.fixture(autouse=True)
def builtin_patterns(monkeypatch):
    """Run every command against the built-in tables only."""
    with tempfile.TemporaryDirectory() as tmpdir:
        monkeypatch.setenv(PATTERNS_FILE_ENV, str(Path(tmpdir) / "absent.json"))
        default_library.cache_clear()
        default_moderator.cache_clear()
        yield
        default_library.cache_clear()
        default_moderator.cache_clear()


@pytest.fixture
def snapshot_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "snapshot.json"
        path.write_text(json.dumps(SNAPSHOT))
        yield str(path)


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_check_clean():
    result = CliRunner().invoke(main, ["check", "What a lovely day"])
    assert result.exit_code == 0
    assert "CLEAN" in result.output


def test_check_json():
    result = CliRunner().invoke(main, ["check", "--json", "call me at 555-123-4567"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["flags"]["personal_info"]["detected"]
    assert data["cleaned_content"] == "call me at [PHONE]"


def test_check_options_map_to_config():
    result = CliRunner().invoke(main, ["check", "--json", "--no-pii", "call me at 555-123-4567"])
    data = json.loads(result.output)
    assert data["is_clean"]

    result = CliRunner().invoke(main, ["check", "--json", "--strict", "hi"])
    assert json.loads(result.output)["should_warn"]


def test_check_block():
    result = CliRunner().invoke(main, ["check", "you are worthless"])
    assert result.exit_code == 0
    assert "BLOCK" in result.output


def test_redact():
    result = CliRunner().invoke(main, ["redact", "call me at 555-123-4567"])
    assert result.exit_code == 0
    assert result.output == "call me at [PHONE]\n"


def test_batch_json_preserves_order():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "posts.txt"
        path.write_text("hello there\n\nyou are worthless\ncall me at 555-123-4567\n")

        result = CliRunner().invoke(main, ["batch", "--json", "--batch-size", "2", str(path)])

    assert result.exit_code == 0
    lines = [json.loads(line) for line in result.output.splitlines()]
    assert [r["should_block"] for r in lines] == [False, True, False]
    assert lines[2]["cleaned_content"] == "call me at [PHONE]"


def test_batch_table():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "posts.txt"
        path.write_text("hello there\nyou are worthless\n")
        result = CliRunner().invoke(main, ["batch", str(path)])

    assert result.exit_code == 0
    assert "1 blocked" in result.output


def test_analyze_user(snapshot_path):
    result = CliRunner().invoke(main, ["analyze-user", "u1", "--data", snapshot_path, "--json"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["user_id"] == "u1"
    assert data["risk_level"] == "MINIMAL"


def test_analyze_unknown_user(snapshot_path):
    result = CliRunner().invoke(main, ["analyze-user", "ghost", "--data", snapshot_path])
    assert result.exit_code == 1
    assert "No profile" in result.output


def test_analyze_bad_snapshot():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "broken.json"
        path.write_text("{")
        result = CliRunner().invoke(main, ["analyze-user", "u1", "--data", str(path)])
    assert result.exit_code == 1
    assert "Failed to load snapshot" in result.output


def test_stats(snapshot_path):
    result = CliRunner().invoke(main, ["stats", "--data", snapshot_path, "--json"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["content"]["flagged"] == 1
    assert data["risk_level"] == "MINIMAL"


def test_stats_table(snapshot_path):
    result = CliRunner().invoke(main, ["stats", "--data", snapshot_path])
    assert result.exit_code == 0
    assert "Overall Risk" in result.output


def test_patterns():
    result = CliRunner().invoke(main, ["patterns"])
    assert result.exit_code == 0
    assert "built-in" in result.output
    assert "profanity" in result.output
