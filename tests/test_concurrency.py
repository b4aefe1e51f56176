"""Tests for the fan-out helper."""

import time

import pytest

from modkit.errors import DataFetchError
from modkit.utils.concurrency import fan_out


def test_results_keyed_by_name():
    results = fan_out({"a": lambda: 1, "b": lambda: "two", "c": lambda: None})
    assert results == {"a": 1, "b": "two", "c": None}


def test_empty_calls():
    assert fan_out({}) == {}


def test_failure_names_source():
    def broken():
        raise KeyError("missing")

    with pytest.raises(DataFetchError) as exc:
        fan_out({"ok": lambda: 1, "posts": broken})
    assert exc.value.source == "posts"
    assert isinstance(exc.value.__cause__, KeyError)


def test_timeout_bounds_the_whole_fan_in():
    def slow():
        time.sleep(0.5)
        return 1

    start = time.monotonic()
    with pytest.raises(DataFetchError) as exc:
        fan_out({"slow": slow, "slower": slow}, timeout=0.05)
    assert exc.value.source == "slow"
    assert "timed out" in exc.value.reason
    assert time.monotonic() - start < 0.4
