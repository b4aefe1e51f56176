"""Bounded fan-out/fan-in for independent store reads."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable

from modkit.errors import DataFetchError

MAX_FETCH_WORKERS = 8


def fan_out(calls: dict[str, Callable[[], Any]], timeout: float | None = None) -> dict[str, Any]:
    """Run every callable in *calls* concurrently and collect results by key.

    Any failure or timeout is raised as DataFetchError naming the source.
    The timeout bounds the whole fan-in, not each call.
    """
    if not calls:
        return {}
    pool = ThreadPoolExecutor(
        max_workers=min(MAX_FETCH_WORKERS, len(calls)), thread_name_prefix="modkit-fetch"
    )
    try:
        deadline = None if timeout is None else time.monotonic() + timeout
        futures = {name: pool.submit(fn) for name, fn in calls.items()}
        results: dict[str, Any] = {}
        for name, future in futures.items():
            try:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                results[name] = future.result(timeout=remaining)
            except FutureTimeout as e:
                raise DataFetchError(name, f"timed out after {timeout}s") from e
            except DataFetchError:
                raise
            except Exception as e:
                raise DataFetchError(name, str(e) or type(e).__name__) from e
        return results
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
