#!/usr/bin/env python3
"""Deadline wrapper for blocking calls to external services."""

from __future__ import annotations

import concurrent.futures
from typing import Any, Callable, Optional

# Shared pool; a call that blows its deadline keeps running here until the
# socket timeout releases it, but the caller is freed immediately.
_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=16, thread_name_prefix="deadline")


def with_deadline(
    fn: Callable[[], Any], *, max_runtime_s: float, on_timeout: Optional[Callable[[], Any]] = None
) -> Any:
    """Run fn and return its result, or raise TimeoutError after max_runtime_s."""
    future = _EXECUTOR.submit(fn)
    try:
        return future.result(timeout=max_runtime_s)
    except concurrent.futures.TimeoutError:
        future.cancel()
        if on_timeout is not None:
            on_timeout()
        raise TimeoutError(f"Deadline exceeded: {max_runtime_s}s")
