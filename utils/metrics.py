#!/usr/bin/env python3
"""Minimal metrics (counters and timers) emitted as structured log lines.

Nothing is written to disk. Callers pass identifiers,
counts and codes, never caller text or credentials.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict

from configs.config import Config

logger = logging.getLogger("gitgenie.metrics")


def incr(name: str, value: Any = 1, **kw) -> None:
    if not getattr(Config, "METRICS_ENABLED", True):
        return
    rec: Dict[str, Any] = {"ts": int(time.time()), "metric": name, "value": value}
    for k, v in kw.items():
        if isinstance(v, str) and len(v) > 200:
            rec[k] = v[:200] + "…"
        else:
            rec[k] = v
    logger.info(json.dumps(rec, separators=(",", ":"), ensure_ascii=False, default=str))


class Timer:
    def __init__(self, name: str, **kw):
        self.name = name
        self.kw = kw
        self._t0 = 0.0
        self.elapsed_ms = 0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, *exc):
        dt = time.perf_counter() - self._t0
        self.elapsed_ms = int(dt * 1000)
        incr(name=f"{self.name}.latency_ms", value=self.elapsed_ms, ok=exc[0] is None, **self.kw)
