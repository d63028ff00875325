#!/usr/bin/env python3
"""In-memory sliding-window rate limiter keyed by caller identity.

Each identifier owns a window of request timestamps (ms since epoch) pruned
to a one-hour horizon. Check-then-append runs under the identifier's lock,
so two concurrent requests can never both be admitted past a cap. The
cleanup sweep locks one identifier at a time.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from configs.config import Config
from utils.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

MINUTE_MS = 60_000
HOUR_MS = 3_600_000


def rate_limit_identifier(credential: Optional[str], remote_addr: Optional[str] = None) -> str:
    """Derive the limiter key: a short SHA-256 of the credential, else the address."""
    if credential:
        return hashlib.sha256(credential.encode("utf-8")).hexdigest()[:16]
    return remote_addr or "unknown"


@dataclass
class RemainingRequests:
    per_minute: int
    per_hour: int

    def to_dict(self) -> Dict[str, int]:
        return {"perMinute": self.per_minute, "perHour": self.per_hour}


@dataclass
class _Window:
    stamps: List[int] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)
    # Set by cleanup once the window is dropped from the registry
    retired: bool = False


def _clock_time(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%H:%M:%S UTC")


class SlidingWindowRateLimiter:
    """Per-minute and per-hour admission control.

    State model per identifier:
      - entries older than one hour are pruned on every check
      - hourly cap reached -> RateLimitExceeded, retry after oldest + 1h
      - per-minute cap reached -> RateLimitExceeded, retry after oldest-in-minute + 60s
      - otherwise the current time is appended
    """

    def __init__(
        self,
        per_minute: Optional[int] = None,
        per_hour: Optional[int] = None,
        cleanup_interval_s: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        cfg = Config.get_rate_limit_config()
        self.per_minute = int(per_minute if per_minute is not None else cfg["per_minute"])
        self.per_hour = int(per_hour if per_hour is not None else cfg["per_hour"])
        self.cleanup_interval_s = float(
            cleanup_interval_s if cleanup_interval_s is not None else cfg["cleanup_interval_s"]
        )
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._registry_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _window(self, identifier: str) -> _Window:
        with self._registry_lock:
            window = self._windows.get(identifier)
            if window is None or window.retired:
                window = _Window()
                self._windows[identifier] = window
            return window

    def check_limit(self, identifier: str) -> None:
        """Admit one request for identifier or raise RateLimitExceeded."""
        while True:
            window = self._window(identifier)
            with window.lock:
                if window.retired:
                    continue
                now = self._now_ms()
                recent = [t for t in window.stamps if now - t < HOUR_MS]
                window.stamps = recent

                if len(recent) >= self.per_hour:
                    reset_at = min(recent) + HOUR_MS
                    raise RateLimitExceeded(
                        f"Rate limit exceeded: Maximum {self.per_hour} requests per hour. "
                        f"Try again after {_clock_time(reset_at)}",
                        scope="hour",
                        retry_after_ms=reset_at,
                    )

                last_minute = [t for t in recent if now - t < MINUTE_MS]
                if len(last_minute) >= self.per_minute:
                    reset_at = min(last_minute) + MINUTE_MS
                    raise RateLimitExceeded(
                        f"Rate limit exceeded: Maximum {self.per_minute} requests per minute. "
                        f"Try again after {_clock_time(reset_at)}",
                        scope="minute",
                        retry_after_ms=reset_at,
                    )

                recent.append(now)
                return

    def get_remaining_requests(self, identifier: str) -> RemainingRequests:
        """Headroom for identifier. Pure read: never creates or prunes state."""
        with self._registry_lock:
            window = self._windows.get(identifier)
        stamps: List[int] = []
        if window is not None:
            with window.lock:
                stamps = list(window.stamps)
        now = self._now_ms()
        minute = sum(1 for t in stamps if now - t < MINUTE_MS)
        hour = sum(1 for t in stamps if now - t < HOUR_MS)
        return RemainingRequests(
            per_minute=max(0, self.per_minute - minute),
            per_hour=max(0, self.per_hour - hour),
        )

    def cleanup(self) -> int:
        """Drop stale entries and fully stale identifiers.

        Returns the number of identifiers still active.
        """
        now = self._now_ms()
        with self._registry_lock:
            items = list(self._windows.items())
        for identifier, window in items:
            with window.lock:
                window.stamps = [t for t in window.stamps if now - t < HOUR_MS]
                if window.stamps:
                    continue
                window.retired = True
            with self._registry_lock:
                if self._windows.get(identifier) is window:
                    del self._windows[identifier]
        with self._registry_lock:
            active = len(self._windows)
        logger.info(f"Rate limiter cleanup: {active} active identifiers")
        return active

    def reset(self, identifier: str) -> None:
        """Clear one identifier's window (administrative and test use)."""
        with self._registry_lock:
            window = self._windows.pop(identifier, None)
        if window is not None:
            with window.lock:
                window.stamps = []
                window.retired = True

    def get_stats(self) -> Dict[str, int]:
        with self._registry_lock:
            windows = list(self._windows.values())
        total = 0
        for window in windows:
            with window.lock:
                total += len(window.stamps)
        return {"total_identifiers": len(windows), "total_requests": total}

    # --- lifecycle of the background sweep ---

    def _run(self) -> None:
        while not self._stop_event.wait(self.cleanup_interval_s):
            try:
                self.cleanup()
            except Exception:  # noqa: BLE001
                logger.exception("Rate limiter cleanup failed")

    def start(self) -> "SlidingWindowRateLimiter":
        if self._thread is not None and self._thread.is_alive():
            return self
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="rate-limiter-cleanup", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> "SlidingWindowRateLimiter":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()
