"""A coarse, monotonic millisecond clock with an optional background refresher."""

from __future__ import annotations

import threading
import time
from datetime import timedelta

__all__ = [
    "CHECK_UPDATE_INTERVAL",
    "duration_to_millis",
    "now_millis",
    "recent_millis",
    "ensure_updater",
]

CHECK_UPDATE_INTERVAL = timedelta(milliseconds=200)

_ANCHOR_NS = time.monotonic_ns()
_recent = 0
_recent_lock = threading.Lock()
_updater_lock = threading.Lock()
_updater_started = False


def duration_to_millis(dur: timedelta) -> int:
    """Return the whole number of milliseconds in ``dur``."""
    if dur < timedelta(0):
        raise ValueError(f"duration must not be negative: {dur!r}")
    return dur // timedelta(milliseconds=1)


def now_millis() -> int:
    """Return milliseconds since a fixed anchor; never smaller than a previous result."""
    global _recent
    elapsed_ns = max(0, time.monotonic_ns() - _ANCHOR_NS)
    t = elapsed_ns // 1_000_000
    with _recent_lock:
        if _recent > t:
            return _recent
        _recent = t
        return t


def recent_millis() -> int:
    """Return the value most recently produced by :func:`now_millis`."""
    return _recent


def _update_forever() -> None:
    interval = CHECK_UPDATE_INTERVAL.total_seconds()
    while True:
        time.sleep(interval)
        now_millis()


def ensure_updater() -> None:
    """Start the background thread that refreshes the clock, once per process."""
    global _updater_started
    with _updater_lock:
        if _updater_started:
            return
        thread = threading.Thread(target=_update_forever, name="time updater", daemon=True)
        thread.start()
        _updater_started = True