"""
Frame admission control.

Cameras deliver frames faster than the pipeline should run. Frames arriving
before the next admission slot, or while another frame is still in flight,
are dropped rather than queued.
"""

from __future__ import annotations

import threading
from typing import Optional


# Tolerance for admission slots computed from float frame periods.
_SLOT_EPSILON = 1e-9


class FrameAdmission:
    """Admit at most ``target_hz`` frames per second, one in flight at a time."""

    def __init__(self, target_hz: float = 10.0):
        if target_hz <= 0:
            raise ValueError(f"target_hz must be positive, got {target_hz}")
        self.target_hz = target_hz
        self.min_period = 1.0 / target_hz
        self._last_admitted: Optional[float] = None
        self._in_flight = False
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    def try_admit(self, now: float) -> bool:
        with self._lock:
            if self._in_flight:
                return False
            if self._last_admitted is not None and now - self._last_admitted < self.min_period - _SLOT_EPSILON:
                return False
            self._last_admitted = now
            self._in_flight = True
            return True

    def release(self) -> None:
        with self._lock:
            self._in_flight = False
