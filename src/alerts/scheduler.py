"""
Spoken caution scheduling.

The scheduler is a two-state machine driven by an external fixed-period tick
(not by frame rate):

- Idle: no recent alert; the next tick may issue one.
- Cooling: an alert was issued less than ``min_interval_s`` ago; ticks do
  nothing. There is no timer; the state is re-derived from the clock on
  every tick.

Speech is fire-and-forget. If the speech collaborator raises, the alert still
counts as issued so a broken engine cannot cause a retry storm.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from models.config import AlertConfig
from models.detection import Detection, Direction, Proximity


class AlertPolicy(str, Enum):
    """Which detections are worth a spoken caution."""
    STRICT = "strict"  # close AND dead ahead
    LOOSE = "loose"  # close or medium, any direction


class SchedulerState(str, Enum):
    IDLE = "idle"
    COOLING = "cooling"


@dataclass
class AlertState:
    """Owned by exactly one AlertScheduler; never module-global."""
    last_alert_timestamp: Optional[float] = None


def is_alert_worthy(detection: Detection, policy: AlertPolicy = AlertPolicy.STRICT) -> bool:
    if policy == AlertPolicy.LOOSE:
        return detection.proximity in (Proximity.CLOSE, Proximity.MEDIUM)
    return detection.proximity == Proximity.CLOSE and detection.direction == Direction.CENTER


def build_caution(labels: Sequence[str]) -> str:
    """``["person", "chair"]`` -> ``"Caution. person ahead. chair ahead"``."""
    return "Caution. " + ". ".join(f"{label} ahead" for label in labels)


class AlertScheduler:
    """
    Decide whether the current detections warrant a spoken caution.

    Example:
        scheduler = AlertScheduler(speak=tts.speak, min_interval_s=4.0)
        # every alert tick:
        scheduler.tick(pipeline.latest())
    """

    def __init__(
        self,
        speak: Callable[[str], None],
        min_interval_s: float = 4.0,
        max_items: int = 4,
        policy: AlertPolicy = AlertPolicy.STRICT,
        clock: Callable[[], float] = time.monotonic,
        state: Optional[AlertState] = None,
    ):
        self._speak = speak
        self.min_interval_s = min_interval_s
        self.max_items = max_items
        self.policy = AlertPolicy(policy)
        self._clock = clock
        self._state = state if state is not None else AlertState()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        cfg: AlertConfig,
        speak: Callable[[str], None],
        clock: Callable[[], float] = time.monotonic,
    ) -> "AlertScheduler":
        return cls(
            speak=speak,
            min_interval_s=cfg.min_interval_s,
            max_items=cfg.max_items,
            policy=AlertPolicy(cfg.policy),
            clock=clock,
        )

    @property
    def last_alert_timestamp(self) -> Optional[float]:
        with self._lock:
            return self._state.last_alert_timestamp

    def state_at(self, now: Optional[float] = None) -> SchedulerState:
        now = self._clock() if now is None else now
        with self._lock:
            return self._state_at(now)

    def _state_at(self, now: float) -> SchedulerState:
        last = self._state.last_alert_timestamp
        if last is None or now - last >= self.min_interval_s:
            return SchedulerState.IDLE
        return SchedulerState.COOLING

    def select(self, detections: Sequence[Detection]) -> List[Detection]:
        """Alert-worthy detections, in their existing score order, capped at max_items."""
        worthy = [d for d in detections if is_alert_worthy(d, self.policy)]
        return worthy[: self.max_items]

    def evaluate(self, detections: Sequence[Detection], now: Optional[float] = None) -> Optional[str]:
        """
        Run one scheduling step without speaking.

        Returns the caution text and enters Cooling if an alert is due,
        otherwise None.
        """
        now = self._clock() if now is None else now
        with self._lock:
            if self._state_at(now) == SchedulerState.COOLING:
                return None
            selected = self.select(detections)
            if not selected:
                return None
            self._state.last_alert_timestamp = now
        return build_caution([d.label for d in selected])

    def announce(self, message: str) -> None:
        """Hand text to the speech collaborator; failures are logged, never retried."""
        try:
            self._speak(message)
        except Exception as e:
            logging.warning(f"Speech failed, alert dropped: {e}")

    def tick(self, detections: Sequence[Detection], now: Optional[float] = None) -> Optional[str]:
        message = self.evaluate(detections, now)
        if message is not None:
            logging.info(f"Alert: {message}")
            self.announce(message)
        return message
