"""
Pipeline engine for the per-frame detection pipeline.

This module wires decode -> gate -> suppress -> classify for every admitted
frame, publishes the resulting detections as an immutable snapshot, and runs
the alert scheduler against that snapshot on its own (slower) cadence.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from alerts.describe import describe_scene, summarize_status
from alerts.scheduler import AlertScheduler
from detection.gate import ConfidenceGate
from detection.nms import ClassAwareSuppressor
from detection.spatial import SpatialClassifier
from inference.decoder import TensorDecoder
from models.config import Config, PipelineConfig
from models.detection import Detection
from models.raw_output import RawOutput
from pipeline.admission import FrameAdmission


Snapshot = Tuple[Detection, ...]
FrameInput = Union[RawOutput, np.ndarray, Callable[[], Union[RawOutput, np.ndarray]]]


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frames_admitted: int = 0
    frames_dropped: int = 0
    frames_failed: int = 0
    alerts_issued: int = 0
    start_time: float = field(default_factory=time.monotonic)
    last_stats_log_time: float = field(default_factory=time.monotonic)


def _as_raw_output(output: Union[RawOutput, np.ndarray]) -> RawOutput:
    if isinstance(output, RawOutput):
        return output
    return RawOutput.from_array(np.asarray(output))


class DetectionPipeline:
    """
    Per-frame orchestrator.

    ``process`` is a plain synchronous function from one model output to one
    detection snapshot. ``submit`` adds frame admission on top of it, and
    ``tick`` drives the alert scheduler. Consumers only ever see tuples that
    have been fully built; a frame still being decoded is never visible.

    Example:
        pipeline = create_pipeline_from_config(config, speak=tts.speak)
        # camera thread, for every frame:
        pipeline.submit(lambda: model.run(frame))
        # alert timer, every few seconds:
        pipeline.tick()
        # leaving the camera screen:
        pipeline.stop()
    """

    def __init__(
        self,
        decoder: TensorDecoder,
        suppressor: ClassAwareSuppressor,
        classifier: SpatialClassifier,
        alerts: Optional[AlertScheduler] = None,
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.decoder = decoder
        self.suppressor = suppressor
        self.classifier = classifier
        self.alerts = alerts
        self.config = config or PipelineConfig()
        self.admission = FrameAdmission(self.config.target_hz)
        self._clock = clock
        started = clock()
        self.stats = PipelineStats(start_time=started, last_stats_log_time=started)
        self._lock = threading.Lock()
        self._running = True
        self._latest: Snapshot = ()
        self._callbacks: List[Callable[[Snapshot], None]] = []

    def add_callback(self, callback: Callable[[Snapshot], None]) -> None:
        """
        Add a callback to be called with every published snapshot.

        Args:
            callback: Function taking the detection tuple as its argument.
        """
        self._callbacks.append(callback)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def latest(self) -> Snapshot:
        """The most recently published detections (empty before the first frame)."""
        with self._lock:
            return self._latest

    def process(self, output: Union[RawOutput, np.ndarray]) -> Snapshot:
        """
        Decode, suppress, and classify one model output.

        Never raises: a failing frame is logged and yields an empty tuple so
        the next frame is processed normally.
        """
        try:
            candidates = self.decoder.decode(_as_raw_output(output))
            survivors = self.suppressor.suppress(candidates)
            return tuple(self.classifier.classify_all(survivors))
        except Exception:
            self.stats.frames_failed += 1
            logging.exception("Frame processing failed")
            return ()

    def submit(self, frame: FrameInput, now: Optional[float] = None) -> Optional[Snapshot]:
        """
        Offer a frame to the pipeline.

        ``frame`` is either a model output or a zero-argument callable that
        runs inference and returns one; the callable is only invoked for
        admitted frames.

        Returns:
            The published snapshot, or None if the frame was dropped or the
            pipeline was stopped while it was in flight.
        """
        now = self._clock() if now is None else now
        if not self.is_running:
            return None
        if not self.admission.try_admit(now):
            self.stats.frames_dropped += 1
            return None

        self.stats.frames_admitted += 1
        try:
            try:
                output = frame() if callable(frame) else frame
            except Exception:
                self.stats.frames_failed += 1
                logging.exception("Inference failed")
                output = None
            snapshot = self.process(output) if output is not None else ()
        finally:
            self.admission.release()

        if not self._publish(snapshot):
            return None
        self._handle_periodic_tasks(now)
        return snapshot

    def tick(self, now: Optional[float] = None) -> Optional[str]:
        """
        Run one alert-scheduling step against the latest snapshot.

        Returns the caution text that was spoken, if any.
        """
        if self.alerts is None:
            return None
        with self._lock:
            if not self._running:
                return None
            snapshot = self._latest

        message = self.alerts.evaluate(snapshot, now)
        if message is None:
            return None

        with self._lock:
            if not self._running:
                logging.debug("Pipeline stopped during alert tick; discarding alert")
                return None
        self.stats.alerts_issued += 1
        logging.info(f"Alert: {message}")
        self.alerts.announce(message)
        return message

    def describe(self) -> str:
        """Spoken answer to "what is that?" for the latest snapshot."""
        return describe_scene(self.latest())

    def status(self) -> str:
        return summarize_status(self.latest())

    def stop(self) -> None:
        """Stop admission and alerting together; in-flight output is discarded."""
        with self._lock:
            self._running = False
            self._latest = ()
        logging.info(
            f"Pipeline stopped: admitted={self.stats.frames_admitted}, "
            f"dropped={self.stats.frames_dropped}, failed={self.stats.frames_failed}, "
            f"alerts={self.stats.alerts_issued}"
        )

    def _publish(self, snapshot: Snapshot) -> bool:
        with self._lock:
            if not self._running:
                logging.debug("Pipeline stopped during frame; discarding detections")
                return False
            self._latest = snapshot

        for callback in self._callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logging.warning(f"Callback error: {e}")
        return True

    def _handle_periodic_tasks(self, now: float) -> None:
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: admitted={self.stats.frames_admitted}, "
                f"dropped={self.stats.frames_dropped}, failed={self.stats.frames_failed}, "
                f"alerts={self.stats.alerts_issued}"
            )
            self.stats.last_stats_log_time = now


def create_pipeline_from_config(
    config: Config,
    speak: Optional[Callable[[str], None]] = None,
    clock: Callable[[], float] = time.monotonic,
) -> DetectionPipeline:
    """
    Factory function to create a DetectionPipeline from a typed Config.

    Args:
        config: Full application config.
        speak: Speech collaborator; without one, no alert scheduler is built.
        clock: Monotonic clock shared by admission and alerting.
    """
    gate = ConfidenceGate.from_config(config.gate)
    decoder = TensorDecoder.from_config(config.decoder, gate)
    suppressor = ClassAwareSuppressor.from_config(config.suppression)
    classifier = SpatialClassifier.from_config(config.spatial, frame_size=config.decoder.input_size)
    alerts = AlertScheduler.from_config(config.alerts, speak, clock=clock) if speak is not None else None

    return DetectionPipeline(
        decoder,
        suppressor,
        classifier,
        alerts=alerts,
        config=config.pipeline,
        clock=clock,
    )
