# processor.py
"""Glue logic that wires frame source → detector → framing engine → capture."""
from __future__ import annotations

import dataclasses
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

import cv2
import numpy as np

from vehicle_framing.common import BoundingBox, FramingKind, FramingState, ReferenceFrame
from vehicle_framing.config import (
    AppConfig,
    CaptureConfig,
    FeatureFlags,
    FramingConfig,
    LoopConfig,
)
from vehicle_framing.decision import FramingDecisionEngine
from vehicle_framing.errors import DetectionUnavailable, NoFrameAvailable
from vehicle_framing.geometry import reference_for_viewport
from vehicle_framing.helpers import ProportionHistory
from vehicle_framing.live_tuning import RuntimeParamWatcher
from vehicle_framing.orchestrator import CaptureEvent, CaptureOrchestrator, CaptureStage
from vehicle_framing.scheduler import FixedTick, TimerQueue

WINDOW = "Vehicle Framing"


@dataclass(frozen=True)
class FramingSnapshot:
    """Everything the rendering side needs, as plain data."""
    tick: int = 0
    state: FramingState = field(
        default_factory=lambda: FramingState(FramingKind.NO_VEHICLE, message_keys=("feedback.no_vehicle",))
    )
    reference: Optional[ReferenceFrame] = None
    selected: Optional[BoundingBox] = None
    detection_labels: Tuple[str, ...] = ()
    proportion_history: Tuple[float, ...] = ()
    stage: CaptureStage = CaptureStage.IDLE
    fault: Optional[str] = None
    features: FeatureFlags = field(default_factory=FeatureFlags)


SnapshotListener = Callable[[FramingSnapshot], Any]


class FramingProcessor:
    """
    The main high-level orchestrator.

    ``frame_source`` needs ``snapshot()`` (and ``read()``/``open()``/
    ``release()`` for :meth:`run`); ``detector`` needs ``detect(frame)``
    (and ``load()``/``close()`` for :meth:`run`).
    """

    def __init__(
        self,
        frame_source: Any,
        detector: Any,
        app_cfg: Optional[AppConfig] = None,
        framing_cfg: Optional[FramingConfig] = None,
        capture_cfg: Optional[CaptureConfig] = None,
        loop_cfg: Optional[LoopConfig] = None,
        vehicle_classes: Tuple[str, ...] = ("car", "truck", "bus"),
        clock: Callable[[], float] = time.monotonic,
        watcher: Optional[RuntimeParamWatcher] = None,
    ):
        # Save configs
        self.app_cfg = app_cfg or AppConfig()
        self.framing_cfg = framing_cfg or FramingConfig()
        self.capture_cfg = capture_cfg or CaptureConfig()
        self.loop_cfg = loop_cfg or LoopConfig()
        self.features = self.app_cfg.features

        # Collaborators
        self.frame_source = frame_source
        self.detector = detector
        self.watcher = watcher

        # Build sub-systems
        self.timers = TimerQueue(clock)
        self.engine = FramingDecisionEngine(self.framing_cfg, vehicle_classes)
        self.orchestrator = CaptureOrchestrator(
            frame_source, self.timers, self.capture_cfg, self.features
        )
        self.ticker = FixedTick(self.timers, self.loop_cfg.tick_period_s, self._tick)
        self.history = ProportionHistory()
        if self.watcher is not None:
            self.watcher.apply_thresholds(self.engine)

        # Published state
        self.snapshot = FramingSnapshot(features=self.features)
        self._listeners: List[SnapshotListener] = []
        self.orchestrator.subscribe(self._on_capture_event)

        # Geometry, recomputed when the viewport changes
        self._viewport: Optional[Tuple[int, int]] = None
        self.reference: Optional[ReferenceFrame] = None

        # Runtime metrics
        self.tick_count = 0
        self.evaluated_ticks = 0
        self.guarded_ticks = 0

    # ---------------------------------------------------------------------
    #                       Subscriptions / geometry
    # ---------------------------------------------------------------------
    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self, snapshot: FramingSnapshot) -> None:
        self.snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:  # noqa: BLE001
                print(f"[Processor] Listener error: {exc}")

    def update_viewport(self, width: int, height: int) -> ReferenceFrame:
        """Recompute the reference frame if the viewport size changed."""
        if self._viewport != (width, height) or self.reference is None:
            self._viewport = (width, height)
            self.reference = reference_for_viewport(
                width,
                height,
                self.framing_cfg.reference_margin_x,
                self.framing_cfg.reference_margin_y,
            )
        return self.reference

    def _on_capture_event(self, event: CaptureEvent) -> None:
        if event.stage is not self.snapshot.stage:
            self._publish(dataclasses.replace(self.snapshot, stage=event.stage))

    # ---------------------------------------------------------------------
    #                          Per-tick decision
    # ---------------------------------------------------------------------
    def _tick(self) -> None:
        self.tick_count += 1

        # No framing decisions while a capture is in flight
        if self.orchestrator.is_active:
            self.guarded_ticks += 1
            return

        if self.watcher is not None and self.watcher.maybe_reload():
            self.watcher.apply_thresholds(self.engine)

        try:
            frame = self.frame_source.snapshot()
            h, w = frame.shape[:2]
            reference = self.update_viewport(w, h)
            detections = self.detector.detect(frame)
        except (NoFrameAvailable, DetectionUnavailable) as exc:
            self._publish(
                FramingSnapshot(
                    tick=self.tick_count,
                    reference=self.reference,
                    stage=self.orchestrator.stage,
                    proportion_history=tuple(self.history.values()),
                    fault=exc.key,
                    features=self.features,
                )
            )
            return

        state, selection = self.engine.evaluate(detections, reference)
        self.evaluated_ticks += 1
        self.history.push(state.proportion)

        labels: Tuple[str, ...] = ()
        if self.features.show_detections_panel:
            labels = tuple(d.label() for d in detections)

        self._publish(
            FramingSnapshot(
                tick=self.tick_count,
                state=state,
                reference=reference,
                selected=selection.box,
                detection_labels=labels,
                proportion_history=tuple(self.history.values()),
                stage=self.orchestrator.stage,
                features=self.features,
            )
        )

        if state.is_centered:
            self.orchestrator.trigger(reference)

    # ---------------------------------------------------------------------
    #                       Lifecycle (testable core)
    # ---------------------------------------------------------------------
    def start(self) -> bool:
        """Start the periodic tick if the detection loop is enabled."""
        if not self.features.enable_object_detection:
            print("[Processor] Object detection disabled by configuration")
            return False
        self.ticker.start()
        return True

    def poll(self) -> int:
        """Run whatever is due; call this from the owning loop."""
        return self.timers.run_due()

    def confirm(self) -> bool:
        return self.orchestrator.confirm()

    def retry(self) -> bool:
        return self.orchestrator.retry()

    def teardown(self) -> None:
        """After this, neither the tick nor any stage callback will fire."""
        self.ticker.stop()
        self.orchestrator.teardown()
        self.timers.cancel_all()
        if self.snapshot.stage is not CaptureStage.IDLE:
            self._publish(dataclasses.replace(self.snapshot, stage=CaptureStage.IDLE))

    # ---------------------------------------------------------------------
    #                         Setup / teardown
    # ---------------------------------------------------------------------
    def setup(self) -> bool:
        """Open camera, load the detector, create the preview window."""
        if not self.frame_source.open():
            return False
        if not self.detector.load():
            # Ticks will report the fault until a model is available
            print("[Processor] Detector not ready – continuing without detections")
        if self.loop_cfg.show_preview:
            cv2.namedWindow(WINDOW, cv2.WINDOW_NORMAL)
        print("[Processor] Setup complete – press 'q' to quit.")
        return True

    def cleanup(self) -> None:
        print("[Processor] Cleaning up...")
        self.teardown()
        self.frame_source.release()
        self.detector.close()
        if self.loop_cfg.show_preview:
            cv2.destroyAllWindows()
        print(
            f"[Processor] Exited. Ticks: {self.tick_count} "
            f"(evaluated {self.evaluated_ticks}, guarded {self.guarded_ticks}, "
            f"skipped {self.ticker.skipped}), sessions: {self.orchestrator.sessions_started}"
        )

    # ---------------------------------------------------------------------
    #                        Drawing / UI helpers
    # ---------------------------------------------------------------------
    def _draw_overlay(self, img: np.ndarray) -> None:
        snap = self.snapshot
        if snap.reference is not None:
            r = snap.reference
            cv2.rectangle(
                img,
                (int(r.offset_x), int(r.offset_y)),
                (int(r.offset_x + r.width), int(r.offset_y + r.height)),
                (0, 255, 255),
                2,
            )
        if snap.selected is not None and snap.stage is CaptureStage.IDLE:
            b = snap.selected
            cv2.rectangle(img, (int(b.x), int(b.y)), (int(b.x + b.width), int(b.y + b.height)), (0, 0, 255), 2)

        lines = [" ".join(snap.state.message_keys)]
        if snap.state.proportion is not None:
            lines.append(f"proportion {snap.state.proportion:.3f}")
        if snap.fault:
            lines.append(snap.fault)
        if snap.stage is not CaptureStage.IDLE:
            lines.append(f"stage {snap.stage.value}")
        if snap.stage is CaptureStage.AWAITING_CONFIRMATION:
            lines.append("c: confirm   r: retry")
        lines.extend(snap.detection_labels)
        for i, text in enumerate(lines):
            cv2.putText(img, text, (10, 30 + 25 * i), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 255, 0), 2)

    def _show_preview(self, last: Optional[np.ndarray]) -> Optional[np.ndarray]:
        session = self.orchestrator.session
        if session is not None and session.frame is not None:
            frame = session.frame
        else:
            _, frame = self.frame_source.read()
            if frame is None:
                frame = last
        if frame is None:
            return last
        out = frame.copy()
        self._draw_overlay(out)
        cv2.imshow(WINDOW, out)
        return frame

    # ---------------------------------------------------------------------
    #                             Public run()
    # ---------------------------------------------------------------------
    def run(self) -> None:
        if not self.setup():
            self.cleanup()
            return

        last: Optional[np.ndarray] = None
        try:
            self.start()
            while True:
                self.poll()
                if self.loop_cfg.show_preview:
                    last = self._show_preview(last)
                    key = cv2.waitKey(30) & 0xFF
                    if key == ord("q"):
                        break
                    elif key == ord("c"):
                        self.confirm()
                    elif key == ord("r"):
                        self.retry()
                else:
                    due = self.timers.next_due()
                    wait = 0.05 if due is None else min(0.05, max(0.0, due - self.timers.clock()))
                    time.sleep(wait)
        except KeyboardInterrupt:
            print("\n[Processor] Stopped by user.")
        except Exception as exc:
            print(f"[Processor] Main loop error: {exc}")
            traceback.print_exc()
        finally:
            self.cleanup()
