# orchestrator.py
"""Capture sequence: freeze → glow → analyze → capture → confirm/retry → idle."""
from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from vehicle_framing.common import ReferenceFrame
from vehicle_framing.config import CaptureConfig, FeatureFlags
from vehicle_framing.errors import CaptureFailure, FramingError, NoFrameAvailable
from vehicle_framing.imaging import CaptureArtifact, crop_reference, encode_image
from vehicle_framing.scheduler import TimerHandle, TimerQueue


class CaptureStage(str, Enum):
    IDLE = "idle"
    FREEZING = "freezing"
    GLOWING = "glowing"
    ANALYZING = "analyzing"
    CAPTURING = "capturing"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    RETRYING = "retrying"


@dataclass
class CaptureSession:
    session_id: int
    reference: ReferenceFrame
    started_at: float
    frame: Optional[np.ndarray] = None
    artifact: Optional[CaptureArtifact] = None


@dataclass(frozen=True)
class CaptureEvent:
    stage: CaptureStage
    session_id: Optional[int]
    signal: str
    artifact: Optional[CaptureArtifact] = None
    error: Optional[str] = None


CaptureListener = Callable[[CaptureEvent], Any]


def _wrap_failure(what: str, exc: BaseException) -> CaptureFailure:
    failure = CaptureFailure(f"{what}: {exc}")
    failure.__cause__ = exc
    return failure


class CaptureOrchestrator:
    """
    Strictly sequential state machine; at most one session exists at a time.

    ``frame_source`` only needs a ``snapshot()`` method returning a BGR
    ndarray (or raising :class:`NoFrameAvailable`). Stage delays go through
    the shared :class:`TimerQueue`, so nothing advances unless the owner's
    loop runs it.
    """

    def __init__(
        self,
        frame_source: Any,
        timers: TimerQueue,
        cfg: Optional[CaptureConfig] = None,
        features: Optional[FeatureFlags] = None,
    ):
        self.frame_source = frame_source
        self.timers = timers
        self.cfg = cfg or CaptureConfig()
        self.features = features or FeatureFlags()

        self.stage = CaptureStage.IDLE
        self.session: Optional[CaptureSession] = None
        self.last_artifact: Optional[CaptureArtifact] = None
        self.sessions_started = 0
        self.sessions_aborted = 0

        self._ids = itertools.count(1)
        self._handles: List[TimerHandle] = []
        self._listeners: List[CaptureListener] = []
        self._entry: Dict[CaptureStage, Callable[[], None]] = {
            CaptureStage.IDLE: self._on_idle,
            CaptureStage.FREEZING: self._on_freezing,
            CaptureStage.GLOWING: self._on_glowing,
            CaptureStage.ANALYZING: self._on_analyzing,
            CaptureStage.CAPTURING: self._on_capturing,
            CaptureStage.AWAITING_CONFIRMATION: self._on_awaiting,
            CaptureStage.CONFIRMED: self._on_confirmed,
            CaptureStage.RETRYING: self._on_retrying,
        }

    # ------------------ Public API -------------------
    @property
    def is_active(self) -> bool:
        """Doubles as the guard that stops the detection tick."""
        return self.stage is not CaptureStage.IDLE

    def subscribe(self, listener: CaptureListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def trigger(self, reference: ReferenceFrame) -> bool:
        """Start a session. Ignored (returns False) while one is in flight."""
        if self.is_active:
            return False
        self.session = CaptureSession(
            session_id=next(self._ids),
            reference=reference,
            started_at=self.timers.clock(),
        )
        self.sessions_started += 1
        print(f"[Capture] Session {self.session.session_id} started")
        self._enter(CaptureStage.FREEZING)
        return True

    def confirm(self) -> bool:
        if self.stage is not CaptureStage.AWAITING_CONFIRMATION:
            return False
        self._enter(CaptureStage.CONFIRMED)
        return True

    def retry(self) -> bool:
        if self.stage is not CaptureStage.AWAITING_CONFIRMATION:
            return False
        self._enter(CaptureStage.RETRYING)
        return True

    def teardown(self) -> None:
        """Drop the session and every pending stage timer, silently."""
        self._cancel_timers()
        if self.session is not None:
            print(f"[Capture] Session {self.session.session_id} dropped on teardown")
        self.session = None
        self.stage = CaptureStage.IDLE

    # ---------------- Stage plumbing -----------------
    def _enter(self, stage: CaptureStage) -> None:
        self.stage = stage
        self._entry[stage]()

    def _schedule(self, delay: float, stage: CaptureStage) -> None:
        sid = self.session.session_id if self.session else None
        self._handles = [h for h in self._handles if not h.cancelled]
        self._handles.append(self.timers.call_later(delay, self._advance, sid, stage))

    def _advance(self, session_id: Optional[int], stage: CaptureStage) -> None:
        # A timer that outlived its session must not touch the next one
        if self.session is None or self.session.session_id != session_id:
            return
        self._enter(stage)

    def _cancel_timers(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    def _abort(self, exc: FramingError) -> None:
        sid = self.session.session_id if self.session else None
        print(f"[Capture] Session {sid} aborted: {exc}")
        self.sessions_aborted += 1
        self._cancel_timers()
        self._emit("capture.failed", error=exc.key)
        self._enter(CaptureStage.IDLE)

    def _emit(self, signal: str, artifact: Optional[CaptureArtifact] = None,
              error: Optional[str] = None) -> None:
        event = CaptureEvent(
            stage=self.stage,
            session_id=self.session.session_id if self.session else None,
            signal=signal,
            artifact=artifact,
            error=error,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # noqa: BLE001
                print(f"[Capture] Listener error: {exc}")

    # ----------------- Stage entries -----------------
    def _on_idle(self) -> None:
        self.session = None
        self._emit("capture.idle")

    def _on_freezing(self) -> None:
        try:
            frame = self.frame_source.snapshot()
        except FramingError as exc:
            self._abort(exc)
            return
        except Exception as exc:  # noqa: BLE001
            self._abort(_wrap_failure("frame retrieval failed", exc))
            return
        if frame is None:
            self._abort(NoFrameAvailable("frame source returned nothing"))
            return
        self.session.frame = frame
        self._emit("capture.freezing")
        self._enter(CaptureStage.GLOWING)

    def _on_glowing(self) -> None:
        self._emit("capture.glow")
        self._schedule(self.cfg.glow_s, CaptureStage.ANALYZING)

    def _on_analyzing(self) -> None:
        # The flag only gates the cue; the wait always happens
        if self.features.enable_ai_analysis_simulation:
            self._emit("capture.analyzing")
        self._schedule(self.cfg.analyze_s, CaptureStage.CAPTURING)

    def _on_capturing(self) -> None:
        session = self.session
        try:
            cropped = crop_reference(session.frame, session.reference, self.cfg.crop_margin_ratio)
            artifact = encode_image(cropped, self.cfg.image_ext)
        except FramingError as exc:
            self._abort(exc)
            return
        except Exception as exc:  # noqa: BLE001
            self._abort(_wrap_failure("crop/encode failed", exc))
            return
        session.artifact = artifact
        self._emit("capture.captured", artifact=artifact)
        if self.features.show_photo_confirmation:
            self._enter(CaptureStage.AWAITING_CONFIRMATION)
        else:
            self._enter(CaptureStage.CONFIRMED)

    def _on_awaiting(self) -> None:
        self._emit("capture.awaiting_confirmation", artifact=self.session.artifact)

    def _on_confirmed(self) -> None:
        self.last_artifact = self.session.artifact
        self._emit("capture.ok", artifact=self.session.artifact)
        self._schedule(self.cfg.ack_s, CaptureStage.IDLE)

    def _on_retrying(self) -> None:
        self.session.artifact = None
        self._emit("capture.retry")
        self._enter(CaptureStage.IDLE)
