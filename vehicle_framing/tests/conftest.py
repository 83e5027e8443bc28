"""
Pytest fixtures for vehicle-framing tests.
"""

from typing import List, Optional

import numpy as np
import pytest

from vehicle_framing.common import BoundingBox, Detection, ReferenceFrame
from vehicle_framing.config import CaptureConfig, FeatureFlags
from vehicle_framing.errors import DetectionUnavailable, NoFrameAvailable
from vehicle_framing.scheduler import TimerQueue


class ManualClock:
    """Clock that only moves when a test says so."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFrameSource:
    """Returns a fixed-size gradient frame; can be told to fail."""

    def __init__(self, width: int = 200, height: int = 100):
        self.width = width
        self.height = height
        self.fail = False
        self.snapshots = 0

    def snapshot(self) -> np.ndarray:
        self.snapshots += 1
        if self.fail:
            raise NoFrameAvailable("fake camera offline")
        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        frame[:, :, 0] = np.arange(self.width, dtype=np.uint8)[None, :]
        frame[:, :, 1] = np.arange(self.height, dtype=np.uint8)[:, None]
        return frame


class FakeDetector:
    """Replays whatever detections the test queued."""

    def __init__(self, detections: Optional[List[Detection]] = None):
        self.detections = detections or []
        self.ready = True
        self.calls = 0

    def detect(self, frame: np.ndarray) -> List[Detection]:
        self.calls += 1
        if not self.ready:
            raise DetectionUnavailable("model still loading")
        return list(self.detections)


def car(x: float, y: float, w: float, h: float, label: str = "car", score: float = 0.9) -> Detection:
    return Detection(class_label=label, confidence=score, box=BoundingBox(x, y, w, h))


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def timers(clock: ManualClock) -> TimerQueue:
    return TimerQueue(clock)


@pytest.fixture
def frame_source() -> FakeFrameSource:
    return FakeFrameSource()


@pytest.fixture
def detector() -> FakeDetector:
    return FakeDetector()


@pytest.fixture
def reference() -> ReferenceFrame:
    """A 1000x500 reference region at the origin."""
    return ReferenceFrame(offset_x=0, offset_y=0, width=1000, height=500)


@pytest.fixture
def capture_cfg() -> CaptureConfig:
    return CaptureConfig(glow_s=1.0, analyze_s=3.0, ack_s=2.0)


@pytest.fixture
def all_features() -> FeatureFlags:
    return FeatureFlags(
        show_framing_arrows=True,
        enable_object_detection=True,
        show_photo_confirmation=True,
        show_detections_panel=True,
        enable_ai_analysis_simulation=True,
    )
