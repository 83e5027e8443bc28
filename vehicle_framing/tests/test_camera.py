"""
Tests for the OpenCV camera wrapper, with VideoCapture replaced by a stub.
"""

import cv2
import numpy as np
import pytest

from vehicle_framing import camera as camera_mod
from vehicle_framing.camera import Camera, decode_fourcc
from vehicle_framing.config import CameraConfig
from vehicle_framing.errors import NoFrameAvailable


class StubCapture:
    """Stands in for cv2.VideoCapture; frames are queued by the test."""

    def __init__(self, index, backend=None, opened=True, width=640, height=480):
        self.opened = opened
        self.props = {
            cv2.CAP_PROP_FRAME_WIDTH: width,
            cv2.CAP_PROP_FRAME_HEIGHT: height,
            cv2.CAP_PROP_FPS: 30.0,
            cv2.CAP_PROP_FOURCC: cv2.VideoWriter_fourcc(*"MJPG"),
        }
        self.frames = []
        self.released = False

    def isOpened(self):
        return self.opened and not self.released

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        return self.props.get(prop, 0)

    def read(self):
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def release(self):
        self.released = True


@pytest.fixture
def stub(monkeypatch):
    holder = {}

    def factory(index, backend=None):
        holder["cap"] = StubCapture(index, backend, **holder.get("kwargs", {}))
        return holder["cap"]

    monkeypatch.setattr(camera_mod.cv2, "VideoCapture", factory)
    monkeypatch.setattr(camera_mod.time, "sleep", lambda _s: None)
    return holder


def test_decode_fourcc():
    assert decode_fourcc(cv2.VideoWriter_fourcc(*"MJPG")) == "MJPG"
    assert decode_fourcc(0) == ""


class TestOpen:
    def test_reports_negotiated_stream(self, stub):
        cam = Camera(CameraConfig(width=1280, height=720))
        assert cam.open()
        # The stub echoes whatever was requested
        assert cam.frame_size() == (1280, 720)
        assert cam.info.fourcc == "MJPG"

    def test_unavailable_device(self, stub):
        stub["kwargs"] = {"opened": False}
        cam = Camera(CameraConfig())
        assert not cam.open()
        assert cam.cap is None

    def test_zero_resolution_is_rejected(self, stub):
        cam = Camera(CameraConfig(width=0, height=0))
        assert not cam.open()
        assert stub["cap"].released
        assert not cam.is_opened()


class TestFrames:
    def test_snapshot_copies_the_frame(self, stub):
        cam = Camera(CameraConfig(width=4, height=2))
        cam.open()
        frame = np.zeros((2, 4, 3), dtype=np.uint8)
        stub["cap"].frames.append(frame)
        shot = cam.snapshot()
        assert shot.shape == (2, 4, 3)
        assert shot is not frame

    def test_snapshot_without_frame_raises(self, stub):
        cam = Camera(CameraConfig())
        cam.open()
        with pytest.raises(NoFrameAvailable) as info:
            cam.snapshot()
        assert info.value.key == "error.no_frame"
        assert cam.dropped_reads == 1

    def test_snapshot_on_closed_device_raises(self):
        with pytest.raises(NoFrameAvailable):
            Camera(CameraConfig()).snapshot()

    def test_frame_size_follows_delivered_frames(self, stub):
        cam = Camera(CameraConfig(width=640, height=480))
        cam.open()
        stub["cap"].frames.append(np.zeros((240, 320, 3), dtype=np.uint8))
        _, frame = cam.read()
        assert frame is not None
        assert cam.frame_size() == (320, 240)
