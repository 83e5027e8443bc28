"""
Tests for the MediaPipe adapter that do not need a model file.
"""

from types import SimpleNamespace

import numpy as np
import pytest

pytest.importorskip("mediapipe")

from vehicle_framing.config import DetectorConfig  # noqa: E402
from vehicle_framing.detector import MediaPipeVehicleDetector, to_detections  # noqa: E402
from vehicle_framing.errors import DetectionUnavailable  # noqa: E402


def _det(name, score, x, y, w, h):
    return SimpleNamespace(
        categories=[SimpleNamespace(category_name=name, score=score)],
        bounding_box=SimpleNamespace(origin_x=x, origin_y=y, width=w, height=h),
    )


def test_to_detections_flattens_result():
    result = SimpleNamespace(detections=[
        _det("car", 0.8, 1, 2, 30, 40),
        SimpleNamespace(categories=[], bounding_box=None),
        _det("person", 0.4, 0, 0, 5, 5),
    ])
    out = to_detections(result)
    assert [d.class_label for d in out] == ["car", "person"]
    assert out[0].box.width == 30.0
    assert out[0].confidence == pytest.approx(0.8)


def test_to_detections_handles_empty():
    assert to_detections(SimpleNamespace(detections=None)) == []


def test_missing_model_does_not_load(tmp_path):
    det = MediaPipeVehicleDetector(DetectorConfig(model_path=str(tmp_path / "missing.tflite")))
    assert not det.load()
    assert not det.is_ready


def test_detect_before_load_is_unavailable():
    det = MediaPipeVehicleDetector(DetectorConfig())
    with pytest.raises(DetectionUnavailable):
        det.detect(np.zeros((10, 10, 3), dtype=np.uint8))
