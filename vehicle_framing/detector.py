# detector.py
"""MediaPipe object-detection adapter (COCO labels)."""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision as mp_vision

from vehicle_framing.common import BoundingBox, Detection
from vehicle_framing.config import DetectorConfig
from vehicle_framing.errors import DetectionUnavailable


def to_detections(result: Any) -> List[Detection]:
    """Flatten a MediaPipe ``ObjectDetectorResult`` into :class:`Detection`s."""
    out: List[Detection] = []
    for det in getattr(result, "detections", None) or []:
        if not det.categories:
            continue
        cat = det.categories[0]
        bb = det.bounding_box
        out.append(
            Detection(
                class_label=cat.category_name or "",
                confidence=float(cat.score or 0.0),
                box=BoundingBox(
                    float(bb.origin_x), float(bb.origin_y), float(bb.width), float(bb.height)
                ),
            )
        )
    return out


class MediaPipeVehicleDetector:
    def __init__(self, config: DetectorConfig):
        self.config = config
        self.detector: Optional[mp_vision.ObjectDetector] = None

    @property
    def is_ready(self) -> bool:
        return self.detector is not None

    def load(self) -> bool:
        if self.detector is not None:
            return True
        model = Path(self.config.model_path)
        if not model.exists():
            print(f"[Detector] Model not found: {model}")
            return False
        options = mp_vision.ObjectDetectorOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=str(model)),
            running_mode=mp_vision.RunningMode.IMAGE,
            score_threshold=self.config.score_threshold,
            max_results=self.config.max_results,
        )
        try:
            self.detector = mp_vision.ObjectDetector.create_from_options(options)
        except (RuntimeError, ValueError) as exc:
            print(f"[Detector] Could not load {model}: {exc}")
            return False
        print(f"[Detector] Loaded {model}")
        return True

    def detect(self, frame_bgr: np.ndarray) -> List[Detection]:
        """Every labelled box in the frame; class filtering is left to the caller."""
        if self.detector is None:
            raise DetectionUnavailable("detector model is not loaded")
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))
        try:
            result = self.detector.detect(image)
        except (RuntimeError, ValueError) as exc:
            raise DetectionUnavailable(f"inference failed: {exc}") from exc
        return to_detections(result)

    # Clean-up when the whole program exits
    def close(self) -> None:
        if self.detector is not None:
            self.detector.close()
            self.detector = None
