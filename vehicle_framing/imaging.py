# imaging.py
"""Crop + encode helpers for the Capturing stage."""
from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from vehicle_framing.common import ReferenceFrame
from vehicle_framing.errors import CaptureFailure

_MIME = {".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".webp": "image/webp"}


@dataclass(frozen=True)
class CaptureArtifact:
    data: bytes
    mime: str
    width: int
    height: int


def crop_reference(frame: np.ndarray, reference: ReferenceFrame, margin_ratio: float = 0.10) -> np.ndarray:
    """
    Cut the reference rectangle out of *frame*, trimming *margin_ratio* of
    the reference height from both the top and the bottom.
    """
    if frame is None or frame.ndim < 2 or frame.size == 0:
        raise CaptureFailure("no frozen frame to crop")

    margin = reference.height * margin_ratio
    x0 = int(round(reference.offset_x))
    y0 = int(round(reference.offset_y + margin))
    x1 = int(round(reference.offset_x + reference.width))
    y1 = int(round(reference.offset_y + reference.height - margin))

    ih, iw = frame.shape[:2]
    x0, x1 = max(0, x0), min(iw, x1)
    y0, y1 = max(0, y0), min(ih, y1)
    if x1 <= x0 or y1 <= y0:
        raise CaptureFailure(
            f"reference region {reference} does not overlap a {iw}x{ih} frame"
        )
    return frame[y0:y1, x0:x1].copy()


def encode_image(image: np.ndarray, ext: str = ".png") -> CaptureArtifact:
    ext = ext.lower()
    if ext not in _MIME:
        raise CaptureFailure(f"unsupported image format {ext!r}")
    try:
        ok, buf = cv2.imencode(ext, image)
    except cv2.error as exc:
        raise CaptureFailure(f"encoding failed: {exc}") from exc
    if not ok:
        raise CaptureFailure(f"encoding to {ext} failed")
    h, w = image.shape[:2]
    return CaptureArtifact(data=buf.tobytes(), mime=_MIME[ext], width=w, height=h)
