# camera.py
"""OpenCV capture device used both for the live preview and as the frame source."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from vehicle_framing.config import CameraConfig
from vehicle_framing.errors import NoFrameAvailable


@dataclass(frozen=True)
class StreamInfo:
    """What the driver actually delivers, which may differ from the request."""
    width: int = 0
    height: int = 0
    fps: float = 0.0
    fourcc: str = ""

    @property
    def valid(self) -> bool:
        return self.width > 0 and self.height > 0


def decode_fourcc(code: int) -> str:
    return "".join(chr((code >> shift) & 0xFF) for shift in (0, 8, 16, 24)) if code else ""


class Camera:
    def __init__(self, config: CameraConfig) -> None:
        self.config = config
        self.cap: Optional[cv2.VideoCapture] = None
        self.info = StreamInfo()
        self.dropped_reads = 0

    # ----------------- Device setup -----------------
    def _request_format(self) -> None:
        cfg = self.config
        if cfg.fourcc_str:
            self.cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*cfg.fourcc_str))
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.height)
        if cfg.fps_request > 0:
            self.cap.set(cv2.CAP_PROP_FPS, cfg.fps_request)

    def _query_stream(self) -> StreamInfo:
        return StreamInfo(
            width=int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=float(self.cap.get(cv2.CAP_PROP_FPS)),
            fourcc=decode_fourcc(int(self.cap.get(cv2.CAP_PROP_FOURCC))),
        )

    def open(self) -> bool:
        backend = cv2.CAP_V4L2 if self.config.use_v4l2 else cv2.CAP_ANY
        self.cap = cv2.VideoCapture(self.config.device_index, backend)
        if not self.is_opened():
            print(f"[Camera] Device {self.config.device_index} is not available")
            self.cap = None
            return False

        self._request_format()
        time.sleep(0.1)  # Driver needs a moment before reporting the format
        self.info = self._query_stream()

        if not self.info.valid:
            print("[Camera] Device reported an empty frame size")
            self.release()
            return False
        print(
            f"[Camera] Streaming {self.info.width}x{self.info.height} "
            f"at {self.info.fps:.1f} FPS, FOURCC '{self.info.fourcc}'"
        )
        return True

    # ----------------- Frames -----------------
    def read(self) -> Tuple[float, Optional[np.ndarray]]:
        """``(timestamp, frame)``; the frame is ``None`` when nothing arrived."""
        ts = time.time()
        if not self.is_opened():
            return ts, None
        ok, frame = self.cap.read()
        if not ok or frame is None:
            self.dropped_reads += 1
            return ts, None
        height, width = frame.shape[:2]
        if (width, height) != (self.info.width, self.info.height):
            # The driver may switch modes after a reconnect
            print(f"[Camera] Frame size changed to {width}x{height}")
            self.info = StreamInfo(width, height, self.info.fps, self.info.fourcc)
        return ts, frame

    def snapshot(self) -> np.ndarray:
        """An owned copy of the current frame, or :class:`NoFrameAvailable`."""
        _, frame = self.read()
        if frame is None:
            raise NoFrameAvailable(
                f"camera {self.config.device_index} delivered no frame "
                f"({self.dropped_reads} dropped so far)"
            )
        return frame.copy()

    def frame_size(self) -> Tuple[int, int]:
        return self.info.width, self.info.height

    def is_opened(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def release(self) -> None:
        if self.cap is None:
            return
        print(f"[Camera] Closing device {self.config.device_index}")
        self.cap.release()
        self.cap = None
