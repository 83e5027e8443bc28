# config.py
"""Typed configuration blobs for the whole system."""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Tuple


# ---------------------- Camera ----------------------
@dataclass
class CameraConfig:
    device_index: int = 0
    width: int = 1280
    height: int = 720
    fps_request: int = 30
    use_v4l2: bool = False
    fourcc_str: str = ""


# --------------------- Detector ---------------------
@dataclass
class DetectorConfig:
    model_path: str = "models/efficientdet_lite0.tflite"
    score_threshold: float = 0.3      # Applied inside the model only
    max_results: int = 10
    vehicle_classes: Tuple[str, ...] = ("car", "truck", "bus")


# ---------------------- Framing ---------------------
@dataclass
class FramingConfig:
    near_threshold: float = 0.98      # Above → too near
    far_threshold: float = 0.88       # Below → too far
    tolerance_ratio: float = 0.05     # Fraction of reference width/height
    ambiguity_ratio: float = 0.10     # Min relative area gap between top-2 boxes
    reference_margin_x: float = 0.05
    reference_margin_y: float = 0.05


# ---------------------- Capture ---------------------
@dataclass
class CaptureConfig:
    glow_s: float = 1.0
    analyze_s: float = 3.0
    ack_s: float = 2.0
    crop_margin_ratio: float = 0.10   # Trimmed from top and bottom
    image_ext: str = ".png"


# ----------------------- Loop -----------------------
@dataclass
class LoopConfig:
    tick_period_s: float = 1.0
    show_preview: bool = True
    runtime_params_path: str = "runtime_params.json"


# ---------------------- Features --------------------
_CAMEL = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


@dataclass
class FeatureFlags:
    show_framing_arrows: bool = False
    enable_object_detection: bool = False
    show_photo_confirmation: bool = False
    show_detections_panel: bool = False
    enable_ai_analysis_simulation: bool = False

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FeatureFlags":
        """Accepts both ``showPhotoConfirmation`` and ``show_photo_confirmation``."""
        known = {f.name for f in fields(cls)}
        flags = {}
        for key, value in raw.items():
            name = _CAMEL.sub("_", key).lower()
            if name in known:
                flags[name] = bool(value)
        return cls(**flags)


@dataclass
class AppConfig:
    variant: str = "default"
    features: FeatureFlags = field(default_factory=FeatureFlags)


def load_app_config(variant: str = "dev", config_dir: str | Path = "config") -> AppConfig:
    """
    Read ``config-<variant>.json`` from *config_dir*.

    A missing or unreadable file is reported and the all-off default is
    returned, so callers never have to handle a partial config.
    """
    path = Path(config_dir) / f"config-{variant}.json"
    try:
        with path.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)
    except FileNotFoundError:
        print(f"[Config] {path} not found – using defaults")
        return AppConfig()
    except json.JSONDecodeError as exc:
        print(f"[Config] JSON error in {path}: {exc}")
        return AppConfig()

    if not isinstance(raw, dict):
        print(f"[Config] {path} is not a JSON object – using defaults")
        return AppConfig()

    features = raw.get("features") or {}
    cfg = AppConfig(
        variant=str(raw.get("variant", variant)),
        features=FeatureFlags.from_dict(features if isinstance(features, dict) else {}),
    )
    print(f"[Config] Loaded variant '{cfg.variant}' from {path}")
    return cfg
