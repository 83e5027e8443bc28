# main.py
"""
Entry-point for the vehicle-framing capture tool.

Configuration
-------------
Feature flags come from ``config/config-<variant>.json``; the variant is
taken from the ``VEHICLE_FRAMING_VARIANT`` environment variable and
defaults to ``dev``.

Live-tuning
-----------
While the program is running you can edit ``runtime_params.json``
(``near_threshold`` / ``far_threshold``) and the new values take effect on
the next detection tick.  See ``vehicle_framing/live_tuning.py``.
"""
from __future__ import annotations

import os

from vehicle_framing.camera import Camera
from vehicle_framing.config import (
    CameraConfig,
    CaptureConfig,
    DetectorConfig,
    FramingConfig,
    LoopConfig,
    load_app_config,
)
from vehicle_framing.detector import MediaPipeVehicleDetector
from vehicle_framing.live_tuning import RuntimeParamWatcher
from vehicle_framing.processor import FramingProcessor


# ────────────────────────────────────────────────────────────────────────────
#   M A I N
# ────────────────────────────────────────────────────────────────────────────
def main() -> None:
    print("Initializing Vehicle-Framing System…")
    print("Hint: edit 'runtime_params.json' at any time to tweak thresholds.\n")

    # -------------------- Config blobs --------------------
    variant  = os.environ.get("VEHICLE_FRAMING_VARIANT", "dev")
    app_cfg  = load_app_config(variant, os.environ.get("VEHICLE_FRAMING_CONFIG_DIR", "config"))
    cam_cfg  = CameraConfig()
    det_cfg  = DetectorConfig()
    frm_cfg  = FramingConfig()
    cap_cfg  = CaptureConfig()
    loop_cfg = LoopConfig()

    # ------------------------ Banner ----------------------
    print(
        f"Camera: idx={cam_cfg.device_index}, "
        f"{cam_cfg.width}x{cam_cfg.height}@{cam_cfg.fps_request} FPS"
    )
    print(f"Detector: model={det_cfg.model_path}, classes={','.join(det_cfg.vehicle_classes)}")
    print(
        f"Framing: near={frm_cfg.near_threshold}, far={frm_cfg.far_threshold}, "
        f"tolerance={frm_cfg.tolerance_ratio:.0%}, tick={loop_cfg.tick_period_s}s"
    )
    print(f"Features ({app_cfg.variant}): {app_cfg.features}")

    # ------------------------ Run -------------------------
    FramingProcessor(
        Camera(cam_cfg),
        MediaPipeVehicleDetector(det_cfg),
        app_cfg=app_cfg,
        framing_cfg=frm_cfg,
        capture_cfg=cap_cfg,
        loop_cfg=loop_cfg,
        vehicle_classes=det_cfg.vehicle_classes,
        watcher=RuntimeParamWatcher(loop_cfg.runtime_params_path),
    ).run()
    print("Main program finished.")


if __name__ == "__main__":
    main()
