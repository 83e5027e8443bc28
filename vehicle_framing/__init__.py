# vehicle_framing/__init__.py
"""Vehicle-framing package – re-export high-level API."""
from .processor import FramingProcessor, FramingSnapshot  # noqa: F401
from .decision import FramingDecisionEngine               # noqa: F401
from .orchestrator import (                               # noqa: F401
    CaptureEvent, CaptureOrchestrator, CaptureStage,
)
from .common import (                                     # noqa: F401
    BoundingBox, Detection, Directions, FramingKind,
    FramingState, ReferenceFrame,
)
from .config import (                                     # noqa: F401
    AppConfig, CameraConfig, CaptureConfig, DetectorConfig,
    FeatureFlags, FramingConfig, LoopConfig, load_app_config,
)
