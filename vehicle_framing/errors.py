# errors.py
"""Non-fatal error taxonomy; every one of these is recovered from by the loop."""


class FramingError(RuntimeError):
    """Base class. ``key`` is the symbolic message shown to the user."""
    key = "error.unknown"


class NoFrameAvailable(FramingError):
    key = "error.no_frame"


class DetectionUnavailable(FramingError):
    """Model not loaded yet, or inference failed."""
    key = "error.detection_unavailable"


class CaptureFailure(FramingError):
    """Frame retrieval or encoding failed during a capture session."""
    key = "capture.failed"
