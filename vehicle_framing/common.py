# common.py
"""Objects that are shared across multiple modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in frame pixel coordinates."""
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def corners(self) -> Tuple[Tuple[float, float], ...]:
        x2 = self.x + self.width
        y2 = self.y + self.height
        return ((self.x, self.y), (x2, self.y), (self.x, y2), (x2, y2))


@dataclass(frozen=True)
class ReferenceFrame:
    """Target region the vehicle must occupy."""
    offset_x: float
    offset_y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.offset_x + self.width / 2.0, self.offset_y + self.height / 2.0

    def contains_point(self, px: float, py: float) -> bool:
        # Edges count as inside
        return (
            self.offset_x <= px <= self.offset_x + self.width
            and self.offset_y <= py <= self.offset_y + self.height
        )


@dataclass(frozen=True)
class Detection:
    """One labelled box as returned by the detector."""
    class_label: str
    confidence: float
    box: BoundingBox

    def label(self) -> str:
        return f"{self.class_label} ({self.confidence * 100:.1f}%)"


@dataclass(frozen=True)
class Directions:
    left: bool = False
    right: bool = False
    up: bool = False
    down: bool = False

    def any(self) -> bool:
        return self.left or self.right or self.up or self.down


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of vehicle disambiguation for a single tick."""
    box: Optional[BoundingBox] = None
    ambiguous: bool = False
    candidates: int = 0


@dataclass(frozen=True)
class GeometryReport:
    contained: bool
    proportion: float
    dx: float
    dy: float
    tolerance_x: float
    tolerance_y: float


class FramingKind(str, Enum):
    NO_VEHICLE = "no_vehicle"
    AMBIGUOUS_VEHICLE = "ambiguous_vehicle"
    OUT_OF_FRAME = "out_of_frame"
    TOO_NEAR = "too_near"
    TOO_FAR = "too_far"
    CENTERED = "centered"


@dataclass(frozen=True)
class FramingState:
    """
    Discrete decision for one tick.
    ``message_keys`` are symbolic; translating them is up to the caller.
    """
    kind: FramingKind
    directions: Directions = field(default_factory=Directions)
    proportion: Optional[float] = None
    message_keys: Tuple[str, ...] = ()

    @property
    def is_centered(self) -> bool:
        return self.kind is FramingKind.CENTERED
