# decision.py
"""Turns selection + geometry into a framing state and directional guidance."""
from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

from vehicle_framing import geometry
from vehicle_framing.common import (
    Detection,
    Directions,
    FramingKind,
    FramingState,
    GeometryReport,
    ReferenceFrame,
    SelectionResult,
)
from vehicle_framing.config import FramingConfig
from vehicle_framing.selector import VEHICLE_CLASSES, filter_vehicles, select_vehicle


def derive_directions(report: GeometryReport) -> Directions:
    """At most one flag per axis; both axes may fire together."""
    left = right = up = down = False
    if abs(report.dx) > report.tolerance_x:
        if report.dx > 0:
            right = True
        else:
            left = True
    if abs(report.dy) > report.tolerance_y:
        if report.dy > 0:
            down = True
        else:
            up = True
    return Directions(left=left, right=right, up=up, down=down)


def compose_direction_message(directions: Directions) -> Tuple[str, ...]:
    """
    Horizontal phrase first, vertical suffix appended; a vertical-only
    correction uses the standalone vertical phrase.
    """
    keys = []
    if directions.right:
        keys.append("guide.move_right")
    elif directions.left:
        keys.append("guide.move_left")

    if directions.down or directions.up:
        word = "downward" if directions.down else "upward"
        if keys:
            keys.append(f"guide.and_{word}")
        else:
            keys.append(f"guide.move_{word}")

    if not keys:
        keys.append("guide.adjust_framing")
    return tuple(keys)


class FramingDecisionEngine:
    """
    Stateless per tick; the only thing it remembers between ticks are the
    thresholds, which may be changed at any time.
    """

    def __init__(self, cfg: Optional[FramingConfig] = None,
                 vehicle_classes: Sequence[str] = VEHICLE_CLASSES):
        self.cfg = cfg or FramingConfig()
        self.vehicle_classes = tuple(vehicle_classes)
        self.near_threshold = self.cfg.near_threshold
        self.far_threshold = self.cfg.far_threshold
        self._warn_if_inverted()

    # ------------------ Thresholds --------------------
    def set_thresholds(self, near: Optional[float] = None, far: Optional[float] = None) -> bool:
        """Returns True if anything changed."""
        changed = False
        if near is not None and float(near) != self.near_threshold:
            self.near_threshold = float(near)
            changed = True
        if far is not None and float(far) != self.far_threshold:
            self.far_threshold = float(far)
            changed = True
        if changed:
            self._warn_if_inverted()
        return changed

    def _warn_if_inverted(self) -> None:
        if self.near_threshold <= self.far_threshold:
            print(
                f"[Framing] Warning: near threshold {self.near_threshold} is not above "
                f"far threshold {self.far_threshold}"
            )

    # ------------------ Decisions ---------------------
    def decide(self, selection: SelectionResult, report: Optional[GeometryReport]) -> FramingState:
        if selection.ambiguous:
            return FramingState(FramingKind.AMBIGUOUS_VEHICLE, message_keys=("feedback.only_one_vehicle",))
        if selection.box is None or report is None:
            return FramingState(FramingKind.NO_VEHICLE, message_keys=("feedback.no_vehicle",))

        if not report.contained:
            directions = derive_directions(report)
            return FramingState(
                FramingKind.OUT_OF_FRAME,
                directions=directions,
                proportion=report.proportion,
                message_keys=compose_direction_message(directions),
            )
        if report.proportion > self.near_threshold:
            return FramingState(FramingKind.TOO_NEAR, proportion=report.proportion,
                                message_keys=("feedback.too_near",))
        if report.proportion < self.far_threshold:
            return FramingState(FramingKind.TOO_FAR, proportion=report.proportion,
                                message_keys=("feedback.too_far",))
        return FramingState(FramingKind.CENTERED, proportion=report.proportion,
                            message_keys=("feedback.capturing",))

    def evaluate(
        self, detections: Iterable[Detection], reference: ReferenceFrame
    ) -> Tuple[FramingState, SelectionResult]:
        """Full pipeline for one tick: filter → select → analyze → decide."""
        candidates = filter_vehicles(detections, self.vehicle_classes)
        selection = select_vehicle(candidates, self.cfg.ambiguity_ratio)
        report = None
        if selection.box is not None:
            report = geometry.analyze(selection.box, reference, self.cfg.tolerance_ratio)
        return self.decide(selection, report), selection
