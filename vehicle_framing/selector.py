# selector.py
"""Picks at most one vehicle out of the detections of a single tick."""
from __future__ import annotations

from typing import Iterable, List, Sequence

from vehicle_framing.common import Detection, SelectionResult

VEHICLE_CLASSES = ("car", "truck", "bus")


def filter_vehicles(
    detections: Iterable[Detection], classes: Sequence[str] = VEHICLE_CLASSES
) -> List[Detection]:
    """Keep car-like detections only. Confidence is not looked at."""
    return [d for d in detections if d.class_label in classes]


def select_vehicle(candidates: Sequence[Detection], ambiguity_ratio: float = 0.10) -> SelectionResult:
    """
    0 candidates → nothing selected.
    1 candidate  → that one.
    2+           → the largest, unless the runner-up is within
                   *ambiguity_ratio* of its area (relative to the largest).
    """
    n = len(candidates)
    if n == 0:
        return SelectionResult(candidates=0)
    if n == 1:
        return SelectionResult(box=candidates[0].box, candidates=1)

    ranked = sorted(candidates, key=lambda d: d.box.area, reverse=True)
    largest, second = ranked[0].box.area, ranked[1].box.area
    if largest <= 0:
        # Two degenerate boxes cannot be told apart
        return SelectionResult(ambiguous=True, candidates=n)

    rel_diff = (largest - second) / largest
    if rel_diff < ambiguity_ratio:
        return SelectionResult(ambiguous=True, candidates=n)
    return SelectionResult(box=ranked[0].box, candidates=n)
