# geometry.py
"""Containment, relative size and centering offset of a box vs. the reference frame."""
from __future__ import annotations

from vehicle_framing.common import BoundingBox, GeometryReport, ReferenceFrame


def reference_for_viewport(
    width: float,
    height: float,
    margin_x: float = 0.05,
    margin_y: float = 0.05,
) -> ReferenceFrame:
    """
    Derive the reference region from the viewport size.

    The region is inset horizontally by *margin_x* on both sides, loses
    *margin_y* of the height twice, and is pinned to the top edge.
    """
    mx = width * margin_x
    my = height * margin_y
    return ReferenceFrame(
        offset_x=mx,
        offset_y=0.0,
        width=width - 2 * mx,
        height=height - 2 * my,
    )


def is_contained(box: BoundingBox, frame: ReferenceFrame) -> bool:
    return all(frame.contains_point(px, py) for px, py in box.corners())


def proportion(box: BoundingBox, frame: ReferenceFrame) -> float:
    """Box width over reference width, rounded to 3 decimals."""
    if frame.width <= 0:
        raise ValueError("reference frame has zero width")
    return round(box.width / frame.width, 3)


def analyze(box: BoundingBox, frame: ReferenceFrame, tolerance_ratio: float = 0.05) -> GeometryReport:
    bx, by = box.center
    fx, fy = frame.center
    return GeometryReport(
        contained=is_contained(box, frame),
        proportion=proportion(box, frame),
        dx=bx - fx,
        dy=by - fy,
        tolerance_x=frame.width * tolerance_ratio,
        tolerance_y=frame.height * tolerance_ratio,
    )
