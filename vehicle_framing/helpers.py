# helpers.py
"""Small utility classes that don’t fit elsewhere."""
from collections import deque
from typing import Deque, List, Optional


class ProportionHistory:
    """
    Bounded history of per-tick proportions for the proportion chart.
    ``None`` ticks (no vehicle) are not recorded.
    """

    def __init__(self, max_points: int = 50):
        self.max_points = max_points
        self._values: Deque[float] = deque(maxlen=max_points)

    def push(self, value: Optional[float]) -> None:
        if value is None or value != value:  # NaN
            return
        self._values.append(value)

    def values(self) -> List[float]:
        return list(self._values)

    def latest(self) -> Optional[float]:
        return self._values[-1] if self._values else None

    def __len__(self) -> int:
        return len(self._values)
