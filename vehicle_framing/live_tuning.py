# live_tuning.py
"""Near/far framing thresholds, re-read from a JSON file while the loop runs."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

THRESHOLD_KEYS = ("near_threshold", "far_threshold")


@dataclass(frozen=True)
class ThresholdOverride:
    near: Optional[float] = None
    far: Optional[float] = None

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "ThresholdOverride":
        """Raises ``ValueError`` if either threshold is present but not a number."""
        values = []
        for key in THRESHOLD_KEYS:
            raw = params.get(key)
            if raw is None:
                values.append(None)
                continue
            if isinstance(raw, bool):
                raise ValueError(f"{key}={raw!r}")
            try:
                values.append(float(raw))
            except (TypeError, ValueError):
                raise ValueError(f"{key}={raw!r}") from None
        return cls(*values)


class RuntimeParamWatcher:
    """
    Keeps the last good contents of a small JSON object on disk.

    The file is polled by (mtime, size) from the tick, never watched from
    another thread. Anything unreadable leaves the previous values in place.
    """

    def __init__(self, path: str | Path = "runtime_params.json") -> None:
        self.path = Path(path).expanduser().resolve()
        self.params: Dict[str, Any] = {}
        self._stamp: Optional[Tuple[float, int]] = None

        print(f"[Runtime] Threshold file: {self.path}")
        if not self._read():
            print("[Runtime] No usable threshold file yet – using configured thresholds")

    def _read(self) -> bool:
        try:
            stat = self.path.stat()
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return False
        # Remember the stamp even for a bad file so it is not re-parsed every tick
        self._stamp = (stat.st_mtime, stat.st_size)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            print(f"[Runtime] Bad JSON in {self.path.name} (line {exc.lineno}) – keeping previous values")
            return False
        if not isinstance(data, dict):
            print(f"[Runtime] {self.path.name} must hold a JSON object – keeping previous values")
            return False
        self.params = data
        return True

    def maybe_reload(self) -> bool:
        """True when the file changed on disk and was read successfully."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return False
        if self._stamp == (stat.st_mtime, stat.st_size):
            return False
        if self._read():
            print(f"[Runtime] Reloaded {self.path.name}: {self.thresholds()}")
            return True
        return False

    def get(self, key: str, default: Any | None = None) -> Any:
        return self.params.get(key, default)

    def thresholds(self) -> Dict[str, Any]:
        return {k: self.params[k] for k in THRESHOLD_KEYS if k in self.params}

    def apply_thresholds(self, engine: Any) -> bool:
        """Push the file's thresholds into *engine*; False if nothing was applied."""
        try:
            override = ThresholdOverride.from_params(self.params)
        except ValueError as exc:
            print(f"[Runtime] Ignoring non-numeric threshold {exc}")
            return False
        if override.near is None and override.far is None:
            return False
        return engine.set_thresholds(near=override.near, far=override.far)
