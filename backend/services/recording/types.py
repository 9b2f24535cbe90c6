"""Data types for screen-recording analysis."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional


class CursorEventType(str, enum.Enum):
    MOVE = "move"
    CLICK = "click"
    IDLE = "idle"


@dataclass(frozen=True)
class CursorSample:
    """One pointer observation in normalized [0, 1] screen space."""
    t: float                   # seconds since recording start
    x: float
    y: float
    event_type: CursorEventType = CursorEventType.MOVE

    def to_dict(self) -> Dict[str, Any]:
        return {"t": self.t, "x": self.x, "y": self.y, "eventType": self.event_type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CursorSample":
        raw_type = data.get("eventType", data.get("event_type", "move"))
        return cls(
            t=float(data["t"]),
            x=float(data["x"]),
            y=float(data["y"]),
            event_type=CursorEventType(raw_type),
        )


@dataclass(frozen=True)
class ZoomPoint:
    """A camera push-in keyframe.

    Attributes:
        time: Start time in seconds.
        x: Zoom target, normalized 0-1.
        y: Zoom target, normalized 0-1.
        scale: Magnification, always > 1.
        duration: Length of the effect in seconds, always > 0.
    """
    time: float
    x: float
    y: float
    scale: float
    duration: float

    def __post_init__(self) -> None:
        if not self.duration > 0:
            raise ValueError(f"ZoomPoint duration must be positive, got {self.duration}")

    @property
    def end(self) -> float:
        return self.time + self.duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "x": self.x,
            "y": self.y,
            "scale": self.scale,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ZoomPoint":
        """Parse a wire-format zoom point.

        Raises:
            ValueError: If ``time``, ``x`` or ``y`` is missing, or ``duration`` is not positive.
        """
        missing = [key for key in ("time", "x", "y") if key not in data]
        if missing:
            raise ValueError(f"ZoomPoint is missing {missing}")
        return cls(
            time=float(data["time"]),
            x=float(data["x"]),
            y=float(data["y"]),
            scale=float(data.get("scale", 1.5)),
            duration=float(data.get("duration", 2.0)),
        )


@dataclass
class ZoomDetectorOptions:
    """Knobs for dwell clustering.

    Attributes:
        min_samples: Fewer samples than this yields no zoom points.
        dwell_velocity: Max pointer speed (normalized units / s) for a dwell.
        cluster_gap_sec: Max time gap between consecutive dwell samples.
        cluster_radius: Max distance from the running centroid.
        min_cluster_samples: Dwell samples needed when the cluster has no click.
        min_duration_sec: Shortest emitted zoom.
        max_duration_sec: Longest zoom derived from a single cluster.
        base_scale: Scale for the loosest qualifying cluster.
        max_scale: Upper bound on scale.
        min_gap_sec: Zooms closer than this are merged.
        max_points: Keep only the first N zooms (None keeps all).
    """
    min_samples: int = 5
    dwell_velocity: float = 0.15
    cluster_gap_sec: float = 0.4
    cluster_radius: float = 0.08
    min_cluster_samples: int = 4
    min_duration_sec: float = 1.2
    max_duration_sec: float = 6.0
    base_scale: float = 1.25
    max_scale: float = 2.5
    min_gap_sec: float = 0.5
    max_points: Optional[int] = None

    @classmethod
    def from_config(cls, config: Optional[object]) -> "ZoomDetectorOptions":
        if config is None:
            return cls()
        defaults = cls()
        return cls(
            min_samples=int(config.get("zoom.min_samples", defaults.min_samples)),
            dwell_velocity=float(config.get("zoom.dwell_velocity", defaults.dwell_velocity)),
            cluster_gap_sec=float(config.get("zoom.cluster_gap_sec", defaults.cluster_gap_sec)),
            cluster_radius=float(config.get("zoom.cluster_radius", defaults.cluster_radius)),
            min_cluster_samples=int(
                config.get("zoom.min_cluster_samples", defaults.min_cluster_samples)
            ),
            min_duration_sec=float(config.get("zoom.min_duration_sec", defaults.min_duration_sec)),
            max_duration_sec=float(config.get("zoom.max_duration_sec", defaults.max_duration_sec)),
            base_scale=float(config.get("zoom.base_scale", defaults.base_scale)),
            max_scale=float(config.get("zoom.max_scale", defaults.max_scale)),
            min_gap_sec=float(config.get("zoom.min_gap_sec", defaults.min_gap_sec)),
            max_points=config.get("zoom.max_points", defaults.max_points),
        )
