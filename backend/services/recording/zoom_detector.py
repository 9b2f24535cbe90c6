"""ZoomDetector — derives camera zoom points from recorded pointer activity.

A zoom is placed wherever the pointer dwells: consecutive samples that are
slow, idle, or clicks, staying within a small radius.  Each dwell cluster
becomes one :class:`ZoomPoint` at its centroid.  Tighter clusters and more
clicks zoom further.  Clusters closer than ``min_gap_sec`` are merged so the
output never overlaps.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np

from backend.services.recording.types import (
    CursorEventType,
    CursorSample,
    ZoomDetectorOptions,
    ZoomPoint,
)

logger = logging.getLogger("beatcut.recording.zoom_detector")

# Scale and duration floors that keep emitted points valid even for odd configs
_MIN_SCALE = 1.05
_MIN_DURATION_SEC = 0.1

# Weighting of the scale score
_CONCENTRATION_WEIGHT = 0.6
_CLICK_WEIGHT = 0.4
_CLICKS_FOR_FULL_SCORE = 3

_DWELL_EVENTS = {CursorEventType.CLICK, CursorEventType.IDLE}


@dataclass
class _Cluster:
    samples: List[CursorSample] = field(default_factory=list)
    sum_x: float = 0.0
    sum_y: float = 0.0

    def add(self, sample: CursorSample) -> None:
        self.samples.append(sample)
        self.sum_x += sample.x
        self.sum_y += sample.y

    @property
    def start(self) -> float:
        return self.samples[0].t

    @property
    def last_t(self) -> float:
        return self.samples[-1].t

    @property
    def centroid(self) -> Tuple[float, float]:
        n = len(self.samples)
        return self.sum_x / n, self.sum_y / n

    @property
    def clicks(self) -> int:
        return sum(1 for s in self.samples if s.event_type == CursorEventType.CLICK)

    def distance_to(self, sample: CursorSample) -> float:
        cx, cy = self.centroid
        return math.hypot(sample.x - cx, sample.y - cy)

    def spread(self) -> float:
        """Mean distance of the samples from the centroid."""
        return sum(self.distance_to(s) for s in self.samples) / len(self.samples)


@dataclass
class _Zoom:
    time: float
    end: float
    x: float
    y: float
    scale: float
    weight: int

    def absorb(self, other: "_Zoom") -> None:
        total = self.weight + other.weight
        self.x = (self.x * self.weight + other.x * other.weight) / total
        self.y = (self.y * self.weight + other.y * other.weight) / total
        self.end = max(self.end, other.end)
        self.scale = max(self.scale, other.scale)
        self.weight = total


class ZoomDetector:
    """Turns a buffered cursor trace into non-overlapping zoom points.

    Usage::

        detector = ZoomDetector(ZoomDetectorOptions(max_scale=2.0))
        zooms = detector.detect(samples)
    """

    def __init__(self, options: Optional[ZoomDetectorOptions] = None):
        self.options = options or ZoomDetectorOptions()

    def detect(self, samples: Iterable[CursorSample]) -> List[ZoomPoint]:
        """Return zoom points ordered by time.

        Samples are sorted by ``t`` first.  Too few samples, or no dwell that
        qualifies, yields an empty list.
        """
        opts = self.options
        ordered = sorted(
            (s for s in samples if math.isfinite(s.t) and math.isfinite(s.x) and math.isfinite(s.y)),
            key=lambda s: s.t,
        )
        if len(ordered) < max(1, opts.min_samples):
            logger.debug("Only %d cursor samples — no zoom points", len(ordered))
            return []

        velocities = self._velocities(ordered)
        clusters = [
            c for c in self._cluster(ordered, velocities)
            if len(c.samples) >= opts.min_cluster_samples or c.clicks > 0
        ]
        zooms = self._merge([self._to_zoom(c) for c in clusters])
        if opts.max_points is not None:
            zooms = zooms[: max(0, int(opts.max_points))]

        points = [
            ZoomPoint(
                time=z.time,
                x=z.x,
                y=z.y,
                scale=z.scale,
                duration=z.end - z.time,
            )
            for z in zooms
        ]
        logger.info(
            "Detected %d zoom points from %d samples (%d dwell clusters)",
            len(points), len(ordered), len(clusters),
        )
        return points

    # ── Internal ──────────────────────────────────────────────────────────────

    @staticmethod
    def _velocities(ordered: List[CursorSample]) -> np.ndarray:
        """Speed arriving at each sample; the first sample reuses the second's."""
        n = len(ordered)
        if n < 2:
            return np.zeros(n)
        t = np.array([s.t for s in ordered])
        x = np.array([s.x for s in ordered])
        y = np.array([s.y for s in ordered])
        dt = np.diff(t)
        dist = np.hypot(np.diff(x), np.diff(y))
        safe_dt = np.where(dt > 0, dt, 1.0)
        speed = np.where(dt > 0, dist / safe_dt, np.where(dist > 0, np.inf, 0.0))
        velocities = np.empty(n)
        velocities[1:] = speed
        velocities[0] = speed[0]
        return velocities

    def _cluster(self, ordered: List[CursorSample], velocities: np.ndarray) -> List[_Cluster]:
        opts = self.options
        clusters: List[_Cluster] = []
        current: Optional[_Cluster] = None

        for sample, velocity in zip(ordered, velocities):
            dwelling = sample.event_type in _DWELL_EVENTS or velocity <= opts.dwell_velocity
            if not dwelling:
                current = None
                continue
            if current is not None and (
                sample.t - current.last_t > opts.cluster_gap_sec
                or current.distance_to(sample) > opts.cluster_radius
            ):
                current = None
            if current is None:
                current = _Cluster()
                clusters.append(current)
            current.add(sample)

        return clusters

    def _to_zoom(self, cluster: _Cluster) -> _Zoom:
        opts = self.options
        cx, cy = cluster.centroid

        if opts.cluster_radius > 0:
            concentration = 1.0 - min(cluster.spread() / opts.cluster_radius, 1.0)
        else:
            concentration = 1.0
        click_score = min(cluster.clicks, _CLICKS_FOR_FULL_SCORE) / _CLICKS_FOR_FULL_SCORE
        score = _CONCENTRATION_WEIGHT * concentration + _CLICK_WEIGHT * click_score
        scale = opts.base_scale + (opts.max_scale - opts.base_scale) * score
        scale = max(_MIN_SCALE, min(opts.max_scale, scale))

        span = cluster.last_t - cluster.start
        duration = max(opts.min_duration_sec, min(span, opts.max_duration_sec))
        duration = max(_MIN_DURATION_SEC, duration)

        return _Zoom(
            time=cluster.start,
            end=cluster.start + duration,
            x=min(1.0, max(0.0, cx)),
            y=min(1.0, max(0.0, cy)),
            scale=scale,
            weight=len(cluster.samples),
        )

    def _merge(self, zooms: List[_Zoom]) -> List[_Zoom]:
        merged: List[_Zoom] = []
        for zoom in sorted(zooms, key=lambda z: z.time):
            if merged and zoom.time < merged[-1].end + self.options.min_gap_sec:
                merged[-1].absorb(zoom)
            else:
                merged.append(zoom)
        return merged


def detect_zoom_points(
    samples: Iterable[CursorSample],
    options: Optional[ZoomDetectorOptions] = None,
) -> List[ZoomPoint]:
    """Detect zoom points in a cursor trace.  See :class:`ZoomDetector`."""
    return ZoomDetector(options).detect(samples)
