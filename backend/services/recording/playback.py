"""Playback-time lookups over cursor traces and zoom points.

These are what a renderer samples once per frame: where the pointer is at
time ``t``, and what the camera zoom looks like at time ``t``.
"""
from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import List, Optional, Sequence

from backend.services.recording.types import CursorSample, ZoomPoint

# Fraction of a zoom spent easing in, and easing out
_EASE_FRACTION = 0.2


@dataclass(frozen=True)
class CameraState:
    scale: float
    x: float
    y: float


IDENTITY_CAMERA = CameraState(scale=1.0, x=0.5, y=0.5)


def _ease_in_out(t: float) -> float:
    return 2 * t * t if t < 0.5 else -1 + (4 - 2 * t) * t


def cursor_at_time(samples: Sequence[CursorSample], t: float) -> Optional[CursorSample]:
    """Linearly interpolated pointer position at ``t`` seconds.

    ``samples`` must be sorted by ``t``.  Times outside the trace clamp to the
    first / last sample.  The event type is taken from the earlier sample.
    """
    if not samples:
        return None
    times: List[float] = [s.t for s in samples]
    i = bisect.bisect_right(times, t)
    if i == 0:
        return samples[0]
    before = samples[i - 1]
    if before.t == t or i == len(samples):
        return before
    after = samples[i]
    span = after.t - before.t
    if span <= 0:
        return before
    progress = (t - before.t) / span
    return CursorSample(
        t=t,
        x=before.x + (after.x - before.x) * progress,
        y=before.y + (after.y - before.y) * progress,
        event_type=before.event_type,
    )


def zoom_at_time(points: Sequence[ZoomPoint], t: float) -> CameraState:
    """Camera state at ``t``: eased push-in, hold, eased pull-out.

    Outside every zoom the camera is at identity (scale 1, centred).
    """
    active = next((z for z in points if z.time <= t <= z.end), None)
    if active is None:
        return IDENTITY_CAMERA

    progress = (t - active.time) / active.duration
    if progress < _EASE_FRACTION:
        scale = 1 + (active.scale - 1) * _ease_in_out(progress / _EASE_FRACTION)
    elif progress > 1 - _EASE_FRACTION:
        scale = 1 + (active.scale - 1) * _ease_in_out((1 - progress) / _EASE_FRACTION)
    else:
        scale = active.scale
    return CameraState(scale=scale, x=active.x, y=active.y)
