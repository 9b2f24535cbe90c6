"""CursorCaptureSession — buffers pointer samples while a recording runs.

The session is the producer side of zoom detection: input handlers call
``record_*`` as events arrive, and ``stop()`` flushes the buffer into an
immutable tuple that :func:`detect_zoom_points` consumes afterwards.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, List, Optional, Tuple

from backend.services.recording.types import CursorEventType, CursorSample

logger = logging.getLogger("beatcut.recording.capture")

# Move events closer together than this are coalesced (~30 Hz)
_DEFAULT_MOVE_INTERVAL_SEC = 1.0 / 30
# A jump larger than this (normalized units) is always recorded
_JUMP_DISTANCE = 0.05


class CaptureStateError(RuntimeError):
    """Raised when recording into a session that is not running."""


class CursorCaptureSession:
    """Collects :class:`CursorSample` objects during a screen recording.

    Coordinates are given in pixels and normalized against the viewport.
    Rapid move events are throttled; clicks and idle markers are kept as-is.

    Usage::

        session = CursorCaptureSession(viewport=(1920, 1080))
        session.start()
        session.record_move(640, 360)
        session.record_click(650, 362)
        samples = session.stop()
    """

    def __init__(
        self,
        viewport: Tuple[int, int] = (1920, 1080),
        move_interval_sec: float = _DEFAULT_MOVE_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        width, height = viewport
        if width <= 0 or height <= 0:
            raise ValueError(f"Viewport must be positive, got {viewport}")
        self._width = float(width)
        self._height = float(height)
        self._move_interval = move_interval_sec
        self._clock = clock
        self._lock = threading.Lock()
        self._samples: List[CursorSample] = []
        self._started_at: Optional[float] = None
        self._last_move: Optional[CursorSample] = None
        self._flushed: Optional[Tuple[CursorSample, ...]] = None

    # ── state ────────────────────────────────────────────────────────────────

    @property
    def is_active(self) -> bool:
        return self._started_at is not None and self._flushed is None

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def start(self) -> None:
        """Begin a fresh capture.  Restarting discards any previous buffer."""
        with self._lock:
            self._samples = []
            self._last_move = None
            self._flushed = None
            self._started_at = self._clock()
        logger.debug("Cursor capture started (viewport %dx%d)", self._width, self._height)

    def stop(self) -> Tuple[CursorSample, ...]:
        """Finalize the buffer and return it, sorted by ``t``.

        Calling ``stop()`` again returns the same samples.
        """
        with self._lock:
            if self._flushed is None:
                self._flushed = tuple(sorted(self._samples, key=lambda s: s.t))
                logger.info("Cursor capture stopped: %d samples", len(self._flushed))
            return self._flushed

    # ── producers ────────────────────────────────────────────────────────────

    def record_move(self, px: float, py: float) -> bool:
        """Record a pointer move.  Returns False if it was throttled away."""
        return self._record(px, py, CursorEventType.MOVE)

    def record_click(self, px: float, py: float) -> bool:
        return self._record(px, py, CursorEventType.CLICK)

    def record_idle(self, px: float, py: float) -> bool:
        return self._record(px, py, CursorEventType.IDLE)

    # ── internal ─────────────────────────────────────────────────────────────

    def _normalize(self, px: float, py: float) -> Tuple[float, float]:
        return (
            min(1.0, max(0.0, px / self._width)),
            min(1.0, max(0.0, py / self._height)),
        )

    def _record(self, px: float, py: float, event_type: CursorEventType) -> bool:
        with self._lock:
            if not self.is_active:
                raise CaptureStateError("Capture session is not running; call start() first")
            x, y = self._normalize(px, py)
            sample = CursorSample(
                t=self._clock() - self._started_at,
                x=x,
                y=y,
                event_type=event_type,
            )
            if event_type == CursorEventType.MOVE and self._last_move is not None:
                last = self._last_move
                jumped = math.hypot(x - last.x, y - last.y) > _JUMP_DISTANCE
                if not jumped and sample.t - last.t < self._move_interval:
                    return False
            self._samples.append(sample)
            # Any recorded sample becomes the throttle anchor for the next move
            self._last_move = sample
            return True
