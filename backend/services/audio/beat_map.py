"""Beat map extraction — energy-based onset detection plus beat-grid lookups.

The extractor turns an :class:`AudioSignal` into a :class:`BeatMap` of frame
indices at the output frame rate.  ``beat_map_from_bpm`` synthesizes a grid
when no audio is available.  The remaining helpers are pure lookups over a
beat map used by the timeline compiler and the renderer.
"""
from __future__ import annotations

import bisect
import hashlib
import logging
from typing import List, Optional

import numpy as np

from backend.services.audio.types import (
    DEFAULT_BPM,
    DEFAULT_FPS,
    AudioSignal,
    BeatDetectorOptions,
    BeatMap,
)

logger = logging.getLogger("beatcut.audio.beat_map")

# One drop every 16 beats (4 bars of 4/4) on a synthesized grid
_BEATS_PER_DROP = 16

BPM_PRESETS = {
    "slow": 80,
    "chill": 100,
    "moderate": 120,
    "upbeat": 130,
    "energetic": 140,
    "fast": 160,
}

_MOOD_BPM = {
    "energetic": 140,
    "calm": 90,
    "dramatic": 110,
    "playful": 125,
}


class BeatMapError(ValueError):
    """Raised for invalid beat map input (bad sample rate, BPM, or options)."""


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def _validate_options(opts: BeatDetectorOptions) -> None:
    if opts.min_bpm <= 0 or opts.max_bpm < opts.min_bpm:
        raise BeatMapError(
            f"Invalid BPM range: [{opts.min_bpm}, {opts.max_bpm}]"
        )
    if opts.fps <= 0:
        raise BeatMapError(f"fps must be positive, got {opts.fps}")
    if opts.window_sec <= 0:
        raise BeatMapError(f"window_sec must be positive, got {opts.window_sec}")
    if opts.drop_lookback < 1:
        raise BeatMapError(f"drop_lookback must be >= 1, got {opts.drop_lookback}")


class BeatMapExtractor:
    """Estimates tempo, beats and drops from a waveform.

    Pipeline:
      1. Mean-squared energy over fixed windows with 50% overlap.
      2. Normalize by the loudest window.
      3. Local maxima above ``threshold`` are beat candidates.
      4. Tempo = mean of inter-peak intervals inside ``[min_bpm, max_bpm]``.
      5. Drops = windows louder than ``drop_ratio`` x the trailing average.

    Degenerate audio (silence, too short) never raises: it yields the default
    120 BPM with empty ``beats`` and ``drops``.

    Usage::

        extractor = BeatMapExtractor(BeatDetectorOptions(threshold=0.4))
        beat_map = extractor.extract(signal)
    """

    def __init__(self, options: Optional[BeatDetectorOptions] = None):
        self.options = options or BeatDetectorOptions()
        _validate_options(self.options)

    def extract(self, signal: AudioSignal) -> BeatMap:
        """Compute a :class:`BeatMap` for ``signal``.

        Raises:
            BeatMapError: If the sample rate is not positive.
        """
        if signal.sample_rate <= 0:
            raise BeatMapError(f"sample_rate must be positive, got {signal.sample_rate}")

        opts = self.options
        sr = signal.sample_rate
        window = max(1, int(sr * opts.window_sec))
        hop = max(1, window // 2)

        energies = self._window_energies(signal.samples, window, hop)
        peak_energy = float(energies.max()) if energies.size else 0.0
        if peak_energy <= 0.0:
            bpm = self._clamp(DEFAULT_BPM)
            logger.info("No signal energy (%d windows) — default %.0f BPM", energies.size, bpm)
            return BeatMap(bpm=bpm, beats=[], drops=[])

        normalized = energies / peak_energy

        peak_idx = self._pick_peaks(normalized, opts.threshold)
        peak_times = peak_idx * hop / float(sr)
        bpm = self._clamp(self._estimate_bpm(peak_times))

        beats = self._to_frames(peak_times)
        drop_idx = self._detect_drops(normalized)
        drops = self._to_frames(drop_idx * hop / float(sr))

        logger.info(
            "Beat map: %.0f BPM, %d beats, %d drops (%d windows, %.1fs)",
            bpm, len(beats), len(drops), energies.size, signal.duration_sec,
        )
        return BeatMap(bpm=bpm, beats=beats, drops=drops)

    # ── Internal ──────────────────────────────────────────────────────────────

    @staticmethod
    def _window_energies(samples: np.ndarray, window: int, hop: int) -> np.ndarray:
        """Mean squared amplitude for windows starting every ``hop`` samples."""
        n = len(samples)
        starts = np.arange(0, n - window, hop)
        if starts.size == 0:
            return np.zeros(0)
        squared = samples * samples
        # reduceat over interleaved (start, end) pairs sums each window exactly;
        # the odd slots hold single samples and are discarded.
        bounds = np.empty(starts.size * 2, dtype=np.intp)
        bounds[0::2] = starts
        bounds[1::2] = starts + window
        sums = np.add.reduceat(squared, bounds)[0::2]
        return sums / window

    @staticmethod
    def _pick_peaks(normalized: np.ndarray, threshold: float) -> np.ndarray:
        if normalized.size < 3:
            return np.zeros(0, dtype=np.intp)
        mid = normalized[1:-1]
        mask = (mid > threshold) & (mid > normalized[:-2]) & (mid > normalized[2:])
        return np.nonzero(mask)[0] + 1

    def _estimate_bpm(self, peak_times: np.ndarray) -> float:
        opts = self.options
        if peak_times.size < 2:
            return DEFAULT_BPM
        intervals = np.diff(peak_times)
        intervals = intervals[intervals > 0]
        implied = 60.0 / intervals
        valid = intervals[(implied >= opts.min_bpm) & (implied <= opts.max_bpm)]
        if valid.size == 0:
            logger.debug("No inter-peak interval inside [%s, %s] BPM", opts.min_bpm, opts.max_bpm)
            return DEFAULT_BPM
        return float(_round_half_up(60.0 / float(np.mean(valid))))

    def _detect_drops(self, normalized: np.ndarray) -> np.ndarray:
        lookback = self.options.drop_lookback
        if normalized.size <= lookback:
            return np.zeros(0, dtype=np.intp)
        trailing = np.lib.stride_tricks.sliding_window_view(
            normalized[:-1], lookback
        ).mean(axis=1)
        current = normalized[lookback:]
        return np.nonzero(current > trailing * self.options.drop_ratio)[0] + lookback

    def _to_frames(self, times: np.ndarray) -> List[int]:
        if times.size == 0:
            return []
        frames = np.floor(times * self.options.fps + 0.5).astype(np.int64)
        return [int(f) for f in np.unique(frames)]

    def _clamp(self, bpm: float) -> float:
        return float(min(self.options.max_bpm, max(self.options.min_bpm, bpm)))


# ── Module-level API ──────────────────────────────────────────────────────────


def extract_beat_map(
    signal: AudioSignal,
    options: Optional[BeatDetectorOptions] = None,
) -> BeatMap:
    """Estimate a :class:`BeatMap` from ``signal``.  See :class:`BeatMapExtractor`."""
    return BeatMapExtractor(options).extract(signal)


def beat_map_from_bpm(
    bpm: float,
    total_duration_frames: int,
    fps: int = DEFAULT_FPS,
) -> BeatMap:
    """Synthesize a fixed grid: a beat every ``round(60/bpm * fps)`` frames.

    A drop is placed every 16 beats.  The declared ``bpm`` is kept as-is.

    Raises:
        BeatMapError: If ``bpm`` or ``fps`` is not positive.
    """
    if bpm <= 0:
        raise BeatMapError(f"bpm must be positive, got {bpm}")
    if fps <= 0:
        raise BeatMapError(f"fps must be positive, got {fps}")

    frames_per_beat = max(1, _round_half_up(60.0 / bpm * fps))
    total = max(0, int(total_duration_frames))
    beats = list(range(0, total, frames_per_beat))
    drops = list(range(0, total, frames_per_beat * _BEATS_PER_DROP))
    logger.debug("Synthesized %d beats at %.1f BPM over %d frames", len(beats), bpm, total)
    return BeatMap(bpm=float(bpm), beats=beats, drops=drops)


def signal_fingerprint(signal: AudioSignal) -> str:
    """Content hash of a signal, suitable as a beat map cache key."""
    digest = hashlib.sha256()
    digest.update(str(signal.sample_rate).encode("ascii"))
    digest.update(np.ascontiguousarray(signal.samples).tobytes())
    return digest.hexdigest()


def bpm_from_mood(mood: str) -> int:
    """Suggested tempo for a video mood; 120 for anything unrecognised."""
    return _MOOD_BPM.get(mood, 120)


# ── Lookups ───────────────────────────────────────────────────────────────────


def _nearest(frames: List[int], frame: int) -> Optional[int]:
    if not frames:
        return None
    i = bisect.bisect_left(frames, frame)
    if i == 0:
        return frames[0]
    if i == len(frames):
        return frames[-1]
    before, after = frames[i - 1], frames[i]
    # Ties resolve to the earlier frame
    return after if after - frame < frame - before else before


def nearest_beat(beat_map: BeatMap, frame: int) -> Optional[int]:
    """Return the beat frame closest to ``frame``, or None when there are no beats."""
    return _nearest(beat_map.beats, frame)


def is_on_beat(beat_map: BeatMap, frame: int, tolerance: int = 2) -> bool:
    nearest = _nearest(beat_map.beats, frame)
    return nearest is not None and abs(frame - nearest) <= tolerance


def is_on_drop(beat_map: BeatMap, frame: int, tolerance: int = 2) -> bool:
    nearest = _nearest(beat_map.drops, frame)
    return nearest is not None and abs(frame - nearest) <= tolerance


def snap_to_beat(beat_map: BeatMap, frame: int, max_distance: int = 5) -> int:
    """Move ``frame`` onto the nearest beat if it is within ``max_distance``."""
    nearest = _nearest(beat_map.beats, frame)
    if nearest is not None and abs(nearest - frame) <= max_distance:
        return nearest
    return frame


def next_beat(beat_map: BeatMap, frame: int) -> Optional[int]:
    """First beat strictly after ``frame``."""
    i = bisect.bisect_right(beat_map.beats, frame)
    return beat_map.beats[i] if i < len(beat_map.beats) else None


def previous_beat(beat_map: BeatMap, frame: int) -> Optional[int]:
    """Last beat strictly before ``frame``."""
    i = bisect.bisect_left(beat_map.beats, frame)
    return beat_map.beats[i - 1] if i > 0 else None


def beats_between(
    beat_map: BeatMap,
    start_frame: int,
    end_frame: int,
    every_nth: int = 1,
) -> List[int]:
    """Beats inside ``[start_frame, end_frame]`` whose grid index is a multiple of ``every_nth``."""
    step = max(1, every_nth)
    return [
        beat for i, beat in enumerate(beat_map.beats)
        if start_frame <= beat <= end_frame and i % step == 0
    ]


def beat_progress(beat_map: BeatMap, frame: int, fps: int = DEFAULT_FPS) -> float:
    """Position (0-1) of ``frame`` inside the beat it falls in."""
    frames_per_beat = 60.0 / beat_map.bpm * fps
    if not beat_map.beats:
        return (frame % frames_per_beat) / frames_per_beat
    i = bisect.bisect_right(beat_map.beats, frame)
    current = beat_map.beats[i - 1] if i > 0 else beat_map.beats[0]
    return min(1.0, max(0.0, (frame - current) / frames_per_beat))
