"""Data types for the BeatCut audio engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

DEFAULT_FPS = 30
DEFAULT_BPM = 120.0


@dataclass(frozen=True, eq=False)
class AudioSignal:
    """Mono (or first-channel) samples plus their sample rate.

    Attributes:
        samples: 1-D float array.  Multi-channel input keeps channel 0.
        sample_rate: Samples per second.
    """
    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.float64)
        if samples.ndim > 1:
            samples = samples[0]
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @property
    def duration_sec(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / float(self.sample_rate)


@dataclass
class BeatMap:
    """Tempo plus beat and drop positions, as frame indices."""
    bpm: float
    beats: List[int] = field(default_factory=list)     # strictly increasing
    drops: List[int] = field(default_factory=list)     # strictly increasing

    def to_dict(self) -> Dict[str, Any]:
        return {"bpm": self.bpm, "beats": list(self.beats), "drops": list(self.drops)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BeatMap":
        return cls(
            bpm=float(data["bpm"]),
            beats=[int(b) for b in data.get("beats", [])],
            drops=[int(d) for d in data.get("drops", [])],
        )


@dataclass
class BeatDetectorOptions:
    """Knobs for energy-based beat detection.

    Attributes:
        min_bpm: Lower tempo bound; intervals implying less are discarded.
        max_bpm: Upper tempo bound.
        threshold: Normalized energy a window must exceed to count as a peak.
        fps: Output frame rate for ``beats`` / ``drops``.
        window_sec: Energy window length.  Hop is half a window.
        drop_lookback: Number of trailing windows averaged for drop detection.
        drop_ratio: A window is a drop when its energy exceeds this multiple
            of the trailing average.
    """
    min_bpm: float = 80.0
    max_bpm: float = 180.0
    threshold: float = 0.3
    fps: int = DEFAULT_FPS
    window_sec: float = 0.02
    drop_lookback: int = 10
    drop_ratio: float = 2.0

    @classmethod
    def from_config(cls, config: Optional[object]) -> "BeatDetectorOptions":
        """Build options from a :class:`~backend.services.shared.config.Config`."""
        if config is None:
            return cls()
        return cls(
            min_bpm=float(config.get("beat_detection.min_bpm", 80.0)),
            max_bpm=float(config.get("beat_detection.max_bpm", 180.0)),
            threshold=float(config.get("beat_detection.threshold", 0.3)),
            fps=int(config.get("render.fps", DEFAULT_FPS)),
            window_sec=float(config.get("beat_detection.window_sec", 0.02)),
            drop_lookback=int(config.get("beat_detection.drop_lookback", 10)),
            drop_ratio=float(config.get("beat_detection.drop_ratio", 2.0)),
        )
