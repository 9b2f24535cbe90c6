"""Data types for the BeatCut timeline engine."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List

from backend.services.video.content import SceneContent, TextContent, parse_scene_content


class SceneType(str, enum.Enum):
    INTRO = "intro"
    FEATURE = "feature"
    TESTIMONIAL = "testimonial"
    CTA = "cta"
    SCREENSHOT = "screenshot"
    RECORDING = "recording"
    TRANSITION = "transition"
    STATS = "stats"
    TAGLINE = "tagline"
    VALUE_PROP = "value-prop"


@dataclass
class Scene:
    """One timed segment of the video.

    Only ``start_frame``, ``end_frame`` and ``scene_type`` matter to the
    compiler; ``content``, ``animation`` and ``style`` pass through untouched.
    """
    id: str
    start_frame: int
    end_frame: int
    scene_type: SceneType
    content: SceneContent = field(default_factory=TextContent)
    animation: Dict[str, Any] = field(default_factory=dict)
    style: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_frames(self) -> int:
        return self.end_frame - self.start_frame

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "startFrame": self.start_frame,
            "endFrame": self.end_frame,
            "type": self.scene_type.value,
            "content": self.content.to_dict(),
            "animation": dict(self.animation),
            "style": dict(self.style),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scene":
        """Parse a wire-format scene.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If ``type`` is not a known scene type.
        """
        scene_type = SceneType(data["type"])
        return cls(
            id=str(data["id"]),
            start_frame=int(data["startFrame"]),
            end_frame=int(data["endFrame"]),
            scene_type=scene_type,
            content=parse_scene_content(scene_type.value, data.get("content")),
            animation=dict(data.get("animation") or {}),
            style=dict(data.get("style") or {}),
        )


@dataclass
class ScreenshotAsset:
    """A captured product screenshot available to the timeline."""
    url: str
    section: str = ""          # "hero" | "features" | "ui" | ...
    description: str = ""


@dataclass
class Timeline:
    """Compiled, contiguous, beat-aligned scene schedule."""
    scenes: List[Scene]
    total_duration_frames: int
    fps: int = 30
    bpm: float = 120.0

    @property
    def duration_sec(self) -> float:
        return self.total_duration_frames / float(self.fps)

    @property
    def frames_per_beat(self) -> float:
        return 60.0 / self.bpm * self.fps

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalDuration": self.total_duration_frames,
            "scenes": [scene.to_dict() for scene in self.scenes],
        }
