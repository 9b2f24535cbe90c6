"""TimelineCompiler — turns a draft scene list into a beat-aligned schedule."""
from __future__ import annotations

import copy
import logging
import math
from typing import Iterable, List, Optional, Sequence

from backend.services.audio.types import DEFAULT_FPS, BeatMap
from backend.services.video.content import ScreenshotContent, TextContent
from backend.services.video.types import Scene, SceneType, ScreenshotAsset, Timeline

logger = logging.getLogger("beatcut.video.timeline")

_DEFAULT_CTA_SEC = 3.0
_DEFAULT_SCREENSHOT_SEC = 2.5
_DEFAULT_MAX_SCENE_SEC = 10.0
_DEFAULT_MIN_TARGET_SEC = 10.0
_DEFAULT_MAX_TARGET_SEC = 120.0
# Scaling kicks in when the snapped timeline is shorter than this share of the target
_DEFAULT_ENFORCE_RATIO = 0.8


class TimelineError(ValueError):
    """Raised for input the compiler cannot schedule (no scenes, bad BPM/fps)."""


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def frames_per_beat(bpm: float, fps: int = DEFAULT_FPS) -> float:
    """Length of one beat in frames (not necessarily an integer)."""
    return 60.0 / bpm * fps


def snap_duration(frames: float, beat_frames: float) -> int:
    """Round a duration to the nearest whole number of beats, at least one beat."""
    one_beat = max(1, _round_half_up(beat_frames))
    snapped = _round_half_up(_round_half_up(frames / beat_frames) * beat_frames)
    return max(one_beat, snapped)


def _restamp(scenes: List[Scene], durations: Sequence[int]) -> int:
    """Lay scenes end to end from frame 0; return the total length."""
    frame = 0
    for scene, duration in zip(scenes, durations):
        scene.start_frame = frame
        scene.end_frame = frame + duration
        frame += duration
    return frame


def _unique_id(base: str, scenes: Iterable[Scene]) -> str:
    taken = {s.id for s in scenes}
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


class TimelineCompiler:
    """Compiles draft scenes into a contiguous, beat-aligned :class:`Timeline`.

    Order of operations:
      1. Structural rules: append a ``cta`` if the last scene is not one, and
         splice in one ``screenshot`` scene before it when screenshot assets
         exist but no scene shows any of them.
      2. Beat snapping: every duration becomes a whole number of beats
         (minimum one beat), scenes re-stamped from frame 0.
      3. Duration enforcement: when a target of at least ``min_target_sec``
         is given and the timeline is under ``enforce_ratio`` of it, scale every
         scene up, clamp to ``[1 beat, max_scene_sec]``, re-snap, re-stamp.

    Step 3 lands close to the target but not on it exactly; beat alignment
    wins over the frame count.

    Usage::

        compiler = TimelineCompiler()
        timeline = compiler.compile(scenes, bpm=120, target_duration_seconds=30)
    """

    def __init__(
        self,
        fps: int = DEFAULT_FPS,
        cta_duration_sec: float = _DEFAULT_CTA_SEC,
        screenshot_duration_sec: float = _DEFAULT_SCREENSHOT_SEC,
        max_scene_sec: float = _DEFAULT_MAX_SCENE_SEC,
        min_target_sec: float = _DEFAULT_MIN_TARGET_SEC,
        max_target_sec: float = _DEFAULT_MAX_TARGET_SEC,
        enforce_ratio: float = _DEFAULT_ENFORCE_RATIO,
    ):
        self.fps = fps
        self.cta_duration_sec = cta_duration_sec
        self.screenshot_duration_sec = screenshot_duration_sec
        self.max_scene_sec = max_scene_sec
        self.min_target_sec = min_target_sec
        self.max_target_sec = max_target_sec
        self.enforce_ratio = enforce_ratio

    @classmethod
    def from_config(cls, config: Optional[object]) -> "TimelineCompiler":
        """Build a compiler from a :class:`~backend.services.shared.config.Config`."""
        if config is None:
            return cls()
        return cls(
            fps=int(config.get("render.fps", DEFAULT_FPS)),
            cta_duration_sec=float(config.get("timeline.cta_duration_sec", _DEFAULT_CTA_SEC)),
            screenshot_duration_sec=float(
                config.get("timeline.screenshot_duration_sec", _DEFAULT_SCREENSHOT_SEC)
            ),
            max_scene_sec=float(config.get("timeline.max_scene_sec", _DEFAULT_MAX_SCENE_SEC)),
            min_target_sec=float(config.get("timeline.min_target_sec", _DEFAULT_MIN_TARGET_SEC)),
            max_target_sec=float(config.get("timeline.max_target_sec", _DEFAULT_MAX_TARGET_SEC)),
            enforce_ratio=float(config.get("timeline.enforce_ratio", _DEFAULT_ENFORCE_RATIO)),
        )

    def compile(
        self,
        scenes: Sequence[Scene],
        bpm: float,
        target_duration_seconds: Optional[float] = None,
        fps: Optional[int] = None,
        screenshots: Optional[Sequence[ScreenshotAsset]] = None,
    ) -> Timeline:
        """Compile ``scenes`` against a ``bpm`` grid.

        The input scenes are not modified; the timeline holds copies.

        Raises:
            TimelineError: If ``scenes`` is empty, or ``bpm`` / ``fps`` is not positive.
        """
        fps = self.fps if fps is None else fps
        if not scenes:
            raise TimelineError("Cannot compile an empty scene list; at least an intro is required")
        if not (bpm > 0 and math.isfinite(bpm)):
            raise TimelineError(f"bpm must be a positive number, got {bpm}")
        if fps <= 0:
            raise TimelineError(f"fps must be positive, got {fps}")

        working = [copy.deepcopy(scene) for scene in scenes]
        self._ensure_cta(working, fps)
        if screenshots:
            self._ensure_screenshot(working, screenshots, fps)

        beat_frames = frames_per_beat(bpm, fps)
        total = _restamp(
            working,
            [snap_duration(scene.duration_frames, beat_frames) for scene in working],
        )
        logger.debug("Snapped %d scenes to %.2f frames/beat: %d frames", len(working), beat_frames, total)

        target_frames = self._target_frames(target_duration_seconds, fps)
        if target_frames is not None and total < self.enforce_ratio * target_frames:
            total = self._stretch(working, beat_frames, target_frames, total, fps)

        logger.info(
            "Compiled timeline: %d scenes, %d frames (%.1fs) at %.1f BPM",
            len(working), total, total / float(fps), bpm,
        )
        return Timeline(scenes=working, total_duration_frames=total, fps=fps, bpm=float(bpm))

    def compile_to_beat_map(
        self,
        scenes: Sequence[Scene],
        beat_map: BeatMap,
        target_duration_seconds: Optional[float] = None,
        fps: Optional[int] = None,
        screenshots: Optional[Sequence[ScreenshotAsset]] = None,
    ) -> Timeline:
        """Compile against the tempo of an extracted or synthesized beat map."""
        return self.compile(
            scenes,
            beat_map.bpm,
            target_duration_seconds=target_duration_seconds,
            fps=fps,
            screenshots=screenshots,
        )

    # ── Internal ──────────────────────────────────────────────────────────────

    def _ensure_cta(self, scenes: List[Scene], fps: int) -> None:
        last = scenes[-1]
        if last.scene_type == SceneType.CTA:
            return
        duration = max(1, _round_half_up(self.cta_duration_sec * fps))
        scenes.append(Scene(
            id=_unique_id("cta", scenes),
            start_frame=last.end_frame,
            end_frame=last.end_frame + duration,
            scene_type=SceneType.CTA,
            content=TextContent(),
        ))
        logger.debug("Appended closing cta scene (%d frames)", duration)

    def _ensure_screenshot(
        self,
        scenes: List[Scene],
        screenshots: Sequence[ScreenshotAsset],
        fps: int,
    ) -> None:
        urls = {asset.url for asset in screenshots}
        referenced = any(
            scene.scene_type == SceneType.SCREENSHOT
            and isinstance(scene.content, ScreenshotContent)
            and scene.content.screenshot_url in urls
            for scene in scenes
        )
        if referenced:
            return

        asset = screenshots[0]
        cta = scenes[-1]
        duration = max(1, _round_half_up(self.screenshot_duration_sec * fps))
        inserted = Scene(
            id=_unique_id("screenshot", scenes),
            start_frame=cta.start_frame,
            end_frame=cta.start_frame + duration,
            scene_type=SceneType.SCREENSHOT,
            content=ScreenshotContent(
                screenshot_url=asset.url,
                headline=asset.description or None,
            ),
        )
        cta.start_frame += duration
        cta.end_frame += duration
        scenes.insert(len(scenes) - 1, inserted)
        logger.debug("Inserted screenshot scene for %s before cta", asset.url)

    def _target_frames(self, target_duration_seconds: Optional[float], fps: int) -> Optional[int]:
        if target_duration_seconds is None or not math.isfinite(target_duration_seconds):
            return None
        if target_duration_seconds < self.min_target_sec:
            return None
        target = min(target_duration_seconds, self.max_target_sec)
        return _round_half_up(target * fps)

    def _stretch(
        self,
        scenes: List[Scene],
        beat_frames: float,
        target_frames: int,
        current_total: int,
        fps: int,
    ) -> int:
        scale = target_frames / float(current_total)
        one_beat = max(1, _round_half_up(beat_frames))
        max_frames = _round_half_up(self.max_scene_sec * fps)

        durations: List[int] = []
        for scene in scenes:
            scaled = scene.duration_frames * scale
            clamped = min(max_frames, max(one_beat, scaled))
            durations.append(snap_duration(clamped, beat_frames))

        total = _restamp(scenes, durations)
        logger.info(
            "Stretched timeline x%.2f toward %d frames: %d -> %d",
            scale, target_frames, current_total, total,
        )
        return total


def compile_timeline(
    scenes: Sequence[Scene],
    bpm: float,
    target_duration_seconds: Optional[float] = None,
    fps: int = DEFAULT_FPS,
    screenshots: Optional[Sequence[ScreenshotAsset]] = None,
) -> Timeline:
    """Compile with default knobs.  See :class:`TimelineCompiler`."""
    return TimelineCompiler(fps=fps).compile(
        scenes,
        bpm,
        target_duration_seconds=target_duration_seconds,
        screenshots=screenshots,
    )
