"""Draft script parser — coerces generator output into a scene list.

Text generators return JSON wrapped in markdown, followed by commentary, or
with trailing commas.  ``parse_draft_script`` digs the JSON out, repairs what
it can, and always hands back a usable scene list: when nothing can be
recovered the result carries a minimal intro + cta script and ``ok=False``.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from backend.services.video.content import TextContent, parse_scene_content
from backend.services.video.types import Scene, SceneType

logger = logging.getLogger("beatcut.prompt.script_parser")

_DEFAULT_SCENE_FRAMES = 90
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_SMART_QUOTES = {"“": '"', "”": '"', "‘": "'", "’": "'"}


@dataclass
class ScriptParseResult:
    """Outcome of parsing a draft script.

    Attributes:
        ok: False when the fallback script was substituted.
        scenes: Contiguous scenes starting at frame 0, never empty.
        total_duration_frames: End frame of the last scene.
        repaired: True if the text needed fixing up to parse.
        error: Why parsing failed (empty when ``ok``).
        warnings: Per-scene coercions that were applied.
    """
    ok: bool
    scenes: List[Scene]
    total_duration_frames: int
    repaired: bool = False
    error: str = ""
    warnings: List[str] = field(default_factory=list)


def _extract_json_text(text: str) -> str:
    """Pull the JSON payload out of markdown fences or surrounding prose."""
    text = text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()
    if text.startswith("{") or text.startswith("["):
        return text
    match = _OBJECT_RE.search(text) or _ARRAY_RE.search(text)
    return match.group(0) if match else text


def _repair(text: str) -> str:
    for smart, plain in _SMART_QUOTES.items():
        text = text.replace(smart, plain)
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _load(text: str):
    """Return ``(payload, repaired)``; payload is None if nothing parses."""
    candidate = _extract_json_text(text)
    try:
        return json.loads(candidate), False
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(_repair(candidate)), True
    except json.JSONDecodeError as exc:
        logger.warning("Draft script is not valid JSON even after repair: %s", exc)
        return None, True


def _coerce_scene(raw: Dict[str, Any], index: int, warnings: List[str]) -> Scene:
    raw_type = str(raw.get("type", "feature"))
    try:
        scene_type = SceneType(raw_type)
    except ValueError:
        warnings.append(f"scene {index}: unknown type {raw_type!r}, using 'feature'")
        scene_type = SceneType.FEATURE

    try:
        start = int(raw.get("startFrame", 0))
        end = int(raw.get("endFrame", start + _DEFAULT_SCENE_FRAMES))
    except (TypeError, ValueError, OverflowError):
        warnings.append(f"scene {index}: non-numeric frames, using default duration")
        start, end = 0, _DEFAULT_SCENE_FRAMES
    if end <= start:
        warnings.append(f"scene {index}: empty frame range, using default duration")
        end = start + _DEFAULT_SCENE_FRAMES

    raw_content = raw.get("content")
    try:
        content = parse_scene_content(
            scene_type.value, raw_content if isinstance(raw_content, dict) else None
        )
    except (AttributeError, KeyError, TypeError, ValueError):
        warnings.append(f"scene {index}: malformed content, dropped")
        content = parse_scene_content(scene_type.value, None)

    return Scene(
        id=str(raw.get("id") or f"scene-{index + 1}"),
        start_frame=start,
        end_frame=end,
        scene_type=scene_type,
        content=content,
        animation=raw.get("animation") if isinstance(raw.get("animation"), dict) else {},
        style=raw.get("style") if isinstance(raw.get("style"), dict) else {},
    )


def _sequence(scenes: List[Scene]) -> int:
    """Keep each scene's duration, lay them end to end from frame 0."""
    frame = 0
    for scene in scenes:
        duration = scene.duration_frames
        scene.start_frame = frame
        scene.end_frame = frame + duration
        frame += duration
    return frame


def fallback_script(fps: int = 30) -> List[Scene]:
    """Minimal intro + cta script used when nothing can be recovered."""
    length = 3 * fps
    return [
        Scene(id="intro", start_frame=0, end_frame=length,
              scene_type=SceneType.INTRO, content=TextContent()),
        Scene(id="cta", start_frame=length, end_frame=2 * length,
              scene_type=SceneType.CTA, content=TextContent()),
    ]


def parse_draft_script(text: Optional[str], fps: int = 30) -> ScriptParseResult:
    """Parse generator output into contiguous scenes.  Never raises."""

    def _fallback(reason: str, repaired: bool = False) -> ScriptParseResult:
        logger.warning("Using fallback script: %s", reason)
        scenes = fallback_script(fps)
        return ScriptParseResult(
            ok=False,
            scenes=scenes,
            total_duration_frames=scenes[-1].end_frame,
            repaired=repaired,
            error=reason,
        )

    if not text or not text.strip():
        return _fallback("empty generator output")

    payload, repaired = _load(text)
    if payload is None:
        return _fallback("could not parse JSON", repaired=True)

    raw_scenes = payload.get("scenes") if isinstance(payload, dict) else payload
    if not isinstance(raw_scenes, list):
        return _fallback("no scene list in payload", repaired=repaired)

    warnings: List[str] = []
    scenes: List[Scene] = []
    for i, raw in enumerate(raw_scenes):
        if not isinstance(raw, dict):
            warnings.append(f"scene {i}: not an object, skipped")
            continue
        scenes.append(_coerce_scene(raw, i, warnings))

    if not scenes:
        return _fallback("scene list is empty", repaired=repaired)

    total = _sequence(scenes)
    logger.info(
        "Parsed draft script: %d scenes, %d frames (repaired=%s, %d warnings)",
        len(scenes), total, repaired, len(warnings),
    )
    return ScriptParseResult(
        ok=True,
        scenes=scenes,
        total_duration_frames=total,
        repaired=repaired or bool(warnings),
        warnings=warnings,
    )
