"""Timeline router — compile draft scenes, parse generator output."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel

from backend.services.prompt.script_parser import parse_draft_script
from backend.services.video.content import parse_scene_content
from backend.services.video.timeline import TimelineCompiler, TimelineError
from backend.services.video.types import Scene, SceneType, ScreenshotAsset

logger = logging.getLogger("beatcut.routers.timeline")
router = APIRouter()


# ── Pydantic models ───────────────────────────────────────────────────────────


class SceneModel(BaseModel):
    id: str
    startFrame: int
    endFrame: int
    type: SceneType
    content: Dict[str, Any] = {}
    animation: Dict[str, Any] = {}
    style: Dict[str, Any] = {}


class ScreenshotModel(BaseModel):
    url: str
    section: str = ""
    description: str = ""


class CompileRequest(BaseModel):
    scenes: List[SceneModel]
    bpm: float
    target_duration_seconds: Optional[float] = None
    fps: Optional[int] = None
    screenshots: List[ScreenshotModel] = []


class TimelineResponse(BaseModel):
    totalDuration: int
    scenes: List[Dict[str, Any]]
    bpm: float
    fps: int


class ParseRequest(BaseModel):
    text: str
    fps: int = 30


class ParseResponse(BaseModel):
    ok: bool
    totalDuration: int
    scenes: List[Dict[str, Any]]
    repaired: bool = False
    error: str = ""
    warnings: List[str] = []


# ── Helpers ───────────────────────────────────────────────────────────────────


def _to_scene(model: SceneModel) -> Scene:
    return Scene(
        id=model.id,
        start_frame=model.startFrame,
        end_frame=model.endFrame,
        scene_type=model.type,
        content=parse_scene_content(model.type.value, model.content),
        animation=dict(model.animation),
        style=dict(model.style),
    )


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/compile")
async def compile_timeline(request: Request, body: CompileRequest) -> TimelineResponse:
    """Beat-snap the draft scenes and enforce the target duration.

    Returns 400 for an empty scene list, a non-positive BPM or fps, or
    content that does not fit its scene type.
    """
    compiler = TimelineCompiler.from_config(request.app.state.config)
    try:
        scenes = [_to_scene(s) for s in body.scenes]
        timeline = compiler.compile(
            scenes,
            body.bpm,
            target_duration_seconds=body.target_duration_seconds,
            fps=body.fps,
            screenshots=[
                ScreenshotAsset(url=s.url, section=s.section, description=s.description)
                for s in body.screenshots
            ],
        )
    except (TimelineError, ValueError, KeyError, TypeError, AttributeError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    payload = timeline.to_dict()
    return TimelineResponse(
        totalDuration=payload["totalDuration"],
        scenes=payload["scenes"],
        bpm=timeline.bpm,
        fps=timeline.fps,
    )


@router.post("/parse")
async def parse_script(body: ParseRequest) -> ParseResponse:
    """Recover a draft scene list from raw generator text.

    Always 200: unparseable input comes back as the fallback script with
    ``ok=false`` and the reason in ``error``.
    """
    result = parse_draft_script(body.text, fps=body.fps)
    return ParseResponse(
        ok=result.ok,
        totalDuration=result.total_duration_frames,
        scenes=[scene.to_dict() for scene in result.scenes],
        repaired=result.repaired,
        error=result.error,
        warnings=result.warnings,
    )
