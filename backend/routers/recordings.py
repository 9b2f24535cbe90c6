"""Recordings router — zoom points from a captured cursor trace."""
from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Request
from pydantic import BaseModel

from backend.services.recording.types import CursorEventType, CursorSample, ZoomDetectorOptions
from backend.services.recording.zoom_detector import detect_zoom_points

logger = logging.getLogger("beatcut.routers.recordings")
router = APIRouter()


class CursorSampleModel(BaseModel):
    t: float
    x: float
    y: float
    eventType: CursorEventType = CursorEventType.MOVE


class ZoomPointsRequest(BaseModel):
    samples: List[CursorSampleModel] = []


class ZoomPointsResponse(BaseModel):
    zoomPoints: List[Dict[str, float]]
    count: int


@router.post("/zoom-points")
async def create_zoom_points(request: Request, body: ZoomPointsRequest) -> ZoomPointsResponse:
    """Detect zoom points for a finished recording.

    Too few samples or no dwell simply returns an empty list.
    """
    samples = [
        CursorSample(t=s.t, x=s.x, y=s.y, event_type=s.eventType)
        for s in body.samples
    ]
    options = ZoomDetectorOptions.from_config(request.app.state.config)
    points = detect_zoom_points(samples, options)
    logger.info("Zoom detection: %d samples -> %d points", len(samples), len(points))
    return ZoomPointsResponse(zoomPoints=[p.to_dict() for p in points], count=len(points))
