"""Audio router — beat maps from uploaded tracks or a declared BPM."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status
from pydantic import BaseModel

from backend.services.audio.beat_map import (
    BeatMapError,
    beat_map_from_bpm,
    extract_beat_map,
    signal_fingerprint,
)
from backend.services.audio.decoding import ALLOWED_SUFFIXES, AudioDecodeError, decode_audio_bytes
from backend.services.audio.types import DEFAULT_FPS, BeatDetectorOptions, BeatMap

logger = logging.getLogger("beatcut.routers.audio")
router = APIRouter()

# Beat maps kept per app, oldest evicted first
_CACHE_LIMIT = 64


# ── Pydantic models ───────────────────────────────────────────────────────────


class BeatMapResponse(BaseModel):
    bpm: float
    beats: List[int]
    drops: List[int]
    fingerprint: str = ""
    cached: bool = False


class FromBpmRequest(BaseModel):
    bpm: float
    total_duration_frames: int
    fps: Optional[int] = None


# ── Helpers ───────────────────────────────────────────────────────────────────


def _response(beat_map: BeatMap, fingerprint: str = "", cached: bool = False) -> BeatMapResponse:
    return BeatMapResponse(
        bpm=beat_map.bpm,
        beats=beat_map.beats,
        drops=beat_map.drops,
        fingerprint=fingerprint,
        cached=cached,
    )


# The upload endpoint runs in Starlette's thread pool; every cache access holds the lock
def _cache_get(request: Request, fingerprint: str) -> Optional[BeatMap]:
    with request.app.state.beat_maps_lock:
        cache = request.app.state.beat_maps
        beat_map = cache.get(fingerprint)
        if beat_map is not None:
            cache.move_to_end(fingerprint)
        return beat_map


def _cache_put(request: Request, fingerprint: str, beat_map: BeatMap) -> None:
    with request.app.state.beat_maps_lock:
        cache = request.app.state.beat_maps
        cache[fingerprint] = beat_map
        cache.move_to_end(fingerprint)
        while len(cache) > _CACHE_LIMIT:
            cache.popitem(last=False)


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/beat-map")
def create_beat_map(request: Request, file: UploadFile = File(...)) -> BeatMapResponse:
    """Decode an uploaded track and extract its beat map.

    Declared as a sync endpoint so Starlette runs decoding and analysis in
    its thread pool.  Results are memoized by the decoded signal's hash.
    """
    filename = file.filename or "upload"
    suffix = Path(filename).suffix.lower()
    if suffix not in ALLOWED_SUFFIXES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=(
                f"Unsupported file type '{suffix}'. "
                f"Allowed: {sorted(ALLOWED_SUFFIXES)}"
            ),
        )

    try:
        signal = decode_audio_bytes(file.file.read(), filename=filename)
    except AudioDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    fingerprint = signal_fingerprint(signal)
    cached = _cache_get(request, fingerprint)
    if cached is not None:
        logger.info("Beat map cache hit for %s", fingerprint[:12])
        return _response(cached, fingerprint, cached=True)

    options = BeatDetectorOptions.from_config(request.app.state.config)
    try:
        beat_map = extract_beat_map(signal, options)
    except BeatMapError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    _cache_put(request, fingerprint, beat_map)

    logger.info("Beat map for '%s': %.0f BPM, %d beats", filename, beat_map.bpm, len(beat_map.beats))
    return _response(beat_map, fingerprint)


@router.post("/beat-map/from-bpm")
async def create_beat_map_from_bpm(request: Request, body: FromBpmRequest) -> BeatMapResponse:
    """Synthesize a beat grid for a declared tempo (no audio needed)."""
    fps = body.fps or int(request.app.state.config.get("render.fps", DEFAULT_FPS))
    try:
        beat_map = beat_map_from_bpm(body.bpm, body.total_duration_frames, fps=fps)
    except BeatMapError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _response(beat_map)
