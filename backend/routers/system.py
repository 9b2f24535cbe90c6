"""System router — health and effective configuration."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Request

logger = logging.getLogger("beatcut.routers.system")
router = APIRouter()

# Config sections that are safe to expose
_PUBLIC_SECTIONS = ("render", "beat_detection", "timeline", "zoom")


@router.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "version": "1.0.0"}


@router.get("/config")
async def effective_config(request: Request) -> Dict[str, Any]:
    """Return the knobs the services are running with."""
    config = request.app.state.config
    return {section: config.get(section, {}) for section in _PUBLIC_SECTIONS}
