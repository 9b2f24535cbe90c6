"""BeatCut — FastAPI application entry point.

All routers are mounted here. If a router module exists, it must be mounted
in this file.
"""
from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.routers import audio, recordings, system, timeline
from backend.services.shared.config import Config, load_config
from backend.services.shared.logging import configure_from


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the application around an explicit :class:`Config`.

    The config and the per-app beat map cache live on ``app.state``; routers
    read them from the request instead of module globals.
    """
    config = config or load_config()
    configure_from(config)

    app = FastAPI(
        title="BeatCut",
        version="1.0.0",
        description="Beat-synced scene timelines and cursor-driven zoom keyframes.",
    )
    app.state.config = config
    app.state.beat_maps = OrderedDict()
    app.state.beat_maps_lock = threading.Lock()

    # ── CORS ──────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get(
            "server.cors_origins", ["http://localhost:3000", "http://localhost:5173"]
        ),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(audio.router,      prefix="/api/audio",      tags=["Audio"])
    app.include_router(timeline.router,   prefix="/api/timeline",   tags=["Timeline"])
    app.include_router(recordings.router, prefix="/api/recordings", tags=["Recordings"])
    app.include_router(system.router,     prefix="/api/system",     tags=["System"])
    return app


app = create_app()
