from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import Response

from usage_tracker.config import TrackerConfig
from usage_tracker.influx_client import InfluxWriter
from usage_tracker.tracker_middleware import install_tracker

logger = logging.getLogger(__name__)


def create_app(config: Optional[TrackerConfig] = None, writer: Optional[InfluxWriter] = None) -> FastAPI:
    """
    Build the tracker app. Raises ConfigurationError when the environment
    does not describe a usable destination, so the server never starts
    without one.

    Run with:
      uvicorn usage_tracker.tracker_app:create_app --factory --port 7000
    """
    if config is None:
        config = TrackerConfig.from_env()

    app = FastAPI(title="Usage Tracker")
    install_tracker(app, config, writer=writer)
    logger.info("tracker configured: %r", config)

    # ----------------------------
    # Routes
    # ----------------------------
    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.api_route("/{path:path}", methods=["POST", "PUT"])
    def accept_upload(path: str):
        # uploads are acknowledged; the tracker only observes them
        return Response(status_code=200)

    return app
