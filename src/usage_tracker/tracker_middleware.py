from __future__ import annotations

import asyncio
import enum
import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from usage_tracker.config import TrackerConfig
from usage_tracker.exceptions import DeliveryError
from usage_tracker.influx_client import InfluxWriter
from usage_tracker.log_parser import parse_log
from usage_tracker.request_context import new_request_id, reset_context, set_context

logger = logging.getLogger(__name__)


class IngestOutcome(str, enum.Enum):
    NO_SESSIONS = "no_sessions"
    SENT = "sent"
    FAILED = "failed"


class UsageTrackerMiddleware(BaseHTTPMiddleware):
    """
    Extracts launch sessions from uploaded logs and writes them to InfluxDB,
    then hands the request, body intact, to the next handler.

    The outcome is stored in ``request.state.ingest_outcome``; it never
    changes the response.
    """

    def __init__(self, app, writer: InfluxWriter):
        super().__init__(app)
        self.writer = writer

    async def dispatch(self, request: Request, call_next):
        remote = request.client.host if request.client else None
        tokens = set_context(request_id=new_request_id(), remote_address=remote)
        try:
            # the body is cached on the request and replayed downstream
            body = await request.body()
            request.state.ingest_outcome = await self._ingest(body, remote)
            return await call_next(request)
        finally:
            reset_context(tokens)

    async def _ingest(self, body: bytes, remote: Optional[str]) -> IngestOutcome:
        try:
            sessions = parse_log(body.decode("utf-8", errors="replace"), remote)
            logger.info(
                "incoming request summary: %d byte(s), %d session(s)",
                len(body),
                len(sessions),
                extra={"remote_address": remote, "content_length": len(body), "session_count": len(sessions)},
            )
            if not sessions:
                logger.info("no sessions to upload")
                return IngestOutcome.NO_SESSIONS
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("uploading sessions: %s", [s.as_log_dict() for s in sessions])
            await asyncio.to_thread(self.writer.send, sessions)
        except DeliveryError as e:
            logger.error("failed to send sessions: %s", e.message, extra={"details": e.details})
            return IngestOutcome.FAILED
        except Exception:
            logger.exception("unexpected error while ingesting upload")
            return IngestOutcome.FAILED
        logger.info("sent %d session(s) successfully", len(sessions))
        return IngestOutcome.SENT


def install_tracker(app, config: TrackerConfig, writer: Optional[InfluxWriter] = None) -> InfluxWriter:
    if writer is None:
        writer = InfluxWriter.from_config(config)
    app.add_middleware(UsageTrackerMiddleware, writer=writer)
    return writer
