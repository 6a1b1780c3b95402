"""Logging setup shared by the server and the CLI."""

import logging
from typing import Union

from usage_tracker.request_context import get_context

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s %(remote_address)s]: %(message)s"


class RequestContextFilter(logging.Filter):
    """Stamp the current request id and remote address onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_context()
        record.request_id = ctx.get("request_id", "-")
        record.remote_address = ctx.get("remote_address", "-")
        return True


class TrackerLogHandler(logging.StreamHandler):
    """Stream handler installed by configure_logging."""


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Handler:
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    for h in list(root.handlers):
        if isinstance(h, TrackerLogHandler):
            root.removeHandler(h)

    handler = TrackerLogHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())
    root.addHandler(handler)
    root.setLevel(level)
    return handler
