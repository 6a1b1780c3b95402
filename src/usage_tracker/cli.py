import argparse
import logging
import os
import sys

import uvicorn

from usage_tracker.config import TrackerConfig
from usage_tracker.exceptions import ConfigurationError
from usage_tracker.line_protocol import encode_point
from usage_tracker.log_config import configure_logging
from usage_tracker.log_parser import parse_log

logger = logging.getLogger("usage_tracker.cli")


def main():
    host = os.getenv("TRACKER_HOST", "127.0.0.1")
    port = int(os.getenv("TRACKER_PORT", "7000"))
    log_level = os.getenv("TRACKER_LOG_LEVEL", "info").lower()

    configure_logging(log_level)
    try:
        TrackerConfig.from_env()
    except ConfigurationError as e:
        logger.error("refusing to start: %s", e.message, extra={"details": e.details})
        raise SystemExit(2)

    uvicorn.run(
        "usage_tracker.tracker_app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=log_level,
    )


def parse_main(argv=None):
    """Print the points that uploads of the given log files would produce."""
    parser = argparse.ArgumentParser(
        prog="usage-tracker-parse",
        description="Parse NGL log files and print their sessions as line protocol.",
    )
    parser.add_argument("paths", nargs="+", help="log files to parse")
    parser.add_argument("--remote-address", default=None, help="address to stamp on each session")
    args = parser.parse_args(argv)

    configure_logging(os.getenv("TRACKER_LOG_LEVEL", "warning"))
    status = 0
    for path in args.paths:
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                text = f.read()
        except OSError as e:
            logger.error("cannot read %s: %s", path, e)
            status = 1
            continue
        sessions = parse_log(text, args.remote_address)
        logger.info("%s: %d session(s)", path, len(sessions))
        for s in sessions:
            sys.stdout.write(encode_point(s) + "\n")
    return status
