"""
Session extraction from uploaded NGL client logs.

An upload is the text of one or more log flushes. Each flush starts with a
banner line followed by header lines describing the running application:

    2024-03-04T10:15:02:117-0800 [0x1c04] I ===== NGL Session Log =====
    2024-03-04T10:15:02:117-0800 [0x1c04] I SessionID: 6f3dc1e0-...
    2024-03-04T10:15:02:117-0800 [0x1c04] I SessionStart: 2024-03-04T10:12:40:002-0800
    2024-03-04T10:15:02:118-0800 [0x1c04] I AppID: InDesign1
    ...
    2024-03-04T10:19:55:530-0800 [0x2a10] I Heartbeat sent

Every banner opens a block; each block yields at most one candidate session.
"""
from __future__ import annotations

import logging
import re
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from usage_tracker.session import SessionRecord

logger = logging.getLogger(__name__)

_TS = r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[:.]\d{3}(?:[-+]\d{4}|Z)"

_LINE_RE = re.compile(
    rf"""
    ^\s*(?P<ts>{_TS})\s+
    \[(?P<thread>[^\]]*)\]\s+
    (?P<level>[A-Z])\s+
    (?P<message>.*?)\s*$
    """,
    re.VERBOSE,
)

_TS_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})[:.](?P<ms>\d{3})(?P<tz>[-+]\d{4}|Z)$"
)

_BANNER_RE = re.compile(r"^=+\s*NGL Session Log\s*=+$")

_HEADER_RE = re.compile(r"^(?P<key>[A-Za-z]+):\s*(?P<value>\S.*)$")

# header key -> SessionRecord field
_HEADER_FIELDS = {
    "SessionID": "session_id",
    "SessionStart": "session_start",
    "AppID": "app_id",
    "AppVersion": "app_version",
    "OSName": "os_name",
    "OSVersion": "os_version",
    "NGLVersion": "ngl_version",
    "AppLocale": "app_locale",
    "UserID": "user_id",
}


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an NGL timestamp such as ``2024-03-04T10:15:02:117-0800``."""
    m = _TS_RE.match(value.strip())
    if not m:
        return None
    try:
        return datetime.strptime(
            f"{m.group('base')}.{m.group('ms')}{m.group('tz')}",
            "%Y-%m-%dT%H:%M:%S.%f%z",
        )
    except ValueError:
        return None


class _Block:
    def __init__(self):
        self.fields: Dict[str, str] = {}
        self.first_ts: Optional[datetime] = None
        self.last_ts: Optional[datetime] = None

    def add(self, ts: datetime, message: str) -> None:
        if self.first_ts is None:
            self.first_ts = ts
        if self.last_ts is None or ts > self.last_ts:
            self.last_ts = ts
        m = _HEADER_RE.match(message)
        if m:
            name = _HEADER_FIELDS.get(m.group("key"))
            if name:
                self.fields.setdefault(name, m.group("value").strip())

    def to_record(self, remote_address: Optional[str]) -> Optional[SessionRecord]:
        session_id = self.fields.get("session_id")
        app_id = self.fields.get("app_id")
        if not session_id or not app_id:
            return None
        launch_time = parse_timestamp(self.fields.get("session_start", "")) or self.first_ts
        if launch_time is None:
            return None
        duration = timedelta(0)
        if self.last_ts is not None and self.last_ts > launch_time:
            duration = self.last_ts - launch_time
        return SessionRecord(
            app_id=app_id,
            app_version=self.fields.get("app_version", ""),
            os_name=self.fields.get("os_name", ""),
            os_version=self.fields.get("os_version", ""),
            ngl_version=self.fields.get("ngl_version", ""),
            app_locale=self.fields.get("app_locale", ""),
            user_id=self.fields.get("user_id", ""),
            session_id=session_id,
            launch_time=launch_time,
            launch_duration=duration,
            remote_address=remote_address,
        )


def split_blocks(text: str) -> List[_Block]:
    """Split log text into blocks in document order.

    Lines before the first banner form a headless block. Lines that are not
    timestamped log lines are ignored.
    """
    blocks: List[_Block] = [_Block()]
    for line in text.splitlines():
        m = _LINE_RE.match(line)
        if not m:
            continue
        ts = parse_timestamp(m.group("ts"))
        if ts is None:
            continue
        message = m.group("message")
        if _BANNER_RE.match(message):
            blocks.append(_Block())
        blocks[-1].add(ts, message)
    return blocks


def parse_log(text: str, remote_address: Optional[str] = None) -> List[SessionRecord]:
    """
    Extract the sessions reported by one upload.

    Returns one record per distinct session id, in the order the ids first
    appear. When an id is reported more than once, the report with the
    longest duration is kept. Never raises on bad input.
    """
    if not text:
        return []

    resolved: "OrderedDict[str, SessionRecord]" = OrderedDict()
    skipped = 0
    for block in split_blocks(text):
        if not block.fields and block.first_ts is None:
            continue
        record = block.to_record(remote_address)
        if record is None:
            skipped += 1
            continue
        prev = resolved.get(record.session_id)
        if prev is None or record.launch_duration >= prev.launch_duration:
            resolved[record.session_id] = record

    if skipped:
        logger.debug("skipped %d incomplete log block(s)", skipped)
    return list(resolved.values())
