"""InfluxDB line protocol encoding of session records.

One record becomes one point:

    session,appId=InDesign1,appLocale=en_US,... userId="...",sessionId="...",nglVersion="...",launchDuration=75.5 1709575960002

Timestamps are written in milliseconds; the uploader sends ``precision=ms``.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Tuple

from usage_tracker.session import SessionRecord

MEASUREMENT = "session"
PRECISION = "ms"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

_MEASUREMENT_ESCAPES = str.maketrans({"\\": "\\\\", ",": "\\,", " ": "\\ "})
_KEY_ESCAPES = str.maketrans({"\\": "\\\\", ",": "\\,", "=": "\\=", " ": "\\ "})
_STRING_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"'})


def _flatten(value: str) -> str:
    # a point must stay on one line
    return value.replace("\r", " ").replace("\n", " ")


def escape_measurement(value: str) -> str:
    return _flatten(value).translate(_MEASUREMENT_ESCAPES)


def escape_key(value: str) -> str:
    """Escape a tag key, tag value or field key."""
    return _flatten(value).translate(_KEY_ESCAPES)


def quote_string(value: str) -> str:
    """Quote a string field value."""
    return '"' + _flatten(value).translate(_STRING_ESCAPES) + '"'


def _tags(record: SessionRecord) -> List[Tuple[str, str]]:
    tags = [
        ("appId", record.app_id),
        ("appLocale", record.app_locale),
        ("appVersion", record.app_version),
        ("osName", record.os_name),
        ("osVersion", record.os_version),
    ]
    # empty tag values are not allowed by the protocol
    return [(k, v) for k, v in tags if v]


def timestamp_ms(ts: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (ts - _EPOCH) // _ONE_MS


def encode_point(record: SessionRecord) -> str:
    tag_part = "".join(f",{escape_key(k)}={escape_key(v)}" for k, v in _tags(record))
    fields = [
        ("userId", quote_string(record.user_id)),
        ("sessionId", quote_string(record.session_id)),
        ("nglVersion", quote_string(record.ngl_version)),
        ("launchDuration", repr(float(record.launch_duration.total_seconds()))),
    ]
    field_part = ",".join(f"{escape_key(k)}={v}" for k, v in fields)
    return f"{escape_measurement(MEASUREMENT)}{tag_part} {field_part} {timestamp_ms(record.launch_time)}"


def encode_points(records: Iterable[SessionRecord]) -> str:
    return "\n".join(encode_point(r) for r in records)
