from __future__ import annotations

import contextvars
import uuid
from typing import Dict, Optional

REQUEST_ID = contextvars.ContextVar("request_id", default=None)
REMOTE_ADDRESS = contextvars.ContextVar("remote_address", default=None)


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def set_context(*, request_id: str, remote_address: Optional[str]) -> Dict[str, contextvars.Token]:
    return {
        "request_id": REQUEST_ID.set(request_id),
        "remote_address": REMOTE_ADDRESS.set(remote_address),
    }


def reset_context(tokens: Dict[str, contextvars.Token]) -> None:
    REQUEST_ID.reset(tokens["request_id"])
    REMOTE_ADDRESS.reset(tokens["remote_address"])


def get_context() -> Dict[str, str]:
    out: Dict[str, str] = {}
    request_id = REQUEST_ID.get()
    remote_address = REMOTE_ADDRESS.get()

    if request_id:
        out["request_id"] = request_id
    if remote_address:
        out["remote_address"] = remote_address
    return out
