from __future__ import annotations

import logging
from typing import Optional, Sequence

import requests

from usage_tracker.config import DEFAULT_TIMEOUT_S, TrackerConfig
from usage_tracker.exceptions import DeliveryError
from usage_tracker.line_protocol import PRECISION, encode_points
from usage_tracker.session import SessionRecord

logger = logging.getLogger(__name__)


def _backend_error(resp: requests.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None


def send_sessions(
    endpoint: str,
    database: str,
    policy: str,
    token: str,
    sessions: Sequence[SessionRecord],
    timeout: float = DEFAULT_TIMEOUT_S,
) -> None:
    """
    Write a batch of sessions with the InfluxDB v1 write API.

    The whole batch goes out in one request, which the backend applies
    all-or-nothing. Raises DeliveryError on any failure; nothing is retried.
    """
    if not sessions:
        return
    url = f"{endpoint}/write"
    params = {"db": database, "rp": policy, "precision": PRECISION}
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "text/plain; charset=utf-8",
    }
    body = encode_points(sessions).encode("utf-8")
    details = {"url": url, "database": database, "policy": policy, "points": len(sessions)}

    try:
        resp = requests.post(url, params=params, headers=headers, data=body, timeout=timeout)
    except requests.RequestException as e:
        details["reason"] = type(e).__name__
        raise DeliveryError(f"write to {url} failed: {e}", details=details) from e

    details["status"] = resp.status_code
    error = _backend_error(resp) if resp.content else None
    if not 200 <= resp.status_code < 300:
        reason = error or (resp.text or "").strip() or resp.reason or "no response body"
        details["reason"] = reason
        raise DeliveryError(f"write to {url} returned HTTP {resp.status_code}: {reason}", details=details)
    if error:
        details["reason"] = error
        raise DeliveryError(f"write to {url} reported an error: {error}", details=details)
    logger.debug("wrote %d point(s) to %s (HTTP %d)", len(sessions), url, resp.status_code)


class InfluxWriter:
    """Sends session batches to one configured database."""

    def __init__(self, endpoint: str, database: str, policy: str, token: str, timeout: float = DEFAULT_TIMEOUT_S):
        self.endpoint = endpoint
        self.database = database
        self.policy = policy
        self.token = token
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "InfluxWriter":
        return cls(
            endpoint=config.endpoint,
            database=config.database,
            policy=config.policy,
            token=config.token,
            timeout=config.timeout,
        )

    def send(self, sessions: Sequence[SessionRecord]) -> None:
        send_sessions(self.endpoint, self.database, self.policy, self.token, sessions, timeout=self.timeout)
