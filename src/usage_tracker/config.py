"""Configuration for the usage tracker.

All settings are read from environment variables prefixed with TRACKER_:

    TRACKER_ENDPOINT=https://us-east-1-1.aws.cloud2.influxdata.com
    TRACKER_DATABASE=adobe
    TRACKER_POLICY=autogen
    TRACKER_TOKEN=...
    TRACKER_TIMEOUT=10

The four destination settings are mandatory. A config that fails validation
raises ConfigurationError, so the service refuses to start rather than
ingest without a destination.
"""

import math
import os
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

from usage_tracker.exceptions import ConfigurationError

DEFAULT_TIMEOUT_S = 10.0


def _timeout_from_env() -> float:
    raw = os.getenv("TRACKER_TIMEOUT", "").strip()
    if not raw:
        return DEFAULT_TIMEOUT_S
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            f"TRACKER_TIMEOUT must be a number of seconds, not {raw!r}",
            details={"setting": "timeout"},
        )


def validate_endpoint(endpoint: Optional[str]) -> str:
    """Check that an endpoint is a bare https URL and return it."""
    if not endpoint:
        raise ConfigurationError("an endpoint URL must be specified", details={"setting": "endpoint"})
    try:
        u = urlsplit(endpoint)
        hostname = u.hostname
        u.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise ConfigurationError(
            f"{endpoint!r} is not a valid endpoint url: {e}", details={"setting": "endpoint"}
        )
    if u.scheme != "https":
        raise ConfigurationError(
            f"endpoint protocol must be https, not {u.scheme!r}", details={"setting": "endpoint"}
        )
    if not hostname:
        raise ConfigurationError(
            f"endpoint {endpoint!r} is missing a hostname", details={"setting": "endpoint"}
        )
    if u.path or u.query or u.fragment:
        raise ConfigurationError(
            f"endpoint {endpoint!r} cannot have a path, query, or fragment portion",
            details={"setting": "endpoint"},
        )
    return endpoint


@dataclass
class TrackerConfig:
    """Destination of the metrics writes.

    Values default from the environment; explicit arguments win.
    """

    endpoint: Optional[str] = field(default_factory=lambda: os.getenv("TRACKER_ENDPOINT"))
    database: Optional[str] = field(default_factory=lambda: os.getenv("TRACKER_DATABASE"))
    policy: Optional[str] = field(default_factory=lambda: os.getenv("TRACKER_POLICY"))
    token: Optional[str] = field(default_factory=lambda: os.getenv("TRACKER_TOKEN"))
    timeout: float = field(default_factory=_timeout_from_env)

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        return cls()

    def validate(self) -> None:
        """Validate every setting. Safe to call again after a reload."""
        validate_endpoint(self.endpoint)
        if not self.database:
            raise ConfigurationError("database must be specified", details={"setting": "database"})
        if not self.policy:
            raise ConfigurationError("a retention policy must be specified", details={"setting": "policy"})
        if not self.token:
            raise ConfigurationError("a token must be specified", details={"setting": "token"})
        if not isinstance(self.timeout, (int, float)) or not math.isfinite(self.timeout) or self.timeout <= 0:
            raise ConfigurationError(
                f"timeout must be a positive number of seconds, not {self.timeout!r}",
                details={"setting": "timeout"},
            )

    def __repr__(self) -> str:
        return (
            f"TrackerConfig(endpoint={self.endpoint!r}, database={self.database!r}, "
            f"policy={self.policy!r}, token='***', timeout={self.timeout!r})"
        )
