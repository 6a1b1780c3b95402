from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class SessionRecord(BaseModel):
    """One application launch as reported by an uploaded log.

    The same launch may be reported by several uploads; they all share
    ``session_id`` and report a growing ``launch_duration``.
    """

    model_config = ConfigDict(frozen=True)

    app_id: str
    app_version: str = ""
    os_name: str = ""
    os_version: str = ""
    ngl_version: str = ""
    app_locale: str = ""
    user_id: str = ""
    session_id: str
    launch_time: datetime
    launch_duration: timedelta = timedelta(0)
    remote_address: Optional[str] = None

    def as_log_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["launch_duration"] = self.launch_duration.total_seconds()
        return data
