from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from claude_usage.errors import ErrorTag

# Buckets shown by the bar display, in order
DISPLAY_BUCKETS = [
    ("five_hour", "Current session (5h)"),
    ("seven_day", "All models (7d)"),
    ("seven_day_sonnet", "Sonnet only (7d)"),
    ("seven_day_opus", "Opus only (7d)"),
]

# Buckets persisted in the cache file
CACHED_BUCKETS = ("five_hour", "seven_day", "seven_day_sonnet")


class Credentials(BaseModel):
    session_key: str
    org_id: str


class UsageBucket(BaseModel):
    utilization: float
    resets_at: Optional[datetime] = None


class UsageSnapshot(BaseModel):
    """Decoded usage API response.

    The raw object is kept as-is so unknown buckets and fields survive a
    round trip to ``--json`` output.
    """

    raw: dict[str, Any]

    def bucket(self, key: str) -> Optional[UsageBucket]:
        value = self.raw.get(key)
        if not isinstance(value, dict):
            return None
        try:
            return UsageBucket.model_validate(value)
        except ValidationError:
            return None


class CacheSuccess(BaseModel):
    fetched_at: str
    five_hour: Optional[dict[str, Any]] = None
    seven_day: Optional[dict[str, Any]] = None
    seven_day_sonnet: Optional[dict[str, Any]] = None
    error: None = None


class CacheFailure(BaseModel):
    fetched_at: str
    error: ErrorTag
    error_detail: str


CacheRecord = CacheSuccess | CacheFailure
