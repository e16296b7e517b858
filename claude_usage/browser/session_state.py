import enum
import json
import os
import time
from typing import Optional

from claude_usage.observability.logger import get_logger

log = get_logger("browser.session_state")


class Freshness(enum.Enum):
    FRESH = "fresh"
    STALE = "stale"


class SessionState:
    """Playwright storage state (cookies + origins) kept between runs.

    A fresh file lets the next fetch skip the claude.ai warm-up page.
    """

    def __init__(self, path: str, ttl_seconds: float = 90 * 60):
        self.path = path
        self.ttl_seconds = ttl_seconds

    def age_seconds(self, now: Optional[float] = None) -> Optional[float]:
        try:
            mtime = os.stat(self.path).st_mtime
        except FileNotFoundError:
            return None
        return (time.time() if now is None else now) - mtime

    def freshness(self, now: Optional[float] = None) -> Freshness:
        age = self.age_seconds(now)
        if age is None or age >= self.ttl_seconds:
            return Freshness.STALE
        return Freshness.FRESH

    def is_fresh(self, now: Optional[float] = None) -> bool:
        return self.freshness(now) is Freshness.FRESH

    def load(self) -> Optional[dict]:
        try:
            with open(self.path, "r") as f:
                blob = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            log.warning("session_state_unreadable", path=self.path, error=str(e))
            return None
        if not isinstance(blob, dict):
            log.warning("session_state_unreadable", path=self.path, error="not a JSON object")
            return None
        return blob

    def save(self, blob: dict) -> None:
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(blob, f)
        log.info("session_state_saved", path=self.path)

    def invalidate(self) -> bool:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            return False
        log.info("session_state_invalidated", path=self.path)
        return True
