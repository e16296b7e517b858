"""
Atomic writer for the cache file read by the statusline poller.

Each write goes to a unique temp file in the cache directory and is then
renamed over cache.json, so readers see either the old record or the new
one, never a partial file.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Optional

from claude_usage.errors import ErrorTag
from claude_usage.models import CACHED_BUCKETS, CacheFailure, CacheRecord, CacheSuccess, UsageSnapshot
from claude_usage.observability.logger import get_logger

log = get_logger("cache.writer")

DEFAULT_ERROR_DETAIL = "Run: claude-usage setup"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _bucket_or_none(value):
    return value if isinstance(value, dict) else None


class CacheWriter:
    def __init__(self, path: str):
        self.path = path

    def write_success(self, snapshot: UsageSnapshot) -> CacheSuccess:
        record = CacheSuccess(
            fetched_at=_utc_timestamp(),
            **{key: _bucket_or_none(snapshot.raw.get(key)) for key in CACHED_BUCKETS},
        )
        self._write(record)
        return record

    def write_error(self, tag: ErrorTag, detail: Optional[str] = None) -> CacheFailure:
        record = CacheFailure(
            fetched_at=_utc_timestamp(),
            error=tag,
            error_detail=detail or DEFAULT_ERROR_DETAIL,
        )
        self._write(record)
        return record

    def _write(self, record: CacheRecord):
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        payload = json.dumps(record.model_dump(), indent=2)

        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=os.path.basename(self.path) + ".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.remove(tmp_path)
            except FileNotFoundError:
                pass
            raise
        log.info("cache_written", path=self.path, error=record.error)
