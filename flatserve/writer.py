"""Append-only request log writer with hourly, timezone-anchored bucket files."""

import json
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime, tzinfo

logger = logging.getLogger(__name__)

BUCKET_FORMAT = "%Y-%m-%dT%H"
BUCKET_SUFFIX = ".log"


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    method: str
    path: str
    status: int
    bytes: int
    duration_ms: float

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
            "method": self.method,
            "path": self.path,
            "status": self.status,
            "bytes": self.bytes,
            "duration_ms": self.duration_ms,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


def bucket_filename(bucket_time: datetime, tz: tzinfo) -> str:
    """Name of the bucket file holding ``bucket_time``, e.g. ``2025-03-10T14.log``."""
    return bucket_time.astimezone(tz).strftime(BUCKET_FORMAT) + BUCKET_SUFFIX


class LogWriter:
    """Appends one JSON line per request to the bucket for the entry's hour.

    Appends are serialized by a lock held for a single open/write/close. Write
    failures are reported on the module logger and never raised.
    """

    def __init__(self, log_dir: str, tz: tzinfo):
        self._log_dir = log_dir
        self._tz = tz
        self._lock = threading.Lock()
        os.makedirs(log_dir, exist_ok=True)

    @property
    def log_dir(self) -> str:
        return self._log_dir

    def bucket_path(self, bucket_time: datetime) -> str:
        return os.path.join(self._log_dir, bucket_filename(bucket_time, self._tz))

    def append(self, entry: LogEntry, bucket_time: datetime | None = None) -> bool:
        """Append ``entry`` to its bucket. Returns False if the entry was dropped."""
        path = self.bucket_path(bucket_time or entry.timestamp)
        try:
            line = entry.to_json() + "\n"
        except (TypeError, ValueError) as exc:
            logger.error("Failed to encode log entry: %s", exc)
            return False

        with self._lock:
            try:
                f = open(path, "a", encoding="utf-8")
            except OSError as exc:
                logger.error("Failed to open log file %s: %s", path, exc)
                return False
            try:
                with f:
                    f.write(line)
            except OSError as exc:
                logger.error("Failed to write log entry to %s: %s", path, exc)
                return False
        return True
