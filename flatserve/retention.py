"""Retention enforcement: purge hourly log buckets older than the retention window."""

import logging
import os
import re
from datetime import datetime, timedelta, timezone, tzinfo

from flatserve.writer import BUCKET_FORMAT, BUCKET_SUFFIX

logger = logging.getLogger(__name__)

_BUCKET_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}" + re.escape(BUCKET_SUFFIX) + r"$")


def parse_bucket_timestamp(filename: str, tz: tzinfo) -> datetime | None:
    """Extract the bucket hour from a bucket filename. Returns None on failure."""
    if not _BUCKET_RE.match(filename):
        return None
    try:
        naive = datetime.strptime(filename[: -len(BUCKET_SUFFIX)], BUCKET_FORMAT)
    except ValueError:
        return None
    return naive.replace(tzinfo=tz)


def get_bucket_files(log_dir: str) -> list[str]:
    """List bucket files in ``log_dir`` sorted oldest-first (lexicographic on the name)."""
    names = []
    with os.scandir(log_dir) as it:
        for entry in it:
            if entry.is_dir():
                continue
            if _BUCKET_RE.match(entry.name):
                names.append(entry.name)
    names.sort()
    return names


class RetentionSweeper:
    """Deletes bucket files whose hour is strictly older than ``now - retention``."""

    def __init__(self, log_dir: str, tz: tzinfo, retention: timedelta, time_func=None):
        self._log_dir = log_dir
        self._tz = tz
        self._retention = retention
        self._time_func = time_func or (lambda: datetime.now(timezone.utc))

    @property
    def retention(self) -> timedelta:
        return self._retention

    def cutoff(self, now: datetime) -> datetime:
        return now.astimezone(timezone.utc) - self._retention

    def sweep(self, now: datetime | None = None) -> int:
        """Delete expired buckets. Returns the number of files removed."""
        now = now or self._time_func()
        cutoff = self.cutoff(now)

        try:
            names = get_bucket_files(self._log_dir)
        except OSError as exc:
            logger.error("Failed to read log directory %s for cleanup: %s", self._log_dir, exc)
            return 0

        removed = 0
        for name in names:
            ts = parse_bucket_timestamp(name, self._tz)
            if ts is None or ts.astimezone(timezone.utc) >= cutoff:
                continue
            path = os.path.join(self._log_dir, name)
            try:
                os.remove(path)
            except FileNotFoundError:
                logger.debug("Old log %s already removed", name)
            except OSError as exc:
                logger.warning("Failed to remove old log %s: %s", path, exc)
                continue
            else:
                logger.info("Cleaned up old log: %s", name)
            removed += 1
        return removed

    def start(self, scheduler, interval_seconds: int):
        """Sweep once to catch up on downtime, then schedule a recurring sweep."""
        self.sweep()
        return scheduler.add_job(
            self.sweep, "interval", seconds=interval_seconds, id="retention-sweep",
            max_instances=1, coalesce=True,
        )
