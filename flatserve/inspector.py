"""Inspector logic: list, read, and search hourly request log buckets."""

import os
from datetime import datetime, timedelta, timezone, tzinfo

from flatserve.retention import get_bucket_files, parse_bucket_timestamp


def list_buckets(log_dir: str, tz: tzinfo, since: timedelta | None = None,
                 now: datetime | None = None) -> list[str]:
    """Return bucket filenames oldest-first, optionally only those newer than ``now - since``."""
    names = get_bucket_files(log_dir)
    if since is None:
        return names
    now = now or datetime.now(timezone.utc)
    # Keep the bucket that contains the cutoff instant.
    cutoff = now.astimezone(timezone.utc) - since - timedelta(hours=1)
    result = []
    for name in names:
        ts = parse_bucket_timestamp(name, tz)
        if ts is not None and ts.astimezone(timezone.utc) > cutoff:
            result.append(name)
    return result


def read_bucket(log_dir: str, filename: str, tz: tzinfo) -> str:
    """Read one bucket file. Only bucket filenames are accepted."""
    if parse_bucket_timestamp(filename, tz) is None:
        raise ValueError(f"Not a log bucket name: {filename}")
    path = os.path.join(log_dir, filename)
    if not os.path.exists(path):
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def search_buckets(log_dir: str, text: str, tz: tzinfo, since: timedelta | None = None,
                   now: datetime | None = None) -> list[tuple[str, int, str]]:
    """Search for text across buckets. Returns (filename, line_num, line) tuples."""
    results = []
    for filename in list_buckets(log_dir, tz, since=since, now=now):
        path = os.path.join(log_dir, filename)
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    if text in line:
                        results.append((filename, line_num, line.rstrip("\n")))
        except (OSError, UnicodeDecodeError):
            continue
    return results
