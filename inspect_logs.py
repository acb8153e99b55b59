"""CLI log inspector — list, read, and search hourly request log buckets."""

import argparse
import os
import sys
from datetime import timedelta

from flatserve.config import load_config, resolve_timezone
from flatserve.inspector import list_buckets, read_bucket, search_buckets


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    elif size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def main(argv=None):
    config = load_config()
    parser = argparse.ArgumentParser(description="Inspect hourly request log buckets")
    parser.add_argument("--log-dir", default=config.log_dir,
                        help="Directory containing log buckets")
    parser.add_argument("--timezone", default=config.log_timezone,
                        help="Timezone the bucket names are written in")
    parser.add_argument("--since-hours", type=int, default=None,
                        help="Only consider buckets from the last N hours")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--list", action="store_true", help="List all log buckets")
    group.add_argument("--read", metavar="BUCKET", help="Print one bucket, e.g. 2025-03-10T14.log")
    group.add_argument("--search", metavar="TEXT", help="Search text across buckets")
    args = parser.parse_args(argv)

    tz = resolve_timezone(args.timezone)
    since = timedelta(hours=args.since_hours) if args.since_hours is not None else None

    if args.list:
        names = list_buckets(args.log_dir, tz, since=since)
        if not names:
            print("No log buckets found.")
            return 0
        for name in names:
            size = os.path.getsize(os.path.join(args.log_dir, name))
            print(f"  {name}  ({_format_size(size)})")

    elif args.read:
        try:
            sys.stdout.write(read_bucket(args.log_dir, args.read, tz))
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    elif args.search:
        results = search_buckets(args.log_dir, args.search, tz, since=since)
        if not results:
            print(f"No matches found for '{args.search}'.")
            return 0
        for filename, line_num, line in results:
            print(f"  [{filename}:{line_num}] {line}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
