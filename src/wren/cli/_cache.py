"""``wren cache`` — inspect or clear a route cache file."""

import argparse
import sys

from wren.errors import CacheCorrupt
from wren.routing import cache


def run_cache(args: argparse.Namespace) -> None:
    """Print the record's fingerprint and route count, or delete it with ``--clear``."""
    if args.clear:
        if cache.clear(args.path):
            print(f"Removed {args.path}")
        else:
            print(f"No route cache at {args.path}")
        return

    record = cache.load(args.path)
    if record is None:
        print(f"Error: no readable route cache at {args.path}", file=sys.stderr)
        raise SystemExit(1)

    try:
        table = cache.deserialize_table(record.serialized_table)
    except CacheCorrupt as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(f"fingerprint: {record.fingerprint}")
    print(f"routes:      {len(table)}")
    print(f"tie-break:   {table.tie_break}")
