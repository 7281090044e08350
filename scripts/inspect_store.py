#!/usr/bin/env python3
"""Inspect a styleweather JSON key/value store.

Prints cache diagnostics and the pending offline mutations held in a
store file written by :class:`styleweather.JsonFileKeyValueStore`.

Usage
-----
::

    python scripts/inspect_store.py ~/.styleweather/store.json

Options::

    --json               Output as machine-readable JSON
    --cleanup            Remove expired cache entries before reporting
    --show-payloads      Include (redacted) mutation payloads
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from styleweather import CacheStore, JsonFileKeyValueStore, OfflineConfig, OfflineQueue  # noqa: E402
from styleweather._redact import redact_for_log  # noqa: E402


async def _collect(path: Path, *, cleanup: bool, show_payloads: bool) -> dict[str, Any]:
    config = OfflineConfig.from_env()
    store = JsonFileKeyValueStore(path)
    cache = CacheStore(store, config)
    queue = OfflineQueue(store, config)

    removed = await cache.cleanup_expired() if cleanup else 0
    status = await cache.get_status()
    items = await queue.list()

    pending: list[dict[str, Any]] = []
    for item in items:
        row: dict[str, Any] = {
            "id": item.id,
            "kind": str(item.kind),
            "operation": str(item.operation),
            "enqueued_at": item.enqueued_at.isoformat(),
            "retries": f"{item.retry_count}/{item.max_retries}",
        }
        if show_payloads:
            row["payload"] = redact_for_log(item.payload)
        pending.append(row)

    return {
        "store": str(path),
        "cache": status.model_dump(),
        "expired_removed": removed,
        "pending": pending,
    }


def _print_text(report: dict[str, Any]) -> None:
    cache = report["cache"]
    print(f"Store: {report['store']}")
    print(
        f"Cache: {cache['total_entries']} entries "
        f"({cache['valid_entries']} valid, {cache['expired_entries']} expired), "
        f"~{cache['approx_size_bytes']} bytes"
    )
    if report["expired_removed"]:
        print(f"Removed {report['expired_removed']} expired entries")
    print(f"Pending mutations: {len(report['pending'])}")
    for row in report["pending"]:
        print(f"  {row['id']}  {row['kind']:<14} {row['operation']:<7} {row['enqueued_at']}  retries={row['retries']}")
        if "payload" in row:
            print(f"      {json.dumps(row['payload'], ensure_ascii=False)}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect a styleweather key/value store file")
    parser.add_argument("path", type=Path, help="JSON store file")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--cleanup", action="store_true", help="Remove expired cache entries first")
    parser.add_argument("--show-payloads", action="store_true", help="Include redacted payloads")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.path.exists():
        print(f"No such store file: {args.path}", file=sys.stderr)
        return 1

    report = asyncio.run(_collect(args.path, cleanup=args.cleanup, show_payloads=args.show_payloads))
    if args.json:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        _print_text(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
