"""Route cache — persist the compiled table between process starts.

The cache file holds a single record: a header line carrying the
fingerprint of the declarations the table was compiled from, followed by
the serialized table::

    wren-routes 1 <sha256 hex>\\n
    {"tie_break": "discovery", "partitions": {"GET": [...], ...}}

A record whose fingerprint differs from the current declarations is
ignored and rebuilt. Every failure here is logged and degrades to a
rebuild; nothing in this module is fatal.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from wren.errors import CacheCorrupt, CacheWriteFailure
from wren.routing.route import Priority, RouteEntry
from wren.routing.segments import Param, RegexParam, RoutePattern, Segment, Static, Wildcard
from wren.routing.table import RouteTable

if TYPE_CHECKING:
    from wren.routing.declarations import RouteDeclaration

logger = logging.getLogger("wren.cache")

CACHE_FORMAT_VERSION = 1
_MAGIC = b"wren-routes"


@dataclass(frozen=True, slots=True)
class CacheRecord:
    """A persisted, fingerprinted table."""

    fingerprint: str
    serialized_table: bytes


def fingerprint(declarations: Iterable[RouteDeclaration], tie_break: str = "discovery") -> str:
    """Hash the ordered declaration list.

    Covers ``(method, raw pattern, handler id, priority, skip_csrf)`` for
    every pattern of every declaration, plus the cache format version and
    the tie-break policy, since both change the compiled order.
    """
    rows: list[Any] = [CACHE_FORMAT_VERSION, tie_break]
    for decl in declarations:
        for raw in decl.patterns:
            rows.append([decl.method, raw, decl.handler_id, int(decl.priority), decl.skip_csrf])
    payload = json.dumps(rows, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# -- Serialization --


def _dump_segment(seg: Segment) -> list[str]:
    if isinstance(seg, Static):
        return ["static", seg.literal]
    if isinstance(seg, RegexParam):
        return ["regex", seg.name, seg.pattern]
    if isinstance(seg, Param):
        return ["param", seg.name]
    return ["wildcard"]


def _load_segment(data: list[str]) -> Segment:
    kind, *rest = data
    if kind == "static":
        return Static(rest[0])
    if kind == "param":
        return Param(rest[0])
    if kind == "regex":
        return RegexParam(rest[0], rest[1])
    if kind == "wildcard":
        return Wildcard()
    msg = f"Unknown segment kind {kind!r}"
    raise ValueError(msg)


def _dump_entry(entry: RouteEntry) -> dict[str, Any]:
    return {
        "handler": entry.handler_id,
        "raw": entry.pattern.raw,
        "segments": [_dump_segment(s) for s in entry.pattern.segments],
        "format": entry.pattern.format_param,
        "priority": int(entry.priority),
        "order": entry.discovery_order,
        "skip_csrf": entry.skip_csrf,
        "implicit_head": entry.implicit_head,
    }


def _load_entry(method: str, data: dict[str, Any]) -> RouteEntry:
    pattern = RoutePattern(
        raw=data["raw"],
        segments=tuple(_load_segment(s) for s in data["segments"]),
        format_param=data["format"],
    )
    return RouteEntry(
        method=method,
        pattern=pattern,
        handler_id=data["handler"],
        priority=Priority(data["priority"]),
        discovery_order=int(data["order"]),
        skip_csrf=bool(data["skip_csrf"]),
        implicit_head=bool(data["implicit_head"]),
    )


def serialize_table(table: RouteTable) -> bytes:
    """Serialize a compiled table, preserving each partition's match order."""
    payload = {
        "tie_break": table.tie_break,
        "partitions": {
            method: [_dump_entry(e) for e in entries]
            for method, entries in table.partitions.items()
        },
    }
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _expect(value: Any, kind: type, what: str) -> Any:
    if not isinstance(value, kind):
        msg = f"Expected {what} to be a {kind.__name__}, got {type(value).__name__}"
        raise TypeError(msg)
    return value


def deserialize_table(data: bytes) -> RouteTable:
    """Rebuild a compiled table without compiling patterns or sorting.

    Raises ``CacheCorrupt`` if the data cannot be decoded or has the wrong shape.
    """
    try:
        payload = _expect(json.loads(data.decode("utf-8")), dict, "the table")
        partitions: dict[str, list[RouteEntry]] = {}
        for method, entries in _expect(payload["partitions"], dict, "partitions").items():
            partitions[method] = [
                _load_entry(method, _expect(e, dict, "a route entry"))
                for e in _expect(entries, list, f"partition {method}")
            ]
        return RouteTable.from_partitions(partitions, tie_break=payload["tie_break"])
    except (
        ValueError,
        KeyError,
        TypeError,
        IndexError,
        AttributeError,
        RecursionError,
        re.error,
    ) as exc:
        msg = f"Serialized route table is corrupt: {exc}"
        raise CacheCorrupt(msg) from exc


# -- File operations --


def _parse_record(raw: bytes) -> CacheRecord:
    header, sep, body = raw.partition(b"\n")
    parts = header.split(b" ")
    if not sep or len(parts) != 3 or parts[0] != _MAGIC:
        msg = "Missing or malformed cache header"
        raise CacheCorrupt(msg)
    if parts[1] != str(CACHE_FORMAT_VERSION).encode():
        msg = f"Unsupported cache format version {parts[1].decode(errors='replace')}"
        raise CacheCorrupt(msg)
    return CacheRecord(fingerprint=parts[2].decode("ascii", errors="replace"), serialized_table=body)


def load(path: str | Path) -> CacheRecord | None:
    """Read the cache record at ``path``.

    Returns ``None`` when the file is missing, unreadable, or malformed.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        logger.debug("No route cache at %s", path)
        return None
    except OSError as exc:
        logger.warning("Cannot read route cache %s: %s", path, exc)
        return None

    try:
        return _parse_record(raw)
    except CacheCorrupt as exc:
        logger.warning("Ignoring corrupt route cache %s: %s", path, exc)
        return None


def try_use_cache(current_fingerprint: str, record: CacheRecord | None) -> RouteTable | None:
    """Return the cached table if ``record`` matches ``current_fingerprint``.

    Returns ``None`` on a miss: no record, a stale fingerprint, or a
    corrupt serialized table.
    """
    if record is None:
        return None
    if record.fingerprint != current_fingerprint:
        logger.info("Route cache is stale; routes will be recompiled")
        return None
    try:
        table = deserialize_table(record.serialized_table)
    except CacheCorrupt as exc:
        logger.warning("%s; routes will be recompiled", exc)
        return None
    logger.debug("Loaded %d routes from cache", len(table))
    return table


def _write_atomic(path: Path, data: bytes) -> None:
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_bytes(data)
        os.replace(tmp, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp.unlink(missing_ok=True)
        msg = f"Cannot write route cache {path}: {exc}"
        raise CacheWriteFailure(msg) from exc


def save(path: str | Path, current_fingerprint: str, table: RouteTable) -> bool:
    """Write ``table`` under ``current_fingerprint``, replacing any prior record.

    Returns ``False`` (after logging) when the write fails; the in-memory
    table stays valid either way.
    """
    path = Path(path)
    header = b" ".join(
        (_MAGIC, str(CACHE_FORMAT_VERSION).encode(), current_fingerprint.encode("ascii"))
    )
    try:
        _write_atomic(path, header + b"\n" + serialize_table(table))
    except CacheWriteFailure as exc:
        logger.warning("%s", exc)
        return False
    logger.debug("Saved %d routes to cache %s", len(table), path)
    return True


def clear(path: str | Path) -> bool:
    """Delete the cache record at ``path``. Returns whether a file was removed."""
    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
