"""Compiled route table with priority- and specificity-ordered matching.

Entries are registered during setup, merged across route sets, and
compiled into per-method partitions that are immutable afterwards.
Matching walks a partition in its sorted order and stops at the first
entry whose segments all match.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from urllib.parse import unquote

from wren.errors import ConfigurationError, MethodNotAllowed, NotFound
from wren.routing.route import HTTP_METHODS, Priority, RouteEntry, RouteMatch
from wren.routing.segments import (
    DYNAMIC_SEGMENTS,
    RegexParam,
    RoutePattern,
    Static,
    Wildcard,
)

# Display order for describe() and the startup log
METHOD_ORDER: tuple[str, ...] = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


def specificity_score(pattern: RoutePattern) -> tuple[int, int, int]:
    """Return the specificity key of a pattern. Lower is more specific.

    ``(dynamic segments, has wildcard, -static segments)``. The format
    discriminator of a ``.:format`` pattern is not counted as dynamic, so
    ``articles/:id.:format`` sorts ahead of ``articles/:id`` and gets the
    first chance at dotted tokens.
    """
    dynamic = 0
    static = 0
    for seg in pattern.segments:
        if isinstance(seg, DYNAMIC_SEGMENTS):
            dynamic += 1
        else:
            static += 1
    if pattern.format_param is not None:
        dynamic -= 1
    return (dynamic, 1 if pattern.has_wildcard else 0, -static)


def tokenize(path: str) -> list[str]:
    """Split a request path into tokens.

    Leading slashes are ignored. Empty tokens, including the one after a
    trailing slash, are kept so a wildcard can reproduce the remainder of
    the path verbatim; ``match_pattern`` drops trailing empty tokens for
    patterns without a wildcard.
    """
    stripped = path.lstrip("/")
    return stripped.split("/") if stripped else []


def match_pattern(pattern: RoutePattern, tokens: list[str]) -> dict[str, str] | None:
    """Match path tokens against a pattern. Returns params or ``None``."""
    if not pattern.has_wildcard:
        end = len(tokens)
        while end and not tokens[end - 1]:
            end -= 1
        tokens = tokens[:end]

    if pattern.format_param is not None:
        if not tokens:
            return None
        head, dot, ext = tokens[-1].rpartition(".")
        if not dot:
            return None
        tokens = [*tokens[:-1], head, ".", ext]

    segments = pattern.segments
    params: dict[str, str] = {}
    for i, seg in enumerate(segments):
        if isinstance(seg, Wildcard):
            params[seg.name] = "/".join(tokens[i:])
            return params
        if i >= len(tokens):
            return None
        token = tokens[i]
        if isinstance(seg, Static):
            if token != seg.literal:
                return None
            continue
        if not token:
            return None
        value = unquote(token)
        if isinstance(seg, RegexParam) and not seg.accepts(value):
            return None
        params[seg.name] = value

    if len(tokens) != len(segments):
        return None
    return params


class RouteTable:
    """Route table partitioned by HTTP method.

    Usage::

        table = RouteTable()
        table.register(RouteEntry("GET", compile_pattern("articles/:id"), "articles.show"))
        table.compile()
        match = table.match("GET", "/articles/42")

    Thread safety:
        Registration and merging are single-threaded setup steps. After
        ``compile()`` the partitions are tuples and the table is never
        mutated again; removal returns a new table.
    """

    __slots__ = ("_compiled", "_next_order", "_partitions", "_tie_break")

    def __init__(self, *, tie_break: str = "discovery") -> None:
        self._partitions: dict[str, list[RouteEntry]] | dict[str, tuple[RouteEntry, ...]] = {}
        self._next_order = 0
        self._compiled = False
        self._tie_break = tie_break

    @classmethod
    def from_partitions(
        cls,
        partitions: Mapping[str, Iterable[RouteEntry]],
        *,
        tie_break: str = "discovery",
    ) -> RouteTable:
        """Build a compiled table from partitions that are already in match order."""
        table = cls(tie_break=tie_break)
        table._partitions = {m: tuple(entries) for m, entries in partitions.items() if entries}
        orders = [e.discovery_order for es in table._partitions.values() for e in es]
        table._next_order = max(orders, default=-1) + 1
        table._compiled = True
        return table

    # -- Setup --

    def register(self, entry: RouteEntry) -> RouteEntry:
        """Add one entry, assigning it the next global discovery order.

        A GET entry also registers an implicit HEAD entry with the same
        pattern and handler. Returns the stored entry.
        """
        if self._compiled:
            msg = "Cannot register routes after compilation."
            raise RuntimeError(msg)
        if entry.method not in HTTP_METHODS:
            msg = f"Unsupported HTTP method {entry.method!r} for handler {entry.handler_id!r}"
            raise ConfigurationError(msg)

        stored = replace(
            entry,
            priority=Priority(entry.priority),
            discovery_order=self._next_order,
            implicit_head=False,
        )
        self._next_order += 1
        self._append(stored)
        if stored.method == "GET":
            self._append(replace(stored, method="HEAD", implicit_head=True))
        return stored

    def _append(self, entry: RouteEntry) -> None:
        partition = self._partitions.setdefault(entry.method, [])
        partition.append(entry)  # type: ignore[union-attr]

    def merge(self, other: RouteTable) -> None:
        """Append every declared entry of ``other`` to this table.

        Discovery order is renumbered globally, so merge order only breaks
        ties between otherwise equal entries; explicit tiers still win.
        """
        for entry in other.declared_entries():
            self.register(entry)

    def compile(self) -> None:
        """Sort every partition and freeze the table."""
        if self._compiled:
            return
        self._partitions = {
            method: tuple(sorted(entries, key=self._sort_key))
            for method, entries in self._partitions.items()
        }
        self._compiled = True

    def _sort_key(self, entry: RouteEntry) -> tuple[Priority, tuple[int, int, int], int]:
        order = entry.discovery_order
        if self._tie_break == "latest":
            order = -order
        return (entry.priority, specificity_score(entry.pattern), order)

    # -- Introspection --

    @property
    def compiled(self) -> bool:
        return self._compiled

    @property
    def tie_break(self) -> str:
        return self._tie_break

    @property
    def partitions(self) -> dict[str, tuple[RouteEntry, ...]]:
        """Return a copy of the partitions, each in match order once compiled."""
        return {m: tuple(entries) for m, entries in self._partitions.items()}

    def declared_entries(self) -> list[RouteEntry]:
        """Return all non-implicit entries in discovery order."""
        entries = [
            e for es in self._partitions.values() for e in es if not e.implicit_head
        ]
        return sorted(entries, key=lambda e: e.discovery_order)

    @property
    def entries(self) -> list[RouteEntry]:
        """Return every entry, grouped by method, in match order."""
        return [e for method in self._method_order() for e in self._partitions[method]]

    def handler_ids(self) -> list[str]:
        """Return distinct handler ids in discovery order."""
        return list(dict.fromkeys(e.handler_id for e in self.declared_entries()))

    def _method_order(self) -> list[str]:
        known = [m for m in METHOD_ORDER if m in self._partitions]
        return known + sorted(set(self._partitions) - set(known))

    def __len__(self) -> int:
        return len(self.declared_entries())

    def describe(self) -> list[str]:
        """Render declared entries as aligned ``METHOD  PATTERN  HANDLER`` lines.

        Lines follow the final match order within each method.
        """
        rows = [
            (e.method, "/" + e.pattern.raw.strip("/"), _describe_handler(e))
            for e in self.entries
            if not e.implicit_head
        ]
        if not rows:
            return []
        max_method = max(len(r[0]) for r in rows)
        max_path = max(len(r[1]) for r in rows)
        return [f"{m:<{max_method}}  {p:<{max_path}}  {h}" for m, p, h in rows]

    # -- Matching --

    def _require_compiled(self) -> None:
        if not self._compiled:
            msg = "Route table must be compiled before it is used for matching."
            raise RuntimeError(msg)

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Return the first matching entry for ``method`` and ``path``, or ``None``.

        HEAD requests fall back to the GET partition when no HEAD entry
        matches; such matches carry ``suppress_body=True``.
        """
        self._require_compiled()
        method = method.upper()
        tokens = tokenize(path)

        for entry in self._partitions.get(method, ()):
            params = match_pattern(entry.pattern, tokens)
            if params is not None:
                return RouteMatch(entry=entry, path_params=params, suppress_body=entry.implicit_head)

        if method == "HEAD":
            for entry in self._partitions.get("GET", ()):
                params = match_pattern(entry.pattern, tokens)
                if params is not None:
                    return RouteMatch(entry=entry, path_params=params, suppress_body=True)

        return None

    def methods_for(self, path: str) -> frozenset[str]:
        """Return every method with at least one entry matching ``path``."""
        self._require_compiled()
        tokens = tokenize(path)
        return frozenset(
            method
            for method, entries in self._partitions.items()
            if any(match_pattern(e.pattern, tokens) is not None for e in entries)
        )

    def resolve(self, method: str, path: str) -> RouteMatch:
        """Match or raise for the dispatch layer.

        Raises ``MethodNotAllowed`` if the path matches under other methods
        and ``NotFound`` if it matches nothing at all.
        """
        match = self.match(method, path)
        if match is not None:
            return match
        allowed = self.methods_for(path)
        if allowed:
            raise MethodNotAllowed(allowed)
        raise NotFound(f"No route matches {method.upper()} {path!r}")

    # -- Administrative snapshots --

    def _without(self, drop: set[int]) -> RouteTable:
        partitions = {
            method: [e for e in entries if e.discovery_order not in drop]
            for method, entries in self._partitions.items()
        }
        return RouteTable.from_partitions(partitions, tie_break=self._tie_break)

    def remove_by_handler(self, handler_id: str) -> RouteTable:
        """Return a new table without the entries owned by ``handler_id``."""
        self._require_compiled()
        drop = {e.discovery_order for e in self.entries if e.handler_id == handler_id}
        return self._without(drop)

    def remove_by_prefix(self, prefix: str) -> RouteTable:
        """Return a new table without entries whose pattern starts with ``prefix``.

        The prefix is compared, token by token, against the pattern's
        leading Static segments; a leading ``/`` is optional.
        """
        self._require_compiled()
        wanted = tuple(t for t in prefix.strip("/").split("/") if t)
        if not wanted:
            msg = f"Route prefix {prefix!r} is empty"
            raise ValueError(msg)
        drop = {
            e.discovery_order
            for e in self.entries
            if e.pattern.leading_literals()[: len(wanted)] == wanted
        }
        return self._without(drop)


def _describe_handler(entry: RouteEntry) -> str:
    flags = []
    if entry.priority is not Priority.NORMAL:
        flags.append(entry.priority.name.lower())
    if entry.skip_csrf:
        flags.append("skip-csrf")
    if flags:
        return f"{entry.handler_id} [{', '.join(flags)}]"
    return entry.handler_id
