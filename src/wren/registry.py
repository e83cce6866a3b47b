"""Route registry — composes route sets into one immutable route table.

Mutable during setup (including route sets). Frozen on the first call to
``freeze()``, ``match()``, ``resolve()`` or ``url_for()``: the declarations
are fingerprinted, the cached table is reused when the fingerprint
matches, and otherwise every route set is compiled and merged in include
order, sorted, and written back to the cache.
"""

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from wren.config import RoutingConfig
from wren.csrf import CsrfGate
from wren.errors import ConfigurationError
from wren.routing import cache
from wren.routing.declarations import (
    RouteDeclaration,
    RouteSet,
    compile_declarations,
    default_handler_id,
)
from wren.routing.reverse import ReverseIndex
from wren.routing.route import RouteEntry, RouteMatch
from wren.routing.table import RouteTable

logger = logging.getLogger("wren.routing")


@dataclass(frozen=True, slots=True)
class _Snapshot:
    """Table and reverse index published together."""

    table: RouteTable
    index: ReverseIndex


class RouteRegistry:
    """The application's routes.

    Thread safety:
        Setup (``include``) is single-threaded. The freeze transition uses
        a Lock + double-check so exactly one thread compiles the table.
        After that, reads go through the current ``_Snapshot`` without
        locking; administrative removals build a new snapshot and publish
        it with a single attribute assignment, so an in-flight match sees
        either the old table or the new one.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_gate",
        "_handlers",
        "_route_sets",
        "_snapshot",
        "config",
    )

    def __init__(self, config: RoutingConfig | None = None) -> None:
        self.config: RoutingConfig = config or RoutingConfig()
        self._route_sets: list[RouteSet] = []
        self._handlers: dict[str, Any] = {}
        self._gate = CsrfGate(safe_methods=self.config.csrf_safe_methods)
        self._snapshot: _Snapshot | None = None
        self._frozen = False
        self._freeze_lock = threading.Lock()

    # -- Setup --

    def include(self, route_set: RouteSet) -> None:
        """Add a route set. Include order breaks ties between equal routes."""
        if self._frozen:
            msg = (
                f"Cannot include {route_set!r} after the route table is frozen. "
                "Include all route sets before the first request."
            )
            raise ConfigurationError(msg)
        self._route_sets.append(route_set)

    @property
    def declarations(self) -> tuple[RouteDeclaration, ...]:
        return tuple(d for rs in self._route_sets for d in rs.declarations)

    def fingerprint(self) -> str:
        return cache.fingerprint(self.declarations, self.config.tie_break)

    # -- Freeze --

    def freeze(self) -> None:
        """Compile the route table. Safe to call repeatedly and concurrently."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """MUST only be called while holding _freeze_lock."""
        self._handlers = self._collect_handlers()
        current = self.fingerprint()
        cache_path = self.config.cache_path

        table = None
        if cache_path is not None:
            table = cache.try_use_cache(current, cache.load(cache_path))

        if table is None:
            table = RouteTable(tie_break=self.config.tie_break)
            for route_set in self._route_sets:
                table.merge(
                    compile_declarations(route_set.declarations, tie_break=self.config.tie_break)
                )
            table.compile()
            if cache_path is not None:
                cache.save(cache_path, current, table)
        else:
            logger.info("Using cached route table (%d routes)", len(table))

        self._publish(table)
        if self.config.log_routes:
            self._log_table(table)
        self._frozen = True

    def _collect_handlers(self) -> dict[str, Any]:
        handlers: dict[str, Any] = {}
        for route_set in self._route_sets:
            for handler_id, handler in route_set.handlers.items():
                existing = handlers.get(handler_id)
                if existing is not None and existing is not handler:
                    msg = (
                        f"Handler id {handler_id!r} from {route_set!r} is already "
                        f"bound to {existing!r}"
                    )
                    raise ConfigurationError(msg)
                handlers[handler_id] = handler
        return handlers

    def _publish(self, table: RouteTable) -> None:
        self._snapshot = _Snapshot(table=table, index=ReverseIndex.build(table))

    def _log_table(self, table: RouteTable) -> None:
        lines = table.describe()
        if not lines:
            logger.info("No routes registered")
            return
        logger.info("Routes:")
        for line in lines:
            logger.info("  %s", line)

    def _published(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is None:
            msg = "Route table has not been compiled; call freeze() first."
            raise RuntimeError(msg)
        return snapshot

    def _current(self) -> _Snapshot:
        self.freeze()
        return self._published()

    # -- Read API --

    @property
    def table(self) -> RouteTable:
        return self._current().table

    @property
    def index(self) -> ReverseIndex:
        return self._current().index

    @property
    def routes(self) -> list[RouteEntry]:
        """Every declared entry in final match order."""
        return [e for e in self.table.entries if not e.implicit_head]

    def describe(self) -> list[str]:
        return self.table.describe()

    def match(self, method: str, path: str) -> RouteMatch | None:
        return self._current().table.match(method, path)

    def resolve(self, method: str, path: str) -> RouteMatch:
        return self._current().table.resolve(method, path)

    def handler(self, handler_id: str) -> Any:
        """Return the object registered under ``handler_id``.

        Raises ``KeyError`` for ids declared without a handler object.
        """
        self.freeze()
        return self._handlers[handler_id]

    def requires_csrf_check(self, match: RouteMatch | RouteEntry, method: str) -> bool:
        entry = match.entry if isinstance(match, RouteMatch) else match
        return self._gate.requires_check(entry, method)

    def url_for(self, handler: Any, args: Mapping[str, Any] | None = None, /, **kwargs: Any) -> str:
        """Build the URL of ``handler`` (a handler id or the handler object).

        The path is prefixed with ``RoutingConfig.base_url``.
        """
        handler_id = handler if isinstance(handler, str) else default_handler_id(handler)
        values = {**(args or {}), **kwargs}
        path = self._current().index.url_for(handler_id, values)
        return f"{self.config.base_url.rstrip('/')}/{path}"

    # -- Administrative API --

    def remove_by_handler(self, handler: Any) -> None:
        """Publish a new table without the routes of ``handler``."""
        handler_id = handler if isinstance(handler, str) else default_handler_id(handler)
        self.freeze()
        with self._freeze_lock:
            current = self._published().table
            before = len(current)
            table = current.remove_by_handler(handler_id)
            self._publish(table)
        logger.info("Removed %d route(s) of %s", before - len(table), handler_id)

    def remove_by_prefix(self, prefix: str) -> None:
        """Publish a new table without routes under ``prefix``."""
        self.freeze()
        with self._freeze_lock:
            current = self._published().table
            before = len(current)
            table = current.remove_by_prefix(prefix)
            self._publish(table)
        logger.info("Removed %d route(s) under %r", before - len(table), prefix)
