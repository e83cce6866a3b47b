"""Route declarations and explicit registration via ``RouteSet``.

A ``RouteSet`` is the unit of packaging: a module declares its routes
on one, and the application composes route sets in a ``RouteRegistry``.

Usage::

    articles = RouteSet("articles")

    @articles.get("articles/new", priority=Priority.FIRST)
    def new_article(): ...

    @articles.get("articles/:id<[0-9]+>", "articles/:id<[0-9]+>.:format")
    def show_article(id: str, format: str = "html"): ...

    @articles.post("articles", skip_csrf=True)
    def create_article(): ...
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from wren.errors import ConfigurationError, PatternError
from wren.routing.compiler import compile_pattern
from wren.routing.route import HTTP_METHODS, Priority, RouteEntry
from wren.routing.table import RouteTable


@dataclass(frozen=True, slots=True)
class RouteDeclaration:
    """One raw declaration: a method, one or more patterns, one handler."""

    method: str
    patterns: tuple[str, ...]
    handler_id: str
    priority: Priority = Priority.NORMAL
    skip_csrf: bool = False

    def describe(self, raw: str | None = None) -> str:
        shown = raw if raw is not None else ", ".join(self.patterns)
        return f"{self.method} {shown!r} ({self.handler_id})"


def default_handler_id(handler: Any) -> str:
    """Return ``module.qualname`` for functions and classes."""
    module = getattr(handler, "__module__", None)
    qualname = getattr(handler, "__qualname__", None) or type(handler).__qualname__
    return f"{module}.{qualname}" if module else qualname


def compile_declarations(
    declarations: Iterable[RouteDeclaration],
    *,
    tie_break: str = "discovery",
) -> RouteTable:
    """Compile declarations into an uncompiled (unsorted) ``RouteTable``.

    Each raw pattern becomes one entry. A pattern that fails to compile
    raises ``PatternError`` naming the method, pattern and handler.
    """
    table = RouteTable(tie_break=tie_break)
    for decl in declarations:
        for raw in decl.patterns:
            try:
                pattern = compile_pattern(raw)
            except PatternError as exc:
                msg = f"Invalid route {decl.describe(raw)}: {exc}"
                raise PatternError(msg) from exc
            table.register(
                RouteEntry(
                    method=decl.method,
                    pattern=pattern,
                    handler_id=decl.handler_id,
                    priority=decl.priority,
                    skip_csrf=decl.skip_csrf,
                )
            )
    return table


class RouteSet:
    """An ordered collection of route declarations from one module.

    Mutable during setup. Handlers are kept by id so the dispatch layer
    can look them up after matching.
    """

    __slots__ = ("_declarations", "_handlers", "name")

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._declarations: list[RouteDeclaration] = []
        self._handlers: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"RouteSet({self.name!r}, {len(self._declarations)} declarations)"

    def __len__(self) -> int:
        return len(self._declarations)

    @property
    def declarations(self) -> tuple[RouteDeclaration, ...]:
        return tuple(self._declarations)

    @property
    def handlers(self) -> dict[str, Any]:
        return dict(self._handlers)

    def add(
        self,
        method: str,
        *patterns: str,
        handler: Any = None,
        handler_id: str | None = None,
        priority: Priority = Priority.NORMAL,
        skip_csrf: bool = False,
    ) -> RouteDeclaration:
        """Declare ``handler`` (or a bare ``handler_id``) under ``method``."""
        method = method.upper()
        if method not in HTTP_METHODS:
            msg = f"Unsupported HTTP method {method!r}"
            raise ConfigurationError(msg)
        if not patterns:
            msg = f"{method} declaration needs at least one path pattern"
            raise ConfigurationError(msg)
        if handler_id is None:
            if handler is None:
                msg = "A route needs a handler or an explicit handler_id"
                raise ConfigurationError(msg)
            handler_id = default_handler_id(handler)

        if handler is not None:
            existing = self._handlers.get(handler_id)
            if existing is not None and existing is not handler:
                msg = f"Handler id {handler_id!r} is already bound to {existing!r}"
                raise ConfigurationError(msg)
            self._handlers[handler_id] = handler

        decl = RouteDeclaration(
            method=method,
            patterns=tuple(patterns),
            handler_id=handler_id,
            priority=Priority(priority),
            skip_csrf=skip_csrf,
        )
        self._declarations.append(decl)
        return decl

    def route(
        self,
        method: str,
        *patterns: str,
        handler_id: str | None = None,
        priority: Priority = Priority.NORMAL,
        skip_csrf: bool = False,
    ) -> Callable[[Any], Any]:
        """Register a route handler via decorator.

        Args:
            method: HTTP method.
            patterns: One or more path patterns for the same handler.
            handler_id: Stable id for reverse routing. Defaults to
                ``module.qualname`` of the decorated object.
            priority: ``Priority.FIRST`` or ``Priority.LAST`` to override
                specificity ordering.
            skip_csrf: Exempt this route from CSRF token checks.
        """

        def decorator(handler: Any) -> Any:
            self.add(
                method,
                *patterns,
                handler=handler,
                handler_id=handler_id,
                priority=priority,
                skip_csrf=skip_csrf,
            )
            return handler

        return decorator

    def get(self, *patterns: str, **options: Any) -> Callable[[Any], Any]:
        return self.route("GET", *patterns, **options)

    def post(self, *patterns: str, **options: Any) -> Callable[[Any], Any]:
        return self.route("POST", *patterns, **options)

    def put(self, *patterns: str, **options: Any) -> Callable[[Any], Any]:
        return self.route("PUT", *patterns, **options)

    def patch(self, *patterns: str, **options: Any) -> Callable[[Any], Any]:
        return self.route("PATCH", *patterns, **options)

    def delete(self, *patterns: str, **options: Any) -> Callable[[Any], Any]:
        return self.route("DELETE", *patterns, **options)

    def options(self, *patterns: str, **options: Any) -> Callable[[Any], Any]:
        return self.route("OPTIONS", *patterns, **options)

    def head(self, *patterns: str, **options: Any) -> Callable[[Any], Any]:
        return self.route("HEAD", *patterns, **options)
