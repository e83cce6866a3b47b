"""Wren exception hierarchy.

Shared across the pattern compiler, route table, reverse index, cache,
and registry so every module raises and catches the same types.
"""

from dataclasses import dataclass


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when routing configuration is invalid.

    Typically raised during ``RouteRegistry.freeze()`` at startup.
    """


class PatternError(ConfigurationError):
    """A raw path pattern could not be compiled.

    Fatal at startup: a broken route table must never serve traffic.
    """


# -- Reverse routing --


class ReverseRoutingError(WrenError):
    """Base for URL generation failures. Recoverable by the caller."""


class UnknownHandler(ReverseRoutingError):  # noqa: N818
    """No route is registered for the requested handler id."""

    def __init__(self, handler_id: str) -> None:
        self.handler_id = handler_id
        super().__init__(f"No route registered for handler {handler_id!r}")


class MissingArgument(ReverseRoutingError):  # noqa: N818
    """A path parameter has no value in the url_for arguments."""

    def __init__(self, handler_id: str, name: str, pattern: str) -> None:
        self.handler_id = handler_id
        self.name = name
        self.pattern = pattern
        super().__init__(
            f"Missing argument {name!r} for {handler_id!r} (pattern {pattern!r})"
        )


class RegexViolation(ReverseRoutingError):  # noqa: N818
    """An argument value does not satisfy its segment's regex constraint."""

    def __init__(self, handler_id: str, name: str, value: str, regex: str) -> None:
        self.handler_id = handler_id
        self.name = name
        self.value = value
        self.regex = regex
        super().__init__(
            f"Argument {name}={value!r} for {handler_id!r} does not match <{regex}>"
        )


# -- Route cache (never propagated out of wren.routing.cache) --


class CacheError(WrenError):
    """Base for route cache failures. Always logged, never fatal."""


class CacheCorrupt(CacheError):  # noqa: N818
    """A persisted cache record could not be decoded."""


class CacheWriteFailure(CacheError):  # noqa: N818
    """A compiled table could not be written to the cache file."""


# -- HTTP --


@dataclass(frozen=True, slots=True)
class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    Raised by ``RouteTable.resolve()`` for the dispatch layer.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods and embeds
    the allowed methods in the detail string for developer visibility.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
