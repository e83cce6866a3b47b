"""RouteEntry and RouteMatch frozen dataclasses."""

from dataclasses import dataclass
from enum import IntEnum

from wren.routing.segments import RoutePattern

HTTP_METHODS: frozenset[str] = frozenset(
    {"GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"}
)


class Priority(IntEnum):
    """Priority tier. Lower values are matched first.

    Within a tier, routes sort by specificity: fewer dynamic segments, then
    no wildcard, then more literal segments. So ``docs/api/:*`` precedes
    ``docs/:*`` regardless of declaration order; only routes equal on all
    three fall back to declaration order.
    """

    FIRST = 0
    NORMAL = 1
    LAST = 2


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """A compiled route owned by a ``RouteTable``.

    ``implicit_head`` marks a HEAD entry derived from a GET entry; the
    dispatch layer must suppress the response body for it.
    """

    method: str
    pattern: RoutePattern
    handler_id: str
    priority: Priority = Priority.NORMAL
    discovery_order: int = 0
    skip_csrf: bool = False
    implicit_head: bool = False


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    entry: RouteEntry
    path_params: dict[str, str]
    suppress_body: bool = False

    @property
    def handler_id(self) -> str:
        return self.entry.handler_id
