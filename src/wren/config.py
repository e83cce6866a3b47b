"""Routing configuration.

RoutingConfig is a frozen dataclass, immutable after creation and read
once by ``RouteRegistry`` when it freezes.
"""

from dataclasses import dataclass
from pathlib import Path

from wren.errors import ConfigurationError

# Tie-break policies for equally specific routes in the same priority tier
TIE_BREAK_POLICIES: frozenset[str] = frozenset({"discovery", "latest"})


@dataclass(frozen=True, slots=True)
class RoutingConfig:
    """Routing configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RoutingConfig(cache_path="var/routes.cache", base_url="/app")
    """

    # Route cache file; None disables persistence
    cache_path: str | Path | None = None

    # Prefix for URLs built by RouteRegistry.url_for()
    base_url: str = "/"

    # Log the compiled table (method, pattern, handler) at startup
    log_routes: bool = True

    # "discovery": earliest declaration wins among equals; "latest": last one wins
    tie_break: str = "discovery"

    # Methods that never require a CSRF token
    csrf_safe_methods: frozenset[str] = frozenset({"GET", "HEAD"})

    def __post_init__(self) -> None:
        if self.tie_break not in TIE_BREAK_POLICIES:
            allowed = ", ".join(sorted(TIE_BREAK_POLICIES))
            msg = f"Unknown tie_break policy {self.tie_break!r}. Expected one of: {allowed}"
            raise ConfigurationError(msg)
