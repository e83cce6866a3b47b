"""Wren — declarative HTTP route tables.

Collects route declarations from independently packaged route sets,
compiles them into one deterministic table, matches ``(method, path)``,
builds URLs from handler ids, and caches the compiled table on disk.

Basic usage::

    from wren import Priority, RouteRegistry, RouteSet, RoutingConfig

    articles = RouteSet("articles")

    @articles.get("articles/new", priority=Priority.FIRST)
    def new_article(): ...

    @articles.get("articles/:id")
    def show_article(id: str): ...

    routes = RouteRegistry(RoutingConfig(cache_path="var/routes.cache"))
    routes.include(articles)

    match = routes.match("GET", "/articles/42")
    routes.url_for(show_article, id=42)   # "/articles/42"
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "CsrfGate",
    "HTTPError",
    "MethodNotAllowed",
    "MissingArgument",
    "NotFound",
    "PatternError",
    "Priority",
    "RegexViolation",
    "ReverseIndex",
    "ReverseRoutingError",
    "RouteEntry",
    "RouteMatch",
    "RouteRegistry",
    "RouteSet",
    "RouteTable",
    "RoutingConfig",
    "UnknownHandler",
    "WrenError",
    "compile_pattern",
]

_ERRORS = frozenset(
    {
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "MissingArgument",
        "NotFound",
        "PatternError",
        "RegexViolation",
        "ReverseRoutingError",
        "UnknownHandler",
        "WrenError",
    }
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wren`` fast while providing a clean top-level API.
    """
    if name == "RouteRegistry":
        from wren.registry import RouteRegistry

        return RouteRegistry

    if name == "RoutingConfig":
        from wren.config import RoutingConfig

        return RoutingConfig

    if name == "RouteSet":
        from wren.routing.declarations import RouteSet

        return RouteSet

    if name in ("Priority", "RouteEntry", "RouteMatch"):
        from wren.routing import route as _route

        return getattr(_route, name)

    if name == "RouteTable":
        from wren.routing.table import RouteTable

        return RouteTable

    if name == "ReverseIndex":
        from wren.routing.reverse import ReverseIndex

        return ReverseIndex

    if name == "CsrfGate":
        from wren.csrf import CsrfGate

        return CsrfGate

    if name == "compile_pattern":
        from wren.routing.compiler import compile_pattern

        return compile_pattern

    if name in _ERRORS:
        from wren import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
