"""``wren routes`` — list the compiled route table.

Prints one row per declared route in final match order, so the first
row of each method is the first one consulted for a request.
"""

import argparse
import sys

from wren.cli._resolve import resolve_registry
from wren.errors import ConfigurationError


def run_routes(args: argparse.Namespace) -> None:
    """Resolve ``args.registry``, freeze it, and print METHOD, PATH, HANDLER, CSRF."""
    try:
        registry = resolve_registry(args.registry)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        routes = registry.routes
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not routes:
        print("No routes registered.")
        return

    rows: list[tuple[str, str, str, str]] = []
    for entry in routes:
        csrf = "check" if registry.requires_csrf_check(entry, entry.method) else "-"
        handler = entry.handler_id
        if entry.priority.name != "NORMAL":
            handler = f"{handler} ({entry.priority.name.lower()})"
        rows.append((entry.method, "/" + entry.pattern.raw.strip("/"), handler, csrf))

    max_method = max(max(len(r[0]) for r in rows), 6)  # "METHOD" header
    max_path = max(max(len(r[1]) for r in rows), 4)  # "PATH" header
    max_handler = max(max(len(r[2]) for r in rows), 7)  # "HANDLER" header

    fmt = f"{{:<{max_method}}}  {{:<{max_path}}}  {{:<{max_handler}}}  {{}}"
    print(fmt.format("METHOD", "PATH", "HANDLER", "CSRF"))
    print("-" * min(max_method + max_path + max_handler + 10, 80))
    for row in rows:
        print(fmt.format(*row))
