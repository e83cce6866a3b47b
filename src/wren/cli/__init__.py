"""Wren CLI — route table inspection and cache maintenance.

Entry point registered as ``wren`` in ``pyproject.toml``::

    [project.scripts]
    wren = "wren.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``wren`` command."""
    parser = argparse.ArgumentParser(
        prog="wren",
        description="Wren — declarative HTTP route tables.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- wren routes ------------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List compiled routes in match order")
    routes_parser.add_argument(
        "registry",
        help="Import string (e.g. myapp:routes)",
    )

    # -- wren cache -------------------------------------------------------
    cache_parser = subparsers.add_parser("cache", help="Inspect or clear a route cache file")
    cache_parser.add_argument("path", help="Route cache file")
    cache_parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete the cache file so routes are recompiled on next start",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from wren.cli._routes import run_routes

        run_routes(args)
    elif args.command == "cache":
        from wren.cli._cache import run_cache

        run_cache(args)
