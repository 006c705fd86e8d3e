"""Waymark CLI — inspect and validate route tables.

Entry point registered as ``waymark`` in ``pyproject.toml``::

    [project.scripts]
    waymark = "waymark.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``waymark`` command."""
    parser = argparse.ArgumentParser(
        prog="waymark",
        description="Waymark — an HTTP route table and dispatcher.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- waymark routes ---------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument(
        "router",
        help="Import string (e.g. myapp.urls:router)",
    )

    # -- waymark check ----------------------------------------------------
    check_parser = subparsers.add_parser(
        "check", help="Import every controller and middleware the routes reference"
    )
    check_parser.add_argument(
        "router",
        help="Import string (e.g. myapp.urls:router)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from waymark.cli._routes import run_routes

        run_routes(args)
    elif args.command == "check":
        from waymark.cli._routes import run_check

        run_check(args)
