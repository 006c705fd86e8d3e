"""``waymark routes`` and ``waymark check``."""

import argparse
import sys

from waymark.cli._resolve import resolve_router
from waymark.errors import ConfigurationError
from waymark.middleware.chain import describe
from waymark.router import Router


def _load(import_string: str) -> Router:
    try:
        return resolve_router(import_string)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def run_routes(args: argparse.Namespace) -> None:
    """Print a table of METHOD, PATH, HANDLER, NAME and MIDDLEWARE."""
    router = _load(args.router)

    routes = router.routes
    if not routes:
        print("No routes registered.")
        return

    rows = [
        (
            str(route.method),
            route.path or "/",
            route.handler.label,
            route.name or "",
            ", ".join(describe(ref) for ref in route.middleware),
        )
        for route in routes
    ]
    headers = ("METHOD", "PATH", "HANDLER", "NAME", "MIDDLEWARE")
    widths = [max(len(headers[i]), *(len(row[i]) for row in rows)) for i in range(len(headers) - 1)]

    fmt = "  ".join(f"{{:<{w}}}" for w in widths) + "  {}"
    print(fmt.format(*headers))
    print("-" * min(sum(widths) + 2 * len(widths) + len(headers[-1]), 80))
    for row in rows:
        print(fmt.format(*row).rstrip())


def run_check(args: argparse.Namespace) -> None:
    """Exit non-zero if any route references a missing controller or middleware."""
    router = _load(args.router)
    try:
        router.check()
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        raise SystemExit(1) from exc
    print(f"{len(router.routes)} routes OK")
