"""Middleware protocol.

A middleware is any object with a ``handle`` method::

    class AdminOnly:
        def handle(self, request: Request) -> bool:
            return request.headers.get("x-role") == "admin"

No base class required. The chain checks the shape, not the lineage.
Returning a falsy value blocks the request with 403.
"""

from typing import Protocol, runtime_checkable

from waymark.request import Request


@runtime_checkable
class Middleware(Protocol):
    """Protocol for waymark middleware gates."""

    def handle(self, request: Request) -> bool: ...
