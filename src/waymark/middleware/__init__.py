"""Middleware — Protocol-based, no inheritance required.

A middleware is any object with:
    def handle(self, request: Request) -> bool

Gates run in order before the handler; the first falsy result blocks
the request with 403.
"""

from waymark.middleware.chain import MiddlewareChain
from waymark.middleware.protocol import Middleware

__all__ = [
    "Middleware",
    "MiddlewareChain",
]
