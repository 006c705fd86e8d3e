"""Middleware chain — ordered gates run before the handler.

Each route carries a tuple of middleware references. A reference is
one of:

- a string, looked up in the chain's registry (``Router.middleware()``)
- a class, instantiated with no arguments
- an instance, used as-is

Resolution happens per request, in list order, and stops at the first
gate that fails.
"""

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from waymark._internal.types import MiddlewareRef
from waymark.errors import HTTPError, MiddlewareBlocked, MiddlewareNotCallable, MiddlewareNotFound
from waymark.middleware.protocol import Middleware
from waymark.request import Request

logger = logging.getLogger("waymark.dispatch")


def describe(ref: MiddlewareRef) -> str:
    """Human-readable name for a middleware reference."""
    if isinstance(ref, str):
        return ref
    if inspect.isclass(ref):
        return ref.__qualname__
    return type(ref).__qualname__


class MiddlewareChain:
    """Runs middleware references against a request.

    Usage::

        chain = MiddlewareChain({"auth": AuthGate})
        chain.run(["auth", RateLimit], request)   # raises on failure
        chain.passes(["auth"], request)           # -> bool
    """

    __slots__ = ("_registry",)

    def __init__(self, registry: Mapping[str, Callable[[], Any]] | None = None) -> None:
        self._registry: dict[str, Callable[[], Any]] = dict(registry or {})

    def register(self, name: str, factory: Callable[[], Any]) -> None:
        """Make *factory* available under *name*."""
        self._registry[name] = factory

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def resolve(self, ref: MiddlewareRef) -> Middleware:
        """Turn a reference into a middleware instance.

        Raises ``MiddlewareNotFound`` (501) for unknown names and
        ``MiddlewareNotCallable`` (405) when the result has no ``handle``.
        """
        if isinstance(ref, str):
            factory = self._registry.get(ref)
            if factory is None:
                raise MiddlewareNotFound(ref)
            instance = factory()
        elif inspect.isclass(ref):
            instance = ref()
        else:
            instance = ref

        if not isinstance(instance, Middleware) or not callable(instance.handle):
            raise MiddlewareNotCallable(describe(ref))
        return instance

    def run(self, refs: Iterable[MiddlewareRef], request: Request) -> None:
        """Run every gate in order. Raises on the first failure.

        Raises ``MiddlewareBlocked`` (403) when a gate returns falsy.
        An empty chain always passes. A gate whose ``handle`` returns an
        awaitable also blocks; use ``run_async()`` for async gates.
        """
        for ref in refs:
            result = self.resolve(ref).handle(request)
            if inspect.isawaitable(result):
                # Async gates cannot be answered here; fail closed
                if inspect.iscoroutine(result):
                    result.close()
                logger.debug(
                    "Async middleware %s refused in sync dispatch of %s %s",
                    describe(ref),
                    request.method,
                    request.path,
                )
                raise MiddlewareBlocked(describe(ref))
            if not result:
                self._blocked(ref, request)

    async def run_async(self, refs: Iterable[MiddlewareRef], request: Request) -> None:
        """Like ``run()`` but awaits gates whose ``handle`` is async."""
        for ref in refs:
            result = self.resolve(ref).handle(request)
            if inspect.isawaitable(result):
                result = await result
            if not result:
                self._blocked(ref, request)

    def _blocked(self, ref: MiddlewareRef, request: Request) -> None:
        logger.debug("Middleware %s blocked %s %s", describe(ref), request.method, request.path)
        raise MiddlewareBlocked(describe(ref))

    def passes(self, refs: Iterable[MiddlewareRef], request: Request) -> bool:
        """Like ``run()`` but reports the result as a bool."""
        try:
            self.run(refs, request)
        except HTTPError:
            return False
        return True
