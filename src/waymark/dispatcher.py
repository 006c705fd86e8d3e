"""Dispatcher — one request through the full pipeline.

    lookup -> middleware -> controller resolution -> binding -> invoke

Every failure along the way is an ``HTTPError`` carrying its status;
anything else a handler raises becomes a 500. Neither ``dispatch()``
nor ``dispatch_async()`` lets an exception escape: the caller always
gets a ``Success`` or a ``Failure``.
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import anyio.to_thread

from waymark.binding import ParamSpec, bind, call_bound, handler_params
from waymark.config import RouterConfig
from waymark.errors import HTTPError, MethodNotAllowed, RouteNotFound, UnclassifiedFailure
from waymark.middleware.chain import MiddlewareChain
from waymark.request import Request
from waymark.routing.handlers import CallableHandler, HandlerDescriptor
from waymark.routing.route import RouteMatch
from waymark.routing.table import RouteTable

logger = logging.getLogger("waymark.dispatch")


@dataclass(frozen=True, slots=True)
class Success:
    """The handler returned normally."""

    value: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failure:
    """The request was refused or the handler failed."""

    status: int
    message: str
    headers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_error(cls, exc: HTTPError) -> Failure:
        return cls(status=exc.status, message=exc.detail or f"Error {exc.status}", headers=exc.headers)

    @property
    def ok(self) -> bool:
        return False


type DispatchOutcome = Success | Failure


class Dispatcher:
    """Resolves and invokes handlers for requests.

    Holds no per-request state. The route table is compiled on the
    first dispatch and only read afterwards, so one dispatcher can
    serve concurrent requests.
    """

    __slots__ = ("_chain", "_config", "_table")

    def __init__(
        self,
        table: RouteTable,
        chain: MiddlewareChain | None = None,
        config: RouterConfig | None = None,
    ) -> None:
        self._table = table
        self._chain = chain or MiddlewareChain()
        self._config = config or RouterConfig()

    def dispatch(self, request: Request) -> DispatchOutcome:
        """Run *request* through the pipeline synchronously.

        A coroutine handler is not awaited here; its coroutine object is
        the success value. Use ``dispatch_async()`` for async handlers
        and async middleware.
        """
        try:
            match = self._lookup(request)
            self._chain.run(match.route.middleware, request)
            func, specs, values = self._bind(match, request)
            value = call_bound(func, specs, values)
        except HTTPError as exc:
            return self._http_failure(exc, request)
        except Exception as exc:
            return self._internal_failure(exc, request)
        return Success(value)

    async def dispatch_async(self, request: Request) -> DispatchOutcome:
        """Run *request* through the pipeline, awaiting async gates and handlers.

        Sync handlers run in a worker thread when
        ``RouterConfig.offload_sync_handlers`` is set.
        """
        try:
            match = self._lookup(request)
            await self._chain.run_async(match.route.middleware, request)
            func, specs, values = self._bind(match, request)
            if self._config.offload_sync_handlers and not _is_async(func):
                value = await anyio.to_thread.run_sync(
                    functools.partial(call_bound, func, specs, values)
                )
            else:
                value = call_bound(func, specs, values)
            # Sync callables returning a coroutine (partials, wrappers) are awaited too
            if inspect.isawaitable(value):
                value = await value
        except HTTPError as exc:
            return self._http_failure(exc, request)
        except Exception as exc:
            return self._internal_failure(exc, request)
        return Success(value)

    def _lookup(self, request: Request) -> RouteMatch:
        self._table.compile()

        match = self._table.match(request.method, request.path)
        if match is None:
            if self._config.method_not_allowed:
                allowed = self._table.allowed_methods(request.path)
                if allowed:
                    raise MethodNotAllowed(allowed)
            raise RouteNotFound(request.method, request.path)
        return match

    def _bind(
        self, match: RouteMatch, request: Request
    ) -> tuple[Callable[..., Any], tuple[ParamSpec, ...], list[Any]]:
        """Resolve the handler and its arguments; everything short of the call."""
        route = match.route
        func = _target(route.handler)
        specs = handler_params(func)
        values = bind(
            specs,
            match.path_params,
            request.query,
            request.body,
            request=request,
            handler=route.handler.label,
        )
        return func, specs, values

    def _http_failure(self, exc: HTTPError, request: Request) -> Failure:
        logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc.detail)
        return Failure.from_error(exc)

    def _internal_failure(self, exc: Exception, request: Request) -> Failure:
        logger.exception("500 %s %s", request.method, request.path)
        error = UnclassifiedFailure()
        if self._config.debug:
            error = UnclassifiedFailure(f"{error.detail}: {exc!r}")
        return Failure.from_error(error)


def _target(handler: HandlerDescriptor) -> Callable[..., Any]:
    """The callable a descriptor resolves to for this request."""
    if isinstance(handler, CallableHandler):
        return handler.func
    return handler.bound_action()


def _is_async(func: Callable[..., Any]) -> bool:
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(func, "__call__", None)  # noqa: B004
    return inspect.iscoroutinefunction(call)
