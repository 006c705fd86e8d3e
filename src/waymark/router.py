"""The waymark router.

Mutable during setup (route registration, groups, middleware names).
The route table is compiled on the first dispatch; after that every
registration call raises ``ConfigurationError``.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from waymark._internal.types import Handler, HandlerLiteral, MiddlewareRef
from waymark.config import RouterConfig
from waymark.dispatcher import DispatchOutcome, Dispatcher, Failure
from waymark.errors import (
    ConfigurationError,
    ControllerNotFound,
    HTTPError,
    InvalidHandler,
    InvalidRoutePath,
)
from waymark.middleware.chain import MiddlewareChain, describe
from waymark.request import Request
from waymark.routing.handlers import ControllerAction, import_controller, qualify, resolve_handler
from waymark.routing.pattern import normalize_path
from waymark.routing.route import HttpMethod, Route
from waymark.routing.table import RouteTable
from waymark.routing.urls import build_url

type Registration = Route | Callable[[Handler], Handler]

# (verb, suffix, action) for resource()
RESOURCE_ROUTES: tuple[tuple[HttpMethod, str, str], ...] = (
    (HttpMethod.GET, "", "index"),
    (HttpMethod.GET, "/create", "create"),
    (HttpMethod.POST, "", "store"),
    (HttpMethod.GET, "/{id}", "show"),
    (HttpMethod.GET, "/{id}/edit", "edit"),
    (HttpMethod.PUT, "/{id}", "update"),
    (HttpMethod.PATCH, "/{id}", "update"),
    (HttpMethod.DELETE, "/{id}", "destroy"),
)


def _as_refs(
    middleware: MiddlewareRef | list[MiddlewareRef] | tuple[MiddlewareRef, ...],
) -> tuple[MiddlewareRef, ...]:
    if isinstance(middleware, (list, tuple)):
        return tuple(middleware)
    return (middleware,)


class Router:
    """Route registration plus dispatch.

    Usage::

        router = Router()

        @router.get("/users/{id}", name="user.show")
        def show(id: int):
            return {"id": id}

        router.post("/users", "UserController@store")

        with router.group("admin", middleware=["auth"]):
            router.resource("posts", PostController)

        outcome = router.dispatch("GET", "/users/42")
    """

    __slots__ = (
        "_chain",
        "_dispatcher",
        "_group",
        "_group_middleware",
        "_namespace",
        "_table",
        "config",
    )

    def __init__(
        self,
        config: RouterConfig | None = None,
        *,
        middleware: Mapping[str, Callable[[], Any]] | None = None,
    ) -> None:
        self.config: RouterConfig = config or RouterConfig()
        self._table = RouteTable()
        self._chain = MiddlewareChain(middleware)
        self._dispatcher = Dispatcher(self._table, self._chain, self.config)

        # Registration context — changed by group() and namespace()
        self._group: str | None = None
        self._group_middleware: tuple[MiddlewareRef, ...] = ()
        self._namespace: str | None = self.config.namespace

    # -- Route registration --

    def add_route(
        self,
        method: str,
        path: str,
        handler: HandlerLiteral,
        name: str | None = None,
        middleware: MiddlewareRef | list[MiddlewareRef] | None = None,
    ) -> Route:
        """Register *handler* for *method* and *path*.

        The path is prefixed with the active group. Route-level
        *middleware* replaces the group's middleware rather than
        extending it.

        Raises ``ConfigurationError`` subclasses for bad verbs, paths,
        names, or handler literals, and once the table is compiled.
        """
        path = normalize_path(path)
        if path and not path.startswith("/"):
            msg = f"Route path must start with '/': {path!r}"
            raise InvalidRoutePath(msg)
        if self._group:
            path = f"/{self._group}{path}"

        descriptor = resolve_handler(
            handler,
            namespace=self._namespace,
            separator=self.config.separator,
        )
        refs = _as_refs(middleware) if middleware is not None else self._group_middleware

        route = Route(
            method=HttpMethod.parse(method),
            path=path,
            handler=descriptor,
            name=name,
            middleware=refs,
            group=self._group,
        )
        return self._table.add(route)

    def _register(
        self,
        method: HttpMethod,
        path: str,
        handler: HandlerLiteral | None,
        name: str | None,
        middleware: MiddlewareRef | list[MiddlewareRef] | None,
    ) -> Registration:
        if handler is not None:
            return self.add_route(method, path, handler, name, middleware)

        def decorator(func: Handler) -> Handler:
            self.add_route(method, path, func, name, middleware)
            return func

        return decorator

    def get(
        self,
        path: str,
        handler: HandlerLiteral | None = None,
        name: str | None = None,
        middleware: MiddlewareRef | list[MiddlewareRef] | None = None,
    ) -> Any:
        """Register a GET route. Without *handler*, returns a decorator."""
        return self._register(HttpMethod.GET, path, handler, name, middleware)

    def post(
        self,
        path: str,
        handler: HandlerLiteral | None = None,
        name: str | None = None,
        middleware: MiddlewareRef | list[MiddlewareRef] | None = None,
    ) -> Any:
        """Register a POST route. Without *handler*, returns a decorator."""
        return self._register(HttpMethod.POST, path, handler, name, middleware)

    def put(
        self,
        path: str,
        handler: HandlerLiteral | None = None,
        name: str | None = None,
        middleware: MiddlewareRef | list[MiddlewareRef] | None = None,
    ) -> Any:
        """Register a PUT route. Without *handler*, returns a decorator."""
        return self._register(HttpMethod.PUT, path, handler, name, middleware)

    def patch(
        self,
        path: str,
        handler: HandlerLiteral | None = None,
        name: str | None = None,
        middleware: MiddlewareRef | list[MiddlewareRef] | None = None,
    ) -> Any:
        """Register a PATCH route. Without *handler*, returns a decorator."""
        return self._register(HttpMethod.PATCH, path, handler, name, middleware)

    def delete(
        self,
        path: str,
        handler: HandlerLiteral | None = None,
        name: str | None = None,
        middleware: MiddlewareRef | list[MiddlewareRef] | None = None,
    ) -> Any:
        """Register a DELETE route. Without *handler*, returns a decorator."""
        return self._register(HttpMethod.DELETE, path, handler, name, middleware)

    def options(
        self,
        path: str,
        handler: HandlerLiteral | None = None,
        name: str | None = None,
        middleware: MiddlewareRef | list[MiddlewareRef] | None = None,
    ) -> Any:
        """Register an OPTIONS route. Without *handler*, returns a decorator."""
        return self._register(HttpMethod.OPTIONS, path, handler, name, middleware)

    def resource(self, name: str, controller: type | str) -> list[Route]:
        """Register the conventional CRUD routes for *controller* under ``/name``.

        ============  =================  =========
        Verb          Path               Action
        ============  =================  =========
        GET           /name              index
        GET           /name/create       create
        POST          /name              store
        GET           /name/{id}         show
        GET           /name/{id}/edit    edit
        PUT, PATCH    /name/{id}         update
        DELETE        /name/{id}         destroy
        ============  =================  =========

        Raises ``InvalidHandler`` if *controller* is an import path that
        does not resolve to a class.
        """
        if isinstance(controller, str):
            path = qualify(controller, self._namespace)
            try:
                controller = import_controller(path)
            except ControllerNotFound as exc:
                msg = f"Class {path} not found!"
                raise InvalidHandler(msg) from exc
        elif not inspect.isclass(controller):
            msg = f"resource() expects a controller class, got {controller!r}"
            raise InvalidHandler(msg)

        base = "/" + name.strip("/")
        return [
            self.add_route(verb, base + suffix, (controller, action))
            for verb, suffix, action in RESOURCE_ROUTES
        ]

    # -- Registration context --

    @contextmanager
    def group(
        self,
        prefix: str,
        middleware: MiddlewareRef | list[MiddlewareRef] | None = None,
    ) -> Iterator[Router]:
        """Prefix routes registered inside the block with ``/prefix``.

        Groups nest; inner middleware runs after the outer group's::

            with router.group("api", middleware=["auth"]):
                with router.group("v1"):
                    router.get("/users", list_users)   # /api/v1/users
        """
        saved = (self._group, self._group_middleware)
        segment = prefix.strip("/")
        if segment:
            self._group = f"{self._group}/{segment}" if self._group else segment
        if middleware is not None:
            self._group_middleware = self._group_middleware + _as_refs(middleware)
        try:
            yield self
        finally:
            self._group, self._group_middleware = saved

    @contextmanager
    def namespace(self, module: str | None) -> Iterator[Router]:
        """Qualify ``"Controller@action"`` literals inside the block with *module*."""
        saved = self._namespace
        self._namespace = module
        try:
            yield self
        finally:
            self._namespace = saved

    def middleware(self, name: str, factory: Callable[[], Any]) -> Callable[[], Any]:
        """Register a middleware under *name* for use in route ``middleware=`` lists."""
        if self._table.compiled:
            msg = "Cannot register middleware after the route table is compiled."
            raise ConfigurationError(msg)
        self._chain.register(name, factory)
        return factory

    # -- Introspection --

    @property
    def routes(self) -> list[Route]:
        return self._table.routes

    def compile(self) -> None:
        """Freeze the route table. Called automatically by the first dispatch."""
        self._table.compile()

    def check(self) -> None:
        """Validate every handler and middleware reference eagerly.

        Imports string controllers and looks up middleware names, so a
        typo fails at startup instead of producing a 400/405/501 later.
        Raises ``ConfigurationError`` listing every problem found.
        """
        problems: list[str] = []
        for route in self._table.routes:
            where = f"{route.method} {route.path or '/'}"
            if isinstance(route.handler, ControllerAction):
                try:
                    route.handler.validate()
                except HTTPError as exc:
                    problems.append(f"{where}: {exc.detail}")
            for ref in route.middleware:
                if isinstance(ref, str):
                    if ref not in self._chain:
                        problems.append(f"{where}: middleware {ref!r} is not registered")
                elif not callable(getattr(ref, "handle", None)):
                    problems.append(f"{where}: middleware {describe(ref)} has no handle() method")

        if problems:
            msg = "Route check failed:\n  " + "\n  ".join(problems)
            raise ConfigurationError(msg)

    def url_for(self, name: str, **data: Any) -> str | None:
        """Build the URL of the route called *name*, or ``None`` if unknown.

        Keys matching ``{placeholders}`` fill the path; the rest become
        the query string::

            router.url_for("user.show", id=42, tab="posts")  # "/users/42?tab=posts"
        """
        route = self._table.find(name)
        if route is None:
            return None
        return build_url(route.path, data, self.config.base_url)

    # -- Dispatch --

    def build_request(
        self,
        method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Request:
        return Request.build(
            method,
            path,
            query,
            body,
            headers,
            override_field=self.config.method_override_field,
        )

    def dispatch(
        self,
        method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> DispatchOutcome:
        """Dispatch a request given as raw parts. Never raises."""
        try:
            request = self.build_request(method, path, query, body, headers)
        except HTTPError as exc:
            return Failure.from_error(exc)
        return self._dispatcher.dispatch(request)

    async def dispatch_async(
        self,
        method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> DispatchOutcome:
        """Async variant of ``dispatch()``; awaits coroutine handlers."""
        try:
            request = self.build_request(method, path, query, body, headers)
        except HTTPError as exc:
            return Failure.from_error(exc)
        return await self._dispatcher.dispatch_async(request)

    def handle(self, request: Request) -> DispatchOutcome:
        """Dispatch an already-built request."""
        return self._dispatcher.dispatch(request)

    async def handle_async(self, request: Request) -> DispatchOutcome:
        """Async variant of ``handle()``."""
        return await self._dispatcher.dispatch_async(request)
