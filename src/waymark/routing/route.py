"""Route, RouteMatch, and the HTTP method enum."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from waymark._internal.types import MiddlewareRef
from waymark.errors import ConfigurationError, InvalidHttpVerb, InvalidRouteName, InvalidRoutePath
from waymark.routing.handlers import HandlerDescriptor
from waymark.routing.pattern import CompiledPattern, compile_path, normalize_path


class HttpMethod(StrEnum):
    """Verbs a route may be registered under."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: str) -> HttpMethod:
        """Case-insensitive lookup. Raises ``InvalidHttpVerb``."""
        try:
            return cls(value.upper())
        except ValueError:
            msg = f"Invalid HTTP method: {value.upper()}"
            raise InvalidHttpVerb(msg) from None


@dataclass(slots=True, eq=False)
class Route:
    """A registered route.

    Built by ``Router.add_route()``. Everything except ``name`` is fixed
    at construction; ``named()`` may set the name until the route table
    is compiled.
    """

    method: HttpMethod
    path: str
    handler: HandlerDescriptor
    name: str | None = None
    middleware: tuple[MiddlewareRef, ...] = ()
    group: str | None = None
    pattern: CompiledPattern = field(init=False)
    _sealed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.method, HttpMethod):
            self.method = HttpMethod.parse(self.method)
        path = normalize_path(self.path)
        if path and not path.startswith("/"):
            msg = f"Route path must start with '/': {self.path!r}"
            raise InvalidRoutePath(msg)
        self.path = path
        if self.name is not None:
            _check_name(self.name)
        self.pattern = compile_path(path)

    @property
    def param_names(self) -> tuple[str, ...]:
        return self.pattern.param_names

    def named(self, name: str) -> Route:
        """Assign the route name. Chainable: ``router.get(...).named("home")``."""
        if self._sealed:
            msg = f"Cannot rename route {self.method} {self.path!r} after the table is compiled."
            raise ConfigurationError(msg)
        _check_name(name)
        self.name = name
        return self

    def seal(self) -> None:
        self._sealed = True


def _check_name(name: str) -> None:
    if not name or not name.strip():
        msg = "Route name must not be empty."
        raise InvalidRouteName(msg)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
