"""Waymark exception hierarchy.

Shared across the route table, middleware chain, binder, and dispatcher
so every module raises and catches the same types.

Two families:

- ``ConfigurationError`` -- raised while routes are being registered.
  These are fatal and always propagate to the caller.
- ``HTTPError`` -- raised while a request is being dispatched. The
  dispatcher catches these and turns them into a ``Failure`` outcome.
"""

from dataclasses import dataclass


class WaymarkError(Exception):
    """Base for all waymark-specific errors."""


class ConfigurationError(WaymarkError):
    """Raised when route setup is invalid.

    Typically raised by ``Router.get()`` and friends, or by
    ``Router.check()`` at startup.
    """


class InvalidHttpVerb(ConfigurationError):
    """A route was registered with a verb outside the allowed set."""


class InvalidRoutePath(ConfigurationError):
    """A route path is malformed (missing leading slash, bad placeholder)."""


class InvalidRouteName(ConfigurationError):
    """A route was given an empty name."""


class InvalidHandler(ConfigurationError):
    """A handler literal could not be classified or resolved."""


@dataclass(frozen=True, slots=True)
class HTTPError(WaymarkError):
    """An error that maps directly to an HTTP status code.

    Raised by the route table, middleware chain, binder, or handlers.
    The dispatcher catches these and reports the carried status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """400 — the request cannot be bound to the handler."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class MissingParameter(BadRequest):
    """400 — a required handler parameter has no source value."""

    def __init__(self, name: str, handler: str = "") -> None:
        where = f" for {handler}()" if handler else ""
        super().__init__(f"Missing required parameter {name!r}{where}")


class InvalidParameter(BadRequest):
    """400 — a parameter value could not be coerced to its declared type."""

    def __init__(self, name: str, value: object, type_name: str) -> None:
        super().__init__(f"Parameter {name!r} expects {type_name}, got {value!r}")


class InvalidHttpMethod(BadRequest):
    """400 — the request method is not a recognised HTTP method."""

    def __init__(self, method: str) -> None:
        super().__init__(f"Invalid HTTP method: {method}")


class ControllerNotFound(BadRequest):
    """400 — a controller referenced by a route cannot be imported."""

    def __init__(self, controller: str) -> None:
        super().__init__(f"Controller {controller} not found")


class MiddlewareBlocked(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """403 — a middleware gate refused the request."""

    def __init__(self, middleware: str = "") -> None:
        detail = f"Blocked by middleware {middleware}" if middleware else "Blocked by middleware"
        super().__init__(status=403, detail=detail)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route matched the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class RouteNotFound(NotFound):
    """404 — no route is registered for this method and path."""

    def __init__(self, method: str, path: str) -> None:
        super().__init__(f"No route matches {method} {path!r}")


class MethodNotAllowed(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods and embeds
    the allowed methods in the detail string for developer visibility.
    Only raised by the route lookup when ``RouterConfig.method_not_allowed``
    is enabled.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class ActionNotAllowed(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """405 — the controller has no callable action with the requested name."""

    def __init__(self, controller: str, action: str | None) -> None:
        super().__init__(status=405, detail=f"Action {action!r} not allowed on {controller}")


class MiddlewareNotCallable(HTTPError):
    """405 — a middleware does not expose a ``handle`` method."""

    def __init__(self, middleware: str) -> None:
        super().__init__(status=405, detail=f"Middleware {middleware} has no handle() method")


class UnclassifiedFailure(HTTPError):
    """500 — the handler raised something that is not an ``HTTPError``."""

    def __init__(self, detail: str = "Internal Server Error") -> None:
        super().__init__(status=500, detail=detail)


class MiddlewareNotFound(HTTPError):
    """501 — a middleware identifier does not resolve to a known middleware."""

    def __init__(self, middleware: str) -> None:
        super().__init__(status=501, detail=f"Middleware {middleware} not implemented")
