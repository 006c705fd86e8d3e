"""Waymark — an HTTP route table and dispatcher.

Registers routes, matches requests to them, runs middleware gates,
binds path/query/body parameters to handler arguments, and reports
every request as a ``Success`` or a ``Failure(status, message)``.

Basic usage::

    from waymark import Router

    router = Router()

    @router.get("/users/{id}")
    def show(id: int):
        return {"id": id}

    outcome = router.dispatch("GET", "/users/42")
    assert outcome.value == {"id": 42}

Serving over ASGI::

    from waymark.asgi import ASGIApp
    app = ASGIApp(router)
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "DispatchOutcome",
    "Failure",
    "HTTPError",
    "HttpMethod",
    "Middleware",
    "Request",
    "Route",
    "Router",
    "RouterConfig",
    "Success",
    "WaymarkError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waymark`` fast while providing a clean top-level API.
    """
    if name == "Router":
        from waymark.router import Router

        return Router

    if name == "RouterConfig":
        from waymark.config import RouterConfig

        return RouterConfig

    if name == "Request":
        from waymark.request import Request

        return Request

    if name in ("DispatchOutcome", "Failure", "Success"):
        from waymark import dispatcher as _dispatch

        return getattr(_dispatch, name)

    if name in ("HttpMethod", "Route"):
        from waymark.routing import route as _route

        return getattr(_route, name)

    if name == "Middleware":
        from waymark.middleware.protocol import Middleware

        return Middleware

    if name in ("ConfigurationError", "HTTPError", "WaymarkError"):
        from waymark import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
