"""Shared type aliases used across waymark modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler — user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# Anything accepted as a handler at registration:
# a callable, a controller class, a (controller, action) pair, or "Controller@action"
HandlerLiteral: TypeAlias = Callable[..., Any] | type | tuple[Any, str] | list[Any] | str

# Middleware reference — registry name, middleware class, or instance
MiddlewareRef: TypeAlias = str | type | object
