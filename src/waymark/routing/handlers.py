"""Handler descriptors — what a route invokes.

A handler literal is classified once, at registration:

    lambda: ...                    -> CallableHandler
    UserController                 -> ControllerAction(UserController, None)
    (UserController, "show")       -> ControllerAction(UserController, "show")
    "UserController@show"          -> ControllerAction("<namespace>.UserController", "show")

String controllers are imported lazily on first use; ``Router.check()``
imports them eagerly for fail-fast startup.
"""

import importlib
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from waymark._internal.types import HandlerLiteral
from waymark.errors import ActionNotAllowed, ControllerNotFound, InvalidHandler


@dataclass(frozen=True, slots=True)
class CallableHandler:
    """A function (or any non-class callable) invoked directly."""

    func: Callable[..., Any]

    @property
    def label(self) -> str:
        return getattr(self.func, "__qualname__", None) or repr(self.func)


@dataclass(frozen=True, slots=True)
class ControllerAction:
    """A controller class plus the name of the method to call on it.

    ``controller`` is either the class itself or a dotted import path.
    """

    controller: type | str
    action: str | None

    @property
    def controller_name(self) -> str:
        if isinstance(self.controller, str):
            return self.controller
        return f"{self.controller.__module__}.{self.controller.__qualname__}"

    @property
    def label(self) -> str:
        return f"{self.controller_name}.{self.action or '?'}"

    def load_controller(self) -> type:
        """Return the controller class, importing it if needed.

        Raises ``ControllerNotFound`` if the import path does not resolve
        to a class.
        """
        if not isinstance(self.controller, str):
            return self.controller
        return import_controller(self.controller)

    def validate(self) -> type:
        """Load the controller and check the action exists on it.

        Raises ``ControllerNotFound`` or ``ActionNotAllowed``.
        """
        cls = self.load_controller()
        # Underscore names are never routable
        if not self.action or self.action.startswith("_"):
            raise ActionNotAllowed(self.controller_name, self.action)
        if not callable(getattr(cls, self.action, None)):
            raise ActionNotAllowed(self.controller_name, self.action)
        return cls

    def bound_action(self) -> Callable[..., Any]:
        """Instantiate the controller and return its bound action."""
        cls = self.validate()
        return getattr(cls(), self.action)  # type: ignore[arg-type]


type HandlerDescriptor = CallableHandler | ControllerAction


def import_controller(path: str) -> type:
    """Import ``"package.module.ClassName"`` and return the class."""
    module_path, _, attr = path.rpartition(".")
    if not module_path or not attr:
        raise ControllerNotFound(path)
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ControllerNotFound(path) from exc
    obj = getattr(module, attr, None)
    if not inspect.isclass(obj):
        raise ControllerNotFound(path)
    return obj


def qualify(name: str, namespace: str | None) -> str:
    """Prefix *name* with *namespace* (a module path), if one is active."""
    name = name.strip(".")
    if not namespace:
        return name
    return f"{namespace.rstrip('.')}.{name}"


def resolve_handler(
    handler: HandlerLiteral,
    *,
    namespace: str | None = None,
    separator: str = "@",
) -> HandlerDescriptor:
    """Classify a handler literal into a ``HandlerDescriptor``.

    Raises ``InvalidHandler`` if *handler* is none of the accepted shapes.
    """
    if inspect.isclass(handler):
        return ControllerAction(handler, None)

    if callable(handler):
        return CallableHandler(handler)

    if isinstance(handler, (tuple, list)) and len(handler) == 2:
        controller, action = handler
        if isinstance(controller, str):
            controller = qualify(controller, namespace)
        elif not inspect.isclass(controller):
            msg = f"Controller in {handler!r} must be a class or an import path"
            raise InvalidHandler(msg)
        if not isinstance(action, str) or not action:
            msg = f"Action in {handler!r} must be a non-empty string"
            raise InvalidHandler(msg)
        return ControllerAction(controller, action)

    if isinstance(handler, str) and handler:
        controller, sep, action = handler.partition(separator)
        if not controller:
            msg = f"Handler {handler!r} names no controller"
            raise InvalidHandler(msg)
        return ControllerAction(qualify(controller, namespace), action if sep and action else None)

    msg = f"Unsupported handler {handler!r}"
    raise InvalidHandler(msg)
