"""Router configuration.

RouterConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(base_url="https://example.com", debug=True)
    """

    # Reverse routing
    base_url: str = ""  # Prefixed to every URL built by url_for()

    # Handler literals ("UserController@show")
    separator: str = "@"
    namespace: str | None = None  # Module path used to qualify controller names

    # Requests
    method_override_field: str = "_method"  # Form field that spoofs PUT/PATCH/DELETE

    # Dispatch
    method_not_allowed: bool = False  # 405 instead of 404 when only the method differs
    debug: bool = False  # Append exception repr to 500 messages
    offload_sync_handlers: bool = True  # dispatch_async() runs sync handlers in a worker thread
