"""ASGI adapter — serve a Router from any ASGI server.

The only module that touches raw ASGI. Converts the scope, query string,
and body into a ``Request``, dispatches through the router, and sends
the outcome back through ``send()``::

    from waymark import Router
    from waymark.asgi import ASGIApp

    router = Router()
    app = ASGIApp(router)   # hand ``app`` to uvicorn, hypercorn, ...

Success values render as:

- ``None`` -- 204, empty body
- ``str`` -- 200 ``text/plain``
- ``bytes`` -- 200 ``application/octet-stream``
- ``dict`` / ``list`` -- 200 ``application/json``

Failures render as their status with the message as plain text.
"""

import json
import logging
from collections.abc import Awaitable, Callable, Iterable, MutableMapping
from typing import Any, TypeAlias
from urllib.parse import parse_qsl

from waymark.dispatcher import DispatchOutcome, Failure
from waymark.errors import UnclassifiedFailure
from waymark.router import Router

# Raw ASGI types
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]

logger = logging.getLogger("waymark.asgi")

_TEXT = "text/plain; charset=utf-8"


class ASGIApp:
    """ASGI 3 application wrapping a ``Router``."""

    __slots__ = ("router",)

    def __init__(self, router: Router) -> None:
        self.router = router

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        headers = decode_headers(scope.get("headers", ()))
        query = parse_query(scope.get("query_string", b""))
        raw = await read_body(receive)

        outcome: DispatchOutcome
        try:
            body = parse_body(raw, headers.get("content-type", ""))
        except ValueError as exc:
            logger.debug("400 %s %s — unreadable body: %s", scope["method"], scope["path"], exc)
            outcome = Failure(status=400, message="Malformed request body")
        else:
            outcome = await self.router.dispatch_async(
                scope["method"], scope["path"], query, body, headers
            )

        await send_outcome(outcome, send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Compile the route table on startup so the first request pays nothing."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    self.router.compile()
                except Exception as exc:
                    logger.exception("Router failed to start")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return


def decode_headers(raw: Iterable[tuple[bytes, bytes]]) -> dict[str, str]:
    """ASGI header pairs -> lowercase ``{name: value}``. Later duplicates win."""
    return {name.decode("latin-1").lower(): value.decode("latin-1") for name, value in raw}


def parse_query(query_string: bytes, encoding: str = "latin-1") -> dict[str, Any]:
    """Parse a query string. Repeated keys collect into a list.

    Raw query strings are latin-1 on the wire; form bodies pass ``"utf-8"``.
    """
    data: dict[str, Any] = {}
    for key, value in parse_qsl(query_string.decode(encoding), keep_blank_values=True):
        if key not in data:
            data[key] = value
        elif isinstance(data[key], list):
            data[key].append(value)
        else:
            data[key] = [data[key], value]
    return data


def parse_body(raw: bytes, content_type: str) -> dict[str, Any]:
    """Decode a JSON object or urlencoded form body. Other types yield ``{}``.

    Raises ``ValueError`` for undecodable bodies and JSON that is not an object.
    """
    if not raw:
        return {}
    if "application/json" in content_type:
        data = json.loads(raw)
        if not isinstance(data, dict):
            msg = "JSON body must be an object"
            raise ValueError(msg)
        return data
    if "application/x-www-form-urlencoded" in content_type:
        return parse_query(raw, encoding="utf-8")
    return {}


async def read_body(receive: Receive) -> bytes:
    """Drain ``http.request`` messages into one bytes object."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def render(outcome: DispatchOutcome) -> tuple[int, str, bytes, tuple[tuple[str, str], ...]]:
    """Turn an outcome into ``(status, content_type, body, extra_headers)``."""
    if isinstance(outcome, Failure):
        return outcome.status, _TEXT, outcome.message.encode("utf-8"), outcome.headers

    value = outcome.value
    if value is None:
        return 204, _TEXT, b"", ()
    if isinstance(value, bytes):
        return 200, "application/octet-stream", value, ()
    if isinstance(value, (dict, list)):
        return 200, "application/json", json.dumps(value).encode("utf-8"), ()
    return 200, _TEXT, str(value).encode("utf-8"), ()


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_outcome(outcome: DispatchOutcome, send: Send) -> None:
    """Translate a dispatch outcome into ASGI send() calls."""
    try:
        status, content_type, body, extra = render(outcome)
    except (TypeError, ValueError):
        logger.exception("500 response value could not be serialized")
        status, content_type, body, extra = render(Failure.from_error(UnclassifiedFailure()))
    if not _body_allowed(status):
        body = b""

    raw_headers: list[tuple[bytes, bytes]] = [
        (b"content-type", content_type.encode("latin-1")),
        (b"content-length", str(len(body)).encode("latin-1")),
    ]
    raw_headers.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in extra
    )

    await send({"type": "http.response.start", "status": status, "headers": raw_headers})
    await send({"type": "http.response.body", "body": body})
