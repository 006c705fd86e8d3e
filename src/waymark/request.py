"""Immutable request value.

Built once per incoming request by whatever hosts the router (the ASGI
adapter, a test, another framework) and passed down the dispatch chain.
Nothing in waymark reads ambient request state.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from waymark.errors import InvalidHttpMethod

VALID_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"})

# Methods a form may spoof through the override field
OVERRIDABLE_METHODS = frozenset({"PUT", "PATCH", "DELETE"})

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable request as seen by the router.

    Use ``Request.build()`` rather than the constructor: it validates
    the method, applies method override, and normalizes the path.
    """

    method: str
    path: str
    query: Mapping[str, Any] = field(default=_EMPTY)
    body: Mapping[str, Any] = field(default=_EMPTY)
    headers: Mapping[str, str] = field(default=_EMPTY)

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        override_field: str = "_method",
    ) -> Request:
        """Build a request from raw parts.

        A POST body carrying ``_method=PUT|PATCH|DELETE`` is treated as
        that method; the override field is removed from the body either way.

        Raises ``InvalidHttpMethod`` if the resulting method is unknown.
        """
        method = method.upper()
        body_data = dict(body or {})

        spoof = body_data.pop(override_field, None)
        if isinstance(spoof, str) and method == "POST" and spoof.upper() in OVERRIDABLE_METHODS:
            method = spoof.upper()

        if method not in VALID_METHODS:
            raise InvalidHttpMethod(method)

        return cls(
            method=method,
            path=normalize_request_path(path),
            query=MappingProxyType(dict(query or {})),
            body=MappingProxyType(body_data),
            headers=MappingProxyType({k.lower(): v for k, v in (headers or {}).items()}),
        )

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")


def normalize_request_path(path: str) -> str:
    """``"users/42/"`` -> ``"/users/42"``; empty -> ``"/"``.

    Any query string left on the path is dropped.
    """
    path = path.split("?", 1)[0]
    return "/" + path.strip("/")
