"""Reverse routing — build URLs from route templates."""

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode

from waymark.routing.pattern import PLACEHOLDER


def build_url(template: str, data: Mapping[str, Any] | None = None, base_url: str = "") -> str:
    """Substitute ``{key}`` tokens in *template* and append the rest as a query string.

    Examples::

        build_url("/users/{id}", {"id": 7})              -> "/users/7"
        build_url("/users/{id}", {"id": 7, "tab": "a"})  -> "/users/7?tab=a"
        build_url("/search", {"q": "a b"}, "https://x")  -> "https://x/search?q=a+b"

    Placeholders with no matching key are left in place. Substituted
    values are percent-encoded so they stay inside one segment.
    """
    data = dict(data or {})
    used: set[str] = set()

    def substitute(m: Any) -> str:
        key = m.group(1)
        if key not in data:
            return m.group(0)
        used.add(key)
        return quote(str(data[key]), safe="")

    path = PLACEHOLDER.sub(substitute, template) or "/"
    extra = {k: v for k, v in data.items() if k not in used}
    query = f"?{urlencode(extra, doseq=True)}" if extra else ""
    return f"{base_url.rstrip('/')}{path}{query}"
