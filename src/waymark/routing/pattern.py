"""Path template compilation.

Turns a route path like ``/users/{id}/posts/{post_id}`` into an anchored
regex with one capture per placeholder, plus the placeholder names in
capture order.
"""

import re
from dataclasses import dataclass

from waymark.errors import InvalidRoutePath

# {name} with optional inner whitespace
PLACEHOLDER = re.compile(r"\{\s*([a-zA-Z_][a-zA-Z0-9_-]*)\s*\}")

# A placeholder matches exactly one path segment
SEGMENT_PATTERN = r"([^/]+)"

_FLASK_STYLE = re.compile(r"<[^<>/]+>")


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A compiled path template.

    ``text`` is the regex source and doubles as the route-table key:
    two templates that differ only in placeholder names compile to the
    same text and therefore replace each other.
    """

    text: str
    regex: re.Pattern[str]
    param_names: tuple[str, ...]

    def match(self, path: str) -> dict[str, str] | None:
        """Return the captured parameters if *path* matches, else ``None``.

        Captures are bound by position, so a literal segment that happens
        to equal a parameter value elsewhere in the path cannot shift them.
        Duplicate placeholder names keep the last captured value.
        """
        m = self.regex.fullmatch(path)
        if m is None:
            return None
        return dict(zip(self.param_names, m.groups(), strict=True))


def normalize_path(path: str) -> str:
    """Drop trailing slashes. ``"/"`` normalizes to the empty root path."""
    return path.rstrip("/")


def compile_path(raw_path: str) -> CompiledPattern:
    """Compile a path template into a ``CompiledPattern``.

    Examples::

        "/users"            -> text "/users",           params ()
        "/users/{id}/"      -> text "/users/([^/]+)",   params ("id",)
        "/a/{x}/b/{ y }"    -> text "/a/([^/]+)/b/([^/]+)", params ("x", "y")

    Raises ``InvalidRoutePath`` for ``<param>`` placeholders and for
    stray or malformed braces.
    """
    path = normalize_path(raw_path)

    if _FLASK_STYLE.search(path):
        msg = (
            f"Route path {raw_path!r} uses <param> placeholders. "
            "Waymark expects {param}, e.g. '/users/{id}'."
        )
        raise InvalidRoutePath(msg)

    parts: list[str] = []
    names: list[str] = []
    pos = 0
    for m in PLACEHOLDER.finditer(path):
        parts.append(_literal(path[pos : m.start()], raw_path))
        parts.append(SEGMENT_PATTERN)
        names.append(m.group(1))
        pos = m.end()
    parts.append(_literal(path[pos:], raw_path))

    text = "".join(parts)
    return CompiledPattern(text=text, regex=re.compile(text), param_names=tuple(names))


def _literal(chunk: str, raw_path: str) -> str:
    if "{" in chunk or "}" in chunk:
        msg = f"Malformed placeholder in route path {raw_path!r}"
        raise InvalidRoutePath(msg)
    return re.escape(chunk)
