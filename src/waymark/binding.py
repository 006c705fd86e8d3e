"""Parameter binding — map request data onto handler arguments.

Handler signatures are introspected once and cached as ``ParamSpec``
tuples. Per request, each declared parameter is resolved by name:

1. ``request`` (by name or ``Request`` annotation) -- the request itself
2. ``input`` -- the whole body mapping, uncoerced
3. path parameters -- coerced to the annotation
4. query parameters -- coerced to the annotation
5. the parameter's default
6. otherwise ``MissingParameter`` (400)

Coercion only applies to primitive annotations: ``int``, ``float``,
``bool``, ``str`` and the collections ``list``, ``tuple``, ``set``,
``frozenset`` (bare or parametrized). ``X | None`` coerces as ``X``.
Anything else receives the raw value.
"""

import inspect
import types
import typing
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from waymark.errors import InvalidParameter, MissingParameter
from waymark.request import Request

_EMPTY = inspect.Parameter.empty

_TRUTHY = frozenset({"true", "1", "yes", "on"})

_COLLECTIONS: tuple[type, ...] = (list, tuple, set, frozenset)
_PRIMITIVES: tuple[type, ...] = (int, float, bool, str, *_COLLECTIONS)

# String annotations we can resolve without evaluating user modules
_BUILTIN_NAMES: dict[str, type] = {t.__name__: t for t in _PRIMITIVES}

_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """One declared handler parameter."""

    name: str
    annotation: Any = _EMPTY
    default: Any = _EMPTY
    keyword_only: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not _EMPTY


_spec_cache: dict[Any, tuple[ParamSpec, ...]] = {}


def handler_params(func: Callable[..., Any]) -> tuple[ParamSpec, ...]:
    """Return the bindable parameters of *func*.

    Results are cached per underlying function, so bound methods of
    fresh controller instances reuse the same entry (minus ``self``).
    ``*args`` and ``**kwargs`` are not bindable and are skipped.
    """
    bound = inspect.ismethod(func)
    target = func.__func__ if bound else func  # type: ignore[union-attr]

    try:
        specs = _spec_cache.get(target)
    except TypeError:  # unhashable callable object
        return _introspect(target)

    if specs is None:
        specs = _introspect(target)
        _spec_cache[target] = specs
    return specs[1:] if bound else specs


def _introspect(func: Callable[..., Any]) -> tuple[ParamSpec, ...]:
    sig = inspect.signature(func, eval_str=True)
    return tuple(
        ParamSpec(
            name=param.name,
            annotation=param.annotation,
            default=param.default,
            keyword_only=param.kind is inspect.Parameter.KEYWORD_ONLY,
        )
        for param in sig.parameters.values()
        if param.kind not in _SKIPPED_KINDS
    )


def bind(
    specs: Sequence[ParamSpec],
    path_params: Mapping[str, Any],
    query: Mapping[str, Any],
    body: Mapping[str, Any],
    *,
    request: Request | None = None,
    handler: str = "",
) -> list[Any]:
    """Resolve one value per spec, in declaration order.

    Raises ``MissingParameter`` or ``InvalidParameter``.
    """
    values: list[Any] = []
    for spec in specs:
        if request is not None and (spec.name == "request" or spec.annotation is Request):
            values.append(request)
        elif spec.name == "input":
            values.append(body)
        elif spec.name in path_params:
            values.append(coerce(path_params[spec.name], spec.annotation, spec.name))
        elif spec.name in query:
            values.append(coerce(query[spec.name], spec.annotation, spec.name))
        elif spec.has_default:
            values.append(spec.default)
        else:
            raise MissingParameter(spec.name, handler)
    return values


def call_bound(func: Callable[..., Any], specs: Sequence[ParamSpec], values: Sequence[Any]) -> Any:
    """Call *func* with values produced by ``bind()`` for the same *specs*."""
    args = [v for s, v in zip(specs, values, strict=True) if not s.keyword_only]
    kwargs = {s.name: v for s, v in zip(specs, values, strict=True) if s.keyword_only}
    return func(*args, **kwargs)


def coerce(value: Any, annotation: Any, name: str = "value") -> Any:
    """Convert a raw request value to *annotation*.

    ``None`` stays ``None``. Values that already have the target type are
    returned unchanged. Unrecognised booleans become ``False``; numbers
    that do not parse raise ``InvalidParameter``.
    """
    if value is None:
        return None

    target = primitive_target(annotation)
    if target is None or target is str:
        return value

    if target is bool:
        return to_bool(value)

    if target is int or target is float:
        if isinstance(value, target) and not isinstance(value, bool):
            return value
        try:
            return target(value)
        except (ValueError, TypeError) as exc:
            raise InvalidParameter(name, value, target.__name__) from exc

    # Collection target
    if isinstance(value, (*_COLLECTIONS, dict)):
        return value
    return target([value])


def to_bool(value: Any) -> bool:
    """``true``/``1``/``yes``/``on`` (any case) -> True; anything else -> False."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def primitive_target(annotation: Any) -> type | None:
    """The primitive type *annotation* coerces to, or ``None`` for pass-through."""
    if annotation is _EMPTY:
        return None

    if isinstance(annotation, str):
        annotation = _BUILTIN_NAMES.get(annotation.strip(), annotation)

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(members) != 1:
            return None
        return primitive_target(members[0])

    if origin in _COLLECTIONS:
        return origin

    if annotation in _PRIMITIVES:
        return annotation
    return None
