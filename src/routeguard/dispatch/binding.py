"""
routeguard.dispatch.binding

Parameter binding plans.

Responsibilities:
- Inspect a handler signature once and decide where each parameter comes from.
- Apply the plan per request, converting raw strings/bodies with pydantic.
- Surface every conversion failure as `BadRequest`.
"""

from __future__ import annotations

import enum
import inspect
import types
import typing
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import TypeAdapter, ValidationError
from starlette.requests import Request

from routeguard.auth.models import Principal
from routeguard.dispatch.declarations import FromBody, PathParam, QueryParam
from routeguard.errors import BadRequest

_MISSING = object()
_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, Sequence)


class ParamSource(enum.StrEnum):
    PATH = "path"
    QUERY = "query"
    BODY = "body"
    INSTANCE = "instance"
    PRINCIPAL = "principal"
    CONTEXT = "context"
    IMPLICIT = "implicit"


_CONVERTED_SOURCES = frozenset({ParamSource.PATH, ParamSource.QUERY, ParamSource.BODY, ParamSource.IMPLICIT})


@dataclass(frozen=True, slots=True)
class ParamBinding:
    name: str
    source: ParamSource
    # Path segment / query parameter name for PATH, QUERY and IMPLICIT.
    key: str = ""
    optional: bool = False
    multi: bool = False
    adapter: TypeAdapter[Any] | None = None

    def __post_init__(self) -> None:
        if self.source in _CONVERTED_SOURCES and self.adapter is None:
            raise TypeError(f"Parameter '{self.name}' bound from {self.source} needs a type adapter")


def _split_annotated(hint: Any) -> tuple[Any, tuple[Any, ...]]:
    if typing.get_origin(hint) is Annotated:
        base, *extras = typing.get_args(hint)
        return base, tuple(extras)
    return hint, ()


def _unwrap_optional(hint: Any) -> Any:
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _is_subclass(hint: Any, parent: type) -> bool:
    hint = _unwrap_optional(hint)
    return inspect.isclass(hint) and issubclass(hint, parent)


def _is_multi(hint: Any) -> bool:
    return typing.get_origin(_unwrap_optional(hint)) in _SEQUENCE_ORIGINS


def build_binding_plan(func: Callable[..., Any], *, has_receiver: bool) -> tuple[ParamBinding, ...]:
    """
    Precompute the source of every parameter, in precedence order:
    explicit path/query/body marker, receiver, principal, request, then implicit
    path-or-query lookup by name.
    """
    signature = inspect.signature(func)
    hints = typing.get_type_hints(func, include_extras=True)

    plan: list[ParamBinding] = []
    for index, (name, param) in enumerate(signature.parameters.items()):
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            raise TypeError(f"{func.__qualname__}: parameter '{name}' cannot be bound by name")

        hint = hints.get(name, Any)
        base, markers = _split_annotated(hint)
        optional = param.default is not inspect.Parameter.empty
        marker = next((m for m in markers if isinstance(m, PathParam | QueryParam | FromBody)), None)

        if isinstance(marker, PathParam):
            binding = ParamBinding(name, ParamSource.PATH, marker.name or name, optional, adapter=TypeAdapter(base))
        elif isinstance(marker, QueryParam):
            binding = ParamBinding(
                name,
                ParamSource.QUERY,
                marker.name or name,
                optional,
                multi=_is_multi(base),
                adapter=TypeAdapter(base),
            )
        elif isinstance(marker, FromBody):
            binding = ParamBinding(name, ParamSource.BODY, optional=optional, adapter=TypeAdapter(base))
        elif has_receiver and index == 0:
            binding = ParamBinding(name, ParamSource.INSTANCE)
        elif _is_subclass(base, Principal):
            binding = ParamBinding(name, ParamSource.PRINCIPAL)
        elif _is_subclass(base, Request):
            binding = ParamBinding(name, ParamSource.CONTEXT)
        else:
            binding = ParamBinding(
                name,
                ParamSource.IMPLICIT,
                name,
                optional,
                multi=_is_multi(base),
                adapter=TypeAdapter(base),
            )
        plan.append(binding)
    return tuple(plan)


def _convert(binding: ParamBinding, value: Any) -> Any:
    try:
        return binding.adapter.validate_python(value)
    except ValidationError as e:
        raise BadRequest(f"Invalid value for parameter '{binding.name}'") from e


def _from_path(binding: ParamBinding, request: Request) -> Any:
    value = request.path_params.get(binding.key)
    if value is None:
        return _MISSING
    return _convert(binding, value)


def _from_query(binding: ParamBinding, request: Request) -> Any:
    values = request.query_params.getlist(binding.key)
    if not values:
        return _MISSING
    # Sequence types get every value; scalars take the last one.
    return _convert(binding, values if binding.multi else values[-1])


async def _from_body(binding: ParamBinding, request: Request) -> Any:
    body = await request.body()
    if not body:
        return _MISSING
    try:
        return binding.adapter.validate_json(body)
    except ValidationError as e:
        raise BadRequest("Invalid request body") from e


async def bind_arguments(
    plan: Sequence[ParamBinding],
    *,
    request: Request,
    principal: Principal,
    instance: object,
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for binding in plan:
        match binding.source:
            case ParamSource.INSTANCE:
                value = instance
            case ParamSource.PRINCIPAL:
                value = principal
            case ParamSource.CONTEXT:
                value = request
            case ParamSource.PATH:
                value = _from_path(binding, request)
            case ParamSource.QUERY:
                value = _from_query(binding, request)
            case ParamSource.BODY:
                value = await _from_body(binding, request)
            case ParamSource.IMPLICIT:
                value = _from_path(binding, request)
                if value is _MISSING:
                    value = _from_query(binding, request)

        if value is _MISSING:
            if binding.optional:
                # Leave it to the handler's default.
                continue
            raise BadRequest(f"Missing parameter '{binding.name}'")
        kwargs[binding.name] = value
    return kwargs


# --- Module Notes -----------------------------------------------------------
# Plans are immutable and shared by every request on the route; pydantic adapters are
# built once here rather than per call.
