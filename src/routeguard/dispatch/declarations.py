"""
routeguard.dispatch.declarations

Declarative metadata for handler groups.

Responsibilities:
- `route`/`get`/`post`/... decorators marking handler methods.
- `auth` decorator for class-level defaults and method-level overrides.
- `PathParam`/`QueryParam`/`FromBody` markers used inside `typing.Annotated`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from routeguard.auth.base import AuthProvider
from routeguard.auth.registry import AuthRequirement

ROUTE_ATTR = "__routeguard_route__"
AUTH_ATTR = "__routeguard_auth__"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RouteMeta:
    method: str
    path: str


@dataclass(frozen=True, slots=True)
class PathParam:
    # Empty name means "use the parameter's own name".
    name: str = ""


@dataclass(frozen=True, slots=True)
class QueryParam:
    name: str = ""


@dataclass(frozen=True, slots=True)
class FromBody:
    pass


def route(method: str, path: str) -> Callable[[T], T]:
    meta = RouteMeta(method=method.upper(), path=path)

    def decorator(func: T) -> T:
        setattr(func, ROUTE_ATTR, meta)
        return func

    return decorator


def get(path: str) -> Callable[[T], T]:
    return route("GET", path)


def post(path: str) -> Callable[[T], T]:
    return route("POST", path)


def put(path: str) -> Callable[[T], T]:
    return route("PUT", path)


def delete(path: str) -> Callable[[T], T]:
    return route("DELETE", path)


def patch(path: str) -> Callable[[T], T]:
    return route("PATCH", path)


def auth(provider_type: type[AuthProvider], config_key: str = "") -> Callable[[T], T]:
    """
    Declare the auth provider for a handler group (class) or a single handler (function).
    A method-level declaration overrides the class-level one.
    """
    requirement = AuthRequirement(provider_type=provider_type, config_key=config_key)

    def decorator(target: T) -> T:
        setattr(target, AUTH_ATTR, requirement)
        return target

    return decorator


def route_meta(func: Any) -> RouteMeta | None:
    return getattr(func, ROUTE_ATTR, None)


def declared_auth(target: Any) -> AuthRequirement | None:
    # Class attributes are looked up through the MRO so subclasses inherit the default.
    return getattr(target, AUTH_ATTR, None)


# --- Module Notes -----------------------------------------------------------
# Decorators only attach metadata; nothing is resolved until `Dispatcher.register`.
