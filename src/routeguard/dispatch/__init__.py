"""
routeguard.dispatch

Declarative routing on top of the auth providers.

Responsibilities:
- Decorators/markers that declare routes, auth requirements and parameter sources.
- Binding plans computed once per handler at registration.
- The dispatcher that resolves providers and mounts routes on the app.
"""

from routeguard.dispatch.declarations import (
    FromBody,
    PathParam,
    QueryParam,
    auth,
    delete,
    get,
    patch,
    post,
    put,
    route,
)
from routeguard.dispatch.dispatcher import Dispatcher, RouteRecord

__all__ = [
    "Dispatcher",
    "FromBody",
    "PathParam",
    "QueryParam",
    "RouteRecord",
    "auth",
    "delete",
    "get",
    "patch",
    "post",
    "put",
    "route",
]
