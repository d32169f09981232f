"""
routeguard.dispatch.dispatcher

Route registration and per-request dispatch.

Responsibilities:
- Scan handler groups once and build immutable route records (auth requirement +
  binding plan).
- Resolve the effective auth requirement: method > class > global NoAuth.
- Initialize every referenced provider at startup through the registry.
- Run auth, then binding, then the handler; map results and failures to responses.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_204_NO_CONTENT

from routeguard.auth.models import Principal
from routeguard.auth.registry import NO_AUTH, AuthRequirement, ProviderRegistry
from routeguard.dispatch.binding import ParamBinding, bind_arguments, build_binding_plan
from routeguard.dispatch.declarations import declared_auth, route_meta
from routeguard.errors import AuthenticationError, InternalError, RouteguardHTTPError
from routeguard.observability.logging import error_fields, get_logger

log = get_logger(__name__)

_COLON_PARAM = re.compile(r":(\w+)")


@dataclass(frozen=True, slots=True)
class RouteRecord:
    method: str
    path: str
    name: str
    handler: Callable[..., Any]
    owner: object
    auth: AuthRequirement
    plan: tuple[ParamBinding, ...]


def normalize_path(prefix: str, path: str) -> str:
    # Accept `/item/:id` as well as `/item/{id}`.
    joined = "/" + "/".join(p.strip("/") for p in (prefix, path) if p.strip("/"))
    return _COLON_PARAM.sub(r"{\1}", joined)


def _handler_functions(klass: type) -> Iterator[tuple[str, Callable[..., Any]]]:
    # Declaration order, with subclass overrides replacing the inherited function.
    found: dict[str, Callable[..., Any]] = {}
    for base in reversed(klass.__mro__):
        for name, member in vars(base).items():
            if inspect.isfunction(member):
                found[name] = member
    return iter(found.items())


def resolve_auth(func: Callable[..., Any], klass: type) -> AuthRequirement:
    return declared_auth(func) or declared_auth(klass) or NO_AUTH


class Dispatcher:
    def __init__(self, registry: ProviderRegistry) -> None:
        self.registry = registry
        self.routes: list[RouteRecord] = []
        self._groups: list[object] = []
        self.started = False

    def register(self, group: object, *, prefix: str = "") -> list[RouteRecord]:
        klass = type(group)
        records: list[RouteRecord] = []
        for name, func in _handler_functions(klass):
            meta = route_meta(func)
            if meta is None:
                continue
            records.append(
                RouteRecord(
                    method=meta.method,
                    path=normalize_path(prefix, meta.path),
                    name=f"{klass.__name__}.{name}",
                    handler=func,
                    owner=group,
                    auth=resolve_auth(func, klass),
                    plan=build_binding_plan(func, has_receiver=True),
                )
            )
        self.routes.extend(records)
        self._groups.append(group)
        log.info("handler_group_registered", group=klass.__name__, routes=len(records))
        return records

    def mount(self, app: FastAPI) -> None:
        for record in self.routes:
            app.router.add_route(
                record.path,
                self._endpoint(record),
                methods=[record.method],
                name=record.name,
                include_in_schema=False,
            )

    async def startup(self) -> None:
        # One provider per distinct requirement; InitializationError aborts startup.
        for requirement in dict.fromkeys(r.auth for r in self.routes):
            await self.registry.get(requirement)
        for group in self._groups:
            init = getattr(group, "init", None)
            if init is not None and inspect.iscoroutinefunction(init):
                await init()
        self.started = True
        log.info("dispatcher_started", routes=len(self.routes))

    def _endpoint(self, record: RouteRecord) -> Callable[[Request], Any]:
        async def endpoint(request: Request) -> Response:
            return await self.dispatch(record, request)

        return endpoint

    async def dispatch(self, record: RouteRecord, request: Request) -> Response:
        try:
            principal = await self._authenticate(record, request)
            kwargs = await bind_arguments(record.plan, request=request, principal=principal, instance=record.owner)
            if inspect.iscoroutinefunction(record.handler):
                result = await record.handler(**kwargs)
            else:
                # Blocking handlers must not stall the event loop.
                result = await run_in_threadpool(record.handler, **kwargs)
        except RouteguardHTTPError:
            raise
        except Exception as e:
            log.exception("handler_failed", route=record.name, **error_fields(e))
            raise InternalError() from e
        return to_response(result)

    async def _authenticate(self, record: RouteRecord, request: Request) -> Principal:
        provider = await self.registry.get(record.auth)
        try:
            return await provider.authenticate(request)
        except AuthenticationError:
            raise
        except Exception as e:
            log.warning("authentication_failed", provider=record.auth.label, **error_fields(e))
            raise AuthenticationError() from e


def to_response(result: Any) -> Response:
    if result is None:
        return Response(status_code=HTTP_204_NO_CONTENT)
    if isinstance(result, Response):
        return result
    return JSONResponse(jsonable_encoder(result))


# --- Module Notes -----------------------------------------------------------
# Routes are plain starlette routes on the FastAPI router: FastAPI's own parameter
# injection is bypassed, binding plans decide every argument.
