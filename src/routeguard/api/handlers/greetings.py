"""
routeguard.api.handlers.greetings

Sample handler group exercising each binding source and auth level.

Responsibilities:
- Demonstrate class-level OIDC auth with per-method overrides.
- Demonstrate path/query/body/principal/request binding.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field
from starlette.requests import Request

from routeguard.auth.base import NoAuth
from routeguard.auth.basic import BasicAuth
from routeguard.auth.models import ServiceOrUserPrincipal, UsernamePrincipal
from routeguard.auth.oidc import OidcAuth
from routeguard.dispatch import FromBody, PathParam, QueryParam, auth, get, post


class GreetingParams(BaseModel):
    user: list[str] = Field(default_factory=list, min_length=1)


@auth(OidcAuth, config_key="aadauth")
class Greetings:
    @get("/")
    @auth(NoAuth)
    async def index(self) -> str:
        return "OK"

    @get("/hello")
    async def hello(self, user: ServiceOrUserPrincipal) -> str:
        return f"Hello, {user.name or user.service_id}."

    @get("/hello1/:user")
    @auth(NoAuth)
    async def hello1(self, user: Annotated[str, PathParam("user")]) -> str:
        return f"Hello1 {user}"

    @get("/hello2")
    @auth(NoAuth)
    async def hello2(self, user: Annotated[str, QueryParam("user")]) -> str:
        return f"Hello2 {user}"

    @post("/hello3")
    @auth(NoAuth)
    async def hello3(self, param: Annotated[GreetingParams, FromBody()]) -> str:
        return f"Hello3 {param.user[0]}"

    @get("/hello4/:user")
    @auth(NoAuth)
    async def hello4(self, user: Annotated[int, PathParam("user")]) -> str:
        return f"Hello4 {user}"

    @get("/hello5/:user")
    @auth(NoAuth)
    async def hello5(self, user: Annotated[int, PathParam()], ctx: Request) -> str:
        return f"Hello5 {user} {ctx.method}"

    @get("/hello6/:user")
    @auth(BasicAuth, config_key="auth")
    async def hello6(self, user: int, p: UsernamePrincipal, ctx: Request) -> str:
        return f"Hello6 {p.username} {user}"
