"""
tests.test_binding

Binding plans: source precedence and conversion failures.
"""

from __future__ import annotations

from typing import Annotated

import pytest
from pydantic import BaseModel
from starlette.requests import Request

from routeguard.auth.models import Anonymous, Principal, UsernamePrincipal
from routeguard.dispatch.binding import ParamBinding, ParamSource, bind_arguments, build_binding_plan
from routeguard.dispatch.declarations import FromBody, PathParam, QueryParam
from routeguard.errors import BadRequest

from conftest import make_request


class Order(BaseModel):
    sku: str
    quantity: int


class Items:
    async def explicit(
        self,
        item_id: Annotated[int, PathParam("id")],
        page: Annotated[int, QueryParam()],
        order: Annotated[Order, FromBody()],
        who: UsernamePrincipal,
        ctx: Request,
    ) -> None: ...

    async def implicit(self, id: int, tags: list[str], limit: int = 10, note: str | None = None) -> None: ...

    async def shadowed(self, id: Annotated[str, QueryParam()]) -> None: ...

    async def by_base_type(self, principal: Principal) -> None: ...


def test_plan_follows_precedence() -> None:
    plan = build_binding_plan(Items.explicit, has_receiver=True)
    assert [(b.name, b.source, b.key) for b in plan] == [
        ("self", ParamSource.INSTANCE, ""),
        ("item_id", ParamSource.PATH, "id"),
        ("page", ParamSource.QUERY, "page"),
        ("order", ParamSource.BODY, ""),
        ("who", ParamSource.PRINCIPAL, ""),
        ("ctx", ParamSource.CONTEXT, ""),
    ]


def test_implicit_plan_records_optionality() -> None:
    plan = {b.name: b for b in build_binding_plan(Items.implicit, has_receiver=True)}
    assert plan["id"].source is ParamSource.IMPLICIT
    assert plan["tags"].multi
    assert plan["limit"].optional
    assert not plan["id"].optional


def test_variadic_parameters_are_rejected() -> None:
    async def handler(self, *args: str) -> None: ...

    with pytest.raises(TypeError):
        build_binding_plan(handler, has_receiver=True)


@pytest.mark.asyncio
async def test_explicit_sources_are_bound_and_converted() -> None:
    items = Items()
    principal = UsernamePrincipal("alice")
    request = make_request(
        path_params={"id": "42"},
        query_string=b"page=3",
        body=b'{"sku": "A-1", "quantity": "2"}',
        method="POST",
    )

    kwargs = await bind_arguments(
        build_binding_plan(Items.explicit, has_receiver=True),
        request=request,
        principal=principal,
        instance=items,
    )

    assert kwargs == {
        "self": items,
        "item_id": 42,
        "page": 3,
        "order": Order(sku="A-1", quantity=2),
        "who": principal,
        "ctx": request,
    }


@pytest.mark.asyncio
async def test_non_numeric_path_segment_is_bad_request() -> None:
    with pytest.raises(BadRequest) as exc:
        await bind_arguments(
            build_binding_plan(Items.explicit, has_receiver=True),
            request=make_request(path_params={"id": "abc"}, query_string=b"page=1", body=b"{}"),
            principal=Anonymous(),
            instance=Items(),
        )
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_invalid_body_is_bad_request() -> None:
    with pytest.raises(BadRequest):
        await bind_arguments(
            build_binding_plan(Items.explicit, has_receiver=True),
            request=make_request(path_params={"id": "1"}, query_string=b"page=1", body=b"{not json"),
            principal=Anonymous(),
            instance=Items(),
        )


@pytest.mark.asyncio
async def test_implicit_prefers_path_then_query_then_default() -> None:
    plan = build_binding_plan(Items.implicit, has_receiver=True)
    request = make_request(path_params={"id": "7"}, query_string=b"id=99&tags=a&tags=b")

    kwargs = await bind_arguments(plan, request=request, principal=Anonymous(), instance=Items())

    # `limit` and `note` are omitted so the handler defaults apply.
    assert kwargs == {"self": kwargs["self"], "id": 7, "tags": ["a", "b"]}


@pytest.mark.asyncio
async def test_implicit_falls_back_to_query() -> None:
    plan = build_binding_plan(Items.implicit, has_receiver=True)
    request = make_request(query_string=b"id=5&tags=x&limit=1&limit=2")

    kwargs = await bind_arguments(plan, request=request, principal=Anonymous(), instance=Items())

    assert kwargs["id"] == 5
    assert kwargs["tags"] == ["x"]
    # Scalars take the last repeated value.
    assert kwargs["limit"] == 2


@pytest.mark.asyncio
async def test_missing_required_parameter_is_bad_request() -> None:
    plan = build_binding_plan(Items.implicit, has_receiver=True)
    with pytest.raises(BadRequest):
        await bind_arguments(plan, request=make_request(query_string=b"tags=x"), principal=Anonymous(), instance=Items())


@pytest.mark.asyncio
async def test_explicit_query_ignores_path_segment_of_same_name() -> None:
    plan = build_binding_plan(Items.shadowed, has_receiver=True)
    request = make_request(path_params={"id": "from-path"}, query_string=b"id=from-query")

    kwargs = await bind_arguments(plan, request=request, principal=Anonymous(), instance=Items())

    assert kwargs["id"] == "from-query"


@pytest.mark.asyncio
async def test_principal_base_type_receives_any_principal() -> None:
    plan = build_binding_plan(Items.by_base_type, has_receiver=True)
    principal = Anonymous()
    kwargs = await bind_arguments(plan, request=make_request(), principal=principal, instance=Items())
    assert kwargs["principal"] is principal


@pytest.mark.parametrize("source", [ParamSource.PATH, ParamSource.QUERY, ParamSource.BODY, ParamSource.IMPLICIT])
def test_converting_binding_requires_an_adapter(source: ParamSource) -> None:
    with pytest.raises(TypeError, match="needs a type adapter"):
        ParamBinding("id", source, "id")


def test_injected_binding_needs_no_adapter() -> None:
    assert ParamBinding("who", ParamSource.PRINCIPAL).adapter is None
