"""
tests.test_models

Principal invariants.
"""

from __future__ import annotations

import pytest

from routeguard.auth.models import (
    Anonymous,
    NamedPrincipal,
    Principal,
    PrincipalKind,
    ServiceOrUserPrincipal,
    UsernamePrincipal,
)


def test_user_principal_requires_username_and_no_service_id() -> None:
    p = ServiceOrUserPrincipal(kind=PrincipalKind.USER, name="Alice", username="alice@example.com")
    assert not p.is_service

    with pytest.raises(ValueError):
        ServiceOrUserPrincipal(kind=PrincipalKind.USER, name="Alice", username="")
    with pytest.raises(ValueError):
        ServiceOrUserPrincipal(kind=PrincipalKind.USER, username="alice", service_id="svc")


def test_service_principal_requires_service_id_only() -> None:
    p = ServiceOrUserPrincipal(kind=PrincipalKind.SERVICE, service_id="svc")
    assert p.is_service

    with pytest.raises(ValueError):
        ServiceOrUserPrincipal(kind=PrincipalKind.SERVICE, service_id="")
    with pytest.raises(ValueError):
        ServiceOrUserPrincipal(kind=PrincipalKind.SERVICE, service_id="svc", username="alice")


def test_principals_share_the_capability_type() -> None:
    assert isinstance(Anonymous(), Principal)
    assert UsernamePrincipal("alice") == UsernamePrincipal(username="alice")
    assert NamedPrincipal("Alice").name == "Alice"
