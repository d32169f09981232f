"""
routeguard.auth.basic

HTTP Basic authentication.

Responsibilities:
- Parse `Authorization: Basic <base64(user:pass)>`.
- Delegate verification to a pluggable `CredentialStore`.
"""

from __future__ import annotations

import base64
import binascii
import hmac
from collections.abc import Mapping
from typing import Protocol

import httpx
from pydantic import Field
from starlette.requests import Request

from routeguard.auth.base import AuthProvider, ProviderConfig, split_authorization
from routeguard.auth.models import Principal, UsernamePrincipal
from routeguard.errors import AuthenticationError


class CredentialStore(Protocol):
    async def verify(self, username: str, password: str) -> bool: ...


class InMemoryCredentialStore:
    def __init__(self, users: Mapping[str, str] | None = None) -> None:
        self.users: dict[str, str] = dict(users or {})

    async def verify(self, username: str, password: str) -> bool:
        expected = self.users.get(username)
        if expected is None:
            return False
        return hmac.compare_digest(expected.encode(), password.encode())


class BasicAuthConfig(ProviderConfig):
    users: dict[str, str] = Field(default_factory=dict, repr=False)


class BasicAuth(AuthProvider):
    config_model = BasicAuthConfig
    config: BasicAuthConfig

    def __init__(
        self,
        config: BasicAuthConfig | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        store: CredentialStore | None = None,
    ) -> None:
        super().__init__(config, http=http)
        self.store: CredentialStore = store or InMemoryCredentialStore(self.config.users)

    async def authenticate(self, request: Request) -> Principal:
        parts = split_authorization(request)
        if parts is None or parts[0].lower() != "basic":
            raise AuthenticationError()

        try:
            decoded = base64.b64decode(parts[1], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise AuthenticationError() from e

        username, sep, password = decoded.partition(":")
        if not sep:
            raise AuthenticationError()
        if not await self.store.verify(username, password):
            raise AuthenticationError()
        return UsernamePrincipal(username=username)


# --- Module Notes -----------------------------------------------------------
# Swap `store` for a database or directory-backed implementation; the provider only
# needs the async `verify(username, password)` call.
