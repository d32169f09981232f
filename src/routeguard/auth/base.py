"""
routeguard.auth.base

Auth provider abstraction.

Responsibilities:
- Define the `AuthProvider` contract (`initialize` + `authenticate`).
- Provide the config-model base that provider settings are parsed into.
- Provide `NoAuth`, the process-wide default provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Self

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from starlette.requests import Request

from routeguard.auth.models import Anonymous, Principal
from routeguard.errors import InitializationError


class ProviderConfig(BaseModel):
    """
    Immutable provider settings. Accepts snake_case or camelCase keys.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AuthProvider(ABC):
    config_model: ClassVar[type[ProviderConfig]] = ProviderConfig

    def __init__(self, config: ProviderConfig | None = None, *, http: httpx.AsyncClient | None = None) -> None:
        self.config = config if config is not None else self.config_model()
        self._http = http

    @classmethod
    def from_config(cls, raw: Mapping[str, Any] | None, *, http: httpx.AsyncClient | None = None) -> Self:
        try:
            config = cls.config_model.model_validate(dict(raw or {}))
        except ValidationError as e:
            raise InitializationError(f"Invalid configuration for {cls.__name__}: {e}") from e
        return cls(config, http=http)

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            raise InitializationError(f"{type(self).__name__} requires an HTTP client")
        return self._http

    async def initialize(self) -> None:
        """
        Lifecycle hook run once before the provider serves requests.
        """

    @abstractmethod
    async def authenticate(self, request: Request) -> Principal:
        """
        Return the caller's principal or raise `AuthenticationError`.
        """


class NoAuth(AuthProvider):
    async def authenticate(self, request: Request) -> Principal:
        return Anonymous()


def split_authorization(request: Request) -> tuple[str, str] | None:
    # Returns (scheme, credentials) or None when the header is missing or has one token.
    header = request.headers.get("authorization")
    if not header or not header.strip():
        return None
    parts = header.strip().split(None, 1)
    if len(parts) != 2:
        return None
    return parts[0], parts[1].strip()


# --- Module Notes -----------------------------------------------------------
# Providers may read request headers only; they never touch body, state or response.
