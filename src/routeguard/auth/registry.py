"""
routeguard.auth.registry

Provider registry keyed by (provider type, config key).

Responsibilities:
- Construct each provider from its config block at most once.
- Run `initialize()` exactly once per instance, even under concurrent first use.
- Serve the process-wide `NoAuth` default without any settings.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from routeguard.auth.base import AuthProvider, NoAuth
from routeguard.auth.cache import SingleFlightCache
from routeguard.errors import InitializationError
from routeguard.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AuthRequirement:
    provider_type: type[AuthProvider]
    config_key: str = ""

    @property
    def label(self) -> str:
        return f"{self.provider_type.__name__}[{self.config_key}]" if self.config_key else self.provider_type.__name__


NO_AUTH = AuthRequirement(NoAuth)


class ProviderRegistry:
    def __init__(
        self,
        *,
        provider_settings: Mapping[str, Mapping[str, Any]] | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = dict(provider_settings or {})
        self._http = http
        self._providers: SingleFlightCache[AuthRequirement, AuthProvider] = SingleFlightCache(
            self._create, ttl=None
        )
        self.constructed: list[AuthRequirement] = []

    async def get(self, requirement: AuthRequirement) -> AuthProvider:
        return await self._providers.get(requirement)

    def __contains__(self, requirement: object) -> bool:
        return requirement in self._providers

    async def _create(self, requirement: AuthRequirement) -> AuthProvider:
        key = requirement.config_key
        if key and key not in self._settings:
            raise InitializationError(f"No auth provider settings under config key '{key}'")

        provider = requirement.provider_type.from_config(self._settings.get(key), http=self._http)
        log.info("auth_provider_initializing", provider=requirement.label)
        await provider.initialize()
        self.constructed.append(requirement)
        return provider


# --- Module Notes -----------------------------------------------------------
# Failed initializations are not cached (see `SingleFlightCache`), so a retry after a
# transient outage constructs a fresh instance.
