"""
routeguard.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Carry the per-config-key auth provider settings consumed by the provider registry.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Strict env-driven configuration; defaults are safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="ROUTEGUARD_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "routeguard"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Applied to every outbound call (discovery, key set, token, directory).
    http_timeout_seconds: float = 10.0

    # Auth provider settings keyed by config key, e.g.
    # ROUTEGUARD_AUTH_PROVIDERS='{"aadauth": {"tenantId": "...", "appId": "..."}}'
    auth_providers: dict[str, dict[str, Any]] = Field(default_factory=dict, repr=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Provider settings are validated lazily by each provider's config model, so a typo in
# one provider block only fails the routes that actually reference it.
