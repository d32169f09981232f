"""
routeguard.auth.oidc

Bearer-token (OIDC/JWT) authentication against an identity authority.

Responsibilities:
- Discover the authority's signing keys at initialization.
- Validate incoming bearer tokens (key id, RS256 signature, audience, time window).
- Resolve the caller into a USER or allow-listed SERVICE principal.
- Acquire (and cache) this service's own client-credentials token for outbound calls.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from pydantic import Field
from starlette.requests import Request

from routeguard.auth import jwt as jwt_helpers
from routeguard.auth.base import AuthProvider, ProviderConfig, split_authorization
from routeguard.auth.cache import SingleFlightCache
from routeguard.auth.models import PrincipalKind, ServiceOrUserPrincipal
from routeguard.errors import AuthenticationError, InitializationError
from routeguard.observability.logging import error_fields, get_logger

log = get_logger(__name__)

SERVICE_TOKEN_TTL = timedelta(minutes=30)
_SERVICE_TOKEN_KEY = 0


class OidcAuthConfig(ProviderConfig):
    authority: str = "https://login.microsoftonline.com"
    tenant_id: str = "common"
    audience: str = ""
    app_id: str = ""
    secret: str = Field(default="", repr=False)
    app_id_allowed_list: list[str] = Field(default_factory=list)
    scope: str = "https://graph.microsoft.com/.default"

    @property
    def tenant_authority(self) -> str:
        return f"{self.authority.rstrip('/')}/{self.tenant_id}"

    @property
    def discovery_url(self) -> str:
        return f"{self.tenant_authority}/v2.0/.well-known/openid-configuration"

    @property
    def token_url(self) -> str:
        return f"{self.tenant_authority}/oauth2/v2.0/token"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _timestamp(claims: dict[str, Any], name: str) -> datetime:
    # Missing time claims read as the epoch, so a token without `exp` is always expired.
    value = claims.get(name, 0)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"Claim '{name}' is not numeric")
    return datetime.fromtimestamp(value, tz=UTC)


class OidcAuth(AuthProvider):
    config_model = OidcAuthConfig
    config: OidcAuthConfig

    def __init__(
        self,
        config: OidcAuthConfig | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(config, http=http)
        self._clock = clock
        self._keys: dict[str, RSAPublicKey] = {}
        self._allowed_apps = frozenset(a.lower() for a in self.config.app_id_allowed_list)
        self.token_cache: SingleFlightCache[int, str] = SingleFlightCache(
            self._acquire_service_token, ttl=SERVICE_TOKEN_TTL
        )

    @property
    def signing_keys(self) -> dict[str, RSAPublicKey]:
        return dict(self._keys)

    async def initialize(self) -> None:
        await self.refresh_keys()

    async def refresh_keys(self) -> None:
        cfg = self.config
        try:
            r = await self.http.get(cfg.discovery_url)
            r.raise_for_status()
            jwks_uri = r.json().get("jwks_uri", "")
            if not jwks_uri:
                # Fail closed later: every signature check misses the key map.
                log.warning("oidc_discovery_without_jwks_uri", url=cfg.discovery_url)
                self._keys = {}
                return

            r = await self.http.get(jwks_uri)
            r.raise_for_status()
            self._keys = jwt_helpers.parse_key_set(r.json())
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            log.error("oidc_discovery_failed", url=cfg.discovery_url, **error_fields(e))
            raise InitializationError(f"OIDC discovery failed for {cfg.tenant_authority}") from e

        log.info("oidc_keys_loaded", authority=cfg.tenant_authority, key_ids=sorted(self._keys))

    async def authenticate(self, request: Request) -> ServiceOrUserPrincipal:
        parts = split_authorization(request)
        if parts is None or parts[0].lower() != "bearer" or not parts[1]:
            raise AuthenticationError()

        try:
            return self._validate(parts[1])
        except AuthenticationError as e:
            log.info("authentication_failed", provider=type(self).__name__, reason=e.detail)
            raise
        except Exception as e:
            # Decoding/type problems: log detail, expose nothing.
            log.warning("authentication_failed", provider=type(self).__name__, **error_fields(e))
            raise AuthenticationError() from e

    def _validate(self, token: str) -> ServiceOrUserPrincipal:
        cfg = self.config

        try:
            kid = jwt_helpers.key_id(token)
            key = self._keys.get(kid)
            if key is None:
                raise AuthenticationError("Unknown signing key.")
            claims = jwt_helpers.verify_signature(token=token, key=key)
        except jwt_helpers.JwtValidationError as e:
            raise AuthenticationError("Invalid token.") from e

        expected_aud = cfg.audience or cfg.app_id
        if claims.get("aud", "") != expected_aud:
            raise AuthenticationError("The token is not for this audience.")

        issued_at = _timestamp(claims, "iat")
        not_before = _timestamp(claims, "nbf")
        expires_at = _timestamp(claims, "exp")
        now = self._clock()
        if now < not_before or now > expires_at:
            raise AuthenticationError("Token expired.")

        username = claims.get("preferred_username") or ""
        if username:
            return ServiceOrUserPrincipal(
                kind=PrincipalKind.USER,
                name=str(claims.get("name", "")),
                username=str(username),
                issued_at=issued_at,
                not_before=not_before,
                expires_at=expires_at,
            )

        # v1 tokens carry `appid`, v2 tokens carry `azp`.
        service_id = str(claims.get("appid") or claims.get("azp") or "")
        if not service_id:
            raise AuthenticationError()
        if service_id.lower() not in self._allowed_apps:
            raise AuthenticationError("Service is not allowed.")
        return ServiceOrUserPrincipal(
            kind=PrincipalKind.SERVICE,
            service_id=service_id,
            issued_at=issued_at,
            not_before=not_before,
            expires_at=expires_at,
        )

    async def service_token(self) -> str:
        return await self.token_cache.get(_SERVICE_TOKEN_KEY)

    async def _acquire_service_token(self, _: int) -> str:
        cfg = self.config
        log.info("service_token_acquiring", url=cfg.token_url)
        r = await self.http.post(
            cfg.token_url,
            data={
                "client_id": cfg.app_id,
                "scope": cfg.scope,
                "client_secret": cfg.secret,
                "grant_type": "client_credentials",
            },
        )
        r.raise_for_status()
        token = r.json().get("access_token", "")
        if not token:
            raise ValueError("Token endpoint returned no access_token")
        return token


# --- Module Notes -----------------------------------------------------------
# The service token is this provider's own identity for downstream calls (see
# `auth.groups`); it is never used to validate incoming callers.
