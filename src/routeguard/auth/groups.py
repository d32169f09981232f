"""
routeguard.auth.groups

Group-membership authentication.

Responsibilities:
- Run the OIDC bearer checks, then require a USER principal.
- Resolve configured group display names to directory object ids at initialization.
- Check (and cache per username) which configured groups the caller belongs to.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from urllib.parse import quote

import httpx
from pydantic import Field
from starlette.requests import Request

from routeguard.auth.cache import SingleFlightCache
from routeguard.auth.oidc import OidcAuth, OidcAuthConfig, _utcnow
from routeguard.auth.models import ServiceOrUserPrincipal
from routeguard.errors import AuthenticationError, InitializationError
from routeguard.observability.logging import error_fields, get_logger

log = get_logger(__name__)

MEMBERSHIP_TTL = timedelta(minutes=10)


def _odata_literal(value: str) -> str:
    # OData string literals escape a quote by doubling it.
    return value.replace("'", "''")


class GroupMembershipAuthConfig(OidcAuthConfig):
    security_groups: list[str] = Field(default_factory=list)
    directory_url: str = "https://graph.microsoft.com/v1.0"


class GroupMembershipAuth(OidcAuth):
    config_model = GroupMembershipAuthConfig
    config: GroupMembershipAuthConfig

    def __init__(
        self,
        config: GroupMembershipAuthConfig | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(config, http=http, clock=clock)
        self.group_ids: list[str] = []
        self.membership_cache: SingleFlightCache[str, list[str]] = SingleFlightCache(
            self._check_member_groups, ttl=MEMBERSHIP_TTL
        )

    async def initialize(self) -> None:
        await super().initialize()
        try:
            resolved = [await self._resolve_group_id(name) for name in self.config.security_groups]
        except (httpx.HTTPError, ValueError, TypeError, KeyError) as e:
            log.error("group_resolution_failed", **error_fields(e))
            raise InitializationError("Could not resolve security groups") from e
        self.group_ids = [gid for gid in resolved if gid]
        log.info(
            "security_groups_resolved",
            configured=len(self.config.security_groups),
            resolved=len(self.group_ids),
        )

    async def authenticate(self, request: Request) -> ServiceOrUserPrincipal:
        principal = await super().authenticate(request)

        # Group checks are for users only.
        if principal.is_service:
            raise AuthenticationError()

        try:
            groups = await self.membership_cache.get(principal.username)
        except Exception as e:
            log.warning("group_membership_check_failed", username=principal.username, **error_fields(e))
            raise AuthenticationError() from e

        if not groups:
            log.info("authentication_failed", provider=type(self).__name__, reason="not in security groups")
            raise AuthenticationError()
        return principal

    async def _resolve_group_id(self, name: str) -> str:
        token = await self.service_token()
        r = await self.http.get(
            f"{self.config.directory_url}/groups",
            params={"$filter": f"displayName eq '{_odata_literal(name)}'", "$select": "id"},
            headers={"Authorization": f"Bearer {token}"},
        )
        r.raise_for_status()
        matches = r.json().get("value", [])
        if not matches:
            log.warning("security_group_not_found", group=name)
            return ""
        return str(matches[0]["id"])

    async def _check_member_groups(self, username: str) -> list[str]:
        log.info("group_membership_checking", username=username)
        token = await self.service_token()
        r = await self.http.post(
            f"{self.config.directory_url}/users/{quote(username, safe='@')}/checkMemberGroups",
            headers={"Authorization": f"Bearer {token}"},
            json={"groupIds": self.group_ids},
        )
        r.raise_for_status()
        return [str(v) for v in r.json().get("value", [])]


# --- Module Notes -----------------------------------------------------------
# Group names are resolved once; renaming a group in the directory requires a restart
# (or a fresh provider instance) to pick up the new id.
