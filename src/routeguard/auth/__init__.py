"""
routeguard.auth

Authentication package.

Responsibilities:
- Principal types returned by providers.
- Provider abstraction plus the No-Auth, Basic, OIDC bearer and group-membership providers.
- Single-flight TTL cache and the provider registry.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Providers only depend on starlette's `Request` headers and an injected httpx client,
# so they can be exercised without a running app.
