"""
tests.conftest

Shared fixtures: a signing key with its certificate, a token minter, and a fake identity
authority + directory service served through `httpx.MockTransport`.
"""

from __future__ import annotations

import asyncio
import base64
import json
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import unquote

import httpx
import jwt
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from starlette.requests import Request

AUTHORITY = "https://login.example.test"
TENANT = "tenant-1"
APP_ID = "app-123"
DIRECTORY = "https://graph.example.test/v1.0"
KID = "kid-1"
JWKS_URI = f"{AUTHORITY}/{TENANT}/discovery/v2.0/keys"


def _self_signed(key: rsa.RSAPrivateKey) -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "routeguard-test")])
    now = datetime.now(tz=UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return base64.b64encode(cert.public_bytes(serialization.Encoding.DER)).decode()


@pytest.fixture(scope="session")
def signing_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate(signing_key: rsa.RSAPrivateKey) -> str:
    return _self_signed(signing_key)


@pytest.fixture
def mint(signing_key: rsa.RSAPrivateKey) -> Callable[..., str]:
    """
    Sign a user token for APP_ID valid for an hour; pass `claim=None` to drop a claim.
    """

    def _mint(
        claims: dict[str, Any] | None = None,
        *,
        kid: str = KID,
        key: Any = None,
        algorithm: str = "RS256",
    ) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "aud": APP_ID,
            "iat": now,
            "nbf": now - 5,
            "exp": now + 3600,
            "name": "Alice",
            "preferred_username": "alice@example.com",
        }
        payload.update(claims or {})
        payload = {k: v for k, v in payload.items() if v is not None}
        if algorithm == "none":
            return jwt.encode(payload, None, algorithm="none", headers={"kid": kid})
        return jwt.encode(payload, key or signing_key, algorithm=algorithm, headers={"kid": kid})

    return _mint


@dataclass
class FakeAuthority:
    certificate: str
    jwks_uri: str = JWKS_URI
    discovery_status: int = 200
    groups: dict[str, str] = field(default_factory=lambda: {"Admins": "gid-admins", "Ops": "gid-ops"})
    memberships: dict[str, list[str]] = field(default_factory=dict)
    delay: float = 0.0
    calls: Counter[str] = field(default_factory=Counter)
    requests: list[httpx.Request] = field(default_factory=list)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)

        path = request.url.path
        if path.endswith("/.well-known/openid-configuration"):
            self.calls["discovery"] += 1
            body = {"jwks_uri": self.jwks_uri} if self.jwks_uri else {"issuer": AUTHORITY}
            return httpx.Response(self.discovery_status, json=body)
        if str(request.url) == JWKS_URI:
            self.calls["jwks"] += 1
            return httpx.Response(200, json={"keys": [{"kid": KID, "x5c": [self.certificate]}]})
        if path.endswith("/oauth2/v2.0/token"):
            self.calls["token"] += 1
            return httpx.Response(200, json={"access_token": f"svc-token-{self.calls['token']}"})
        if path.endswith("/groups"):
            self.calls["groups"] += 1
            literal = request.url.params["$filter"].removeprefix("displayName eq '").removesuffix("'")
            name = literal.replace("''", "'")
            gid = self.groups.get(name)
            return httpx.Response(200, json={"value": [{"id": gid}] if gid else []})
        if path.endswith("/checkMemberGroups"):
            self.calls["membership"] += 1
            raw = request.url.raw_path.decode().partition("?")[0]
            username = unquote(raw.split("/")[-2])
            wanted = json.loads(request.content)["groupIds"]
            value = [g for g in self.memberships.get(username, []) if g in wanted]
            return httpx.Response(200, json={"value": value})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def authority(certificate: str) -> FakeAuthority:
    return FakeAuthority(certificate=certificate)


@pytest.fixture
def http(authority: FakeAuthority) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(authority))


@pytest.fixture
def oidc_settings() -> dict[str, Any]:
    # camelCase keys, as found in JSON config files.
    return {
        "authority": AUTHORITY,
        "tenantId": TENANT,
        "appId": APP_ID,
        "secret": "s3cret",
        "appIdAllowedList": ["Trusted-Service"],
    }


@pytest.fixture
def group_settings(oidc_settings: dict[str, Any]) -> dict[str, Any]:
    return {
        **oidc_settings,
        "directoryUrl": DIRECTORY,
        "securityGroups": ["Admins", "Ops", "Ghosts"],
    }


def make_request(
    *,
    authorization: str | None = None,
    path_params: dict[str, str] | None = None,
    query_string: bytes = b"",
    body: bytes = b"",
    method: str = "GET",
) -> Request:
    headers = [(b"authorization", authorization.encode())] if authorization else []
    scope = {
        "type": "http",
        "method": method,
        "path": "/",
        "headers": headers,
        "query_string": query_string,
        "path_params": path_params or {},
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def request_factory() -> Callable[..., Request]:
    return make_request
