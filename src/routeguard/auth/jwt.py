"""
routeguard.auth.jwt

JWT and signing-key helpers for the OIDC bearer provider.

Responsibilities:
- Turn a published signing-key set (JWKS with `x5c` certificates) into a
  `kid -> RSA public key` map.
- Read the key id from an unverified token header.
- Verify an RS256 signature and return the raw claims. Claim checks (audience, time
  window, identity) are done by the provider so their order and messages are explicit.
"""

from __future__ import annotations

import base64
from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from cryptography.x509 import load_der_x509_certificate
from jwt import InvalidTokenError

from routeguard.observability.logging import get_logger

log = get_logger(__name__)

ALGORITHM = "RS256"

_SIGNATURE_ONLY = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
}


class JwtValidationError(Exception):
    pass


def public_key_from_x5c(cert_b64: str) -> RSAPublicKey:
    cert = load_der_x509_certificate(base64.b64decode(cert_b64))
    key = cert.public_key()
    if not isinstance(key, RSAPublicKey):
        raise ValueError(f"Certificate key is {type(key).__name__}, expected RSA")
    return key


def parse_key_set(body: Any) -> dict[str, RSAPublicKey]:
    """
    Accepts either `{"keys": [...]}` or a bare list of key entries.
    Entries without a `kid` or certificate chain are skipped.
    """
    entries = body.get("keys", []) if isinstance(body, dict) else body
    if not isinstance(entries, list):
        raise ValueError("Signing-key set is not a list")

    keys: dict[str, RSAPublicKey] = {}
    for entry in entries:
        kid = entry.get("kid") if isinstance(entry, dict) else None
        chain = entry.get("x5c") if isinstance(entry, dict) else None
        if not kid or not chain:
            log.debug("signing_key_skipped", kid=kid)
            continue
        keys[str(kid)] = public_key_from_x5c(chain[0])
    return keys


def key_id(token: str) -> str:
    try:
        header = jwt.get_unverified_header(token)
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e
    kid = header.get("kid")
    if not isinstance(kid, str) or not kid:
        raise JwtValidationError("Token header has no key id")
    return kid


def verify_signature(*, token: str, key: RSAPublicKey) -> dict[str, Any]:
    try:
        return jwt.decode(token, key, algorithms=[ALGORITHM], options=_SIGNATURE_ONLY)
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Only RS256 is accepted; `algorithms=[...]` also rejects `alg: none` and HMAC tokens
# forged with the public key.
