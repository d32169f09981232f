"""
routeguard.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity types (`Principal` and its variants) that
  providers return and handlers receive.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime

EPOCH = datetime.fromtimestamp(0, tz=UTC)


class Principal:
    """
    Authenticated caller identity. Handlers ask for it by annotating a parameter with
    this type (or one of its subclasses).
    """

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class Anonymous(Principal):
    pass


@dataclass(frozen=True, slots=True)
class UsernamePrincipal(Principal):
    username: str


@dataclass(frozen=True, slots=True)
class NamedPrincipal(Principal):
    name: str


class PrincipalKind(enum.StrEnum):
    USER = "user"
    SERVICE = "service"


@dataclass(frozen=True, slots=True)
class ServiceOrUserPrincipal(Principal):
    """
    Identity resolved from a bearer token: either a human user or an allow-listed service.
    """

    kind: PrincipalKind
    name: str = ""
    username: str = ""
    service_id: str = ""
    issued_at: datetime = EPOCH
    not_before: datetime = EPOCH
    expires_at: datetime = EPOCH

    def __post_init__(self) -> None:
        if self.kind is PrincipalKind.SERVICE:
            if self.name or self.username or not self.service_id:
                raise ValueError("service principal requires service_id and no user fields")
        elif self.service_id or not self.username:
            raise ValueError("user principal requires username and no service_id")

    @property
    def is_service(self) -> bool:
        return self.kind is PrincipalKind.SERVICE


# --- Module Notes -----------------------------------------------------------
# Keep these models minimal; they cross the auth/dispatch boundary on every request.
