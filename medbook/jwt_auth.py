"""Signing and verification of HS256 access and refresh tokens."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import jwt

_ALGORITHM = "HS256"
_LEEWAY_SECONDS = 60


class TokenError(Exception):
    """Raised when a token cannot be created or verified."""


class TokenRole(Enum):
    """Role carried inside a token."""

    PATIENT = "Patient"
    DOCTOR = "Doctor"


@dataclass(frozen=True)
class Claims:
    """Token payload."""

    sub: str
    role: TokenRole
    exp: int
    iat: int

    def to_dict(self) -> dict[str, Any]:
        """Return the payload as JSON-ready data."""
        return {"sub": self.sub, "role": self.role.value, "exp": self.exp, "iat": self.iat}


@dataclass(frozen=True)
class Passport:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginModel:
    hospital_number: int
    password: str


def _unsigned(payload: dict[str, Any], name: str) -> int:
    value = payload.get(name)
    if type(value) is not int or value < 0:
        raise TokenError(f"invalid claim {name!r}")
    return value


def _claims_from_payload(payload: dict[str, Any]) -> Claims:
    sub = payload.get("sub")
    if not isinstance(sub, str):
        raise TokenError("invalid claim 'sub'")
    try:
        role = TokenRole(payload.get("role"))
    except ValueError:
        raise TokenError("invalid claim 'role'") from None
    return Claims(sub=sub, role=role, exp=_unsigned(payload, "exp"), iat=_unsigned(payload, "iat"))


def generate_token(secret: str, claims: Claims) -> str:
    """Sign ``claims`` with ``secret`` using HS256."""
    try:
        return jwt.encode(claims.to_dict(), secret, algorithm=_ALGORITHM)
    except jwt.PyJWTError as exc:
        raise TokenError(str(exc)) from exc


def verify_token(secret: str, token: str) -> Claims:
    """Check signature and expiry of ``token`` and return its claims."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            leeway=_LEEWAY_SECONDS,
            options={"require": ["exp"], "verify_iat": False, "verify_nbf": False},
        )
    except jwt.PyJWTError as exc:
        raise TokenError(str(exc)) from exc
    return _claims_from_payload(payload)