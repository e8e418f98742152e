"""Environment-driven configuration for the user service."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum

from dotenv import find_dotenv, load_dotenv

_UNSIGNED = re.compile(r"\+?[0-9]+")
_U16_MAX = 2**16 - 1
_U64_MAX = 2**64 - 1


class ConfigError(Exception):
    """Raised when the environment does not hold a usable configuration."""


class Stage(Enum):
    """Deployment stage of the service."""

    LOCAL = "Local"
    DEVELOPMENT = "Development"
    PRODUCTION = "Production"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ServerConfig:
    port: int
    body_limit: int
    timeout: int


@dataclass(frozen=True)
class DatabaseConfig:
    url: str


@dataclass(frozen=True)
class AppConfig:
    server: ServerConfig
    database: DatabaseConfig


@dataclass(frozen=True)
class JwtSecrets:
    secret: str
    refresh_secret: str


def parse_stage(value: str) -> Stage:
    """Return the stage named exactly by ``value``."""
    try:
        return Stage(value)
    except ValueError:
        raise ConfigError("Invalid stage") from None


def _load_dotenv() -> None:
    path = find_dotenv(usecwd=True)
    if path:
        load_dotenv(path)


def _require(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise ConfigError(f"{name} is invalid")
    return value


def _unsigned(name: str, maximum: int) -> int:
    raw = _require(name)
    if not _UNSIGNED.fullmatch(raw):
        raise ConfigError(f"{name} is not a valid unsigned integer: {raw!r}")
    value = int(raw)
    if value > maximum:
        raise ConfigError(f"{name} is out of range: {raw!r}")
    return value


def _jwt_secrets(audience: str) -> JwtSecrets:
    """Read the access and refresh signing values for ``audience`` (e.g. PATIENT)."""
    _load_dotenv()
    values = [_require(f"JWT_{audience}{suffix}") for suffix in ("_SECRET", "_REFRESH_SECRET")]
    return JwtSecrets(*values)


def load() -> AppConfig:
    """Read server and database settings from the environment and ``.env``."""
    _load_dotenv()
    server = ServerConfig(
        port=_unsigned("SERVER_PORT", _U16_MAX),
        body_limit=_unsigned("SERVER_BODY_LIMIT", _U64_MAX),
        timeout=_unsigned("SERVER_TIMEOUT", _U64_MAX),
    )
    database = DatabaseConfig(url=_require("DATABASE_URL"))
    return AppConfig(server=server, database=database)


def get_stage() -> Stage:
    """Return the configured stage, falling back to development."""
    _load_dotenv()
    try:
        return parse_stage(os.environ.get("STAGE", ""))
    except ConfigError:
        return Stage.DEVELOPMENT


def get_patients_secret_env() -> JwtSecrets:
    """Return the signing secrets for patient tokens."""
    return _jwt_secrets("PATIENT")


def get_doctors_secret_env() -> JwtSecrets:
    """Return the signing secrets for doctor tokens."""
    return _jwt_secrets("DOCTOR")