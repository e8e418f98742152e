"""Domain entities, value objects and the users repository contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """A role a user may hold."""

    PATIENT = "Patient"
    DOCTOR = "Doctor"

    def __str__(self) -> str:
        return self.value


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class UserEntity:
    """A stored user."""

    id: int
    citizen_id: str
    first_name: str
    last_name: str
    phone_number: str
    password: str
    role: list[str]
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


@dataclass
class RegisterUserEntity:
    """A user ready to be inserted."""

    citizen_id: str
    first_name: str
    last_name: str
    phone_number: str
    password: str
    role: list[str]
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


class UsersRepository(ABC):
    """Storage of users."""

    @abstractmethod
    async def register(self, register_user_entity: RegisterUserEntity) -> int:
        """Store a new user and return its id."""

    @abstractmethod
    async def find_by_id(self, user_id: int) -> UserEntity:
        """Return the user with the given id."""

    @abstractmethod
    async def remove_by_id(self, user_id: int) -> None:
        """Mark the user with the given id as deleted."""

    @abstractmethod
    async def add_role_to_user_by_id(self, role: Role, user_id: int) -> None:
        """Give the user a role unless it already holds it."""

    @abstractmethod
    async def remove_role_from_user_by_id(self, role: Role, user_id: int) -> None:
        """Take every occurrence of a role from the user."""


@dataclass
class RegisterUserModel:
    """Registration request body."""

    citizen_id: str
    first_name: str
    last_name: str
    phone_number: str
    password: str

    def to_entity(self) -> RegisterUserEntity:
        """Build a new patient entity stamped with the current UTC time."""
        now = _utc_now()
        return RegisterUserEntity(
            citizen_id=self.citizen_id,
            first_name=self.first_name,
            last_name=self.last_name,
            phone_number=self.phone_number,
            password=self.password,
            role=[str(Role.PATIENT)],
            created_at=now,
            updated_at=now,
            deleted_at=None,
        )


@dataclass
class RegisterUserResponseModel:
    hospital_number: int


@dataclass
class LoginResponseModel:
    pass