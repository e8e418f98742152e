"""Application use cases for administration and authentication."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from medbook.config import JwtSecrets, get_doctors_secret_env, get_patients_secret_env
from medbook.domain import Role, UsersRepository
from medbook.jwt_auth import Claims, Passport, TokenRole, generate_token, verify_token

_ACCESS_LIFETIME = timedelta(days=1)


class AdminUseCase:
    """Administrative operations on users."""

    def __init__(self, users_repository: UsersRepository) -> None:
        self._users_repository = users_repository

    async def assign_doctor_role(self, executer_user_id: int, target_user_id: int) -> None:
        """Give the target user the doctor role."""
        await self._users_repository.add_role_to_user_by_id(Role.DOCTOR, target_user_id)

    async def remove_doctor_role(self, executer_user_id: int, target_user_id: int) -> None:
        """Take the doctor role from the target user."""
        await self._users_repository.remove_role_from_user_by_id(Role.DOCTOR, target_user_id)

    async def remove_user(self, executer_user_id: int, user_id: int) -> None:
        """Mark a user as deleted."""
        await self._users_repository.remove_by_id(user_id)


def _refresh(secrets: JwtSecrets, role: TokenRole, refresh_token: str) -> Passport:
    claims = verify_token(secrets.refresh_secret, refresh_token)
    now = datetime.now(timezone.utc)
    issued = int(now.timestamp())
    access_claims = Claims(
        sub=claims.sub,
        role=role,
        exp=int((now + _ACCESS_LIFETIME).timestamp()),
        iat=issued,
    )
    refresh_claims = Claims(sub=claims.sub, role=role, exp=claims.exp, iat=issued)
    return Passport(
        access_token=generate_token(secrets.secret, access_claims),
        refresh_token=generate_token(secrets.refresh_secret, refresh_claims),
    )


class AuthenticationUseCase:
    """Issue tokens for patients and doctors."""

    def __init__(self, users_repository: UsersRepository) -> None:
        self._users_repository = users_repository

    async def patients_refresh_token(self, refresh_token: str) -> Passport:
        """Exchange a patient refresh token for a new token pair."""
        return _refresh(get_patients_secret_env(), TokenRole.PATIENT, refresh_token)

    async def doctors_refresh_token(self, refresh_token: str) -> Passport:
        """Exchange a doctor refresh token for a new token pair."""
        return _refresh(get_doctors_secret_env(), TokenRole.DOCTOR, refresh_token)