import asyncio
import time
from datetime import timedelta

import pytest

from medbook.config import ConfigError
from medbook.domain import Role, UsersRepository
from medbook.jwt_auth import Claims, TokenError, TokenRole, generate_token, verify_token
from medbook.usecases import AdminUseCase, AuthenticationUseCase

DAY = int(timedelta(days=1).total_seconds())


class RecordingRepository(UsersRepository):
    def __init__(self):
        self.calls = []

    async def register(self, register_user_entity):
        self.calls.append(("register", register_user_entity))
        return 1

    async def find_by_id(self, user_id):
        raise LookupError(user_id)

    async def remove_by_id(self, user_id):
        self.calls.append(("remove", user_id))

    async def add_role_to_user_by_id(self, role, user_id):
        self.calls.append(("add_role", role, user_id))

    async def remove_role_from_user_by_id(self, role, user_id):
        self.calls.append(("remove_role", role, user_id))


@pytest.fixture
def secrets_env(monkeypatch):
    monkeypatch.setenv("JWT_PATIENT_SECRET", "secret")
    monkeypatch.setenv("JWT_PATIENT_REFRESH_SECRET", "placeholder")
    monkeypatch.setenv("JWT_DOCTOR_SECRET", "secret")
    monkeypatch.setenv("JWT_DOCTOR_REFRESH_SECRET", "placeholder")


def run(coro):
    return asyncio.run(coro)


def test_assign_doctor_role_targets_user():
    repo = RecordingRepository()
    run(AdminUseCase(repo).assign_doctor_role(1, 5))
    assert repo.calls == [("add_role", Role.DOCTOR, 5)]


def test_remove_doctor_role_targets_user():
    repo = RecordingRepository()
    run(AdminUseCase(repo).remove_doctor_role(1, 5))
    assert repo.calls == [("remove_role", Role.DOCTOR, 5)]


def test_remove_user_removes_by_id():
    repo = RecordingRepository()
    run(AdminUseCase(repo).remove_user(1, 9))
    assert repo.calls == [("remove", 9)]


def _refresh_token(role, exp_offset=7 * DAY):
    now = int(time.time())
    claims = Claims(sub="12", role=role, exp=now + exp_offset, iat=now)
    return claims, generate_token("placeholder", claims)


@pytest.mark.parametrize(
    "method, role",
    [
        ("patients_refresh_token", TokenRole.PATIENT),
        ("doctors_refresh_token", TokenRole.DOCTOR),
    ],
)
def test_refresh_issues_new_pair(secrets_env, method, role):
    original, token = _refresh_token(role)
    use_case = AuthenticationUseCase(RecordingRepository())
    before = int(time.time())
    passport = run(getattr(use_case, method)(token))
    after = int(time.time())

    access = verify_token("secret", passport.access_token)
    assert access.sub == original.sub
    assert access.role is role
    assert before + DAY <= access.exp <= after + DAY
    assert before <= access.iat <= after

    refreshed = verify_token("placeholder", passport.refresh_token)
    assert refreshed.sub == original.sub
    assert refreshed.role is role
    assert refreshed.exp == original.exp


def test_refresh_role_follows_endpoint_not_token(secrets_env):
    _, token = _refresh_token(TokenRole.PATIENT)
    passport = run(AuthenticationUseCase(RecordingRepository()).doctors_refresh_token(token))
    assert verify_token("secret", passport.access_token).role is TokenRole.DOCTOR


def test_refresh_rejects_token_signed_with_access_secret(secrets_env):
    now = int(time.time())
    claims = Claims(sub="12", role=TokenRole.PATIENT, exp=now + DAY, iat=now)
    token = generate_token("secret", claims)
    with pytest.raises(TokenError):
        run(AuthenticationUseCase(RecordingRepository()).patients_refresh_token(token))


def test_refresh_rejects_expired_token(secrets_env):
    _, token = _refresh_token(TokenRole.PATIENT, exp_offset=-DAY)
    with pytest.raises(TokenError):
        run(AuthenticationUseCase(RecordingRepository()).patients_refresh_token(token))


def test_refresh_rejects_garbage(secrets_env):
    with pytest.raises(TokenError):
        run(AuthenticationUseCase(RecordingRepository()).doctors_refresh_token("token"))


def test_refresh_without_secrets_raises(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("JWT_PATIENT_SECRET", raising=False)
    monkeypatch.delenv("JWT_PATIENT_REFRESH_SECRET", raising=False)
    with pytest.raises(ConfigError):
        run(AuthenticationUseCase(RecordingRepository()).patients_refresh_token("token"))