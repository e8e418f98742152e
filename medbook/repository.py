"""SQL storage of users."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    select,
    update,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.engine import Engine

from medbook.domain import RegisterUserEntity, Role, UserEntity, UsersRepository

metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("citizen_id", String(32), nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("phone_number", String(32), nullable=False),
    Column("password", String(255), nullable=False),
    Column("role", JSON().with_variant(ARRAY(String), "postgresql"), nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    Column("deleted_at", DateTime, nullable=True),
)


class UserNotFoundError(LookupError):
    """Raised when no user has the requested id."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def establish_connection(database_url: str) -> Engine:
    """Create a pooled engine for ``database_url`` and check that it connects."""
    engine = create_engine(database_url, pool_pre_ping=True)
    with engine.connect():
        pass
    return engine


class UsersSqlRepository(UsersRepository):
    """Users repository backed by an SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def register(self, register_user_entity: RegisterUserEntity) -> int:
        values = asdict(register_user_entity)
        with self._engine.begin() as conn:
            result = conn.execute(users_table.insert().values(**values))
            return int(result.inserted_primary_key[0])

    async def find_by_id(self, user_id: int) -> UserEntity:
        query = select(users_table).where(users_table.c.id == user_id).limit(1)
        with self._engine.connect() as conn:
            row = conn.execute(query).first()
        if row is None:
            raise UserNotFoundError(f"user {user_id} not found")
        data = dict(row._mapping)
        data["role"] = [r for r in data["role"] if r is not None]
        return UserEntity(**data)

    async def remove_by_id(self, user_id: int) -> None:
        statement = (
            update(users_table)
            .where(users_table.c.id == user_id)
            .where(users_table.c.deleted_at.is_(None))
            .values(deleted_at=_utc_now())
        )
        with self._engine.begin() as conn:
            conn.execute(statement)

    async def add_role_to_user_by_id(self, role: Role, user_id: int) -> None:
        name = Role(role).value
        with self._engine.begin() as conn:
            roles = self._locked_roles(conn, user_id)
            if roles is None:
                return
            if name not in roles:
                roles.append(name)
            self._store_roles(conn, user_id, roles)

    async def remove_role_from_user_by_id(self, role: Role, user_id: int) -> None:
        name = Role(role).value
        with self._engine.begin() as conn:
            roles = self._locked_roles(conn, user_id)
            if roles is None:
                return
            self._store_roles(conn, user_id, [r for r in roles if r != name])

    @staticmethod
    def _locked_roles(conn, user_id: int) -> list[str] | None:
        query = (
            select(users_table.c.role)
            .where(users_table.c.id == user_id)
            .with_for_update()
        )
        row = conn.execute(query).first()
        return None if row is None else list(row.role)

    @staticmethod
    def _store_roles(conn, user_id: int, roles: list[str]) -> None:
        conn.execute(
            update(users_table)
            .where(users_table.c.id == user_id)
            .values(role=roles, updated_at=_utc_now())
        )