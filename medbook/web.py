"""HTTP application: routes, authorisation middleware and server start-up."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Awaitable, Callable

import uvicorn
from sqlalchemy.engine import Engine
from starlette.applications import Starlette
from starlette.datastructures import Headers
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Mount, Route, Router
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from medbook.config import (
    AppConfig,
    ConfigError,
    JwtSecrets,
    Stage,
    get_doctors_secret_env,
    get_patients_secret_env,
    get_stage,
)
from medbook.domain import UsersRepository
from medbook.jwt_auth import Passport, TokenError, verify_token
from medbook.repository import UsersSqlRepository
from medbook.usecases import AuthenticationUseCase

logger = logging.getLogger(__name__)

_COOKIE_MAX_AGE = 14 * 24 * 60 * 60
_ACT = "act"
_RFT = "rft"
_I32 = re.compile(r"[+-]?[0-9]+")
_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

CallNext = Callable[[Request], Awaitable[Response]]


@dataclass
class ApiResponse:
    """JSON envelope of every API answer."""

    data: Any = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the envelope as JSON-ready data."""
        data = self.data
        if is_dataclass(data) and not isinstance(data, type):
            data = asdict(data)
        return {"data": data, "message": self.message}


def _json(body: ApiResponse, status_code: int) -> JSONResponse:
    return JSONResponse(body.to_dict(), status_code=status_code)


def get_cookie_value(cookie_header: str, key: str) -> str | None:
    """Return the value of cookie ``key`` in a ``Cookie`` header, if present."""
    for cookie in cookie_header.split("; "):
        name, sep, value = cookie.partition("=")
        if sep and name.strip() == key:
            return value.strip()
    return None


async def not_found(request: Request) -> Response:
    """Answer for any route that does not exist."""
    return PlainTextResponse("Not Found", status_code=404)


async def health_check(request: Request) -> Response:
    """Report that the service is alive."""
    return PlainTextResponse("OK", status_code=200)


async def _not_found_handler(request: Request, exc: Exception) -> Response:
    return await not_found(request)


def _parse_i32(text: str) -> int | None:
    if not _I32.fullmatch(text):
        return None
    value = int(text)
    return value if _I32_MIN <= value <= _I32_MAX else None


def _authorized_user_id(
    request: Request, load_secrets: Callable[[], JwtSecrets]
) -> int | None:
    header = request.headers.get("cookie")
    if header is None:
        return None
    access = get_cookie_value(header, _ACT)
    if access is None:
        return None
    try:
        claims = verify_token(load_secrets().secret, access)
    except (ConfigError, TokenError):
        return None
    return _parse_i32(claims.sub)


async def _authorize(
    request: Request, call_next: CallNext, load_secrets: Callable[[], JwtSecrets]
) -> Response:
    user_id = _authorized_user_id(request, load_secrets)
    if user_id is None:
        return Response(status_code=401)
    request.state.user_id = user_id
    return await call_next(request)


async def patients_authorization(request: Request, call_next: CallNext) -> Response:
    """Let through only requests carrying a valid patient access token."""
    return await _authorize(request, call_next, get_patients_secret_env)


async def doctors_authorization(request: Request, call_next: CallNext) -> Response:
    """Let through only requests carrying a valid doctor access token."""
    return await _authorize(request, call_next, get_doctors_secret_env)


def _login_response(passport: Passport) -> Response:
    response = _json(ApiResponse(message="Login successfully"), 200)
    secure = get_stage() is Stage.PRODUCTION
    for name, value in ((_ACT, passport.access_token), (_RFT, passport.refresh_token)):
        response.set_cookie(
            name,
            value,
            max_age=_COOKIE_MAX_AGE,
            path="/",
            secure=secure,
            httponly=True,
            samesite="lax",
        )
    return response


def _refresh_endpoint(
    refresh: Callable[[str], Awaitable[Passport]],
    missing: Callable[[], Response],
) -> Callable[[Request], Awaitable[Response]]:
    async def endpoint(request: Request) -> Response:
        refresh_value = request.cookies.get(_RFT)
        if refresh_value is None:
            return missing()
        try:
            passport = await refresh(refresh_value)
        except TokenError as exc:
            return _json(ApiResponse(message=str(exc)), 401)
        return _login_response(passport)

    return endpoint


def _patients_missing_token() -> Response:
    return PlainTextResponse("Refresh token not found", status_code=400)


def _doctors_missing_token() -> Response:
    return _json(ApiResponse(message="Refresh token not found"), 400)


def authentication_routes(users_repository: UsersRepository) -> Router:
    """Routes that issue and renew tokens."""
    use_case = AuthenticationUseCase(users_repository)
    return Router(
        routes=[
            Route(
                "/patients/refresh-token",
                _refresh_endpoint(use_case.patients_refresh_token, _patients_missing_token),
                methods=["POST"],
            ),
            Route(
                "/doctors/refresh-token",
                _refresh_endpoint(use_case.doctors_refresh_token, _doctors_missing_token),
                methods=["POST"],
            ),
        ]
    )


class _BodyTooLarge(Exception):
    pass


class _RequestBodyLimit:
    """Reject request bodies larger than ``limit`` bytes with 413."""

    def __init__(self, app: ASGIApp, limit: int) -> None:
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        length = Headers(scope=scope).get("content-length")
        if length is not None and length.isdigit() and int(length) > self.limit:
            await Response(status_code=413)(scope, receive, send)
            return

        received = 0
        started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.limit:
                    raise _BodyTooLarge
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except _BodyTooLarge:
            if started:
                raise
            await Response(status_code=413)(scope, receive, send)


class _Timeout:
    """Answer 408 when handling a request takes longer than ``seconds``."""

    def __init__(self, app: ASGIApp, seconds: float) -> None:
        self.app = app
        self.seconds = seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, tracking_send), self.seconds)
        except asyncio.TimeoutError:
            if started:
                raise
            await Response(status_code=408)(scope, receive, send)


def create_app(config: AppConfig, engine: Engine) -> Starlette:
    """Build the HTTP application around a database engine."""
    users_repository = UsersSqlRepository(engine)
    routes = [
        Mount("/authentication", app=authentication_routes(users_repository)),
        Route("/health-check", health_check, methods=["GET"]),
    ]
    middleware = [
        Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=_ALLOWED_METHODS),
        Middleware(_RequestBodyLimit, limit=config.server.body_limit * 1024 * 1024),
        Middleware(_Timeout, seconds=config.server.timeout),
    ]
    return Starlette(
        routes=routes,
        middleware=middleware,
        exception_handlers={404: _not_found_handler},
    )


async def start(config: AppConfig, engine: Engine) -> None:
    """Serve the application on all interfaces until interrupted."""
    app = create_app(config, engine)
    server = uvicorn.Server(
        uvicorn.Config(app, host="0.0.0.0", port=config.server.port, log_level="info")
    )
    logger.info("Server is running on port %s", config.server.port)
    await server.serve()