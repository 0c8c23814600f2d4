from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response
from structlog.contextvars import bind_contextvars, clear_contextvars

from staffgate.api.routes import register_routes
from staffgate.api.sessions import (
    ClientSessions,
    RedirectNavigator,
    SessionManagerFactory,
    new_client_id,
    parse_client_id,
)
from staffgate.core.config import Settings, get_settings
from staffgate.core.logging import setup_logging
from staffgate.domain.services.session_manager import SessionManager
from staffgate.libs.identity_client import SupabaseIdentityClient
from staffgate.libs.profile_client import SupabaseProfileClient
from staffgate.libs.storage import InMemoryStorage, RedisStorage

logger = structlog.get_logger()


def build_session_manager(
    settings: Settings, navigator: RedirectNavigator, client_id: str
) -> SessionManager:
    """Wire one client's session manager to its identity, profile and storage collaborators."""
    session_storage = InMemoryStorage()
    local_storage = RedisStorage.from_url(
        settings.redis_url, namespace=f"{settings.storage_namespace}{client_id}:"
    )
    identity = SupabaseIdentityClient(storage=session_storage)
    profiles = SupabaseProfileClient(identity.get_current_session)
    return SessionManager(
        identity=identity,
        profiles=profiles,
        session_storage=session_storage,
        local_storage=local_storage,
        navigate=navigator,
        settings=settings,
    )


def create_app(session_manager_factory: SessionManagerFactory | None = None) -> FastAPI:
    """Application factory; the lifespan is the composition root of the client sessions."""
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.environment != "local")
    factory = session_manager_factory or build_session_manager

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sessions = ClientSessions(settings, factory)
        app.state.sessions = sessions
        logger.info(
            "service_startup",
            service=settings.app_name,
            environment=settings.environment,
            version=settings.version,
            gate_policy=settings.gate_policy.value,
            max_client_sessions=settings.max_client_sessions,
        )
        try:
            yield
        finally:
            await sessions.close()
            app.state.sessions = None
            logger.info("service_shutdown", service=settings.app_name)

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

    cors_origins = [
        "http://localhost:5173",  # Vite dev
        "http://localhost:8080",  # Alternative dev
    ]

    # Allow all origins in local/development environment
    if settings.environment in ["local", "development"]:
        cors_origins.append("*")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if "*" not in cors_origins else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)

    @app.middleware("http")
    async def client_cookie_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        client_id = parse_client_id(request.cookies.get(settings.client_cookie_name))
        issued = client_id is None
        if client_id is None:
            client_id = new_client_id()
        request.state.client_id = client_id
        bind_contextvars(client_id=client_id)

        response = await call_next(request)
        if issued:
            response.set_cookie(
                settings.client_cookie_name, client_id, httponly=True, samesite="lax"
            )
        return response

    @app.middleware("http")
    async def correlation_id_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid4()))
        bind_contextvars(
            request_id=request_id,
            path=str(request.url.path),
            method=request.method,
        )
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_contextvars()

    return app


app = create_app()
