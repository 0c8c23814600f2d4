from __future__ import annotations

from collections.abc import Callable

import structlog
from fastapi import Depends, HTTPException, Request, status

from staffgate.api.sessions import ClientSession, ClientSessions, RedirectNavigator
from staffgate.core.auth import Role
from staffgate.domain.models import SessionSnapshot
from staffgate.domain.services.gate import (
    GateDestinations,
    GateOutcome,
    RouteRule,
    decide_access,
)
from staffgate.domain.services.session_manager import SessionManager

logger = structlog.get_logger()


async def get_client_session(request: Request) -> ClientSession:
    """Return the calling client's started session, creating it on first use."""
    sessions: ClientSessions | None = getattr(request.app.state, "sessions", None)
    client_id: str | None = getattr(request.state, "client_id", None)
    if sessions is None or client_id is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session manager not initialised",
        )
    return await sessions.get(client_id)


def get_session_manager(
    client: ClientSession = Depends(get_client_session),  # noqa: B008
) -> SessionManager:
    return client.manager


def get_navigator(
    client: ClientSession = Depends(get_client_session),  # noqa: B008
) -> RedirectNavigator:
    return client.navigator


def require_access(
    *roles: Role | str, fallback_path: str | None = None
) -> Callable[..., SessionSnapshot]:
    """Dependency factory gating a route on the session snapshot and an allow-list."""
    rule = RouteRule.of(*roles, fallback_path=fallback_path)

    def dependency(
        request: Request,
        manager: SessionManager = Depends(get_session_manager),  # noqa: B008
    ) -> SessionSnapshot:
        settings = manager.settings
        requested_path = request.url.path
        if request.url.query:
            requested_path = f"{requested_path}?{request.url.query}"

        snapshot = manager.snapshot
        decision = decide_access(
            snapshot,
            rule,
            requested_path,
            policy=settings.gate_policy,
            destinations=GateDestinations(
                sign_in=settings.sign_in_path,
                pending=settings.pending_path,
                unauthorized=settings.unauthorized_path,
            ),
            check_role=manager.check_role,
        )

        if decision.outcome is GateOutcome.LOADING:
            raise _loading()
        if decision.outcome is GateOutcome.REDIRECT:
            logger.info(
                "gate_redirect",
                path=requested_path,
                reason=decision.reason.value if decision.reason else None,
                location=decision.location,
            )
            raise _redirect(decision.location or settings.sign_in_path)
        return snapshot

    return dependency


def _redirect(location: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_303_SEE_OTHER,
        detail="Redirect",
        headers={"Location": location},
    )


def _loading() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Session is initialising",
        headers={"Retry-After": "1"},
    )
