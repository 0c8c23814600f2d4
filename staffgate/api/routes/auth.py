"""Session routes - sign-in, current session, profile refresh, sign-out, password reset."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from staffgate.api.deps import get_navigator, get_session_manager
from staffgate.api.schemas.auth import (
    PasswordResetRequest,
    ProviderResultResponse,
    SessionResponse,
    SignInRequest,
)
from staffgate.api.sessions import RedirectNavigator
from staffgate.domain.services.gate import next_target
from staffgate.domain.services.session_manager import SessionManager

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Current session",
    description="Identity, profile and derived role/tenant of the current session.",
)
async def get_session(
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    return SessionResponse.from_snapshot(manager.snapshot)


@router.post(
    "/refresh-profile",
    response_model=SessionResponse,
    summary="Refresh profile",
    description="Re-fetch the provisioned profile. Failures leave the session unchanged.",
)
async def refresh_profile(
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    await manager.refresh_profile()
    return SessionResponse.from_snapshot(manager.snapshot)


@router.post(
    "/sign-in",
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Sign in",
    description="Authenticate with e-mail and password, then go to the preserved target.",
)
async def sign_in(
    payload: SignInRequest,
    next: str | None = Query(default=None),
    manager: SessionManager = Depends(get_session_manager),
) -> RedirectResponse:
    result = await manager.sign_in(payload.email, payload.password)
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.error or "Sign-in failed",
        )

    # Profile refresh is queued by the SIGNED_IN event.
    await manager.work_queue.join()
    await logger.ainfo(
        "user_signed_in",
        email=payload.email,
        state=manager.snapshot.state.value,
    )
    return RedirectResponse(next_target(next), status_code=status.HTTP_303_SEE_OTHER)


@router.post(
    "/sign-out",
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Sign out",
    description="Clear local auth state, revoke the session globally and go to sign-in.",
)
async def sign_out(
    manager: SessionManager = Depends(get_session_manager),
    navigator: RedirectNavigator = Depends(get_navigator),
) -> RedirectResponse:
    await manager.sign_out()
    target = navigator.consume(manager.settings.sign_in_path)
    return RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)


@router.post(
    "/password-reset",
    response_model=ProviderResultResponse,
    summary="Request password reset",
    description="Ask the identity provider to e-mail a password reset link.",
)
async def request_password_reset(
    payload: PasswordResetRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> ProviderResultResponse:
    result = await manager.request_password_reset(payload.email)
    return ProviderResultResponse.from_result(result)
