"""Public destinations of the gate and the protected workspace entry points."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from staffgate.api.deps import require_access
from staffgate.api.schemas.auth import SessionResponse
from staffgate.core.auth import ALL_ROLES, CLIENT_ROLES
from staffgate.domain.models import SessionSnapshot
from staffgate.domain.services.gate import next_target

router = APIRouter(tags=["pages"])

workspace_access = require_access(*ALL_ROLES)
quote_access = require_access(*CLIENT_ROLES, fallback_path="/get-quote")


@router.get("/login", summary="Sign-in entry point")
async def login(next: str | None = Query(default=None)) -> dict:
    """Echo the target restored after authentication."""
    return {"page": "login", "next": next_target(next)}


@router.get("/pending-approval", summary="Pending provisioning")
async def pending_approval() -> dict:
    return {
        "page": "pending-approval",
        "message": "Your registration was received and is awaiting activation.",
    }


@router.get("/get-quote", summary="Public quote request")
async def get_quote() -> dict:
    return {"page": "get-quote", "message": "Tell us about your staffing needs."}


@router.get("/unauthorized", summary="Access denied")
async def unauthorized() -> dict:
    return {"page": "unauthorized", "message": "Your role does not grant access to this page."}


@router.get("/missions", response_model=SessionResponse, summary="Missions workspace")
async def missions(snapshot: SessionSnapshot = Depends(workspace_access)) -> SessionResponse:
    return SessionResponse.from_snapshot(snapshot)


@router.get("/passport", response_model=SessionResponse, summary="Talent passport")
async def passport(snapshot: SessionSnapshot = Depends(workspace_access)) -> SessionResponse:
    return SessionResponse.from_snapshot(snapshot)


@router.get("/rfq", response_model=SessionResponse, summary="Request for quote")
async def rfq(snapshot: SessionSnapshot = Depends(quote_access)) -> SessionResponse:
    """Organisation accounts only; anonymous visitors use the public quote form."""
    return SessionResponse.from_snapshot(snapshot)
