"""Pydantic schemas for session endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from staffgate.domain.models import Profile, SessionSnapshot
from staffgate.libs.identity_client import ProviderResult


class SignInRequest(BaseModel):
    """Request schema for e-mail/password sign-in."""

    email: EmailStr = Field(..., description="Account e-mail address")
    password: str = Field(..., description="Account password")


class PasswordResetRequest(BaseModel):
    """Request schema for a password reset e-mail."""

    email: EmailStr = Field(..., description="Account e-mail address")


class ProfileResponse(BaseModel):
    """Response schema for the provisioned profile."""

    id: str = Field(..., description="Profile ID")
    user_id: str = Field(..., description="Owning identity ID")
    tenant_id: str = Field(..., description="Tenant the profile belongs to")
    role: str = Field(..., description="Profile role")
    is_staff: bool = Field(..., description="Internal operator override")
    status: str = Field(..., description="Lifecycle status")
    display_name: str = Field(default="", description="First and last name")
    tenant_name: str | None = Field(None, description="Tenant display name")

    @classmethod
    def from_profile(cls, profile: Profile) -> ProfileResponse:
        return cls(
            id=profile.id,
            user_id=profile.user_id,
            tenant_id=profile.tenant_id,
            role=profile.role.value,
            is_staff=profile.is_staff,
            status=profile.status,
            display_name=profile.display_name,
            tenant_name=profile.tenant_name,
        )


class SessionResponse(BaseModel):
    """Response schema for the current session snapshot."""

    state: str = Field(..., description="initializing, anonymous, unprovisioned or active")
    user_id: str | None = Field(None, description="Signed-in identity ID")
    email: str | None = Field(None, description="Signed-in identity e-mail")
    expires_at: datetime | None = Field(None, description="Session expiry, when known")
    role: str | None = Field(None, description="Role derived from the profile")
    tenant_id: str | None = Field(None, description="Tenant derived from the profile")
    is_staff: bool = Field(default=False, description="Staff override flag")
    is_loading: bool = Field(..., description="True until the first reconciliation")
    profile: ProfileResponse | None = None

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> SessionResponse:
        identity = snapshot.identity
        return cls(
            state=snapshot.state.value,
            user_id=identity.id if identity else None,
            email=identity.email if identity else None,
            expires_at=snapshot.session.expires_at if snapshot.session else None,
            role=snapshot.role.value if snapshot.role else None,
            tenant_id=snapshot.tenant_id,
            is_staff=snapshot.is_staff,
            is_loading=snapshot.is_loading,
            profile=ProfileResponse.from_profile(snapshot.profile) if snapshot.profile else None,
        )


class ProviderResultResponse(BaseModel):
    """Outcome of a call forwarded to the identity provider."""

    ok: bool
    error: str | None = None

    @classmethod
    def from_result(cls, result: ProviderResult) -> ProviderResultResponse:
        return cls(ok=result.ok, error=result.error)
