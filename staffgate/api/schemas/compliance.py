"""Pydantic schemas for recruiting compliance endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from staffgate.domain.models import CoverageResult, TalentCertificate
from staffgate.domain.services.compliance import DEFAULT_BASE_SCORE, DEFAULT_REQUIRED_CODES


class CertificateIn(BaseModel):
    """A certificate held by a talent."""

    course_code: str = Field(..., min_length=1, description="Course code, case-insensitive")
    issued_at: str = Field(..., description="ISO-8601 issue date")
    expires_at: str | None = Field(None, description="ISO-8601 expiry date, if any")
    issuer: str = Field(..., description="Issuing authority")

    def to_domain(self) -> TalentCertificate:
        return TalentCertificate(
            course_code=self.course_code,
            issued_at=self.issued_at,
            expires_at=self.expires_at,
            issuer=self.issuer,
        )


class CoverageRequest(BaseModel):
    """Request schema for coverage computation."""

    certificates: list[CertificateIn] = Field(default_factory=list)
    required_codes: list[str] = Field(default_factory=list)


class ScoreRequest(BaseModel):
    """Request schema for re-scoring an application."""

    certificates: list[CertificateIn] = Field(default_factory=list)
    required_codes: list[str] = Field(default_factory=lambda: list(DEFAULT_REQUIRED_CODES))
    base_score: float = Field(default=DEFAULT_BASE_SCORE, description="Score before compliance")


class CoverageResponse(BaseModel):
    """Response schema for a coverage result."""

    coverage_percent: float
    expires_soon: bool
    expiring_soon_count: int
    recent_trusted_issuer_count: int
    missing_codes: list[str]
    valid_codes: list[str]

    @classmethod
    def from_result(cls, result: CoverageResult) -> CoverageResponse:
        return cls(
            coverage_percent=result.coverage_percent,
            expires_soon=result.expires_soon,
            expiring_soon_count=result.expiring_soon_count,
            recent_trusted_issuer_count=result.recent_trusted_issuer_count,
            missing_codes=list(result.missing_codes),
            valid_codes=list(result.valid_codes),
        )


class ScoreResponse(BaseModel):
    """Response schema for an application score."""

    score: float
    compliance_score: int
    coverage: CoverageResponse
