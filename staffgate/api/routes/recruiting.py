"""Recruiting routes - certification coverage and application scoring."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from staffgate.api.deps import get_session_manager, require_access
from staffgate.api.schemas.compliance import (
    CoverageRequest,
    CoverageResponse,
    ScoreRequest,
    ScoreResponse,
)
from staffgate.core.auth import Role
from staffgate.domain.models import SessionSnapshot
from staffgate.domain.services.compliance import (
    ComplianceError,
    calculate_compliance_score,
    compute_coverage,
    score_application,
)
from staffgate.domain.services.session_manager import SessionManager

logger = structlog.get_logger()
router = APIRouter(prefix="/recruiting", tags=["recruiting"])

recruiter_access = require_access(Role.CLIENT_ADMIN, Role.OPS, Role.RECRUITER)


@router.post(
    "/coverage",
    response_model=CoverageResponse,
    summary="Certification coverage",
    description="Compare a talent's certificates with a required certification set.",
)
async def coverage(
    payload: CoverageRequest,
    snapshot: SessionSnapshot = Depends(recruiter_access),
    manager: SessionManager = Depends(get_session_manager),
) -> CoverageResponse:
    try:
        result = compute_coverage(
            [cert.to_domain() for cert in payload.certificates],
            payload.required_codes,
            trusted_issuer=manager.settings.trusted_issuer,
        )
    except ComplianceError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    return CoverageResponse.from_result(result)


@router.post(
    "/score",
    response_model=ScoreResponse,
    summary="Application score",
    description="Add the compliance score to an application's base score.",
)
async def score(
    payload: ScoreRequest,
    snapshot: SessionSnapshot = Depends(recruiter_access),
    manager: SessionManager = Depends(get_session_manager),
) -> ScoreResponse:
    try:
        new_score, result = score_application(
            [cert.to_domain() for cert in payload.certificates],
            payload.required_codes,
            base_score=payload.base_score,
            trusted_issuer=manager.settings.trusted_issuer,
        )
    except ComplianceError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    await logger.ainfo(
        "application_rescored",
        tenant_id=snapshot.tenant_id,
        base_score=payload.base_score,
        score=new_score,
        coverage_percent=result.coverage_percent,
    )
    return ScoreResponse(
        score=new_score,
        compliance_score=calculate_compliance_score(result),
        coverage=CoverageResponse.from_result(result),
    )
