"""Domain services."""

from staffgate.domain.services.compliance import (
    CertificateDateError,
    ComplianceError,
    calculate_compliance_score,
    compute_coverage,
    score_application,
    update_application_score,
)
from staffgate.domain.services.gate import (
    GateDecision,
    GateDestinations,
    GateOutcome,
    GatePolicy,
    RouteRule,
    decide_access,
)
from staffgate.domain.services.session_manager import SessionManager

__all__ = [
    "CertificateDateError",
    "ComplianceError",
    "GateDecision",
    "GateDestinations",
    "GateOutcome",
    "GatePolicy",
    "RouteRule",
    "SessionManager",
    "calculate_compliance_score",
    "compute_coverage",
    "decide_access",
    "score_application",
    "update_application_score",
]
