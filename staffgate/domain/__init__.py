from staffgate.domain.models import (
    CoverageResult,
    Identity,
    Profile,
    Session,
    SessionSnapshot,
    SessionState,
    TalentCertificate,
)

__all__ = [
    "CoverageResult",
    "Identity",
    "Profile",
    "Session",
    "SessionSnapshot",
    "SessionState",
    "TalentCertificate",
]
