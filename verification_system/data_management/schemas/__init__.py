"""Schema package for entity and verification data structures.

Primary exports:
- Entity / EntityKind: Polymorphic record under verification and its kind profile
- VerificationResult: Normalized outcome of one scoring attempt
- VerificationLog: Append-only audit record, one per attempt

Usage:
    from verification_system.data_management.schemas import Entity, EntityKind
    school = Entity(kind=EntityKind.SCHOOL, attributes={"schoolName": "Govt. High School"})

    from verification_system.data_management.schemas import VerificationLog, LogStatus
    pending = [log for log in logs if log.status == LogStatus.PENDING_MANUAL_REVIEW]
"""

from verification_system.data_management.schemas.entity_schema import (
    CLASSIFIED_STATUSES,
    Entity,
    EntityKind,
    EntityStatus,
    KindProfile,
    ReviewDecision,
    VerificationDetails,
    format_address,
)
from verification_system.data_management.schemas.verification_schema import (
    AIAnalysis,
    LogStatus,
    ManualReview,
    ResultSource,
    VerificationLog,
    VerificationResult,
    VerificationType,
)

__all__ = [
    "CLASSIFIED_STATUSES",
    "Entity",
    "EntityKind",
    "EntityStatus",
    "KindProfile",
    "ReviewDecision",
    "VerificationDetails",
    "format_address",
    "AIAnalysis",
    "LogStatus",
    "ManualReview",
    "ResultSource",
    "VerificationLog",
    "VerificationResult",
    "VerificationType",
]
