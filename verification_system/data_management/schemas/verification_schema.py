"""Verification result and audit log schemas.

VerificationResult is the normalized outcome of one oracle round trip (or of
a fallback when the oracle could not be used). VerificationLog is the
append-only audit record written once per verification attempt; its only
permitted update is the manual-review transition, after which the record is
always `completed` and `hybrid`.

Field names serialize to camelCase (`aiScore`, `manualReview`,
`finalDecision` ...) so records can be embedded in API responses unchanged.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from verification_system.data_management.schemas.entity_schema import (
    Entity,
    EntityKind,
    ReviewDecision,
)


class VerificationType(str, Enum):
    """How a log's outcome was reached."""

    AI_AUTOMATED = "ai_automated"
    MANUAL_REVIEW = "manual_review"
    HYBRID = "hybrid"


class LogStatus(str, Enum):
    """Processing state of a verification log.

    COMPLETED: Outcome final (automatic decision, or reviewed by a human).
    PENDING_MANUAL_REVIEW: Waiting in the reviewer queue.
    FLAGGED: Reserved for records marked by downstream tooling.
    """

    COMPLETED = "completed"
    PENDING_MANUAL_REVIEW = "pending_manual_review"
    FLAGGED = "flagged"


class ResultSource(str, Enum):
    """Where a VerificationResult came from."""

    ORACLE = "oracle"
    UNAVAILABLE_FALLBACK = "unavailable_fallback"
    PARSE_FALLBACK = "parse_fallback"
    ERROR_FALLBACK = "error_fallback"


class VerificationResult(BaseModel):
    """Normalized outcome of one scoring attempt. Immutable once produced."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    score: int = Field(..., ge=0, le=100, description="Overall score, clamped to 0-100")
    sub_scores: dict[str, int] = Field(
        default_factory=dict,
        description="Kind-specific sub-scores, each clamped to 0-100",
    )
    narrative_fields: dict[str, str] = Field(
        default_factory=dict,
        description="Kind-specific free-text assessments",
    )
    key_findings: list[str] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list, description="Potential issues detected")
    recommendations: str = Field(default="")
    confidence: int = Field(
        ...,
        ge=0,
        le=100,
        description="Oracle confidence; defaults to the score when not supplied",
    )
    requires_manual_review: bool = Field(
        default=False,
        description="True for every fallback result",
    )
    source: ResultSource = Field(default=ResultSource.ORACLE)

    @property
    def is_fallback(self) -> bool:
        return self.source is not ResultSource.ORACLE


class AIAnalysis(BaseModel):
    """Result-derived analysis stored on a verification log."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    confidence: int = Field(default=0, ge=0, le=100)
    key_findings: list[str] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)
    recommendations: str = Field(default="")
    sub_scores: dict[str, int] = Field(default_factory=dict)
    narrative_fields: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: VerificationResult) -> "AIAnalysis":
        return cls(
            confidence=result.confidence,
            key_findings=list(result.key_findings),
            flags=list(result.flags),
            recommendations=result.recommendations,
            sub_scores=dict(result.sub_scores),
            narrative_fields=dict(result.narrative_fields),
        )


class ManualReview(BaseModel):
    """A human reviewer's decision on a verification log."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reviewer_id: str = Field(..., description="Identifier of the reviewing admin")
    reviewer_notes: Optional[str] = Field(default=None)
    final_decision: ReviewDecision
    reviewed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class VerificationLog(BaseModel):
    """Append-only audit record of one verification attempt.

    Holds a weak reference to its entity (type + id). All fields are
    write-once except manual_review, status and verification_type, which
    change together exactly when a reviewer acts.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    log_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        alias="id",
    )
    entity_type: EntityKind
    entity_id: str
    verification_type: VerificationType
    ai_score: int = Field(..., ge=0, le=100)
    ai_analysis: AIAnalysis = Field(default_factory=AIAnalysis)
    documents_analyzed: list[str] = Field(default_factory=list)
    status: LogStatus = Field(default=LogStatus.COMPLETED)
    manual_review: Optional[ManualReview] = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @model_validator(mode="after")
    def reviewed_logs_are_completed(self) -> "VerificationLog":
        if self.manual_review is not None and self.status != LogStatus.COMPLETED:
            raise ValueError("a manually reviewed log must have status 'completed'")
        return self

    @property
    def is_pending_review(self) -> bool:
        return self.status == LogStatus.PENDING_MANUAL_REVIEW

    @classmethod
    def from_run(
        cls,
        entity: Entity,
        result: VerificationResult,
        requires_manual_review: bool,
    ) -> "VerificationLog":
        """Build the log row for an automated verification run."""
        return cls(
            entity_type=entity.kind,
            entity_id=entity.entity_id,
            verification_type=(
                VerificationType.HYBRID
                if requires_manual_review
                else VerificationType.AI_AUTOMATED
            ),
            ai_score=result.score,
            ai_analysis=AIAnalysis.from_result(result),
            documents_analyzed=list(entity.documents),
            status=(
                LogStatus.PENDING_MANUAL_REVIEW
                if requires_manual_review
                else LogStatus.COMPLETED
            ),
        )

    def to_api_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
