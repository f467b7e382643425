"""Entity schemas for records that pass through AI-assisted verification.

Schools, students, funding requests and colleges share one polymorphic
record. Everything that differs between them (status field name, the label
used for an automatic accept, sub-score and narrative keys, the fields a
scoring prompt needs) lives on the EntityKind profile instead of being
branched on kind strings throughout the code.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EntityStatus(str, Enum):
    """Verification state of an entity.

    PENDING: Created, or sent back by a reviewer asking for more information.
    IN_REVIEW: Verification running, or parked in the manual-review band.
    VERIFIED: Accepted (schools, students, colleges).
    APPROVED: Accepted (funding requests).
    REJECTED: Refused automatically or by a reviewer.
    """

    PENDING = "pending"
    IN_REVIEW = "in_review"
    VERIFIED = "verified"
    APPROVED = "approved"
    REJECTED = "rejected"


# States a verification run may leave an entity in
CLASSIFIED_STATUSES = frozenset(
    {
        EntityStatus.VERIFIED,
        EntityStatus.APPROVED,
        EntityStatus.REJECTED,
        EntityStatus.IN_REVIEW,
    }
)


class ReviewDecision(str, Enum):
    """Final decision a human reviewer can record on a verification log."""

    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_MORE_INFO = "needs_more_info"


@dataclass(frozen=True)
class KindProfile:
    """Per-kind vocabulary and scoring schema."""

    display_name: str
    status_field: str
    auto_accept_label: EntityStatus
    sub_score_fields: tuple[str, ...]
    narrative_fields: tuple[str, ...]
    prompt_fields: tuple[str, ...]


class EntityKind(str, Enum):
    """Kind of entity under verification."""

    SCHOOL = "school"
    STUDENT = "student"
    REQUEST = "request"
    COLLEGE = "college"

    @property
    def profile(self) -> KindProfile:
        return _KIND_PROFILES[self]

    @property
    def display_name(self) -> str:
        return self.profile.display_name

    @property
    def status_field(self) -> str:
        return self.profile.status_field

    @property
    def auto_accept_label(self) -> EntityStatus:
        return self.profile.auto_accept_label

    @property
    def is_funding_request(self) -> bool:
        return self is EntityKind.REQUEST

    def status_for_decision(self, decision: ReviewDecision) -> EntityStatus:
        """Map a reviewer decision onto this kind's status vocabulary."""
        if decision is ReviewDecision.APPROVED:
            return self.auto_accept_label
        if decision is ReviewDecision.REJECTED:
            return EntityStatus.REJECTED
        return EntityStatus.PENDING


_KIND_PROFILES: dict[EntityKind, KindProfile] = {
    EntityKind.SCHOOL: KindProfile(
        display_name="School",
        status_field="verificationStatus",
        auto_accept_label=EntityStatus.VERIFIED,
        sub_score_fields=("documentAuthenticity", "dataConsistency"),
        narrative_fields=("anomalyDetection",),
        prompt_fields=(
            "schoolName",
            "registrationNumber",
            "address",
            "contactPerson",
            "principalName",
            "phone",
        ),
    ),
    EntityKind.STUDENT: KindProfile(
        display_name="Student",
        status_field="status",
        auto_accept_label=EntityStatus.VERIFIED,
        sub_score_fields=("credibilityScore", "documentValidity"),
        narrative_fields=("needAssessment",),
        prompt_fields=(
            "studentName",
            "grade",
            "category",
            "achievementDetails",
            "financialNeed",
        ),
    ),
    EntityKind.REQUEST: KindProfile(
        display_name="Request",
        status_field="status",
        auto_accept_label=EntityStatus.APPROVED,
        sub_score_fields=("legitimacyScore", "needValidation"),
        narrative_fields=("budgetReasonability", "riskAssessment"),
        prompt_fields=(
            "title",
            "requestType",
            "category",
            "amountNeeded",
            "description",
        ),
    ),
    EntityKind.COLLEGE: KindProfile(
        display_name="College",
        status_field="verificationStatus",
        auto_accept_label=EntityStatus.VERIFIED,
        sub_score_fields=("institutionalCredibility", "accreditationValidity"),
        narrative_fields=(),
        prompt_fields=(
            "collegeName",
            "affiliationNumber",
            "address",
            "contactPerson",
            "phone",
        ),
    ),
}


def format_address(address: Any) -> str:
    """Flatten an address sub-record to 'street, city, state - pincode'."""
    if not isinstance(address, dict):
        return "" if address is None else str(address)
    street = address.get("street", "")
    city = address.get("city", "")
    state = address.get("state", "")
    pincode = address.get("pincode", "")
    return f"{street}, {city}, {state} - {pincode}"


class VerificationDetails(BaseModel):
    """Kind-specific detail block written onto an entity after scoring."""

    sub_scores: dict[str, int] = Field(
        default_factory=dict,
        description="Kind-specific sub-scores, each 0-100",
    )
    narratives: dict[str, str] = Field(
        default_factory=dict,
        description="Kind-specific narrative assessments",
    )
    verified_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the details were written",
    )
    reviewed_by: str = Field(
        default="AI",
        description="'AI' for automated runs, reviewer id after manual review",
    )

    def to_api_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {**self.sub_scores, **self.narratives}
        data["verifiedAt"] = self.verified_at.isoformat()
        data["reviewedBy"] = self.reviewed_by
        return data


class Entity(BaseModel):
    """A school, student, funding request or college awaiting verification.

    Owned by the CRUD layer; this package only mutates status, score and
    details. `version` is an optimistic concurrency counter maintained by
    the entity store.
    """

    entity_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique entity identifier",
    )
    kind: EntityKind = Field(..., description="School, student, request or college")
    attributes: dict[str, Any] = Field(
        default_factory=dict,
        description="Entity fields as captured by the registration forms",
    )
    documents: list[str] = Field(
        default_factory=list,
        description="Document URIs attached to the entity",
    )
    status: EntityStatus = Field(
        default=EntityStatus.PENDING,
        description="Verification status (rendered under the kind's status field)",
    )
    ai_verification_score: int = Field(
        default=0,
        ge=0,
        le=100,
        description="Most recent AI verification score",
    )
    ai_verification_details: Optional[VerificationDetails] = Field(
        default=None,
        description="Kind-specific verification details",
    )
    version: int = Field(default=0, ge=0, description="Optimistic lock counter")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def status_field(self) -> str:
        return self.kind.status_field

    def oracle_fields(self) -> dict[str, Any]:
        """Flatten the fields the scoring prompt for this kind needs.

        Missing fields are rendered as empty strings so prompts never carry
        the literal 'None'.
        """
        fields: dict[str, Any] = {}
        for name in self.kind.profile.prompt_fields:
            value = self.attributes.get(name)
            if name == "address":
                fields[name] = format_address(value)
            else:
                fields[name] = "" if value is None else value
        return fields

    def to_api_dict(self) -> dict[str, Any]:
        """Render the entity the way verification responses expose it."""
        details = self.ai_verification_details
        return {
            "id": self.entity_id,
            self.status_field: self.status.value,
            "aiVerificationScore": self.ai_verification_score,
            "aiVerificationDetails": details.to_api_dict() if details else {},
        }
