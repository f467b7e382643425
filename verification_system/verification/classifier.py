"""Score-to-status classification.

The only place the verification thresholds live:

    score >= 80        -> verified (approved for funding requests), automatic
    50 <= score < 80   -> in_review, waits for a human reviewer
    score < 50         -> rejected, automatic (reversible by manual review)
"""

from dataclasses import dataclass

from verification_system.data_management.schemas import EntityKind, EntityStatus

AUTO_ACCEPT_THRESHOLD = 80
MANUAL_REVIEW_THRESHOLD = 50


@dataclass(frozen=True)
class Classification:
    status: EntityStatus
    requires_manual_review: bool


def classify(score: int, entity_is_funding_request: bool = False) -> Classification:
    """Map a 0-100 score onto a verification outcome. Pure."""
    if score >= AUTO_ACCEPT_THRESHOLD:
        status = (
            EntityStatus.APPROVED if entity_is_funding_request else EntityStatus.VERIFIED
        )
        return Classification(status=status, requires_manual_review=False)
    if score >= MANUAL_REVIEW_THRESHOLD:
        return Classification(status=EntityStatus.IN_REVIEW, requires_manual_review=True)
    return Classification(status=EntityStatus.REJECTED, requires_manual_review=False)


def classify_for_kind(score: int, kind: EntityKind) -> Classification:
    """classify() with the funding-request label chosen from the kind."""
    return classify(score, entity_is_funding_request=kind.is_funding_request)
