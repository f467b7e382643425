"""Verification orchestrator: the per-entity verification state machine.

    pending -> in_review (while scoring) -> verified | approved | rejected | in_review (sticky)
    any state -> manual review -> verified/approved | rejected | pending

Automated flow per entity:
1. Mark the entity in_review and persist (visible immediately)
2. Score a snapshot of the entity with the oracle
3. Normalize the oracle outcome (fallbacks on any oracle problem)
4. Classify the score with the kind's status vocabulary
5. Write score, details and status back; persist
6. Append a VerificationLog
7. Return entity snapshot, log id and whether a human must review

Oracle and parsing failures never escape: the entity always ends in a
classified state. Store failures (including a lost optimistic-lock race)
propagate to the caller.

Usage:
    from verification_system.verification import create_orchestrator

    orchestrator = create_orchestrator(settings)
    outcome = await orchestrator.verify(EntityKind.SCHOOL, "school-123")
    await orchestrator.manual_review(outcome.log_id, "admin-1", "approved", "Docs checked")
"""

from typing import Any, Optional

from pydantic import BaseModel

from verification_system.config.settings import Settings
from verification_system.data_management.entity_store import EntityStore
from verification_system.data_management.schemas import (
    Entity,
    EntityKind,
    EntityStatus,
    ManualReview,
    ReviewDecision,
    VerificationDetails,
    VerificationLog,
    VerificationResult,
)
from verification_system.data_management.verification_log_store import (
    VerificationLogStore,
)
from verification_system.utils.exceptions import (
    ConcurrentModificationError,
    InvalidDecisionError,
)
from verification_system.utils.logging import get_structured_logger, verification_context
from verification_system.verification.classifier import classify_for_kind
from verification_system.verification.normalizer import ResponseNormalizer
from verification_system.verification.oracle_adapter import ScoringOracle, build_oracle

# Entity saves tried per manual review before a version conflict is fatal
REVIEW_SAVE_ATTEMPTS = 3


class VerificationOutcome(BaseModel):
    """What a verification run hands back to its caller."""

    entity: Entity
    log_id: str
    requires_manual_review: bool
    result: VerificationResult

    def to_response(self) -> dict[str, Any]:
        return {
            self.entity.kind.value: self.entity.to_api_dict(),
            "verificationLog": self.log_id,
            "requiresManualReview": self.requires_manual_review,
        }


class ReviewOutcome(BaseModel):
    """Log and entity after a manual review."""

    log: VerificationLog
    entity: Entity

    def to_response(self) -> dict[str, Any]:
        return {
            "log": self.log.to_api_dict(),
            self.entity.kind.value: self.entity.to_api_dict(),
        }


class VerificationOrchestrator:
    """Drives entities through AI verification and manual review."""

    def __init__(
        self,
        entity_store: EntityStore,
        log_store: VerificationLogStore,
        oracle: ScoringOracle,
        normalizer: Optional[ResponseNormalizer] = None,
    ) -> None:
        """Initialize VerificationOrchestrator.

        Args:
            entity_store: Entity persistence (load/save).
            log_store: Append-only verification log store.
            oracle: Scoring oracle, built once at process start.
            normalizer: Response normalizer (default instance if None).
        """
        self.entity_store = entity_store
        self.log_store = log_store
        self.oracle = oracle
        self.normalizer = normalizer or ResponseNormalizer()
        self._logger = get_structured_logger(__name__, component="VerificationOrchestrator")

    async def verify(self, kind: EntityKind, entity_id: str) -> VerificationOutcome:
        """Load an entity and run verification on it.

        Raises:
            EntityNotFoundError: If the entity does not exist.
            PersistenceError: If a store read or write fails.
        """
        entity = await self.entity_store.load(kind, entity_id)
        return await self.run_verification(entity)

    async def run_verification(self, entity: Entity) -> VerificationOutcome:
        """Run the automated verification flow for one entity.

        Args:
            entity: Entity as loaded from the entity store.

        Returns:
            VerificationOutcome with the updated entity and log id.

        Raises:
            PersistenceError: If saving the entity or appending the log
                fails, including ConcurrentModificationError when another
                writer advanced the entity in the meantime.
        """
        with verification_context(entity.kind.value, entity.entity_id):
            return await self._run(entity)

    async def _run(self, entity: Entity) -> VerificationOutcome:
        kind = entity.kind

        in_review = await self.entity_store.save(
            entity.model_copy(update={"status": EntityStatus.IN_REVIEW})
        )
        self._logger.info("verification_started", document_count=len(in_review.documents))

        fields = in_review.oracle_fields()
        documents = list(in_review.documents)
        try:
            outcome = await self.oracle.score(kind, fields, documents)
            result = self.normalizer.normalize(outcome, kind)
            classification = classify_for_kind(result.score, kind)
        except Exception as e:
            self._logger.error("verification_pipeline_error", error=str(e), error_type=type(e).__name__)
            result = self.normalizer.error_fallback(
                kind,
                f"{kind.display_name} verification failed due to AI service error",
            )
            classification = classify_for_kind(result.score, kind)

        requires_manual_review = (
            result.requires_manual_review or classification.requires_manual_review
        )

        classified = await self.entity_store.save(
            in_review.model_copy(
                update={
                    "status": classification.status,
                    "ai_verification_score": result.score,
                    "ai_verification_details": VerificationDetails(
                        sub_scores=dict(result.sub_scores),
                        narratives=dict(result.narrative_fields),
                    ),
                }
            )
        )

        verification_log = VerificationLog.from_run(
            classified, result, requires_manual_review
        )
        log_id = await self.log_store.append(verification_log)

        self._logger.info(
            "verification_complete",
            log_id=log_id,
            score=result.score,
            status=classified.status.value,
            source=result.source.value,
            requires_manual_review=requires_manual_review,
            flags=result.flags,
        )

        return VerificationOutcome(
            entity=classified,
            log_id=log_id,
            requires_manual_review=requires_manual_review,
            result=result,
        )

    async def manual_review(
        self,
        log_id: str,
        reviewer_id: str,
        decision: str,
        notes: Optional[str] = None,
    ) -> ReviewOutcome:
        """Record a reviewer's decision and apply it to the entity.

        Calling twice overwrites the previous review; no override history
        is kept. A reviewer may reverse an automated decision either way.

        Args:
            log_id: Verification log being reviewed.
            reviewer_id: Reviewing admin.
            decision: 'approved', 'rejected' or 'needs_more_info'.
            notes: Optional reviewer notes.

        Raises:
            InvalidDecisionError: If decision is not one of the accepted values.
            VerificationLogNotFoundError: If log_id is unknown.
            EntityNotFoundError: If the log's entity no longer exists.
            ConcurrentModificationError: If the entity changed under every
                one of REVIEW_SAVE_ATTEMPTS saves; the log is left unreviewed.
            PersistenceError: If a store write fails.
        """
        try:
            final_decision = ReviewDecision(decision)
        except ValueError as e:
            raise InvalidDecisionError(
                "Invalid decision. Must be approved, rejected, or needs_more_info"
            ) from e

        current = await self.log_store.get(log_id)
        new_status = current.entity_type.status_for_decision(final_decision)

        saved = None
        for attempt in range(1, REVIEW_SAVE_ATTEMPTS + 1):
            entity = await self.entity_store.load(current.entity_type, current.entity_id)
            update: dict[str, Any] = {"status": new_status}
            if entity.ai_verification_details is not None:
                update["ai_verification_details"] = entity.ai_verification_details.model_copy(
                    update={"reviewed_by": reviewer_id}
                )
            try:
                saved = await self.entity_store.save(entity.model_copy(update=update))
                break
            except ConcurrentModificationError:
                if attempt == REVIEW_SAVE_ATTEMPTS:
                    raise
                self._logger.warning(
                    "manual_review_save_conflict",
                    log_id=log_id,
                    entity_id=entity.entity_id,
                    attempt=attempt,
                )

        # Log moves out of the reviewer queue only once the entity carries the decision
        review = ManualReview(
            reviewer_id=reviewer_id,
            reviewer_notes=notes,
            final_decision=final_decision,
        )
        reviewed_log = await self.log_store.record_manual_review(log_id, review)

        self._logger.info(
            "manual_review_applied",
            log_id=log_id,
            entity_id=saved.entity_id,
            kind=saved.kind.value,
            decision=final_decision.value,
            status=saved.status.value,
            reviewer_id=reviewer_id,
        )
        return ReviewOutcome(log=reviewed_log, entity=saved)

    async def pending_reviews(self) -> list[VerificationLog]:
        """Reviewer queue, most recent first."""
        return await self.log_store.find_pending_manual_review()

    async def logs_for_entity(self, entity_id: str) -> list[VerificationLog]:
        """Verification history of one entity, most recent first."""
        return await self.log_store.find_by_entity(entity_id)


def create_orchestrator(settings: Settings) -> VerificationOrchestrator:
    """Wire stores and oracle from settings. Call once per process."""
    return VerificationOrchestrator(
        entity_store=EntityStore(settings.entity_store_path),
        log_store=VerificationLogStore(settings.log_store_path),
        oracle=build_oracle(settings),
    )
