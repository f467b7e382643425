"""Tests for VerificationLogStore.

Tests cover:
- Append-only semantics and lookup
- Reviewer queue ordering and the manual-review transition
- Score / confidence histograms, flag frequency, per-kind summary, trends
- JSON persistence round trip
"""

from datetime import datetime, timedelta, timezone

import pytest

from verification_system.data_management.schemas import (
    AIAnalysis,
    EntityKind,
    LogStatus,
    ManualReview,
    ReviewDecision,
    VerificationLog,
    VerificationType,
)
from verification_system.data_management.verification_log_store import (
    VerificationLogStore,
    bucket_label,
)
from verification_system.utils.exceptions import (
    InvariantViolationError,
    PersistenceError,
    VerificationLogNotFoundError,
)

BASE_TIME = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _log(
    entity_id: str = "school-1",
    kind: EntityKind = EntityKind.SCHOOL,
    score: int = 90,
    pending: bool = False,
    flags: list[str] = None,
    confidence: int = 0,
    created_at: datetime = BASE_TIME,
) -> VerificationLog:
    return VerificationLog(
        entity_type=kind,
        entity_id=entity_id,
        verification_type=VerificationType.HYBRID if pending else VerificationType.AI_AUTOMATED,
        ai_score=score,
        ai_analysis=AIAnalysis(flags=flags or [], confidence=confidence),
        status=LogStatus.PENDING_MANUAL_REVIEW if pending else LogStatus.COMPLETED,
        created_at=created_at,
    )


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> VerificationLogStore:
    return VerificationLogStore()


# ── Append and lookup ─────────────────────────────────────────────────────


class TestAppend:
    @pytest.mark.asyncio
    async def test_append_and_get(self, store) -> None:
        log = _log()
        log_id = await store.append(log)

        fetched = await store.get(log_id)
        assert fetched.entity_id == "school-1"
        assert fetched.ai_score == 90

    @pytest.mark.asyncio
    async def test_duplicate_append_rejected(self, store) -> None:
        log = _log()
        await store.append(log)
        with pytest.raises(InvariantViolationError):
            await store.append(log)

    @pytest.mark.asyncio
    async def test_get_missing(self, store) -> None:
        with pytest.raises(VerificationLogNotFoundError):
            await store.get("missing")

    @pytest.mark.asyncio
    async def test_find_by_entity_newest_first(self, store) -> None:
        older = _log(created_at=BASE_TIME)
        newer = _log(created_at=BASE_TIME + timedelta(hours=1))
        await store.append(older)
        await store.append(newer)
        await store.append(_log(entity_id="other"))

        logs = await store.find_by_entity("school-1")

        assert [l.log_id for l in logs] == [newer.log_id, older.log_id]

    @pytest.mark.asyncio
    async def test_find_by_entity_with_type(self, store) -> None:
        await store.append(_log(entity_id="x", kind=EntityKind.SCHOOL))
        await store.append(_log(entity_id="x", kind=EntityKind.COLLEGE))

        logs = await store.find_by_entity("x", entity_type=EntityKind.COLLEGE)
        assert len(logs) == 1
        assert logs[0].entity_type == EntityKind.COLLEGE


# ── Reviewer queue ────────────────────────────────────────────────────────


class TestManualReviewTransition:
    @pytest.mark.asyncio
    async def test_pending_queue_newest_first(self, store) -> None:
        first = _log(entity_id="a", pending=True, created_at=BASE_TIME)
        second = _log(entity_id="b", pending=True, created_at=BASE_TIME + timedelta(minutes=5))
        await store.append(first)
        await store.append(second)
        await store.append(_log(entity_id="c"))

        pending = await store.find_pending_manual_review()

        assert [l.entity_id for l in pending] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_review_completes_log(self, store) -> None:
        log = _log(pending=True)
        await store.append(log)

        updated = await store.record_manual_review(
            log.log_id,
            ManualReview(reviewer_id="admin-1", final_decision=ReviewDecision.APPROVED),
        )

        assert updated.status == LogStatus.COMPLETED
        assert updated.verification_type == VerificationType.HYBRID
        assert updated.manual_review.reviewer_id == "admin-1"
        assert updated.ai_score == log.ai_score
        assert await store.find_pending_manual_review() == []

    @pytest.mark.asyncio
    async def test_review_overwrites(self, store) -> None:
        log = _log(pending=True)
        await store.append(log)
        await store.record_manual_review(
            log.log_id,
            ManualReview(reviewer_id="admin-1", final_decision=ReviewDecision.APPROVED),
        )
        await store.record_manual_review(
            log.log_id,
            ManualReview(reviewer_id="admin-2", final_decision=ReviewDecision.REJECTED),
        )

        fetched = await store.get(log.log_id)
        assert fetched.manual_review.reviewer_id == "admin-2"
        assert (await store.get_stats())["total"] == 1

    @pytest.mark.asyncio
    async def test_review_missing_log(self, store) -> None:
        with pytest.raises(VerificationLogNotFoundError):
            await store.record_manual_review(
                "missing",
                ManualReview(reviewer_id="admin-1", final_decision=ReviewDecision.REJECTED),
            )


# ── Aggregates ────────────────────────────────────────────────────────────


class TestAggregates:
    def test_bucket_label(self) -> None:
        assert bucket_label(0, (0, 50, 80, 100)) == "0-50"
        assert bucket_label(49, (0, 50, 80, 100)) == "0-50"
        assert bucket_label(50, (0, 50, 80, 100)) == "50-80"
        assert bucket_label(80, (0, 50, 80, 100)) == "80-100"
        assert bucket_label(100, (0, 50, 80, 100)) == "80-100"
        assert bucket_label(120, (0, 50, 80, 100)) == "other"

    @pytest.mark.asyncio
    async def test_score_distribution(self, store) -> None:
        for score in (10, 55, 79, 80, 100):
            await store.append(_log(score=score))

        histogram = await store.score_distribution()

        assert histogram == {"0-50": 1, "50-80": 2, "80-100": 2}

    @pytest.mark.asyncio
    async def test_score_distribution_custom_boundaries_and_filter(self, store) -> None:
        await store.append(_log(score=95, kind=EntityKind.SCHOOL))
        await store.append(_log(score=30, kind=EntityKind.REQUEST))

        histogram = await store.score_distribution(
            boundaries=(50, 100),
            entity_type=EntityKind.REQUEST,
        )

        assert histogram == {"50-100": 0, "other": 1}

    @pytest.mark.asyncio
    async def test_score_distribution_window(self, store) -> None:
        await store.append(_log(score=90, created_at=BASE_TIME))
        await store.append(_log(score=20, created_at=BASE_TIME + timedelta(days=2)))

        histogram = await store.score_distribution(
            since=BASE_TIME + timedelta(days=1),
        )

        assert histogram["0-50"] == 1
        assert histogram["80-100"] == 0

    @pytest.mark.asyncio
    async def test_confidence_distribution(self, store) -> None:
        await store.append(_log(score=90, confidence=95))
        await store.append(_log(score=70, confidence=92))
        await store.append(_log(score=50, confidence=0))

        distribution = await store.confidence_distribution()

        assert distribution["90-100"] == {"count": 2, "avg_score": 80.0}
        assert distribution["0-25"]["count"] == 1
        assert distribution["50-75"] == {"count": 0, "avg_score": 0.0}

    @pytest.mark.asyncio
    async def test_flag_frequency(self, store) -> None:
        await store.append(_log(flags=["Name mismatch", "Blurry scan"]))
        await store.append(_log(flags=["Name mismatch"]))
        await store.append(_log(flags=["AI verification unavailable"]))

        top = await store.flag_frequency(limit=2)

        assert top[0] == ("Name mismatch", 2)
        assert len(top) == 2

    @pytest.mark.asyncio
    async def test_verification_by_type(self, store) -> None:
        await store.append(_log(kind=EntityKind.SCHOOL, score=90))
        await store.append(_log(kind=EntityKind.SCHOOL, score=60))
        await store.append(_log(kind=EntityKind.SCHOOL, score=30))
        await store.append(_log(kind=EntityKind.REQUEST, score=85))

        summary = await store.verification_by_type()

        assert summary["school"] == {
            "total_verifications": 3,
            "auto_approved": 1,
            "manual_review": 1,
            "auto_rejected": 1,
            "avg_ai_score": 60.0,
        }
        assert summary["request"]["auto_approved"] == 1

    @pytest.mark.asyncio
    async def test_trends_by_month(self, store) -> None:
        await store.append(_log(kind=EntityKind.SCHOOL, score=80, created_at=BASE_TIME))
        await store.append(_log(kind=EntityKind.SCHOOL, score=60, created_at=BASE_TIME))
        await store.append(
            _log(kind=EntityKind.STUDENT, score=40, created_at=BASE_TIME + timedelta(days=31))
        )

        trend = await store.trends(period="month")

        assert [b["period"] for b in trend] == ["2026-03", "2026-04"]
        assert trend[0]["total_verifications"] == 2
        assert trend[0]["verifications"] == [
            {"entity_type": "school", "count": 2, "avg_score": 70.0}
        ]

    @pytest.mark.asyncio
    async def test_trends_by_day(self, store) -> None:
        await store.append(_log(created_at=BASE_TIME))
        trend = await store.trends(period="day")
        assert trend[0]["period"] == "2026-03-10"

    @pytest.mark.asyncio
    async def test_trends_bad_period(self, store) -> None:
        with pytest.raises(ValueError):
            await store.trends(period="year")

    @pytest.mark.asyncio
    async def test_stats(self, store) -> None:
        await store.append(_log(pending=True))
        await store.append(_log())

        stats = await store.get_stats()

        assert stats["total"] == 2
        assert stats["pending_manual_review"] == 1
        assert stats["status_counts"] == {"pending_manual_review": 1, "completed": 1}


# ── Persistence ───────────────────────────────────────────────────────────


class TestPersistence:
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path) -> None:
        path = tmp_path / "logs.json"
        store = VerificationLogStore(str(path))
        log = _log(pending=True, flags=["Name mismatch"])
        await store.append(log)
        await store.record_manual_review(
            log.log_id,
            ManualReview(
                reviewer_id="admin-1",
                reviewer_notes="Checked",
                final_decision=ReviewDecision.NEEDS_MORE_INFO,
            ),
        )

        reopened = VerificationLogStore(str(path))
        fetched = await reopened.get(log.log_id)

        assert fetched.manual_review.final_decision == ReviewDecision.NEEDS_MORE_INFO
        assert fetched.ai_analysis.flags == ["Name mismatch"]
        assert fetched.created_at == BASE_TIME

    def test_corrupt_file_raises(self, tmp_path) -> None:
        path = tmp_path / "logs.json"
        path.write_text('{"log-1": {"entity_id": "x"}}')
        with pytest.raises(PersistenceError):
            VerificationLogStore(str(path))
