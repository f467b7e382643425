"""Append-only storage for verification audit logs.

Follows the same patterns as EntityStore:
- O(1) lookup by log_id
- Thread-safe operations with asyncio locks
- Optional JSON persistence; write failures are fatal

Logs are never deleted. The only permitted update is the manual-review
transition (manual_review + status + verification_type together); every
other field is write-once.

Aggregates back the reviewer queue and the reporting dashboards: score and
confidence histograms, flag frequencies, per-kind outcome counts and
day/week/month trends.

Usage:
    from verification_system.data_management.verification_log_store import (
        VerificationLogStore,
    )

    store = VerificationLogStore()
    log_id = await store.append(log)
    pending = await store.find_pending_manual_review()
    histogram = await store.score_distribution(entity_type=EntityKind.SCHOOL)
"""

import asyncio
import json
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

import structlog

from verification_system.data_management.schemas import (
    EntityKind,
    LogStatus,
    ManualReview,
    VerificationLog,
    VerificationType,
)
from verification_system.utils.exceptions import (
    InvariantViolationError,
    PersistenceError,
    VerificationLogNotFoundError,
)

SCORE_BOUNDARIES = (0, 50, 80, 100)
CONFIDENCE_BOUNDARIES = (0, 25, 50, 75, 90, 100)

TREND_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%Y-%U",
    "month": "%Y-%m",
}


def bucket_label(value: float, boundaries: Sequence[int]) -> str:
    """Return the 'lo-hi' bucket for value, or 'other' when out of range.

    Buckets include their lower bound; the last bucket also includes its
    upper bound so a perfect 100 is counted.
    """
    last = len(boundaries) - 2
    for i in range(len(boundaries) - 1):
        lo, hi = boundaries[i], boundaries[i + 1]
        if lo <= value < hi or (i == last and value == hi):
            return f"{lo}-{hi}"
    return "other"


def _empty_buckets(boundaries: Sequence[int]) -> dict[str, int]:
    return {
        f"{boundaries[i]}-{boundaries[i + 1]}": 0
        for i in range(len(boundaries) - 1)
    }


class VerificationLogStore:
    """Append-only store of VerificationLog records.

    Data structure:
    {
        log_id: VerificationLog,
        ...
    }
    """

    def __init__(self, persistence_path: Optional[str] = None) -> None:
        """Initialize VerificationLogStore.

        Args:
            persistence_path: Optional path to JSON file for persistence.
                            If None, storage is memory-only.

        Raises:
            PersistenceError: If an existing persistence file cannot be read.
        """
        self._logs: dict[str, VerificationLog] = {}
        self._lock = asyncio.Lock()
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._logger = structlog.get_logger().bind(component="VerificationLogStore")

        if self._persistence_path:
            self._load_from_file()

    # ── Writes ────────────────────────────────────────────────────────────

    async def append(self, log: VerificationLog) -> str:
        """Append a new log record.

        Args:
            log: Log to store.

        Returns:
            The log_id of the stored record.

        Raises:
            InvariantViolationError: If a log with the same id exists.
            PersistenceError: If persistence fails.
        """
        async with self._lock:
            if log.log_id in self._logs:
                raise InvariantViolationError(
                    f"Verification log {log.log_id} already exists; logs are append-only"
                )

            self._logs[log.log_id] = log.model_copy(deep=True)
            try:
                self._persist()
            except PersistenceError:
                del self._logs[log.log_id]
                raise

            self._logger.debug(
                "log_appended",
                log_id=log.log_id,
                entity_type=log.entity_type.value,
                entity_id=log.entity_id,
                status=log.status.value,
            )
            return log.log_id

    async def record_manual_review(
        self,
        log_id: str,
        review: ManualReview,
    ) -> VerificationLog:
        """Apply the manual-review transition to a log.

        Sets the manual_review block and forces status=completed and
        verification_type=hybrid. A second call overwrites the previous
        review; no override history is kept.

        Returns:
            Copy of the updated log.

        Raises:
            VerificationLogNotFoundError: If log_id is unknown.
            PersistenceError: If persistence fails.
        """
        async with self._lock:
            current = self._logs.get(log_id)
            if current is None:
                raise VerificationLogNotFoundError(
                    f"Verification log not found: {log_id}"
                )

            updated = current.model_copy(
                update={
                    "manual_review": review.model_copy(),
                    "status": LogStatus.COMPLETED,
                    "verification_type": VerificationType.HYBRID,
                },
                deep=True,
            )
            self._logs[log_id] = updated
            try:
                self._persist()
            except PersistenceError:
                self._logs[log_id] = current
                raise

            self._logger.info(
                "log_reviewed",
                log_id=log_id,
                decision=review.final_decision.value,
                reviewer_id=review.reviewer_id,
                overwrote_previous=current.manual_review is not None,
            )
            return updated.model_copy(deep=True)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(self, log_id: str) -> VerificationLog:
        """Get a log by id.

        Raises:
            VerificationLogNotFoundError: If log_id is unknown.
        """
        async with self._lock:
            log = self._logs.get(log_id)
            if log is None:
                raise VerificationLogNotFoundError(
                    f"Verification log not found: {log_id}"
                )
            return log.model_copy(deep=True)

    async def find_by_entity(
        self,
        entity_id: str,
        entity_type: Optional[EntityKind] = None,
    ) -> list[VerificationLog]:
        """All logs for an entity, most recent first."""
        async with self._lock:
            matches = [
                log
                for log in self._logs.values()
                if log.entity_id == entity_id
                and (entity_type is None or log.entity_type == entity_type)
            ]
            return self._newest_first(matches)

    async def find_pending_manual_review(self) -> list[VerificationLog]:
        """Logs waiting in the reviewer queue, most recent first."""
        async with self._lock:
            matches = [log for log in self._logs.values() if log.is_pending_review]
            return self._newest_first(matches)

    # ── Aggregates ────────────────────────────────────────────────────────

    async def status_counts(self) -> dict[str, int]:
        """Number of logs per status."""
        async with self._lock:
            counts = Counter(log.status.value for log in self._logs.values())
            return dict(counts)

    async def score_distribution(
        self,
        boundaries: Sequence[int] = SCORE_BOUNDARIES,
        entity_type: Optional[EntityKind] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> dict[str, int]:
        """Histogram of AI scores.

        Default buckets follow the classifier bands: 0-50 rejected,
        50-80 manual review, 80-100 accepted.
        """
        async with self._lock:
            histogram = _empty_buckets(boundaries)
            other = 0
            for log in self._select(entity_type, since, until):
                label = bucket_label(log.ai_score, boundaries)
                if label == "other":
                    other += 1
                else:
                    histogram[label] += 1
            if other:
                histogram["other"] = other
            return histogram

    async def confidence_distribution(
        self,
        boundaries: Sequence[int] = CONFIDENCE_BOUNDARIES,
        entity_type: Optional[EntityKind] = None,
    ) -> dict[str, dict[str, float]]:
        """Count and average AI score per oracle-confidence bucket."""
        async with self._lock:
            grouped: dict[str, list[int]] = {label: [] for label in _empty_buckets(boundaries)}
            for log in self._select(entity_type, None, None):
                label = bucket_label(log.ai_analysis.confidence, boundaries)
                grouped.setdefault(label, []).append(log.ai_score)
            return {
                label: {
                    "count": len(scores),
                    "avg_score": round(sum(scores) / len(scores), 2) if scores else 0.0,
                }
                for label, scores in grouped.items()
                if scores or label != "other"
            }

    async def flag_frequency(
        self,
        limit: int = 10,
        entity_type: Optional[EntityKind] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[tuple[str, int]]:
        """Most common flags across logs, most frequent first."""
        async with self._lock:
            counter: Counter[str] = Counter()
            for log in self._select(entity_type, since, until):
                counter.update(log.ai_analysis.flags)
            return counter.most_common(limit)

    async def verification_by_type(self) -> dict[str, dict[str, Any]]:
        """Per entity type: total, average score and outcome band counts."""
        async with self._lock:
            summary: dict[str, dict[str, Any]] = {}
            for log in self._logs.values():
                entry = summary.setdefault(
                    log.entity_type.value,
                    {
                        "total_verifications": 0,
                        "score_sum": 0,
                        "auto_approved": 0,
                        "manual_review": 0,
                        "auto_rejected": 0,
                    },
                )
                entry["total_verifications"] += 1
                entry["score_sum"] += log.ai_score
                band = bucket_label(log.ai_score, SCORE_BOUNDARIES)
                if band == "80-100":
                    entry["auto_approved"] += 1
                elif band == "50-80":
                    entry["manual_review"] += 1
                else:
                    entry["auto_rejected"] += 1

            for entry in summary.values():
                total = entry["total_verifications"]
                entry["avg_ai_score"] = round(entry.pop("score_sum") / total, 2)
            return summary

    async def trends(
        self,
        period: str = "month",
        entity_type: Optional[EntityKind] = None,
    ) -> list[dict[str, Any]]:
        """Verification counts and average scores per time bucket.

        Args:
            period: 'day', 'week' or 'month'.
            entity_type: Optional filter.

        Returns:
            Buckets in chronological order, each with a per-entity-type
            breakdown.

        Raises:
            ValueError: If period is not recognised.
        """
        if period not in TREND_FORMATS:
            raise ValueError(
                f"Unknown trend period '{period}'; expected one of {sorted(TREND_FORMATS)}"
            )
        fmt = TREND_FORMATS[period]

        async with self._lock:
            grouped: dict[str, dict[str, list[int]]] = {}
            for log in self._select(entity_type, None, None):
                bucket = log.created_at.strftime(fmt)
                grouped.setdefault(bucket, {}).setdefault(
                    log.entity_type.value, []
                ).append(log.ai_score)

        trend = []
        for bucket in sorted(grouped):
            per_type = [
                {
                    "entity_type": etype,
                    "count": len(scores),
                    "avg_score": round(sum(scores) / len(scores), 2),
                }
                for etype, scores in sorted(grouped[bucket].items())
            ]
            trend.append(
                {
                    "period": bucket,
                    "total_verifications": sum(p["count"] for p in per_type),
                    "verifications": per_type,
                }
            )
        return trend

    async def get_stats(self) -> dict[str, Any]:
        """Totals for the reviewer dashboard."""
        async with self._lock:
            status_counts = Counter(log.status.value for log in self._logs.values())
            return {
                "total": len(self._logs),
                "status_counts": dict(status_counts),
                "pending_manual_review": status_counts.get(
                    LogStatus.PENDING_MANUAL_REVIEW.value, 0
                ),
            }

    # ── Internals ─────────────────────────────────────────────────────────

    def _select(
        self,
        entity_type: Optional[EntityKind],
        since: Optional[datetime],
        until: Optional[datetime],
    ) -> list[VerificationLog]:
        """Filter logs by kind and creation window. Caller holds the lock."""
        return [
            log
            for log in self._logs.values()
            if (entity_type is None or log.entity_type == entity_type)
            and (since is None or log.created_at >= since)
            and (until is None or log.created_at < until)
        ]

    @staticmethod
    def _newest_first(logs: list[VerificationLog]) -> list[VerificationLog]:
        ordered = sorted(logs, key=lambda log: log.created_at, reverse=True)
        return [log.model_copy(deep=True) for log in ordered]

    def _persist(self) -> None:
        """Save to JSON file (synchronous). No-op for memory-only stores."""
        if not self._persistence_path:
            return
        try:
            self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data = {
                log_id: log.model_dump(mode="json")
                for log_id, log in self._logs.items()
            }
            with open(self._persistence_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except (OSError, TypeError, ValueError) as e:
            self._logger.error("persistence_failed", error=str(e))
            raise PersistenceError(f"Could not write verification logs: {e}") from e

    def _load_from_file(self) -> None:
        """Load storage from JSON file (synchronous)."""
        if not self._persistence_path or not self._persistence_path.exists():
            return
        try:
            with open(self._persistence_path, "r") as f:
                data = json.load(f)
            self._logs = {
                log_id: VerificationLog.model_validate(raw)
                for log_id, raw in data.items()
            }
        except (OSError, ValueError) as e:
            self._logger.error("load_failed", error=str(e))
            raise PersistenceError(f"Could not read verification logs: {e}") from e

        self._logger.info("logs_loaded", count=len(self._logs))
