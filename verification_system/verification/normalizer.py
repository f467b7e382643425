"""Normalization of oracle output into VerificationResult values.

Oracle text is not guaranteed to be pure JSON: it may be wrapped in prose or
markdown fences. The normalizer takes the first well-formed JSON object in
the text, validates the documented keys against a schema and clamps every
score into 0-100. Anything else becomes a deterministic fallback:

- oracle never attempted (unconfigured)  -> neutral fallback, score 50
- no usable JSON in a successful response -> neutral fallback, score 50
- oracle attempted and failed             -> error fallback, score 0

Every fallback requires manual review. For well-formed results the manual
review decision is left to the classifier.
"""

import json
import math
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from verification_system.data_management.schemas import (
    EntityKind,
    ResultSource,
    VerificationResult,
)
from verification_system.utils.exceptions import (
    OracleUnavailableError,
    ResponseParseError,
)
from verification_system.verification.oracle_adapter import (
    OracleFailure,
    RawOracleResponse,
)

UNAVAILABLE_FLAG = "AI verification unavailable"
SYSTEM_ERROR_FLAG = "Verification system error"

NEUTRAL_FALLBACK_SCORE = 50
ERROR_FALLBACK_SCORE = 0

NormalizerInput = Union[RawOracleResponse, OracleFailure, BaseException]


def clamp_score(value: float) -> int:
    """Round and clamp a numeric score into [0, 100]."""
    return max(0, min(100, int(round(value))))


def _finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if item is not None and str(item).strip()]
    return []


class OraclePayload(BaseModel):
    """Documented keys of an oracle response.

    Kind-specific sub-scores and narratives arrive as extra keys and are
    read by name from the kind profile; nothing else is consulted.
    """

    model_config = ConfigDict(extra="allow")

    score: float
    confidence: Optional[float] = None
    keyFindings: list[str] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)
    recommendations: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def score_is_finite_number(cls, value: Any) -> float:
        number = _finite_number(value)
        if number is None:
            raise ValueError(f"score must be a finite number, got {value!r}")
        return number

    @field_validator("confidence", mode="before")
    @classmethod
    def confidence_or_none(cls, value: Any) -> Optional[float]:
        return _finite_number(value)

    @field_validator("keyFindings", "flags", mode="before")
    @classmethod
    def coerce_string_list(cls, value: Any) -> list[str]:
        return _string_list(value)

    @field_validator("recommendations", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, list):
            return " ".join(str(v) for v in value)
        return str(value)

    def extra_field(self, name: str) -> Any:
        return (self.model_extra or {}).get(name)


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first well-formed JSON object embedded in text.

    Raises:
        ResponseParseError: If no JSON object can be decoded.
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            candidate, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            candidate = None
        if isinstance(candidate, dict):
            return candidate
        start = text.find("{", start + 1)
    raise ResponseParseError("no JSON object found in oracle response")


class ResponseNormalizer:
    """Turns oracle outcomes into VerificationResult values."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger().bind(component="ResponseNormalizer")

    def normalize(self, outcome: NormalizerInput, kind: EntityKind) -> VerificationResult:
        """Normalize an oracle outcome for one entity kind.

        Args:
            outcome: Raw response, oracle failure value, or an exception
                raised while obtaining or handling the response.
            kind: Entity kind the response is for.

        Returns:
            VerificationResult; fallbacks have requires_manual_review=True.
        """
        if isinstance(outcome, OracleFailure):
            outcome = outcome.to_exception()

        if isinstance(outcome, OracleUnavailableError):
            return self.neutral_fallback(
                kind,
                f"{kind.display_name} verification unavailable - AI service not configured",
                ResultSource.UNAVAILABLE_FALLBACK,
            )

        if isinstance(outcome, BaseException):
            self._logger.warning(
                "oracle_error_fallback",
                kind=kind.value,
                error_type=type(outcome).__name__,
                error=str(outcome),
            )
            return self.error_fallback(
                kind,
                f"{kind.display_name} verification failed due to AI service error",
            )

        try:
            payload_dict = extract_json_object(outcome.text)
        except ResponseParseError:
            self._logger.warning(
                "unexpected_response_format",
                kind=kind.value,
                response_length=len(outcome.text),
            )
            return self.neutral_fallback(
                kind,
                f"AI analysis completed but response format was unexpected for {kind.value}",
                ResultSource.PARSE_FALLBACK,
            )

        try:
            payload = OraclePayload.model_validate(payload_dict)
        except ValidationError as e:
            self._logger.warning(
                "response_validation_failed",
                kind=kind.value,
                errors=e.error_count(),
            )
            return self.neutral_fallback(
                kind,
                f"AI response parsing failed for {kind.value}",
                ResultSource.PARSE_FALLBACK,
            )

        return self._from_payload(payload, kind)

    def neutral_fallback(
        self,
        kind: EntityKind,
        message: str,
        source: ResultSource = ResultSource.UNAVAILABLE_FALLBACK,
    ) -> VerificationResult:
        """Score-50 result used when the oracle gave no usable answer."""
        return VerificationResult(
            score=NEUTRAL_FALLBACK_SCORE,
            sub_scores=self._empty_sub_scores(kind),
            narrative_fields=self._empty_narratives(kind),
            key_findings=[message],
            flags=[UNAVAILABLE_FLAG],
            recommendations="Manual review required",
            confidence=0,
            requires_manual_review=True,
            source=source,
        )

    def error_fallback(self, kind: EntityKind, message: str) -> VerificationResult:
        """Score-0 result used when an oracle call was attempted and failed."""
        return VerificationResult(
            score=ERROR_FALLBACK_SCORE,
            sub_scores=self._empty_sub_scores(kind),
            narrative_fields=self._empty_narratives(kind),
            key_findings=[message],
            flags=[SYSTEM_ERROR_FLAG],
            recommendations="Manual review required due to system error",
            confidence=0,
            requires_manual_review=True,
            source=ResultSource.ERROR_FALLBACK,
        )

    def _from_payload(self, payload: OraclePayload, kind: EntityKind) -> VerificationResult:
        score = clamp_score(payload.score)
        confidence = (
            clamp_score(payload.confidence) if payload.confidence is not None else score
        )

        sub_scores = {}
        for name in kind.profile.sub_score_fields:
            value = _finite_number(payload.extra_field(name))
            sub_scores[name] = clamp_score(value) if value is not None else 0

        narratives = {}
        for name in kind.profile.narrative_fields:
            value = payload.extra_field(name)
            narratives[name] = "" if value is None else str(value)

        if score != payload.score:
            self._logger.debug("score_clamped", kind=kind.value, raw_score=payload.score, score=score)

        return VerificationResult(
            score=score,
            sub_scores=sub_scores,
            narrative_fields=narratives,
            key_findings=payload.keyFindings,
            flags=payload.flags,
            recommendations=payload.recommendations,
            confidence=confidence,
            requires_manual_review=False,
            source=ResultSource.ORACLE,
        )

    @staticmethod
    def _empty_sub_scores(kind: EntityKind) -> dict[str, int]:
        return {name: 0 for name in kind.profile.sub_score_fields}

    @staticmethod
    def _empty_narratives(kind: EntityKind) -> dict[str, str]:
        return {name: "" for name in kind.profile.narrative_fields}
