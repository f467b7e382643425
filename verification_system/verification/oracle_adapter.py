"""Scoring oracle adapter around the Gemini client.

The adapter is the only request/response boundary to the generative model.
It never raises for oracle problems: an unconfigured oracle, a timeout or a
failed call come back as an OracleFailure value so the normalizer can pick
the matching fallback. Successful calls return the raw, unvalidated text.

Usage:
    from verification_system.verification.oracle_adapter import build_oracle

    oracle = build_oracle(settings)
    outcome = await oracle.score(EntityKind.SCHOOL, entity.oracle_fields(), entity.documents)
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Sequence, Union

import structlog

from verification_system.config.prompts import (
    VERIFICATION_PROMPTS,
    VERIFICATION_SYSTEM_PROMPT,
)
from verification_system.config.settings import Settings
from verification_system.data_management.schemas import EntityKind
from verification_system.llm.gemini_client import GeminiClient
from verification_system.utils.exceptions import (
    OracleCallError,
    OracleError,
    OracleTimeoutError,
    OracleUnavailableError,
)


class OracleFailureKind(str, Enum):
    """Why the oracle produced no text.

    UNAVAILABLE: Never attempted (not configured).
    TIMEOUT: Attempted, exceeded the bounded wait.
    CALL_FAILED: Attempted, raised an error.
    """

    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    CALL_FAILED = "call_failed"


@dataclass(frozen=True)
class RawOracleResponse:
    """Unvalidated text returned by the oracle."""

    text: str
    model: Optional[str] = None


@dataclass(frozen=True)
class OracleFailure:
    """An oracle call that produced no usable text."""

    kind: OracleFailureKind
    message: str = ""

    @property
    def attempted(self) -> bool:
        return self.kind is not OracleFailureKind.UNAVAILABLE

    def to_exception(self) -> OracleError:
        if self.kind is OracleFailureKind.UNAVAILABLE:
            return OracleUnavailableError(self.message)
        if self.kind is OracleFailureKind.TIMEOUT:
            return OracleTimeoutError(self.message)
        return OracleCallError(self.message)


OracleOutcome = Union[RawOracleResponse, OracleFailure]


class ScoringOracle(Protocol):
    """Narrow interface the orchestrator depends on."""

    async def score(
        self,
        kind: EntityKind,
        fields: dict[str, Any],
        documents: Sequence[str],
    ) -> OracleOutcome:
        ...


def build_prompt(
    kind: EntityKind,
    fields: dict[str, Any],
    documents: Sequence[str],
) -> str:
    """Render the scoring prompt for one entity.

    Args:
        kind: Entity kind selecting the template.
        fields: Flattened entity fields (see Entity.oracle_fields).
        documents: Document URIs; only count and references are sent.

    Returns:
        Prompt text.
    """
    template = VERIFICATION_PROMPTS[kind.value]
    document_list = "".join(f"  - {uri}\n" for uri in documents)
    return template.format(
        document_count=len(documents),
        document_list=document_list,
        **fields,
    )


class GeminiOracle:
    """Scoring oracle backed by Gemini.

    A None client means the oracle is not configured; every call then
    returns an UNAVAILABLE failure without attempting anything.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        timeout_seconds: float = 20.0,
        temperature: float = 0.2,
    ) -> None:
        """Initialize GeminiOracle.

        Args:
            client: Configured Gemini client, or None when unconfigured.
            timeout_seconds: Bounded wait for one round trip, retries included.
            temperature: Sampling temperature for scoring prompts.
        """
        self._client = client
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self._logger = structlog.get_logger().bind(component="GeminiOracle")

    def is_available(self) -> bool:
        return self._client is not None

    async def score(
        self,
        kind: EntityKind,
        fields: dict[str, Any],
        documents: Sequence[str],
    ) -> OracleOutcome:
        """Ask the oracle to score one entity.

        Returns:
            RawOracleResponse on success, OracleFailure otherwise.
        """
        if self._client is None:
            self._logger.warning("oracle_unavailable", kind=kind.value)
            return OracleFailure(
                OracleFailureKind.UNAVAILABLE,
                f"{kind.display_name} verification unavailable - AI service not configured",
            )

        prompt = build_prompt(kind, fields, documents)

        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(
                    self._client.generate_content,
                    prompt,
                    self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._logger.error(
                "oracle_timeout",
                kind=kind.value,
                timeout_seconds=self.timeout_seconds,
            )
            return OracleFailure(
                OracleFailureKind.TIMEOUT,
                f"{kind.display_name} verification timed out after {self.timeout_seconds}s",
            )
        except Exception as e:
            self._logger.error("oracle_call_failed", kind=kind.value, error=str(e))
            return OracleFailure(OracleFailureKind.CALL_FAILED, str(e))

        self._logger.debug(
            "oracle_responded",
            kind=kind.value,
            response_length=len(text or ""),
            document_count=len(documents),
        )
        return RawOracleResponse(text=text or "", model=self._client.model_name)


def build_oracle(settings: Settings) -> GeminiOracle:
    """Build the process-wide oracle from settings.

    Called once at startup; the result is injected into the orchestrator.
    """
    logger = structlog.get_logger().bind(component="GeminiOracle")
    if not settings.oracle_configured:
        logger.warning(
            "oracle_not_configured",
            msg="GEMINI_API_KEY not found. AI verification will be disabled.",
        )
        return GeminiOracle(None, timeout_seconds=settings.oracle_timeout_seconds)

    client = GeminiClient(
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
        system_instruction=VERIFICATION_SYSTEM_PROMPT,
        max_retries=settings.oracle_max_retries,
        request_timeout=settings.oracle_timeout_seconds,
    )
    return GeminiOracle(
        client,
        timeout_seconds=settings.oracle_timeout_seconds,
        temperature=settings.oracle_temperature,
    )
