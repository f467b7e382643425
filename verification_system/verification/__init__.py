"""AI-assisted verification of schools, students, funding requests and colleges.

Core workflow:
1. GeminiOracle scores an entity snapshot (or reports why it could not)
2. ResponseNormalizer turns the raw text into a bounded VerificationResult
3. classify() maps the score onto the entity's status vocabulary
4. VerificationOrchestrator persists the outcome and appends an audit log,
   and applies manual-review overrides
"""

from verification_system.verification.classifier import (
    AUTO_ACCEPT_THRESHOLD,
    MANUAL_REVIEW_THRESHOLD,
    Classification,
    classify,
    classify_for_kind,
)
from verification_system.verification.normalizer import (
    ResponseNormalizer,
    extract_json_object,
)
from verification_system.verification.oracle_adapter import (
    GeminiOracle,
    OracleFailure,
    OracleFailureKind,
    RawOracleResponse,
    ScoringOracle,
    build_oracle,
    build_prompt,
)
from verification_system.verification.orchestrator import (
    ReviewOutcome,
    VerificationOrchestrator,
    VerificationOutcome,
    create_orchestrator,
)

__all__ = [
    "AUTO_ACCEPT_THRESHOLD",
    "MANUAL_REVIEW_THRESHOLD",
    "Classification",
    "classify",
    "classify_for_kind",
    "ResponseNormalizer",
    "extract_json_object",
    "GeminiOracle",
    "OracleFailure",
    "OracleFailureKind",
    "RawOracleResponse",
    "ScoringOracle",
    "build_oracle",
    "build_prompt",
    "ReviewOutcome",
    "VerificationOrchestrator",
    "VerificationOutcome",
    "create_orchestrator",
]
