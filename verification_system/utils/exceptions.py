"""Exception hierarchy for the verification engine.

Oracle errors are absorbed inside the verification pipeline and never reach
the caller. Client errors (invalid decision, not found) and persistence
errors propagate to whoever triggered the operation.
"""


class VerificationSystemError(Exception):
    """Base exception for all verification engine errors."""


class OracleError(VerificationSystemError):
    """Base for scoring oracle failures."""


class OracleUnavailableError(OracleError):
    """Oracle is not configured or not reachable."""


class OracleTimeoutError(OracleError):
    """Oracle call exceeded its bounded wait."""


class OracleCallError(OracleError):
    """Oracle call was attempted and failed."""


class ResponseParseError(VerificationSystemError):
    """No usable JSON object could be extracted from oracle output."""


class InvalidDecisionError(VerificationSystemError):
    """Manual review decision outside the accepted set."""


class NotFoundError(VerificationSystemError):
    """Requested record does not exist."""


class EntityNotFoundError(NotFoundError):
    """Entity lookup by kind and id failed."""


class VerificationLogNotFoundError(NotFoundError):
    """Verification log lookup by id failed."""


class PersistenceError(VerificationSystemError):
    """Entity or log store could not be read or written."""


class ConcurrentModificationError(PersistenceError):
    """Entity version advanced between load and save."""


class InvariantViolationError(VerificationSystemError):
    """Attempted update outside the permitted log transition."""
