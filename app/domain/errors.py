"""Domain error taxonomy.

Entity constructors and mutators raise these synchronously when an invariant
would be broken. Use cases catch them at their boundary and convert them into
result objects; routes map the ``code`` onto an HTTP status.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for business-level failures.

    Attributes:
        message: Human-readable description
        code: Machine-readable error code
        timestamp: When the error was raised (UTC)
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses and logs."""
        return {
            "error": self.message,
            "code": self.code,
            "type": type(self).__name__,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(DomainError):
    """Raised for malformed or out-of-range input."""

    code = "VALIDATION_ERROR"


class BusinessRuleViolation(DomainError):
    """Raised when an operation would break an aggregate invariant."""

    code = "BUSINESS_RULE_VIOLATION"


class ConcurrencyConflictError(BusinessRuleViolation):
    """Raised when a save is attempted against a stale survey version."""

    code = "CONCURRENT_MODIFICATION"


class NotFoundError(DomainError):
    """Raised when a survey, question or response does not exist."""

    code = "ENTITY_NOT_FOUND"

    @classmethod
    def for_entity(cls, entity_name: str, entity_id: str) -> "NotFoundError":
        """Build the standard '<Entity> with id <id> not found' error."""
        return cls(f"{entity_name} with id {entity_id} not found")


class ServiceUnavailableError(DomainError):
    """Raised when an external collaborator stays unreachable after retries."""

    code = "SERVICE_UNAVAILABLE"
