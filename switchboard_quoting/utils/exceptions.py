"""
Error taxonomy for the quoting engine.

Every rejection raised by the engine or the services derives from
QuotingError so callers (an API layer, a worker) can translate it in one
place. Each class carries a stable ``code`` for that translation.
"""

from typing import Any


class QuotingError(Exception):
    """Base class for all quoting engine errors."""

    code = "quoting_error"
    retryable = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for logging or API responses."""
        return {"code": self.code, "detail": self.message, **self.context}


class NotFoundError(QuotingError, LookupError):
    """Referenced board, quote, item or catalog entry does not exist."""

    code = "not_found"

    def __init__(self, resource: str, identifier: str, **context: Any):
        super().__init__(f"{resource} not found: {identifier}", resource=resource, identifier=identifier, **context)
        self.resource = resource
        self.identifier = identifier


class InvalidConfigurationError(QuotingError, ValueError):
    """Board configuration is missing or has an invalid value for a rule."""

    code = "invalid_configuration"

    def __init__(self, message: str, field: str | None = None, **context: Any):
        super().__init__(message, field=field, **context)
        self.field = field


class IdentityConflictError(QuotingError):
    """A system proposal collides with a user-owned item, or a catalog part is ambiguous."""

    code = "identity_conflict"


class ConcurrencyConflictError(QuotingError):
    """Optimistic version check or uniqueness backstop failed. Retry from a fresh read."""

    code = "concurrency_conflict"
    retryable = True


class PersistenceFailureError(QuotingError):
    """Storage unavailable or a transaction failed to commit."""

    code = "persistence_failure"


class OperationNotPermittedError(QuotingError):
    """Manual edit of system-owned state, or mutation of a locked quote."""

    code = "operation_not_permitted"
