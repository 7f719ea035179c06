"""
Utility modules for the switchboard quoting engine.

- Structured logging
- Error taxonomy
"""

from switchboard_quoting.utils.exceptions import (
    QuotingError,
    NotFoundError,
    InvalidConfigurationError,
    IdentityConflictError,
    ConcurrencyConflictError,
    PersistenceFailureError,
    OperationNotPermittedError,
)
from switchboard_quoting.utils.logging import (
    setup_logging,
    get_logger,
    ServiceLogger,
)

__all__ = [
    # Errors
    "QuotingError",
    "NotFoundError",
    "InvalidConfigurationError",
    "IdentityConflictError",
    "ConcurrencyConflictError",
    "PersistenceFailureError",
    "OperationNotPermittedError",
    # Logging
    "setup_logging",
    "get_logger",
    "ServiceLogger",
]
