"""Domain layer for ledgerlink application.

Services are imported from their own modules; only entities and errors are
re-exported here so that ``ledgerlink.database`` can import entities without
pulling in the services that depend on it.
"""

from ledgerlink.domain.entities import (
    Category,
    ClassificationTier,
    Environment,
    MatchType,
    PayeeType,
    TransactionType,
)
from ledgerlink.domain.errors import (
    AuthenticationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ProviderAPIError,
    ValidationError,
)

__all__ = [
    "Category",
    "ClassificationTier",
    "Environment",
    "MatchType",
    "PayeeType",
    "TransactionType",
    "AuthenticationError",
    "ConflictError",
    "DomainError",
    "NotFoundError",
    "ProviderAPIError",
    "ValidationError",
]
