"""Shared domain error messages and error types."""

from typing import Any, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class AuthenticationError(DomainError):
    """The provider connection is missing or its tokens cannot be used.

    Fatal for the current operation: the operator has to reconnect.
    """


class ProviderAPIError(DomainError):
    """The accounting provider answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


def project_not_found(project_id: int) -> str:
    """Return message for missing project."""
    return f"Project {project_id} not found"


def no_projects_available() -> str:
    """Return message when a row cannot be assigned to any project."""
    return "No projects exist to assign the transaction to"


def duplicate_account_mapping(path: str) -> str:
    """Return message for an account path that is already mapped."""
    return f"Account mapping for '{path}' already exists"


def account_mapping_not_found(mapping_id: int) -> str:
    """Return message for missing account mapping."""
    return f"Account mapping {mapping_id} not found"


def invalid_category(value: str) -> str:
    """Return message for an unknown category name."""
    return f"Unknown category '{value}'"


def connection_not_found(environment: str) -> str:
    """Return message when no active provider connection exists."""
    return f"No active accounting connection for environment '{environment}'"


def token_refresh_failed(detail: str) -> str:
    """Return message for a failed OAuth refresh."""
    return f"Access token refresh failed: {detail}. Reconnect the accounting integration."


def refreshed_tokens_not_saved(detail: str) -> str:
    """Return message for refreshed tokens that could not be stored."""
    return (
        f"Refreshed tokens could not be saved: {detail}. "
        "Reconnect the accounting integration."
    )


def missing_client_credentials() -> str:
    """Return message when OAuth client credentials are not configured."""
    return "QUICKBOOKS_CLIENT_ID and QUICKBOOKS_CLIENT_SECRET must be set to refresh tokens"
