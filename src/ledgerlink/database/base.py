"""Abstract database interface."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerlink.domain.entities import (
    AccountMapping,
    Category,
    Client,
    Connection,
    Environment,
    Expense,
    Payee,
    PayeeType,
    Project,
    Revenue,
    SyncLogEntry,
    TransactionType,
)


class Database(ABC):
    """Persistence contract used by the import and backfill services.

    Only insert, point-update-by-id and filtered select are required.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Project operations
    @abstractmethod
    def create_project(self, project_number: str, project_name: str) -> int:
        """Create a project. Returns project ID."""
        pass

    @abstractmethod
    def get_project(self, project_id: int) -> Optional[Project]:
        """Get project by ID."""
        pass

    @abstractmethod
    def list_projects(self) -> list[Project]:
        """List all projects in creation order."""
        pass

    # Payee operations
    @abstractmethod
    def create_payee(
        self,
        name: str,
        alternate_name: Optional[str] = None,
        payee_type: PayeeType = PayeeType.OTHER,
    ) -> int:
        """Create a payee. Returns payee ID."""
        pass

    @abstractmethod
    def get_payee(self, payee_id: int) -> Optional[Payee]:
        """Get payee by ID."""
        pass

    @abstractmethod
    def list_payees(self) -> list[Payee]:
        """List all payees."""
        pass

    # Client operations
    @abstractmethod
    def create_client(self, name: str, alternate_name: Optional[str] = None) -> int:
        """Create a client. Returns client ID."""
        pass

    @abstractmethod
    def get_client(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        pass

    @abstractmethod
    def list_clients(self) -> list[Client]:
        """List all clients."""
        pass

    # Account mapping operations
    @abstractmethod
    def create_account_mapping(
        self, qb_account_full_path: str, internal_category: Category, is_active: bool = True
    ) -> int:
        """Create an account mapping. Returns mapping ID."""
        pass

    @abstractmethod
    def list_account_mappings(self, active_only: bool = True) -> list[AccountMapping]:
        """List account mappings, by default only active ones."""
        pass

    @abstractmethod
    def set_account_mapping_active(self, mapping_id: int, is_active: bool) -> None:
        """Activate or deactivate a mapping."""
        pass

    # Expense operations
    @abstractmethod
    def create_expense(
        self,
        project_id: int,
        category: Category,
        transaction_type: TransactionType,
        amount: Decimal,
        expense_date: date,
        payee_id: Optional[int] = None,
        description: Optional[str] = None,
        account_name: Optional[str] = None,
        account_full_name: Optional[str] = None,
        external_transaction_id: Optional[str] = None,
    ) -> int:
        """Create an expense. Returns expense ID."""
        pass

    @abstractmethod
    def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Get expense by ID."""
        pass

    @abstractmethod
    def list_expenses(
        self,
        unlinked_only: bool = False,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Expense]:
        """List expenses.

        Args:
            unlinked_only: If True, only return expenses without an
                external transaction ID
            start_date: Earliest expense date to include (inclusive)
            end_date: Latest expense date to include (inclusive)
        """
        pass

    @abstractmethod
    def set_expense_external_id(self, expense_id: int, external_id: str) -> bool:
        """Link an expense to a provider transaction.

        Only updates the row when its external ID is still null. Returns True
        when a row was updated.
        """
        pass

    # Revenue operations
    @abstractmethod
    def create_revenue(
        self,
        project_id: int,
        amount: Decimal,
        invoice_date: date,
        description: str,
        client_id: Optional[int] = None,
        invoice_number: Optional[str] = None,
        account_name: Optional[str] = None,
        account_full_name: Optional[str] = None,
        external_transaction_id: Optional[str] = None,
    ) -> int:
        """Create a project revenue. Returns revenue ID."""
        pass

    @abstractmethod
    def get_revenue(self, revenue_id: int) -> Optional[Revenue]:
        """Get revenue by ID."""
        pass

    @abstractmethod
    def list_revenues(
        self,
        unlinked_only: bool = False,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Revenue]:
        """List revenues, optionally only unlinked ones or within an invoice date range."""
        pass

    @abstractmethod
    def set_revenue_external_id(self, revenue_id: int, external_id: str) -> bool:
        """Link a revenue to a provider transaction (null-only, see expenses)."""
        pass

    # Connection operations
    @abstractmethod
    def save_connection(
        self,
        realm_id: str,
        access_token: str,
        refresh_token: str,
        token_expires_at: datetime,
        environment: Environment,
    ) -> int:
        """Store the active connection for an environment.

        Any previously active connection for the same environment is
        deactivated. Returns connection ID.
        """
        pass

    @abstractmethod
    def get_active_connection(self, environment: Environment) -> Optional[Connection]:
        """Get the active connection for an environment."""
        pass

    @abstractmethod
    def update_connection_tokens(
        self,
        connection_id: int,
        access_token: str,
        refresh_token: str,
        token_expires_at: datetime,
    ) -> None:
        """Replace a connection's tokens and expiry in a single write."""
        pass

    # Sync log operations
    @abstractmethod
    def add_sync_log(
        self,
        entity_type: str,
        direction: str,
        status: str,
        duration_ms: int,
        environment: Environment,
        entity_id: Optional[str] = None,
        error_message: Optional[str] = None,
        request_payload: Optional[dict[str, Any]] = None,
        response_payload: Optional[dict[str, Any]] = None,
    ) -> int:
        """Append an audit entry. Returns entry ID."""
        pass

    @abstractmethod
    def list_sync_log(self) -> list[SyncLogEntry]:
        """List audit entries, oldest first."""
        pass
