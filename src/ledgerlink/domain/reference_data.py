"""Reference data domain service: projects, clients, payees, mappings, connections."""

from datetime import datetime, timedelta, UTC
from typing import TYPE_CHECKING, Optional

from ledgerlink.domain.classification import parse_category
from ledgerlink.domain.entities import (
    AccountMapping,
    Client,
    Connection,
    Environment,
    Payee,
    Project,
)
from ledgerlink.domain.errors import ConflictError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from ledgerlink.database.base import Database


class ReferenceDataService:
    """Service for managing the data imports are matched against."""

    def __init__(self, db: "Database"):
        """Initialize reference data service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_project(self, project_number: str, project_name: str) -> int:
        """Create a new project.

        Args:
            project_number: Job/work order number, e.g. "125-244"
            project_name: Display name

        Returns:
            Project ID

        Raises:
            ValidationError: If number or name is blank
            ConflictError: If the project number already exists
        """
        project_number = (project_number or "").strip()
        project_name = (project_name or "").strip()
        if not project_number or not project_name:
            raise ValidationError("Project number and name are required")

        for project in self.db.list_projects():
            if project.project_number.lower() == project_number.lower():
                raise ConflictError(f"Project '{project_number}' already exists")

        return self.db.create_project(project_number=project_number, project_name=project_name)

    def list_projects(self) -> list[Project]:
        return self.db.list_projects()

    def create_client(self, name: str, company_name: Optional[str] = None) -> int:
        """Create a new client.

        Raises:
            ValidationError: If name is blank
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Client name is required")
        return self.db.create_client(name=name, alternate_name=company_name)

    def list_clients(self) -> list[Client]:
        return self.db.list_clients()

    def list_payees(self) -> list[Payee]:
        return self.db.list_payees()

    def add_account_mapping(self, account_path: str, category_name: str) -> int:
        """Map a provider account path to a category.

        Args:
            account_path: Full account path, e.g. "Job Expenses:Job Materials"
            category_name: Category value, e.g. "materials"

        Returns:
            Mapping ID

        Raises:
            ValidationError: If the path is blank or the category is unknown
            ConflictError: If the path is already mapped
        """
        account_path = (account_path or "").strip()
        if not account_path:
            raise ValidationError("Account path is required")
        category = parse_category(category_name)

        for mapping in self.db.list_account_mappings(active_only=False):
            if mapping.qb_account_full_path.lower() == account_path.lower():
                raise ConflictError(f"Account mapping for '{account_path}' already exists")

        return self.db.create_account_mapping(
            qb_account_full_path=account_path, internal_category=category
        )

    def list_account_mappings(self, include_inactive: bool = False) -> list[AccountMapping]:
        return self.db.list_account_mappings(active_only=not include_inactive)

    def disable_account_mapping(self, mapping_id: int) -> None:
        """Deactivate a mapping so the classifier ignores it.

        Raises:
            NotFoundError: If the mapping does not exist
        """
        self.db.set_account_mapping_active(mapping_id, False)

    def save_connection(
        self,
        realm_id: str,
        access_token: str,
        refresh_token: str,
        expires_in: int,
        environment: Environment,
        now: Optional[datetime] = None,
    ) -> int:
        """Store tokens obtained outside the tool as the active connection.

        Args:
            realm_id: Provider company ID
            access_token: OAuth access token
            refresh_token: OAuth refresh token
            expires_in: Access token lifetime in seconds
            environment: Sandbox or production
            now: Current time, defaults to datetime.now(UTC)

        Returns:
            Connection ID
        """
        if not realm_id or not access_token or not refresh_token:
            raise ValidationError("Realm ID, access token and refresh token are required")
        if expires_in < 0:
            raise ValidationError("expires_in must not be negative")
        now = now or datetime.now(UTC)
        return self.db.save_connection(
            realm_id=realm_id,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expires_at=now + timedelta(seconds=expires_in),
            environment=environment,
        )

    def get_connection(self, environment: Environment) -> Connection:
        """Get the active connection.

        Raises:
            NotFoundError: If no connection is stored for the environment
        """
        connection = self.db.get_active_connection(environment)
        if connection is None:
            raise NotFoundError(f"No connection stored for '{environment.value}'")
        return connection
