"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so column names that follow the
accounting integration's conventions (``quickbooks_transaction_id``,
``payee_name``) stay out of the domain.
"""

from datetime import datetime, UTC
from typing import Optional

from ledgerlink.domain import entities as domain
from ledgerlink.database.models import (
    AccountMapping as ORMAccountMapping,
    Client as ORMClient,
    Expense as ORMExpense,
    Payee as ORMPayee,
    Project as ORMProject,
    QuickBooksConnection as ORMConnection,
    QuickBooksSyncLog as ORMSyncLog,
    Revenue as ORMRevenue,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_storage_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC for storage."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def project_to_domain(orm_project: ORMProject) -> domain.Project:
    """Convert SQLAlchemy Project model to domain Project entity."""
    return domain.Project(
        id=orm_project.id,
        project_number=orm_project.project_number,
        project_name=orm_project.project_name,
    )


def payee_to_domain(orm_payee: ORMPayee) -> domain.Payee:
    """Convert SQLAlchemy Payee model to domain Payee entity."""
    return domain.Payee(
        id=orm_payee.id,
        name=orm_payee.payee_name,
        alternate_name=orm_payee.full_name,
        payee_type=domain.PayeeType(orm_payee.payee_type),
    )


def client_to_domain(orm_client: ORMClient) -> domain.Client:
    """Convert SQLAlchemy Client model to domain Client entity."""
    return domain.Client(
        id=orm_client.id,
        name=orm_client.client_name,
        alternate_name=orm_client.company_name,
    )


def expense_to_domain(orm_expense: ORMExpense) -> domain.Expense:
    """Convert SQLAlchemy Expense model to domain Expense entity."""
    return domain.Expense(
        id=orm_expense.id,
        project_id=orm_expense.project_id,
        payee_id=orm_expense.payee_id,
        category=domain.Category(orm_expense.category),
        transaction_type=domain.TransactionType(orm_expense.transaction_type),
        amount=orm_expense.amount,
        expense_date=orm_expense.expense_date,
        description=orm_expense.description,
        account_name=orm_expense.account_name,
        account_full_name=orm_expense.account_full_name,
        external_transaction_id=orm_expense.quickbooks_transaction_id,
        is_planned=orm_expense.is_planned,
        created_at=as_utc(orm_expense.created_at),
        updated_at=as_utc(orm_expense.updated_at),
    )


def revenue_to_domain(orm_revenue: ORMRevenue) -> domain.Revenue:
    """Convert SQLAlchemy Revenue model to domain Revenue entity."""
    return domain.Revenue(
        id=orm_revenue.id,
        project_id=orm_revenue.project_id,
        client_id=orm_revenue.client_id,
        amount=orm_revenue.amount,
        invoice_date=orm_revenue.invoice_date,
        description=orm_revenue.description,
        invoice_number=orm_revenue.invoice_number,
        account_name=orm_revenue.account_name,
        account_full_name=orm_revenue.account_full_name,
        external_transaction_id=orm_revenue.quickbooks_transaction_id,
        created_at=as_utc(orm_revenue.created_at),
        updated_at=as_utc(orm_revenue.updated_at),
    )


def account_mapping_to_domain(orm_mapping: ORMAccountMapping) -> domain.AccountMapping:
    """Convert SQLAlchemy AccountMapping model to domain AccountMapping entity."""
    return domain.AccountMapping(
        id=orm_mapping.id,
        qb_account_full_path=orm_mapping.qb_account_full_path,
        internal_category=domain.Category(orm_mapping.app_category),
        is_active=orm_mapping.is_active,
    )


def connection_to_domain(orm_connection: ORMConnection) -> domain.Connection:
    """Convert SQLAlchemy QuickBooksConnection model to domain Connection entity."""
    return domain.Connection(
        id=orm_connection.id,
        access_token=orm_connection.access_token,
        refresh_token=orm_connection.refresh_token,
        realm_id=orm_connection.realm_id,
        token_expires_at=as_utc(orm_connection.token_expires_at),
        environment=domain.Environment(orm_connection.environment),
        is_active=orm_connection.is_active,
    )


def sync_log_to_domain(orm_entry: ORMSyncLog) -> domain.SyncLogEntry:
    """Convert SQLAlchemy QuickBooksSyncLog model to domain SyncLogEntry entity."""
    return domain.SyncLogEntry(
        id=orm_entry.id,
        entity_type=orm_entry.entity_type,
        entity_id=orm_entry.entity_id,
        direction=orm_entry.sync_type,
        status=orm_entry.status,
        error_message=orm_entry.error_message,
        request_payload=orm_entry.request_payload or {},
        response_payload=orm_entry.response_payload or {},
        duration_ms=orm_entry.duration_ms,
        environment=domain.Environment(orm_entry.environment),
        created_at=as_utc(orm_entry.created_at),
    )
