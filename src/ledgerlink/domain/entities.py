"""Domain model entities for ledgerlink.

These are pure data classes representing business concepts, independent of
database schema. The persistence layer converts its rows into these through
``ledgerlink.database.mappers``.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class Category(str, Enum):
    """Internal expense category."""

    LABOR = "labor"
    SUBCONTRACTOR = "subcontractor"
    MATERIALS = "materials"
    EQUIPMENT = "equipment"
    PERMITS = "permits"
    MANAGEMENT = "management"
    OTHER = "other"


class TransactionType(str, Enum):
    """How an expense was paid."""

    BILL = "bill"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    CASH = "cash"
    EXPENSE = "expense"


class PayeeType(str, Enum):
    """Kind of vendor, inferred from the account an expense was booked to."""

    SUBCONTRACTOR = "subcontractor"
    MATERIAL_SUPPLIER = "material_supplier"
    EQUIPMENT_RENTAL = "equipment_rental"
    PERMIT_AUTHORITY = "permit_authority"
    OTHER = "other"


class MatchType(str, Enum):
    """How a name match was obtained."""

    EXACT = "exact"
    AUTO = "auto"
    FUZZY = "fuzzy"
    NONE = "none"


class ClassificationTier(str, Enum):
    """Which rule set produced a category."""

    DATABASE_MAPPING = "database_mapping"
    STATIC_MAPPING = "static_mapping"
    DESCRIPTION = "description"
    DEFAULT = "default"


class Environment(str, Enum):
    """Accounting provider environment."""

    SANDBOX = "sandbox"
    PRODUCTION = "production"


@dataclass(frozen=True)
class Transaction:
    """A row from an accounting export, before it becomes an Expense or Revenue."""

    date: str
    transaction_type: str
    counterparty_name: str
    amount: str
    project_reference: str = ""
    account_path: str = ""
    account_name: str = ""
    invoice_number: str = ""
    row_number: Optional[int] = None

    @property
    def is_invoice(self) -> bool:
        return (self.transaction_type or "").strip().lower() == "invoice"


@dataclass(frozen=True)
class Project:
    """Project domain entity."""

    id: int
    project_number: str
    project_name: str


@dataclass(frozen=True)
class Payee:
    """Vendor/payee domain entity."""

    id: int
    name: str
    alternate_name: Optional[str] = None
    payee_type: PayeeType = PayeeType.OTHER


@dataclass(frozen=True)
class Client:
    """Customer/client domain entity."""

    id: int
    name: str
    alternate_name: Optional[str] = None


@dataclass(frozen=True)
class Expense:
    """Expense domain entity."""

    id: int
    project_id: int
    category: Category
    transaction_type: TransactionType
    amount: Decimal
    expense_date: date
    payee_id: Optional[int] = None
    description: Optional[str] = None
    account_name: Optional[str] = None
    account_full_name: Optional[str] = None
    external_transaction_id: Optional[str] = None
    is_planned: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Revenue:
    """Project revenue (invoice) domain entity."""

    id: int
    project_id: int
    amount: Decimal
    invoice_date: date
    description: str
    client_id: Optional[int] = None
    invoice_number: Optional[str] = None
    account_name: Optional[str] = None
    account_full_name: Optional[str] = None
    external_transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class AccountMapping:
    """User-curated account path to category override."""

    id: int
    qb_account_full_path: str
    internal_category: Category
    is_active: bool = True


@dataclass(frozen=True)
class Connection:
    """Stored OAuth connection to the accounting provider."""

    id: int
    access_token: str
    refresh_token: str
    realm_id: str
    token_expires_at: datetime
    environment: Environment = Environment.SANDBOX
    is_active: bool = True


@dataclass(frozen=True)
class SyncLogEntry:
    """Audit record of one call to the accounting provider."""

    id: int
    entity_type: str
    direction: str
    status: str
    duration_ms: int
    environment: Environment
    entity_id: Optional[str] = None
    error_message: Optional[str] = None
    request_payload: dict[str, Any] = field(default_factory=dict)
    response_payload: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class MatchResult:
    """Outcome of comparing a free-text name with one candidate entity."""

    candidate_id: int
    candidate_name: str
    confidence: float
    match_type: MatchType

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "candidate_name": self.candidate_name,
            "confidence": self.confidence,
            "match_type": self.match_type.value,
        }
