"""Import pipeline turning accounting export rows into expenses and revenues."""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

from ledgerlink.domain.backfill import revenue_name_from_description
from ledgerlink.domain.classification import CategoryClassifier, suggest_category
from ledgerlink.domain.duplicates import (
    DUPLICATE_WARNING,
    DatabaseDuplicate,
    DuplicateRecord,
    detect_duplicates,
    duplicate_key,
    record_key,
)
from ledgerlink.domain.entities import (
    Category,
    ClassificationTier,
    Client,
    Expense,
    MatchResult,
    Payee,
    Project,
    Revenue,
    Transaction,
    TransactionType,
)
from ledgerlink.domain.entity_resolver import (
    EntityResolver,
    MatchThresholds,
    ResolutionResult,
    infer_payee_type,
)
from ledgerlink.domain.errors import no_projects_available
from ledgerlink.domain.export_reader import read_export
from ledgerlink.domain.project_matcher import ProjectMatcher
from ledgerlink.utils.amount_parser import ZERO, normalize_amount
from ledgerlink.utils.date_parser import normalize_date, parse_date

if TYPE_CHECKING:
    from ledgerlink.database.base import Database

logger = logging.getLogger(__name__)

EXPENSE_STREAM = "expense"
REVENUE_STREAM = "revenue"

# Transaction type keywords -> stored type, first hit wins
TRANSACTION_TYPE_KEYWORDS: list[tuple[str, TransactionType]] = [
    ("bill", TransactionType.BILL),
    ("check", TransactionType.CHECK),
    ("credit card", TransactionType.CREDIT_CARD),
    ("cash", TransactionType.CASH),
]


def map_transaction_type(raw_type: Optional[str]) -> TransactionType:
    """Map a provider transaction type label to a TransactionType.

    Unknown labels (including "Expense" itself) map to ``TransactionType.EXPENSE``.
    """
    lowered = (raw_type or "").strip().lower()
    for keyword, transaction_type in TRANSACTION_TYPE_KEYWORDS:
        if keyword in lowered:
            return transaction_type
    return TransactionType.EXPENSE


def expense_name_from_description(description: Optional[str]) -> str:
    """Recover the payee name from an imported expense's "<type> - <name>" description.

    Descriptions without the type prefix are returned as they are.
    """
    _, separator, name = (description or "").partition(" - ")
    return name.strip() if separator else (description or "").strip()


@dataclass(frozen=True)
class RowError:
    """A row that could not be imported."""

    row_number: Optional[int]
    stream: str
    message: str

    def __str__(self) -> str:
        if self.row_number is None:
            return f"{self.stream}: {self.message}"
        return f"Row {self.row_number} ({self.stream}): {self.message}"


@dataclass(frozen=True)
class RowOutcome:
    """Result of processing one transaction."""

    row_number: Optional[int]
    stream: str
    record: Optional[Union[Expense, Revenue]] = None
    error: Optional[RowError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class NameMatch:
    """A counterparty name and the entity it was linked to."""

    name: str
    match: MatchResult

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, **self.match.to_dict()}


@dataclass
class UnmatchedProject:
    """Aggregate of rows whose project reference matched no project."""

    reference: str
    transaction_count: int = 0
    total_amount: Decimal = ZERO
    suggestions: list[tuple[Project, float]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "transaction_count": self.transaction_count,
            "total_amount": self.total_amount,
            "suggestions": [
                {
                    "project_id": project.id,
                    "project_number": project.project_number,
                    "project_name": project.project_name,
                    "confidence": confidence,
                }
                for project, confidence in self.suggestions
            ],
        }


@dataclass
class UnmappedAccount:
    """Aggregate of expenses whose account path no rule recognised."""

    account_path: str
    transaction_count: int = 0
    total_amount: Decimal = ZERO
    suggested_category: Optional[Category] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_path": self.account_path,
            "transaction_count": self.transaction_count,
            "total_amount": self.total_amount,
            "suggested_category": (
                self.suggested_category.value if self.suggested_category else None
            ),
        }


@dataclass(frozen=True)
class DateReview:
    """A row whose date could not be parsed and was replaced with the import date."""

    row_number: Optional[int]
    raw_date: str
    substituted_date: date


@dataclass
class ImportReport:
    """Everything an operator needs to review after an import."""

    total: int = 0
    expense_transactions: int = 0
    revenue_transactions: int = 0
    successful_expenses: int = 0
    failed_expenses: int = 0
    successful_revenues: int = 0
    failed_revenues: int = 0
    skipped_rows: int = 0
    expenses: list[Expense] = field(default_factory=list)
    revenues: list[Revenue] = field(default_factory=list)
    unmatched_projects: dict[str, UnmatchedProject] = field(default_factory=dict)
    unmatched_payees: list[str] = field(default_factory=list)
    unmatched_clients: list[str] = field(default_factory=list)
    payee_matches: list[NameMatch] = field(default_factory=list)
    client_matches: list[NameMatch] = field(default_factory=list)
    low_confidence_payee_matches: list[ResolutionResult] = field(default_factory=list)
    low_confidence_client_matches: list[ResolutionResult] = field(default_factory=list)
    duplicates: list[DuplicateRecord] = field(default_factory=list)
    duplicate_warning: Optional[str] = None
    database_duplicates: list[DatabaseDuplicate] = field(default_factory=list)
    mapping_stats: dict[ClassificationTier, int] = field(
        default_factory=lambda: {tier: 0 for tier in ClassificationTier}
    )
    unmapped_accounts: dict[str, UnmappedAccount] = field(default_factory=dict)
    auto_created_payees: list[Payee] = field(default_factory=list)
    date_review: list[DateReview] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    def add_outcome(self, outcome: RowOutcome) -> None:
        """Merge one row's outcome into the totals."""
        if outcome.stream == REVENUE_STREAM:
            if outcome.ok:
                self.successful_revenues += 1
                self.revenues.append(outcome.record)
            else:
                self.failed_revenues += 1
        else:
            if outcome.ok:
                self.successful_expenses += 1
                self.expenses.append(outcome.record)
            else:
                self.failed_expenses += 1
        if outcome.error is not None:
            self.errors.append(outcome.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "expense_transactions": self.expense_transactions,
            "revenue_transactions": self.revenue_transactions,
            "successful_expenses": self.successful_expenses,
            "failed_expenses": self.failed_expenses,
            "successful_revenues": self.successful_revenues,
            "failed_revenues": self.failed_revenues,
            "skipped_rows": self.skipped_rows,
            "expenses": [asdict(e) for e in self.expenses],
            "revenues": [asdict(r) for r in self.revenues],
            "unmatched_projects": [u.to_dict() for u in self.unmatched_projects.values()],
            "unmatched_payees": list(self.unmatched_payees),
            "unmatched_clients": list(self.unmatched_clients),
            "payee_matches": [m.to_dict() for m in self.payee_matches],
            "client_matches": [m.to_dict() for m in self.client_matches],
            "low_confidence_payee_matches": [
                r.to_dict() for r in self.low_confidence_payee_matches
            ],
            "low_confidence_client_matches": [
                r.to_dict() for r in self.low_confidence_client_matches
            ],
            "duplicates": [d.to_dict() for d in self.duplicates],
            "duplicate_warning": self.duplicate_warning,
            "database_duplicates": [d.to_dict() for d in self.database_duplicates],
            "mapping_stats": {tier.value: count for tier, count in self.mapping_stats.items()},
            "unmapped_accounts": [u.to_dict() for u in self.unmapped_accounts.values()],
            "auto_created_payees": [asdict(p) for p in self.auto_created_payees],
            "date_review": [asdict(d) for d in self.date_review],
            "errors": [asdict(e) for e in self.errors],
        }


@dataclass
class _Batch:
    """Reference data and per-batch caches shared by every row of one import."""

    report: ImportReport
    projects: ProjectMatcher
    payees: list[Payee]
    clients: list[Client]
    classifier: CategoryClassifier
    created_payees: dict[str, Payee] = field(default_factory=dict)
    reported_names: set[tuple[str, str]] = field(default_factory=set)

    def first_report(self, kind: str, name: str) -> bool:
        """True the first time a (kind, name) pair is reported in this batch."""
        key = (kind, name.strip().lower())
        if key in self.reported_names:
            return False
        self.reported_names.add(key)
        return True


class TransactionImportService:
    """Service for importing accounting transactions."""

    def __init__(self, db: "Database", thresholds: Optional[MatchThresholds] = None):
        """Initialize import service.

        Args:
            db: Database instance
            thresholds: Name matching thresholds, defaults to MatchThresholds()
        """
        self.db = db
        self.thresholds = thresholds or MatchThresholds()
        self.resolver = EntityResolver(self.thresholds)

    def import_file(self, file_path: str) -> ImportReport:
        """Read an export file and import its transactions.

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If the file has no recognisable header row
        """
        export = read_export(file_path)
        report = self.import_transactions(export.transactions)
        report.skipped_rows = export.skipped_rows
        report.errors[:0] = [RowError(None, "file", message) for message in export.errors]
        return report

    def import_transactions(self, transactions: Iterable[Transaction]) -> ImportReport:
        """Import a batch of transactions.

        Duplicates within the batch are removed first, then rows already stored
        by an earlier import are skipped; every remaining row is processed on
        its own, so a failing row is reported and the rest of the batch still
        imports.

        Args:
            transactions: Parsed transactions, in file order

        Returns:
            ImportReport for the batch
        """
        transactions = list(transactions)
        report = ImportReport(total=len(transactions))
        logger.info("Starting import of %d transactions", len(transactions))

        check = detect_duplicates(transactions)
        report.duplicates = check.duplicates
        if check.duplicates:
            report.duplicate_warning = DUPLICATE_WARNING
            logger.info("Dropped %d duplicate transactions", len(check.duplicates))

        batch = _Batch(
            report=report,
            projects=ProjectMatcher(self.db.list_projects()),
            payees=self.db.list_payees(),
            clients=self.db.list_clients(),
            classifier=CategoryClassifier(self.db.list_account_mappings(active_only=True)),
        )

        stored = self._stored_keys(check.unique, batch.payees, batch.clients)
        for transaction in check.unique:
            stream = REVENUE_STREAM if transaction.is_invoice else EXPENSE_STREAM
            key = duplicate_key(transaction)
            existing_id = stored[stream].get(key)
            if existing_id is not None:
                report.database_duplicates.append(
                    DatabaseDuplicate(
                        transaction=transaction,
                        stream=stream,
                        existing_id=existing_id,
                        key=key,
                        reason=f"Already imported as {stream} {existing_id}",
                    )
                )
                continue
            if transaction.is_invoice:
                report.revenue_transactions += 1
            else:
                report.expense_transactions += 1
            outcome = self._process_row(transaction, batch)
            if not outcome.ok:
                logger.warning("Failed to import %s", outcome.error)
            report.add_outcome(outcome)

        if report.database_duplicates:
            logger.info(
                "Skipped %d transactions already in the database",
                len(report.database_duplicates),
            )

        logger.info(
            "Import finished: %d/%d expenses, %d/%d revenues, %d errors",
            report.successful_expenses,
            report.expense_transactions,
            report.successful_revenues,
            report.revenue_transactions,
            len(report.errors),
        )
        return report

    def _stored_keys(
        self, transactions: list[Transaction], payees: list[Payee], clients: list[Client]
    ) -> dict[str, dict[str, int]]:
        """Duplicate keys of stored records near the batch's dates, per stream.

        Records are fetched for the batch's date range widened by a day on each
        side. A stored record yields one key per name it can be known by: the
        name in its description and the name of its linked payee or client.
        """
        keys: dict[str, dict[str, int]] = {EXPENSE_STREAM: {}, REVENUE_STREAM: {}}
        dates = []
        for transaction in transactions:
            try:
                dates.append(parse_date(transaction.date))
            except ValueError:
                continue
        if not dates:
            return keys
        start_date = min(dates) - timedelta(days=1)
        end_date = max(dates) + timedelta(days=1)

        payee_names = {payee.id: payee.name for payee in payees}
        for expense in self.db.list_expenses(start_date=start_date, end_date=end_date):
            names = {expense_name_from_description(expense.description)}
            if payee_names.get(expense.payee_id):
                names.add(payee_names[expense.payee_id])
            for name in names:
                key = record_key(expense.expense_date, expense.amount, name)
                keys[EXPENSE_STREAM].setdefault(key, expense.id)

        client_names = {client.id: client.name for client in clients}
        for revenue in self.db.list_revenues(start_date=start_date, end_date=end_date):
            names = {revenue_name_from_description(revenue.description)}
            if client_names.get(revenue.client_id):
                names.add(client_names[revenue.client_id])
            for name in names:
                key = record_key(revenue.invoice_date, revenue.amount, name)
                keys[REVENUE_STREAM].setdefault(key, revenue.id)
        return keys

    def _process_row(self, transaction: Transaction, batch: _Batch) -> RowOutcome:
        stream = REVENUE_STREAM if transaction.is_invoice else EXPENSE_STREAM
        try:
            if transaction.is_invoice:
                record = self._import_revenue(transaction, batch)
            else:
                record = self._import_expense(transaction, batch)
        except Exception as e:
            return RowOutcome(
                row_number=transaction.row_number,
                stream=stream,
                error=RowError(transaction.row_number, stream, str(e)),
            )
        return RowOutcome(row_number=transaction.row_number, stream=stream, record=record)

    def _normalize(self, transaction: Transaction, batch: _Batch) -> tuple[Decimal, date]:
        amount = normalize_amount(transaction.amount)
        transaction_date, needs_review = normalize_date(transaction.date)
        if needs_review:
            batch.report.date_review.append(
                DateReview(transaction.row_number, transaction.date, transaction_date)
            )
        return amount, transaction_date

    def _resolve_project(self, transaction: Transaction, amount: Decimal, batch: _Batch) -> Project:
        match = batch.projects.match(transaction.project_reference)
        if match.project is None:
            raise ValueError(no_projects_available())

        if match.match_type == "unmatched":
            reference = transaction.project_reference.strip()
            unmatched = batch.report.unmatched_projects.get(reference)
            if unmatched is None:
                unmatched = UnmatchedProject(
                    reference=reference,
                    suggestions=batch.projects.suggest(reference),
                )
                batch.report.unmatched_projects[reference] = unmatched
            unmatched.transaction_count += 1
            unmatched.total_amount += abs(amount)
        return match.project

    def _resolve_payee(self, transaction: Transaction, batch: _Batch) -> Optional[int]:
        name = transaction.counterparty_name.strip()
        if not name:
            return None

        cached = batch.created_payees.get(name.lower())
        if cached is not None:
            return cached.id

        result = self.resolver.resolve(name, batch.payees)
        if result.best_match is not None:
            if batch.first_report("payee", name):
                batch.report.payee_matches.append(NameMatch(name, result.best_match))
            return result.best_match.candidate_id

        if result.suggestions:
            if batch.first_report("payee", name):
                batch.report.low_confidence_payee_matches.append(result)
            return None

        payee_type = infer_payee_type(transaction.account_path)
        payee_id = self.db.create_payee(name=name, payee_type=payee_type)
        payee = Payee(id=payee_id, name=name, payee_type=payee_type)
        batch.created_payees[name.lower()] = payee
        batch.payees.append(payee)
        batch.report.auto_created_payees.append(payee)
        batch.report.unmatched_payees.append(name)
        logger.info("Created payee '%s' (%s)", name, payee_type.value)
        return payee_id

    def _resolve_client(self, transaction: Transaction, batch: _Batch) -> Optional[int]:
        name = transaction.counterparty_name.strip()
        if not name:
            return None

        result = self.resolver.resolve(name, batch.clients)
        if result.best_match is not None:
            if batch.first_report("client", name):
                batch.report.client_matches.append(NameMatch(name, result.best_match))
            return result.best_match.candidate_id

        if batch.first_report("client", name):
            if result.suggestions:
                batch.report.low_confidence_client_matches.append(result)
            else:
                batch.report.unmatched_clients.append(name)
        return None

    def _classify(self, transaction: Transaction, amount: Decimal, batch: _Batch) -> Category:
        classification = batch.classifier.classify(
            transaction.counterparty_name, transaction.account_path
        )
        batch.report.mapping_stats[classification.tier] += 1

        account_path = transaction.account_path.strip()
        if classification.tier == ClassificationTier.DEFAULT and account_path:
            unmapped = batch.report.unmapped_accounts.get(account_path)
            if unmapped is None:
                unmapped = UnmappedAccount(
                    account_path=account_path,
                    suggested_category=suggest_category(account_path),
                )
                batch.report.unmapped_accounts[account_path] = unmapped
            unmapped.transaction_count += 1
            unmapped.total_amount += abs(amount)
        return classification.category

    def _import_expense(self, transaction: Transaction, batch: _Batch) -> Expense:
        amount, expense_date = self._normalize(transaction, batch)
        project = self._resolve_project(transaction, amount, batch)
        payee_id = self._resolve_payee(transaction, batch)
        category = self._classify(transaction, amount, batch)
        transaction_type = map_transaction_type(transaction.transaction_type)
        description = (
            f"{transaction.transaction_type.strip().lower()} - "
            f"{transaction.counterparty_name.strip()}"
        )

        expense_id = self.db.create_expense(
            project_id=project.id,
            category=category,
            transaction_type=transaction_type,
            amount=abs(amount),
            expense_date=expense_date,
            payee_id=payee_id,
            description=description,
            account_name=transaction.account_name or None,
            account_full_name=transaction.account_path or None,
        )
        return Expense(
            id=expense_id,
            project_id=project.id,
            category=category,
            transaction_type=transaction_type,
            amount=abs(amount),
            expense_date=expense_date,
            payee_id=payee_id,
            description=description,
            account_name=transaction.account_name or None,
            account_full_name=transaction.account_path or None,
        )

    def _import_revenue(self, transaction: Transaction, batch: _Batch) -> Revenue:
        amount, invoice_date = self._normalize(transaction, batch)
        project = self._resolve_project(transaction, amount, batch)
        client_id = self._resolve_client(transaction, batch)
        description = f"Invoice from {transaction.counterparty_name.strip()}"

        revenue_id = self.db.create_revenue(
            project_id=project.id,
            amount=abs(amount),
            invoice_date=invoice_date,
            description=description,
            client_id=client_id,
            invoice_number=transaction.invoice_number or None,
            account_name=transaction.account_name or None,
            account_full_name=transaction.account_path or None,
        )
        return Revenue(
            id=revenue_id,
            project_id=project.id,
            amount=abs(amount),
            invoice_date=invoice_date,
            description=description,
            client_id=client_id,
            invoice_number=transaction.invoice_number or None,
            account_name=transaction.account_name or None,
            account_full_name=transaction.account_path or None,
        )
