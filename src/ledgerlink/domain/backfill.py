"""Link imported records to provider transactions by date, amount and name."""

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from ledgerlink.domain.entities import Connection, MatchType
from ledgerlink.domain.entity_resolver import EntityResolver, MatchThresholds
from ledgerlink.domain.errors import ProviderAPIError
from ledgerlink.utils.amount_parser import format_amount_key, normalize_amount
from ledgerlink.utils.date_parser import parse_date

if TYPE_CHECKING:
    from ledgerlink.database.base import Database
    from ledgerlink.domain.token_manager import TokenManager

logger = logging.getLogger(__name__)

EXPENSE_ENTITY_TYPES = ("Bill", "Purchase")
REVENUE_ENTITY_TYPES = ("Invoice",)

# Prefixes the import pipeline and older imports put in revenue descriptions
REVENUE_DESCRIPTION_PREFIXES = ("QB Import: ", "Invoice from ")


@dataclass(frozen=True)
class ProviderTransaction:
    """The parts of a provider record needed for matching."""

    external_id: str
    date: date
    amount: Decimal
    name: str


@dataclass(frozen=True)
class BackfillMatch:
    """An internal record paired with a provider transaction."""

    record_id: int
    external_id: str
    date: date
    amount: Decimal
    name: str
    provider_name: str
    confidence: float
    match_type: MatchType


@dataclass
class BackfillReport:
    """Summary of one backfill run."""

    dry_run: bool = True
    fetched: dict[str, int] = field(default_factory=dict)
    expenses_matched: int = 0
    revenues_matched: int = 0
    expenses_updated: int = 0
    revenues_updated: int = 0
    unmatched_expenses: int = 0
    unmatched_revenues: int = 0
    expense_matches: list[BackfillMatch] = field(default_factory=list)
    revenue_matches: list[BackfillMatch] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["expense_matches"] = [
            {**asdict(m), "match_type": m.match_type.value} for m in self.expense_matches
        ]
        data["revenue_matches"] = [
            {**asdict(m), "match_type": m.match_type.value} for m in self.revenue_matches
        ]
        return data


def match_key(transaction_date: date, amount: Decimal) -> str:
    """Composite ``date|amount`` key with the absolute amount to two decimals."""
    return f"{transaction_date.isoformat()}|{format_amount_key(amount)}"


def _ref_name(record: dict[str, Any], *refs: str) -> str:
    for ref in refs:
        value = record.get(ref)
        if isinstance(value, dict) and value.get("name"):
            return str(value["name"]).strip()
    return ""


def to_provider_transaction(entity_type: str, record: dict[str, Any]) -> Optional[ProviderTransaction]:
    """Extract matching fields from a raw provider record.

    Returns None for records without a counterparty name, id or usable date.
    """
    if entity_type in REVENUE_ENTITY_TYPES:
        name = _ref_name(record, "CustomerRef", "EntityRef")
    else:
        name = _ref_name(record, "EntityRef", "VendorRef")
    record_id = record.get("Id")
    if not name or record_id in (None, ""):
        return None
    try:
        transaction_date = parse_date(record.get("TxnDate"))
    except ValueError:
        return None
    return ProviderTransaction(
        external_id=f"{entity_type}-{record_id}",
        date=transaction_date,
        amount=normalize_amount(record.get("TotalAmt")),
        name=name,
    )


def revenue_name_from_description(description: Optional[str]) -> str:
    """Recover the customer name from an imported revenue's description."""
    name = (description or "").strip()
    for prefix in REVENUE_DESCRIPTION_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):]
    return name.strip()


class BackfillService:
    """Attach provider transaction ids to records imported from exports."""

    def __init__(
        self,
        db: "Database",
        client,
        token_manager: "TokenManager",
        thresholds: Optional[MatchThresholds] = None,
    ):
        """Initialize backfill service.

        Args:
            db: Database instance
            client: Object with ``query(connection, entity_type)``
            token_manager: Keeps the connection's access token valid
            thresholds: Matching thresholds, defaults to MatchThresholds()
        """
        self.db = db
        self.client = client
        self.token_manager = token_manager
        self.resolver = EntityResolver(thresholds or MatchThresholds())

    def _fetch_index(
        self,
        connection: Connection,
        entity_types: tuple[str, ...],
        report: BackfillReport,
    ) -> dict[str, ProviderTransaction]:
        index: dict[str, ProviderTransaction] = {}
        for entity_type in entity_types:
            try:
                records = self.client.query(connection, entity_type)
            except ProviderAPIError as e:
                logger.warning("Fetching %s failed: %s", entity_type, e)
                report.errors.append(f"Failed to fetch {entity_type}: {e}")
                continue
            report.fetched[entity_type] = len(records)
            for record in records:
                transaction = to_provider_transaction(entity_type, record)
                if transaction is None:
                    continue
                # First writer wins for colliding keys
                index.setdefault(match_key(transaction.date, transaction.amount), transaction)
        return index

    def _match(
        self,
        record_id: int,
        record_date: date,
        amount: Decimal,
        name: str,
        index: dict[str, ProviderTransaction],
    ) -> Optional[BackfillMatch]:
        if not name:
            return None
        candidate = index.get(match_key(record_date, amount))
        if candidate is None:
            return None
        ratio, match_type = self.resolver.link_confidence(name, candidate.name)
        if match_type is None:
            return None
        return BackfillMatch(
            record_id=record_id,
            external_id=candidate.external_id,
            date=record_date,
            amount=amount,
            name=name,
            provider_name=candidate.name,
            confidence=round(ratio, 4),
            match_type=match_type,
        )

    def run(self, connection: Connection, dry_run: bool = True) -> BackfillReport:
        """Match unlinked expenses and revenues against provider transactions.

        Args:
            connection: Active provider connection
            dry_run: When True nothing is written

        Returns:
            BackfillReport

        Raises:
            AuthenticationError: If the token cannot be refreshed or the
                provider rejects it
        """
        started = time.monotonic()
        report = BackfillReport(dry_run=dry_run)
        logger.info("Starting backfill (%s)", "dry run" if dry_run else "commit")

        connection = self.token_manager.ensure_valid(connection)
        expense_index = self._fetch_index(connection, EXPENSE_ENTITY_TYPES, report)
        revenue_index = self._fetch_index(connection, REVENUE_ENTITY_TYPES, report)

        payee_names = {payee.id: payee.name for payee in self.db.list_payees()}
        client_names = {client.id: client.name for client in self.db.list_clients()}

        for expense in self.db.list_expenses(unlinked_only=True):
            name = payee_names.get(expense.payee_id, "") if expense.payee_id else ""
            match = self._match(
                expense.id, expense.expense_date, expense.amount, name, expense_index
            )
            if match is None:
                report.unmatched_expenses += 1
                continue
            report.expenses_matched += 1
            report.expense_matches.append(match)

        for revenue in self.db.list_revenues(unlinked_only=True):
            name = client_names.get(revenue.client_id, "") if revenue.client_id else ""
            if not name:
                name = revenue_name_from_description(revenue.description)
            match = self._match(
                revenue.id, revenue.invoice_date, revenue.amount, name, revenue_index
            )
            if match is None:
                report.unmatched_revenues += 1
                continue
            report.revenues_matched += 1
            report.revenue_matches.append(match)

        if not dry_run:
            report.expenses_updated = self._apply(
                report.expense_matches, self.db.set_expense_external_id, "expense", report
            )
            report.revenues_updated = self._apply(
                report.revenue_matches, self.db.set_revenue_external_id, "revenue", report
            )

        report.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Backfill finished: %d/%d expenses, %d/%d revenues matched",
            report.expenses_matched,
            report.expenses_matched + report.unmatched_expenses,
            report.revenues_matched,
            report.revenues_matched + report.unmatched_revenues,
        )
        return report

    def _apply(self, matches, setter, kind: str, report: BackfillReport) -> int:
        updated = 0
        for match in matches:
            try:
                if setter(match.record_id, match.external_id):
                    updated += 1
            except Exception as e:
                logger.warning("Failed to link %s %d: %s", kind, match.record_id, e)
                report.errors.append(f"Failed to update {kind} {match.record_id}: {e}")
        return updated
