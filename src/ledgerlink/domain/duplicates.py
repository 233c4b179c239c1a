"""Duplicate detection for imported transactions, within a batch and against stored records."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from ledgerlink.domain.entities import Transaction
from ledgerlink.utils.amount_parser import format_amount_key, normalize_amount
from ledgerlink.utils.date_parser import parse_date

DUPLICATE_WARNING = (
    "Duplicates are detected by date, amount and name only. Two genuine "
    "transactions with the same date, amount and counterparty (for example two "
    "identical fuel purchases) are collapsed into one; review the duplicates "
    "list and re-enter any that are real."
)


@dataclass(frozen=True)
class DuplicateRecord:
    """A transaction dropped because an earlier row had the same key."""

    transaction: Transaction
    original: Transaction
    key: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.transaction.row_number,
            "original_row_number": self.original.row_number,
            "name": self.transaction.counterparty_name,
            "date": self.transaction.date,
            "amount": self.transaction.amount,
            "key": self.key,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class DatabaseDuplicate:
    """A transaction skipped because an earlier import already stored it."""

    transaction: Transaction
    stream: str
    existing_id: int
    key: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.transaction.row_number,
            "stream": self.stream,
            "existing_id": self.existing_id,
            "name": self.transaction.counterparty_name,
            "date": self.transaction.date,
            "amount": self.transaction.amount,
            "key": self.key,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class DuplicateCheck:
    unique: list[Transaction] = field(default_factory=list)
    duplicates: list[DuplicateRecord] = field(default_factory=list)


def record_key(record_date: date, amount: Decimal, name: str) -> str:
    """Key of an already stored record, comparable with duplicate_key."""
    return f"{record_date.isoformat()}|{format_amount_key(amount)}|{(name or '').strip()}".lower()


def duplicate_key(transaction: Transaction) -> str:
    """Build the natural key ``date|amount|name`` (lower-cased).

    The date is normalised to ISO format when it parses, so "01/05/2024" and
    "2024-01-05" collide; the amount is the absolute value to two decimals.
    """
    try:
        date_part = parse_date(transaction.date).isoformat()
    except ValueError:
        date_part = (transaction.date or "").strip()
    amount_part = format_amount_key(normalize_amount(transaction.amount))
    name_part = (transaction.counterparty_name or "").strip()
    return f"{date_part}|{amount_part}|{name_part}".lower()


def detect_duplicates(transactions: Iterable[Transaction]) -> DuplicateCheck:
    """Split a batch into first occurrences and later repeats.

    Args:
        transactions: Parsed transactions, in file order

    Returns:
        DuplicateCheck with ``unique`` (first occurrence of every key, in order)
        and ``duplicates`` (each later occurrence with a reason naming the first)
    """
    seen: dict[str, Transaction] = {}
    unique: list[Transaction] = []
    duplicates: list[DuplicateRecord] = []

    for transaction in transactions:
        key = duplicate_key(transaction)
        original = seen.get(key)
        if original is None:
            seen[key] = transaction
            unique.append(transaction)
            continue
        duplicates.append(
            DuplicateRecord(
                transaction=transaction,
                original=original,
                key=key,
                reason=(
                    f"Duplicate of: {original.counterparty_name} on {original.date} "
                    f"for {original.amount}"
                ),
            )
        )

    return DuplicateCheck(unique=unique, duplicates=duplicates)
