"""Reader for transaction exports from the accounting system."""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ledgerlink.domain.entities import Transaction
from ledgerlink.domain.errors import ValidationError

logger = logging.getLogger(__name__)

METADATA_MARKERS = ("quickbooks", "report")

# Column role -> substrings that identify it in the header, checked in order.
# "project" must be resolved before "type" so "Project/WO #" is not mistaken.
COLUMN_ROLES: list[tuple[str, tuple[str, ...]]] = [
    ("date", ("date",)),
    ("account_name", ("account name",)),
    ("account_path", ("account full", "account")),
    ("project", ("project", "job", "wo")),
    ("type", ("transaction type", "type", "transaction")),
    ("amount", ("amount", "total")),
    ("name", ("name", "payee", "vendor")),
    ("invoice", ("invoice", "num")),
]

REQUIRED_ROLES = ("date", "amount")


@dataclass
class ExportFile:
    """Parsed export: transactions plus what was skipped along the way."""

    transactions: list[Transaction] = field(default_factory=list)
    header: list[str] = field(default_factory=list)
    columns: dict[str, int] = field(default_factory=dict)
    skipped_rows: int = 0
    errors: list[str] = field(default_factory=list)


def detect_columns(header: list[str]) -> dict[str, int]:
    """Map column roles to header positions by substring match.

    Each header cell is claimed by at most one role, and each role takes the
    first unclaimed cell that matches.
    """
    cells = [(cell or "").strip().lower() for cell in header]
    columns: dict[str, int] = {}
    claimed: set[int] = set()

    for role, needles in COLUMN_ROLES:
        for needle in needles:
            position = next(
                (
                    i
                    for i, cell in enumerate(cells)
                    if i not in claimed and cell and needle in cell
                ),
                None,
            )
            if position is not None:
                columns[role] = position
                claimed.add(position)
                break

    return columns


def _is_metadata_row(row: list[str]) -> bool:
    values = [(value or "").strip() for value in row]
    non_empty = [value for value in values if value]
    if not non_empty:
        return True
    if len(non_empty) == 1:
        return True
    lowered = " ".join(non_empty).lower()
    return any(marker in lowered for marker in METADATA_MARKERS)


def _is_header_row(row: list[str]) -> bool:
    columns = detect_columns(row)
    return all(role in columns for role in REQUIRED_ROLES)


def _cell(row: list[str], columns: dict[str, int], role: str) -> str:
    position = columns.get(role)
    if position is None or position >= len(row):
        return ""
    return (row[position] or "").strip()


def _sniff_delimiter(sample: str) -> str:
    try:
        return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
    except csv.Error:
        return ","


def read_export(file_path: str) -> ExportFile:
    """Read an accounting export file into transactions.

    Provider metadata rows above the header (report title, company name,
    date range, blank lines) are skipped. The header is the first row that
    has both a date and an amount column.

    Args:
        file_path: Path to the delimited export

    Returns:
        ExportFile with the parsed transactions

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If no header row can be found
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Export file not found: {file_path}")

    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        rows = list(csv.reader(f, delimiter=_sniff_delimiter(sample)))

    result = ExportFile()
    header_index: Optional[int] = None
    for index, row in enumerate(rows):
        if _is_header_row(row):
            header_index = index
            break
        if not _is_metadata_row(row):
            logger.debug("Skipping unrecognised row %d above header: %s", index + 1, row)
        result.skipped_rows += 1

    if header_index is None:
        raise ValidationError(
            f"Could not find a header row with date and amount columns in {file_path}"
        )

    result.header = [(cell or "").strip() for cell in rows[header_index]]
    result.columns = detect_columns(result.header)

    for index in range(header_index + 1, len(rows)):
        row = rows[index]
        row_number = index + 1
        if not any((value or "").strip() for value in row):
            result.skipped_rows += 1
            continue

        date_value = _cell(row, result.columns, "date")
        name_value = _cell(row, result.columns, "name")
        first_cell = (row[0] or "").strip().lower() if row else ""
        if first_cell.startswith("total") or (not date_value and not name_value):
            result.skipped_rows += 1
            continue

        if len(row) < len(result.header):
            result.errors.append(
                f"Row {row_number}: expected {len(result.header)} columns, got {len(row)}"
            )

        result.transactions.append(
            Transaction(
                date=date_value,
                transaction_type=_cell(row, result.columns, "type"),
                counterparty_name=name_value,
                amount=_cell(row, result.columns, "amount"),
                project_reference=_cell(row, result.columns, "project"),
                account_path=_cell(row, result.columns, "account_path"),
                account_name=_cell(row, result.columns, "account_name"),
                invoice_number=_cell(row, result.columns, "invoice"),
                row_number=row_number,
            )
        )

    logger.info(
        "Read %d transactions from %s (%d rows skipped)",
        len(result.transactions),
        path.name,
        result.skipped_rows,
    )
    return result
