"""Tests for the transaction import pipeline."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from ledgerlink.domain.duplicates import DUPLICATE_WARNING
from ledgerlink.domain.entities import (
    AccountMapping,
    Category,
    ClassificationTier,
    PayeeType,
    Transaction,
    TransactionType,
)
from ledgerlink.domain.transaction_import import (
    TransactionImportService,
    expense_name_from_description,
    map_transaction_type,
)


def make_transaction(
    name="Home Depot",
    amount="100.00",
    transaction_type="Bill",
    project="125-244",
    account_path="Job Expenses:Job Materials",
    date_str="2024-01-15",
    row=None,
    invoice_number="",
):
    return Transaction(
        date=date_str,
        transaction_type=transaction_type,
        counterparty_name=name,
        amount=amount,
        project_reference=project,
        account_path=account_path,
        invoice_number=invoice_number,
        row_number=row,
    )


def test_expense_is_persisted(import_service, temp_db, sample_projects, sample_payees):
    """Test a matched expense end to end."""
    report = import_service.import_transactions(
        [make_transaction(amount="(1,200.00)", row=2)]
    )

    assert report.successful_expenses == 1
    assert report.failed_expenses == 0
    expense = temp_db.get_expense(report.expenses[0].id)
    assert expense.project_id == sample_projects["smith"]
    assert expense.payee_id == sample_payees["home_depot"]
    assert expense.amount == Decimal("1200.00")
    assert expense.expense_date == date(2024, 1, 15)
    assert expense.category == Category.MATERIALS
    assert expense.transaction_type == TransactionType.BILL
    assert expense.description == "bill - Home Depot"
    assert expense.account_full_name == "Job Expenses:Job Materials"
    assert expense.external_transaction_id is None
    assert report.payee_matches[0].match.candidate_id == sample_payees["home_depot"]


def test_description_classification_without_account(import_service, temp_db, sample_projects):
    """Test that a supply vendor with no account path is classified as materials."""
    report = import_service.import_transactions(
        [make_transaction(name="ACME Supply", amount="(1,200.00)", account_path="")]
    )

    expense = report.expenses[0]
    assert expense.category == Category.MATERIALS
    assert expense.amount == Decimal("1200.00")
    assert report.mapping_stats[ClassificationTier.DESCRIPTION] == 1


def test_invoice_becomes_revenue(import_service, temp_db, sample_projects, sample_clients):
    """Test that invoices go to the revenue stream with a matched client."""
    report = import_service.import_transactions(
        [
            make_transaction(
                name="Jane Smith",
                amount="$5,000.00",
                transaction_type="Invoice",
                account_path="Income:Sales",
                invoice_number="2001",
            )
        ]
    )

    assert report.revenue_transactions == 1
    assert report.successful_revenues == 1
    assert report.expenses == []
    revenue = temp_db.get_revenue(report.revenues[0].id)
    assert revenue.client_id == sample_clients["smith"]
    assert revenue.amount == Decimal("5000.00")
    assert revenue.description == "Invoice from Jane Smith"
    assert revenue.invoice_number == "2001"
    assert report.client_matches[0].name == "Jane Smith"
    # revenues are not classified
    assert sum(report.mapping_stats.values()) == 0


def test_unknown_client_is_not_created(import_service, temp_db, sample_projects, sample_clients):
    """Test that clients are never auto-created."""
    report = import_service.import_transactions(
        [make_transaction(name="Qqqqqqqq", transaction_type="Invoice", account_path="")]
    )

    assert report.successful_revenues == 1
    assert report.revenues[0].client_id is None
    assert report.unmatched_clients == ["Qqqqqqqq"]
    assert len(temp_db.list_clients()) == 1


def test_unknown_payee_is_created_once(import_service, temp_db, sample_projects, sample_payees):
    """Test payee auto-creation with the per-batch cache."""
    report = import_service.import_transactions(
        [
            make_transaction(name="Ace Rentals", amount="450", account_path="Equipment Rental"),
            make_transaction(name="ace rentals", amount="50", account_path="Equipment Rental"),
        ]
    )

    assert report.successful_expenses == 2
    assert len(report.auto_created_payees) == 1
    created = report.auto_created_payees[0]
    assert created.name == "Ace Rentals"
    assert created.payee_type == PayeeType.EQUIPMENT_RENTAL
    assert report.unmatched_payees == ["Ace Rentals"]
    assert {e.payee_id for e in report.expenses} == {created.id}
    assert len(temp_db.list_payees()) == 3


def test_low_confidence_payee_is_reported(import_service, temp_db, sample_projects, sample_payees):
    """Test that a 40-75 match is left for review rather than linked or created."""
    report = import_service.import_transactions([make_transaction(name="Hone Dep")])

    assert report.expenses[0].payee_id is None
    assert report.auto_created_payees == []
    assert len(report.low_confidence_payee_matches) == 1
    suggestion = report.low_confidence_payee_matches[0].suggestions[0]
    assert suggestion.candidate_id == sample_payees["home_depot"]


def test_empty_name_has_no_payee(import_service, temp_db, sample_projects, sample_payees):
    """Test that blank names neither match nor create payees."""
    report = import_service.import_transactions([make_transaction(name="")])

    assert report.successful_expenses == 1
    assert report.expenses[0].payee_id is None
    assert report.auto_created_payees == []


def test_duplicates_are_skipped_and_flagged(import_service, temp_db, sample_projects, sample_payees):
    """Test that only the first of two identical rows is imported."""
    report = import_service.import_transactions(
        [make_transaction(row=2), make_transaction(row=3)]
    )

    assert report.total == 2
    assert report.successful_expenses == 1
    assert len(temp_db.list_expenses()) == 1
    assert len(report.duplicates) == 1
    assert report.duplicates[0].transaction.row_number == 3
    assert "Home Depot" in report.duplicates[0].reason
    assert "2024-01-15" in report.duplicates[0].reason
    assert report.duplicate_warning == DUPLICATE_WARNING


def test_no_duplicate_warning_without_duplicates(import_service, sample_projects):
    """Test that the collapse warning only appears when something collapsed."""
    report = import_service.import_transactions([make_transaction()])

    assert report.duplicate_warning is None


def test_unmatched_project_goes_to_default(import_service, temp_db, sample_projects):
    """Test unmatched project aggregation and default routing."""
    report = import_service.import_transactions(
        [
            make_transaction(project="999-001", amount="10.00", name="A"),
            make_transaction(project="999-001", amount="(5.50)", name="B"),
            make_transaction(project="TOOLS", amount="1.00", name="C"),
        ]
    )

    assert all(e.project_id == sample_projects["misc"] for e in report.expenses)
    assert list(report.unmatched_projects) == ["999-001"]
    unmatched = report.unmatched_projects["999-001"]
    assert unmatched.transaction_count == 2
    assert unmatched.total_amount == Decimal("15.50")


def test_prefix_project_match(import_service, temp_db, sample_projects):
    """Test that a reference sharing a prefix is assigned to that project."""
    report = import_service.import_transactions([make_transaction(project="125-999")])

    assert report.expenses[0].project_id == sample_projects["smith"]
    assert report.unmatched_projects == {}


def test_no_projects_fails_rows(import_service, temp_db):
    """Test that rows fail, but the batch completes, when no project exists."""
    report = import_service.import_transactions(
        [
            make_transaction(row=2),
            make_transaction(name="Jane Smith", transaction_type="Invoice", row=3),
        ]
    )

    assert report.failed_expenses == 1
    assert report.failed_revenues == 1
    assert [e.row_number for e in report.errors] == [2, 3]
    assert report.errors[0].stream == "expense"
    assert "No projects" in report.errors[0].message


def test_bad_date_is_flagged_for_review(import_service, temp_db, sample_projects):
    """Test that an unparseable date is replaced with today and reported."""
    report = import_service.import_transactions(
        [make_transaction(date_str="not a date", row=4)]
    )

    assert report.successful_expenses == 1
    assert report.expenses[0].expense_date == date.today()
    assert report.date_review[0].row_number == 4
    assert report.date_review[0].raw_date == "not a date"


def test_database_mapping_is_used(import_service, temp_db, sample_projects):
    """Test that a stored mapping overrides the built-in account rules."""
    temp_db.create_account_mapping("Job Expenses:Job Materials", Category.EQUIPMENT)

    report = import_service.import_transactions([make_transaction()])

    assert report.expenses[0].category == Category.EQUIPMENT
    assert report.mapping_stats[ClassificationTier.DATABASE_MAPPING] == 1


def test_unmapped_accounts_are_aggregated(import_service, sample_projects):
    """Test unmapped account reporting with a suggested category."""
    report = import_service.import_transactions(
        [
            make_transaction(name="Qqq", account_path="Job Site Safety", amount="10"),
            make_transaction(name="Www", account_path="Job Site Safety", amount="20"),
        ]
    )

    unmapped = report.unmapped_accounts["Job Site Safety"]
    assert unmapped.transaction_count == 2
    assert unmapped.total_amount == Decimal("30")
    assert unmapped.suggested_category == Category.EQUIPMENT
    assert report.mapping_stats[ClassificationTier.DEFAULT] == 2


def test_row_failure_does_not_abort_batch(import_service, temp_db, sample_projects):
    """Test that a database error on one row is reported and the rest import."""
    original = temp_db.create_expense
    calls = {"count": 0}

    def flaky_create_expense(**kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("disk full")
        return original(**kwargs)

    with patch.object(temp_db, "create_expense", side_effect=flaky_create_expense):
        report = import_service.import_transactions(
            [
                make_transaction(name="A", row=2),
                make_transaction(name="B", row=3),
            ]
        )

    assert report.failed_expenses == 1
    assert report.successful_expenses == 1
    assert report.errors[0].row_number == 2
    assert "disk full" in report.errors[0].message


def test_import_file(import_service, temp_db, sample_projects, sample_payees, sample_clients, fixtures_dir):
    """Test importing the sample export file."""
    report = import_service.import_file(str(fixtures_dir / "transaction_export.csv"))

    assert report.total == 6
    assert report.skipped_rows == 5
    assert len(report.duplicates) == 1
    assert report.expense_transactions == 4
    assert report.revenue_transactions == 1
    assert report.successful_expenses == 4
    assert report.successful_revenues == 1
    assert report.errors == []
    assert [p.name for p in report.auto_created_payees] == ["Ace Rentals", "Bob's Diner"]
    assert list(report.unmatched_projects) == ["999-001"]
    assert list(report.unmapped_accounts) == ["Meals and Entertainment"]
    assert report.mapping_stats[ClassificationTier.STATIC_MAPPING] == 3
    assert report.mapping_stats[ClassificationTier.DEFAULT] == 1

    types = [e.transaction_type for e in report.expenses]
    assert types == [
        TransactionType.BILL,
        TransactionType.CHECK,
        TransactionType.CREDIT_CARD,
        TransactionType.EXPENSE,
    ]


def test_import_file_twice(import_service, temp_db, sample_projects, sample_payees, sample_clients, fixtures_dir):
    """Test that importing the same export again stores nothing new."""
    export_file = str(fixtures_dir / "transaction_export.csv")
    import_service.import_file(export_file)

    report = import_service.import_file(export_file)

    assert report.total == 6
    assert len(report.duplicates) == 1
    assert len(report.database_duplicates) == 5
    assert report.successful_expenses == 0
    assert report.successful_revenues == 0
    assert report.expense_transactions == 0
    assert report.revenue_transactions == 0
    assert report.auto_created_payees == []
    assert len(temp_db.list_expenses()) == 4
    assert len(temp_db.list_revenues()) == 1
    assert {d.stream for d in report.database_duplicates} == {"expense", "revenue"}


def test_repeat_import_skips_stored_transaction(import_service, temp_db, sample_projects, sample_payees):
    """Test that a row already stored is skipped while new rows still import."""
    first = import_service.import_transactions([make_transaction(row=2)])
    stored_id = first.expenses[0].id

    report = import_service.import_transactions(
        [make_transaction(row=2), make_transaction(name="Lowes", amount="75.00", row=3)]
    )

    assert report.successful_expenses == 1
    assert report.expenses[0].amount == Decimal("75.00")
    skipped = report.database_duplicates[0]
    assert skipped.existing_id == stored_id
    assert skipped.reason == f"Already imported as expense {stored_id}"
    assert skipped.key == "2024-01-15|100.00|home depot"
    assert report.to_dict()["database_duplicates"][0]["row_number"] == 2
    assert len(temp_db.list_expenses()) == 2


def test_stored_records_only_match_their_own_stream(import_service, temp_db, sample_projects, sample_clients):
    """Test that an invoice never counts as a repeat of an expense."""
    import_service.import_transactions([make_transaction(name="Jane Smith")])

    report = import_service.import_transactions(
        [make_transaction(name="Jane Smith", transaction_type="Invoice", account_path="Income:Sales")]
    )

    assert report.database_duplicates == []
    assert report.successful_revenues == 1


def test_repeat_import_of_nameless_row_is_skipped(import_service, temp_db, sample_projects):
    """Test that a row with no name matches a stored record with no name."""
    import_service.import_transactions([make_transaction(name="")])

    report = import_service.import_transactions([make_transaction(name="")])

    assert len(report.database_duplicates) == 1
    assert report.successful_expenses == 0
    assert len(temp_db.list_expenses()) == 1


def test_stored_records_outside_date_window_ignored(import_service, temp_db, sample_projects, sample_payees):
    """Test that only records within a day of the batch are compared."""
    import_service.import_transactions([make_transaction(date_str="2024-01-10")])

    report = import_service.import_transactions([make_transaction(date_str="2024-01-15")])

    assert report.database_duplicates == []
    assert report.successful_expenses == 1


def test_expense_name_from_description():
    """Test recovering the payee name from stored expense descriptions."""
    assert expense_name_from_description("bill - Home Depot") == "Home Depot"
    assert expense_name_from_description("check - A - B Supply") == "A - B Supply"
    assert expense_name_from_description("Manual entry") == "Manual entry"
    assert expense_name_from_description("bill - ") == ""
    assert expense_name_from_description(None) == ""


def test_report_to_dict(import_service, sample_projects):
    """Test the serialisable report."""
    report = import_service.import_transactions([make_transaction(), make_transaction()])

    data = report.to_dict()

    assert data["total"] == 2
    assert data["successful_expenses"] == 1
    assert data["mapping_stats"]["static_mapping"] == 1
    assert data["duplicates"][0]["reason"].startswith("Duplicate of: Home Depot")
    assert data["duplicate_warning"] == DUPLICATE_WARNING
    assert data["expenses"][0]["category"] == Category.MATERIALS


def test_map_transaction_type():
    """Test transaction type keyword mapping."""
    assert map_transaction_type("Bill") == TransactionType.BILL
    assert map_transaction_type("Check") == TransactionType.CHECK
    assert map_transaction_type("Credit Card Expense") == TransactionType.CREDIT_CARD
    assert map_transaction_type("Cash Expense") == TransactionType.CASH
    assert map_transaction_type("Expense") == TransactionType.EXPENSE
    assert map_transaction_type("Journal Entry") == TransactionType.EXPENSE
    assert map_transaction_type(None) == TransactionType.EXPENSE


def test_custom_thresholds(temp_db, sample_projects, sample_payees):
    """Test that thresholds passed to the service are used."""
    from ledgerlink.domain.entity_resolver import MatchThresholds

    service = TransactionImportService(temp_db, MatchThresholds(auto_match=60.0))
    report = service.import_transactions([make_transaction(name="Hone Dep")])

    assert report.expenses[0].payee_id == sample_payees["home_depot"]
