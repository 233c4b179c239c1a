"""Tests for category classification."""

import pytest

from ledgerlink.domain.classification import (
    CategoryClassifier,
    parse_category,
    suggest_category,
)
from ledgerlink.domain.entities import AccountMapping, Category, ClassificationTier
from ledgerlink.domain.errors import ValidationError


def test_database_mapping_beats_static_table():
    """Test that an active mapping wins over a static table hit."""
    mapping = AccountMapping(
        id=1,
        qb_account_full_path="Job Expenses:Contract Labor",
        internal_category=Category.LABOR,
    )
    classifier = CategoryClassifier([mapping])

    result = classifier.classify("Bob", " job expenses:contract labor ")

    assert result.category == Category.LABOR
    assert result.tier == ClassificationTier.DATABASE_MAPPING


def test_inactive_mapping_is_ignored():
    """Test that disabled mappings fall through to the static table."""
    mapping = AccountMapping(
        id=1,
        qb_account_full_path="Job Expenses:Contract Labor",
        internal_category=Category.LABOR,
        is_active=False,
    )
    classifier = CategoryClassifier([mapping])

    result = classifier.classify("Bob", "Job Expenses:Contract Labor")

    assert result.category == Category.SUBCONTRACTOR
    assert result.tier == ClassificationTier.STATIC_MAPPING


@pytest.mark.parametrize(
    "account_path,expected",
    [
        ("Job Expenses:Job Materials", Category.MATERIALS),
        ("Supplies & Materials", Category.MATERIALS),
        ("Job Site Dumpsters", Category.MATERIALS),
        ("Equipment Rental", Category.EQUIPMENT),
        ("Vehicle Expenses:Vehicle Gas & Fuel", Category.MANAGEMENT),
        ("Taxes & Licenses:Permits", Category.PERMITS),
        ("Payroll Expenses:Wages", Category.LABOR),
    ],
)
def test_static_account_table(account_path, expected):
    """Test built-in account path rules."""
    result = CategoryClassifier().classify("Someone", account_path)

    assert result.category == expected
    assert result.tier == ClassificationTier.STATIC_MAPPING


def test_description_keywords_when_no_account_path():
    """Test that the description decides when the account path is empty."""
    result = CategoryClassifier().classify("ACME Supply", "")

    assert result.category == Category.MATERIALS
    assert result.tier == ClassificationTier.DESCRIPTION


def test_default_is_other():
    """Test the fallback category."""
    result = CategoryClassifier().classify("Qqq", "Unknown Account")

    assert result.category == Category.OTHER
    assert result.tier == ClassificationTier.DEFAULT


def test_classification_is_deterministic():
    """Test that repeated classification gives the same answer."""
    classifier = CategoryClassifier()
    results = {classifier.classify("Tool shed rental", "Misc") for _ in range(5)}

    assert len(results) == 1


def test_parse_category():
    """Test category name parsing."""
    assert parse_category(" Materials ") == Category.MATERIALS
    with pytest.raises(ValidationError, match="Unknown category"):
        parse_category("snacks")


def test_suggest_category_for_unmapped_accounts():
    """Test suggestions offered for accounts no rule recognised."""
    assert suggest_category("Job Site Dumpster Fees") == Category.MATERIALS
    assert suggest_category("Safety Gear") == Category.EQUIPMENT
    assert suggest_category("Bonding Costs") == Category.MANAGEMENT
    assert suggest_category("Meals and Entertainment") is None
    assert suggest_category(None) is None
