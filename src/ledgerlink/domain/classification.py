"""Expense category classification."""

from dataclasses import dataclass
from typing import Iterable, Optional

from ledgerlink.domain.entities import AccountMapping, Category, ClassificationTier
from ledgerlink.domain.errors import ValidationError, invalid_category

# Built-in account path substrings -> category, checked in order.
STATIC_ACCOUNT_RULES: list[tuple[str, Category]] = [
    ("contract labor", Category.SUBCONTRACTOR),
    ("subcontractor", Category.SUBCONTRACTOR),
    ("supplies & materials", Category.MATERIALS),
    ("job site dumpsters", Category.MATERIALS),
    ("materials", Category.MATERIALS),
    ("equipment rental", Category.EQUIPMENT),
    ("tools & equipment", Category.EQUIPMENT),
    ("office equipment & supplies", Category.MANAGEMENT),
    ("office expenses", Category.MANAGEMENT),
    ("vehicle gas & fuel", Category.MANAGEMENT),
    ("vehicle expenses", Category.MANAGEMENT),
    ("uniforms", Category.MANAGEMENT),
    ("building & land rent", Category.MANAGEMENT),
    ("workers' compensation insurance", Category.MANAGEMENT),
    ("business insurance", Category.MANAGEMENT),
    ("legal & accounting services", Category.MANAGEMENT),
    ("permits", Category.PERMITS),
    ("licenses", Category.PERMITS),
    ("payroll expenses", Category.LABOR),
    ("wages", Category.LABOR),
]

# Description keywords -> category, checked in order.
DESCRIPTION_RULES: list[tuple[tuple[str, ...], Category]] = [
    (("labor", "wage", "payroll"), Category.LABOR),
    (("contractor", "subcontractor"), Category.SUBCONTRACTOR),
    (("material", "supply", "lumber", "concrete"), Category.MATERIALS),
    (("equipment", "rental", "tool", "machinery"), Category.EQUIPMENT),
    (("permit", "fee", "license"), Category.PERMITS),
    (("management", "admin", "office"), Category.MANAGEMENT),
]

# Looser account name keywords, only used to suggest a mapping for unmapped accounts.
SUGGESTION_RULES: list[tuple[tuple[str, ...], Category]] = [
    (
        ("dumpster", "disposal", "material", "supply", "supplies", "lumber", "concrete", "aggregate"),
        Category.MATERIALS,
    ),
    (("tool", "safety", "equipment", "rental", "machinery"), Category.EQUIPMENT),
    (
        (
            "insurance", "bond", "office", "admin", "management", "vehicle", "fuel",
            "gas", "uniform", "rent", "legal", "accounting",
        ),
        Category.MANAGEMENT,
    ),
    (("labor", "wage", "payroll"), Category.LABOR),
    (("contract", "subcontract"), Category.SUBCONTRACTOR),
    (("permit", "license", "fee"), Category.PERMITS),
]


@dataclass(frozen=True)
class Classification:
    """A category and the tier that produced it."""

    category: Category
    tier: ClassificationTier


def _first_keyword_hit(
    text: str, rules: list[tuple[tuple[str, ...], Category]]
) -> Optional[Category]:
    for keywords, category in rules:
        if any(keyword in text for keyword in keywords):
            return category
    return None


def parse_category(value: str) -> Category:
    """Convert a category name (any case) to a Category.

    Raises:
        ValidationError: If the name is not a known category
    """
    try:
        return Category(value.strip().lower())
    except ValueError:
        raise ValidationError(invalid_category(value))


def suggest_category(account_path: Optional[str]) -> Optional[Category]:
    """Suggest a category for an unmapped account path, or None."""
    if not account_path:
        return None
    return _first_keyword_hit(account_path.lower(), SUGGESTION_RULES)


class CategoryClassifier:
    """Resolve an expense's category through an ordered chain of rules.

    Priority order, first hit wins:
    1. Active user-defined account mappings (exact path, case-insensitive)
    2. Built-in account path table
    3. Description keywords
    4. ``Category.OTHER``
    """

    def __init__(self, mappings: Iterable[AccountMapping] = ()):
        self._mappings = {
            m.qb_account_full_path.strip().lower(): m.internal_category
            for m in mappings
            if m.is_active
        }

    def from_mapping(self, account_path: Optional[str]) -> Optional[Category]:
        if not account_path:
            return None
        return self._mappings.get(account_path.strip().lower())

    @staticmethod
    def from_static_table(account_path: Optional[str]) -> Optional[Category]:
        if not account_path:
            return None
        lowered = account_path.lower()
        for substring, category in STATIC_ACCOUNT_RULES:
            if substring in lowered:
                return category
        return None

    @staticmethod
    def from_description(description: Optional[str]) -> Optional[Category]:
        if not description:
            return None
        return _first_keyword_hit(description.lower(), DESCRIPTION_RULES)

    def classify(
        self, description: Optional[str], account_path: Optional[str] = None
    ) -> Classification:
        """Classify an expense.

        Args:
            description: Free text describing the expense (usually the payee name)
            account_path: Provider account full path, if any

        Returns:
            Classification with the category and the tier that matched
        """
        category = self.from_mapping(account_path)
        if category is not None:
            return Classification(category, ClassificationTier.DATABASE_MAPPING)

        category = self.from_static_table(account_path)
        if category is not None:
            return Classification(category, ClassificationTier.STATIC_MAPPING)

        category = self.from_description(description)
        if category is not None:
            return Classification(category, ClassificationTier.DESCRIPTION)

        return Classification(Category.OTHER, ClassificationTier.DEFAULT)
