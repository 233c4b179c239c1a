"""Utility functions for ledgerlink."""

from ledgerlink.utils.date_parser import parse_date, normalize_date
from ledgerlink.utils.amount_parser import parse_amount, normalize_amount
from ledgerlink.utils.similarity import levenshtein, similarity

__all__ = [
    "parse_date",
    "normalize_date",
    "parse_amount",
    "normalize_amount",
    "levenshtein",
    "similarity",
]
