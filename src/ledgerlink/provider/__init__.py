"""Accounting provider integration."""

from ledgerlink.provider.client import AccountingClient, TokenGrant

__all__ = ["AccountingClient", "TokenGrant"]
