"""Runtime configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ledgerlink.domain.entities import Environment
from ledgerlink.domain.errors import ValidationError

TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"

API_BASE_URLS = {
    Environment.SANDBOX: "https://sandbox-quickbooks.api.intuit.com",
    Environment.PRODUCTION: "https://quickbooks.api.intuit.com",
}


@dataclass(frozen=True)
class Settings:
    """Settings shared by the CLI and the services."""

    database_path: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    environment: Environment = Environment.SANDBOX
    http_timeout: float = 30.0
    auto_match_threshold: float = 75.0
    suggestion_threshold: float = 40.0
    backfill_threshold: float = 0.8

    @property
    def api_base_url(self) -> str:
        return API_BASE_URLS[self.environment]

    @property
    def token_url(self) -> str:
        return TOKEN_URL


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    value = env.get(key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"{key} must be a number, got '{value}'")


def parse_environment(value: Optional[str]) -> Environment:
    """Convert 'sandbox'/'production' (any case) to an Environment."""
    if not value:
        return Environment.SANDBOX
    try:
        return Environment(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown environment '{value}'. Must be one of: sandbox, production"
        )


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables.

    Args:
        env: Mapping to read from, defaults to os.environ

    Returns:
        Settings instance
    """
    if env is None:
        env = os.environ

    return Settings(
        database_path=env.get("LEDGERLINK_DB_PATH") or None,
        client_id=env.get("QUICKBOOKS_CLIENT_ID") or None,
        client_secret=env.get("QUICKBOOKS_CLIENT_SECRET") or None,
        environment=parse_environment(env.get("QUICKBOOKS_ENVIRONMENT")),
        http_timeout=_float(env, "LEDGERLINK_HTTP_TIMEOUT", 30.0),
        auto_match_threshold=_float(env, "LEDGERLINK_AUTO_MATCH_THRESHOLD", 75.0),
        suggestion_threshold=_float(env, "LEDGERLINK_SUGGESTION_THRESHOLD", 40.0),
        backfill_threshold=_float(env, "LEDGERLINK_BACKFILL_THRESHOLD", 0.8),
    )
