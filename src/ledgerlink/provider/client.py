"""HTTP client for the accounting provider's OAuth and query endpoints.

Every request attempt, successful or not, is recorded in the sync log when a
database is supplied. Tokens and client secrets are never written to the log
or to the audit trail.
"""

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import requests

from ledgerlink.config import API_BASE_URLS, Settings
from ledgerlink.domain.entities import Connection, Environment
from ledgerlink.domain.errors import (
    AuthenticationError,
    ProviderAPIError,
    missing_client_credentials,
    token_refresh_failed,
)

if TYPE_CHECKING:
    from ledgerlink.database.base import Database

logger = logging.getLogger(__name__)

MINOR_VERSION = "65"
PAGE_SIZE = 1000

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class TokenGrant:
    """Tokens returned by a successful refresh."""

    access_token: str
    refresh_token: str
    expires_in: int


def _json_or_text(response: requests.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"text": response.text[:2000]}
    return body if isinstance(body, dict) else {"body": body}


class AccountingClient:
    """Thin wrapper around the provider's REST API."""

    def __init__(
        self,
        settings: Settings,
        db: Optional["Database"] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize client.

        Args:
            settings: Credentials, environment and timeout
            db: Database used for the sync log; nothing is logged when None
            session: requests session to use, mainly for tests
        """
        self.settings = settings
        self.db = db
        self.session = session or requests.Session()

    def _log_call(
        self,
        entity_type: str,
        direction: str,
        status: str,
        started: float,
        environment: Environment,
        error_message: Optional[str] = None,
        request_payload: Optional[dict[str, Any]] = None,
        response_payload: Optional[dict[str, Any]] = None,
    ) -> None:
        if self.db is None:
            return
        self.db.add_sync_log(
            entity_type=entity_type,
            direction=direction,
            status=status,
            duration_ms=int((time.monotonic() - started) * 1000),
            environment=environment,
            error_message=error_message,
            request_payload=request_payload,
            response_payload=response_payload,
        )

    def refresh_tokens(
        self, refresh_token: str, environment: Optional[Environment] = None
    ) -> TokenGrant:
        """Exchange a refresh token for a new access/refresh token pair.

        Args:
            refresh_token: Currently stored refresh token
            environment: Environment recorded in the sync log, defaults to
                the configured one

        Returns:
            TokenGrant with the new tokens and their lifetime in seconds

        Raises:
            AuthenticationError: If credentials are missing, the request fails
                or the provider rejects the refresh token
        """
        environment = environment or self.settings.environment
        if not self.settings.client_id or not self.settings.client_secret:
            raise AuthenticationError(missing_client_credentials())

        request_payload = {"grant_type": "refresh_token"}
        started = time.monotonic()
        logger.debug("POST %s", self.settings.token_url)
        try:
            response = self.session.post(
                self.settings.token_url,
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                auth=(self.settings.client_id, self.settings.client_secret),
                headers={"Accept": "application/json"},
                timeout=self.settings.http_timeout,
            )
        except requests.RequestException as e:
            self._log_call(
                "oauth_token", "refresh", STATUS_ERROR, started, environment,
                error_message=str(e), request_payload=request_payload,
            )
            raise AuthenticationError(token_refresh_failed(str(e))) from e

        if not response.ok:
            detail = f"HTTP {response.status_code}"
            self._log_call(
                "oauth_token", "refresh", STATUS_ERROR, started, environment,
                error_message=detail,
                request_payload=request_payload,
                response_payload=_json_or_text(response),
            )
            raise AuthenticationError(token_refresh_failed(detail))

        try:
            body = response.json()
            grant = TokenGrant(
                access_token=body["access_token"],
                refresh_token=body["refresh_token"],
                expires_in=int(body.get("expires_in", 3600)),
            )
        except (ValueError, KeyError, TypeError) as e:
            self._log_call(
                "oauth_token", "refresh", STATUS_ERROR, started, environment,
                error_message=f"Malformed token response: {e}",
                request_payload=request_payload,
            )
            raise AuthenticationError(token_refresh_failed("malformed token response")) from e

        self._log_call(
            "oauth_token", "refresh", STATUS_SUCCESS, started, environment,
            request_payload=request_payload,
            response_payload={"expires_in": grant.expires_in},
        )
        return grant

    def _query_page(
        self, connection: Connection, entity_type: str, start_position: int
    ) -> list[dict[str, Any]]:
        url = f"{API_BASE_URLS[connection.environment]}/v3/company/{connection.realm_id}/query"
        query = (
            f"SELECT * FROM {entity_type} "
            f"STARTPOSITION {start_position} MAXRESULTS {PAGE_SIZE}"
        )
        request_payload = {"query": query, "minorversion": MINOR_VERSION}
        started = time.monotonic()
        logger.debug("GET %s query=%r", url, query)
        try:
            response = self.session.get(
                url,
                params=request_payload,
                headers={
                    "Authorization": f"Bearer {connection.access_token}",
                    "Accept": "application/json",
                },
                timeout=self.settings.http_timeout,
            )
        except requests.RequestException as e:
            self._log_call(
                entity_type, "fetch", STATUS_ERROR, started, connection.environment,
                error_message=str(e), request_payload=request_payload,
            )
            raise ProviderAPIError(f"{entity_type} query failed: {e}") from e

        if not response.ok:
            payload = _json_or_text(response)
            message = f"{entity_type} query failed with HTTP {response.status_code}"
            self._log_call(
                entity_type, "fetch", STATUS_ERROR, started, connection.environment,
                error_message=message,
                request_payload=request_payload,
                response_payload=payload,
            )
            if response.status_code == 401:
                raise AuthenticationError(
                    f"{message}. Reconnect the accounting integration."
                )
            raise ProviderAPIError(message, status_code=response.status_code, payload=payload)

        try:
            body = response.json()
        except ValueError as e:
            self._log_call(
                entity_type, "fetch", STATUS_ERROR, started, connection.environment,
                error_message="Response is not JSON", request_payload=request_payload,
            )
            raise ProviderAPIError(
                f"{entity_type} query returned invalid JSON", status_code=response.status_code
            ) from e

        records = None
        if isinstance(body, dict):
            query_response = body.get("QueryResponse") or {}
            if isinstance(query_response, dict):
                records = query_response.get(entity_type) or []
        if not isinstance(records, list):
            message = f"{entity_type} query returned an unexpected body"
            self._log_call(
                entity_type, "fetch", STATUS_ERROR, started, connection.environment,
                error_message=message, request_payload=request_payload,
            )
            raise ProviderAPIError(message, status_code=response.status_code)

        self._log_call(
            entity_type, "fetch", STATUS_SUCCESS, started, connection.environment,
            request_payload=request_payload,
            response_payload={"count": len(records), "start_position": start_position},
        )
        return records

    def query(self, connection: Connection, entity_type: str) -> list[dict[str, Any]]:
        """Fetch every record of an entity type, following pagination.

        Args:
            connection: Connection with a valid access token
            entity_type: Provider entity name, e.g. "Bill", "Purchase", "Invoice"

        Returns:
            List of raw provider records

        Raises:
            AuthenticationError: If the provider answers 401
            ProviderAPIError: On any other failure
        """
        records: list[dict[str, Any]] = []
        start_position = 1
        while True:
            page = self._query_page(connection, entity_type, start_position)
            records.extend(page)
            if len(page) < PAGE_SIZE:
                break
            start_position += len(page)

        logger.info("Fetched %d %s records", len(records), entity_type)
        return records
