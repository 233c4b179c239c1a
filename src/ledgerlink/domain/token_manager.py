"""OAuth token lifecycle for the stored provider connection."""

import logging
import threading
from datetime import datetime, timedelta, UTC
from typing import TYPE_CHECKING, Optional

from ledgerlink.domain.entities import Connection, Environment
from ledgerlink.domain.errors import (
    AuthenticationError,
    connection_not_found,
    refreshed_tokens_not_saved,
)

if TYPE_CHECKING:
    from ledgerlink.database.base import Database

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_WINDOW = timedelta(minutes=5)

_locks: dict[Environment, threading.Lock] = {}
_locks_guard = threading.Lock()


def _environment_lock(environment: Environment) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(environment)
        if lock is None:
            lock = threading.Lock()
            _locks[environment] = lock
        return lock


def load_active_connection(db: "Database", environment: Environment) -> Connection:
    """Get the active connection for an environment.

    Raises:
        AuthenticationError: If there is no active connection
    """
    connection = db.get_active_connection(environment)
    if connection is None or not connection.is_active:
        raise AuthenticationError(connection_not_found(environment.value))
    return connection


class TokenManager:
    """Keep a connection's access token valid before API calls."""

    def __init__(
        self,
        db: "Database",
        client,
        refresh_window: timedelta = DEFAULT_REFRESH_WINDOW,
    ):
        """Initialize token manager.

        Args:
            db: Database holding the connection
            client: Object with ``refresh_tokens(refresh_token, environment)``
            refresh_window: Refresh when the token expires within this window
        """
        self.db = db
        self.client = client
        self.refresh_window = refresh_window

    def needs_refresh(self, connection: Connection, now: Optional[datetime] = None) -> bool:
        """True when the access token expires within the refresh window."""
        now = now or datetime.now(UTC)
        return connection.token_expires_at <= now + self.refresh_window

    def ensure_valid(self, connection: Connection) -> Connection:
        """Return a connection whose access token can be used right now.

        A token outside the refresh window is returned unchanged without any
        network call. Otherwise the stored connection is re-read under a
        per-environment lock, since another caller may already have refreshed
        it, and only a still-stale token is refreshed and persisted.

        Args:
            connection: Connection about to be used

        Returns:
            The same connection, or a refreshed copy

        Raises:
            AuthenticationError: If the connection is gone or the refresh
                cannot be completed, including when the new tokens fail to
                save. Stored tokens are left untouched in that case.
        """
        if not self.needs_refresh(connection):
            return connection

        with _environment_lock(connection.environment):
            current = load_active_connection(self.db, connection.environment)
            if not self.needs_refresh(current):
                logger.debug("Token for %s already refreshed", current.environment.value)
                return current

            logger.info("Refreshing access token for %s", current.environment.value)
            grant = self.client.refresh_tokens(current.refresh_token, current.environment)
            expires_at = datetime.now(UTC) + timedelta(seconds=grant.expires_in)
            try:
                self.db.update_connection_tokens(
                    connection_id=current.id,
                    access_token=grant.access_token,
                    refresh_token=grant.refresh_token,
                    token_expires_at=expires_at,
                )
            except Exception as e:
                logger.error(
                    "Refreshed tokens for %s could not be saved: %s",
                    current.environment.value,
                    e,
                )
                raise AuthenticationError(refreshed_tokens_not_saved(str(e))) from e
            return Connection(
                id=current.id,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                realm_id=current.realm_id,
                token_expires_at=expires_at,
                environment=current.environment,
                is_active=current.is_active,
            )
