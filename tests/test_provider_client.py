"""Tests for the accounting provider HTTP client."""

from datetime import datetime, timedelta, UTC

import pytest
import requests

from ledgerlink.config import Settings, TOKEN_URL
from ledgerlink.domain.entities import Connection, Environment
from ledgerlink.domain.errors import AuthenticationError, ProviderAPIError
from ledgerlink.provider import client as client_module
from ledgerlink.provider.client import AccountingClient, TokenGrant


@pytest.fixture
def connection():
    return Connection(
        id=1,
        access_token="access-token",
        refresh_token="refresh-token",
        realm_id="realm-1",
        token_expires_at=datetime.now(UTC) + timedelta(hours=1),
        environment=Environment.SANDBOX,
    )


def test_refresh_tokens(settings, temp_db, http_session, make_response):
    """Test a successful token refresh."""
    http_session.post.return_value = make_response(
        200, {"access_token": "new-access", "refresh_token": "new-refresh", "expires_in": 3600}
    )
    client = AccountingClient(settings, db=temp_db, session=http_session)

    grant = client.refresh_tokens("old-refresh")

    assert grant == TokenGrant("new-access", "new-refresh", 3600)
    args, kwargs = http_session.post.call_args
    assert args[0] == TOKEN_URL
    assert kwargs["auth"] == ("client-id", "client-secret")
    assert kwargs["data"] == {"grant_type": "refresh_token", "refresh_token": "old-refresh"}
    assert kwargs["timeout"] == 5.0

    entries = temp_db.list_sync_log()
    assert len(entries) == 1
    assert entries[0].entity_type == "oauth_token"
    assert entries[0].status == "success"
    assert entries[0].environment == Environment.SANDBOX
    logged = f"{entries[0].request_payload} {entries[0].response_payload}"
    assert "new-access" not in logged
    assert "refresh-token" not in logged


def test_refresh_rejected(settings, temp_db, http_session, make_response):
    """Test that a rejected refresh is an authentication error and is logged."""
    http_session.post.return_value = make_response(400, {"error": "invalid_grant"})
    client = AccountingClient(settings, db=temp_db, session=http_session)

    with pytest.raises(AuthenticationError, match="HTTP 400"):
        client.refresh_tokens("old-refresh")

    entries = temp_db.list_sync_log()
    assert entries[0].status == "error"
    assert entries[0].response_payload == {"error": "invalid_grant"}


def test_refresh_network_failure(settings, http_session):
    """Test that network errors become authentication errors."""
    http_session.post.side_effect = requests.ConnectionError("connection refused")
    client = AccountingClient(settings, session=http_session)

    with pytest.raises(AuthenticationError, match="connection refused"):
        client.refresh_tokens("old-refresh")


def test_refresh_malformed_response(settings, http_session, make_response):
    """Test that a response without tokens is rejected."""
    http_session.post.return_value = make_response(200, {"access_token": "only-this"})
    client = AccountingClient(settings, session=http_session)

    with pytest.raises(AuthenticationError):
        client.refresh_tokens("old-refresh")


def test_refresh_requires_credentials(http_session):
    """Test that missing client credentials fail before any request."""
    client = AccountingClient(Settings(), session=http_session)

    with pytest.raises(AuthenticationError, match="QUICKBOOKS_CLIENT_ID"):
        client.refresh_tokens("old-refresh")
    http_session.post.assert_not_called()


def test_query_paginates(settings, temp_db, http_session, make_response, connection, monkeypatch):
    """Test that queries follow STARTPOSITION/MAXRESULTS pages."""
    monkeypatch.setattr(client_module, "PAGE_SIZE", 2)
    http_session.get.side_effect = [
        make_response(200, {"QueryResponse": {"Bill": [{"Id": "1"}, {"Id": "2"}]}}),
        make_response(200, {"QueryResponse": {"Bill": [{"Id": "3"}]}}),
    ]
    client = AccountingClient(settings, db=temp_db, session=http_session)

    records = client.query(connection, "Bill")

    assert [r["Id"] for r in records] == ["1", "2", "3"]
    assert http_session.get.call_count == 2
    first_args, first_kwargs = http_session.get.call_args_list[0]
    assert first_args[0] == "https://sandbox-quickbooks.api.intuit.com/v3/company/realm-1/query"
    assert first_kwargs["params"]["query"] == "SELECT * FROM Bill STARTPOSITION 1 MAXRESULTS 2"
    assert first_kwargs["params"]["minorversion"] == "65"
    assert first_kwargs["headers"]["Authorization"] == "Bearer access-token"
    second_kwargs = http_session.get.call_args_list[1][1]
    assert "STARTPOSITION 3" in second_kwargs["params"]["query"]

    entries = temp_db.list_sync_log()
    assert [e.status for e in entries] == ["success", "success"]
    assert all(e.entity_type == "Bill" for e in entries)


def test_query_empty_response(settings, http_session, make_response, connection):
    """Test that a response without the entity key yields no records."""
    http_session.get.return_value = make_response(200, {"QueryResponse": {}})
    client = AccountingClient(settings, session=http_session)

    assert client.query(connection, "Invoice") == []


def test_query_production_base_url(settings, http_session, make_response, connection):
    """Test that the connection's environment selects the API host."""
    production = Connection(
        id=2,
        access_token="t",
        refresh_token="r",
        realm_id="realm-9",
        token_expires_at=connection.token_expires_at,
        environment=Environment.PRODUCTION,
    )
    http_session.get.return_value = make_response(200, {"QueryResponse": {}})
    client = AccountingClient(settings, session=http_session)

    client.query(production, "Purchase")

    url = http_session.get.call_args[0][0]
    assert url == "https://quickbooks.api.intuit.com/v3/company/realm-9/query"


def test_query_unauthorized(settings, temp_db, http_session, make_response, connection):
    """Test that 401 is an authentication error."""
    http_session.get.return_value = make_response(401, {"Fault": {"type": "AUTHENTICATION"}})
    client = AccountingClient(settings, db=temp_db, session=http_session)

    with pytest.raises(AuthenticationError):
        client.query(connection, "Bill")
    assert temp_db.list_sync_log()[0].status == "error"


def test_query_server_error(settings, http_session, make_response, connection):
    """Test that other failures carry status and payload."""
    http_session.get.return_value = make_response(500, {"Fault": {"type": "SERVER"}})
    client = AccountingClient(settings, session=http_session)

    with pytest.raises(ProviderAPIError) as exc_info:
        client.query(connection, "Bill")

    assert exc_info.value.status_code == 500
    assert exc_info.value.payload == {"Fault": {"type": "SERVER"}}


def test_query_timeout(settings, http_session, connection):
    """Test that timeouts are provider errors and are not retried."""
    http_session.get.side_effect = requests.Timeout("read timed out")
    client = AccountingClient(settings, session=http_session)

    with pytest.raises(ProviderAPIError, match="timed out"):
        client.query(connection, "Bill")
    assert http_session.get.call_count == 1


def test_query_null_query_response(settings, http_session, make_response, connection):
    """Test that a null QueryResponse yields no records."""
    http_session.get.return_value = make_response(200, {"QueryResponse": None})
    client = AccountingClient(settings, session=http_session)

    assert client.query(connection, "Bill") == []


@pytest.mark.parametrize(
    "body",
    [
        [{"Id": "1"}],
        "maintenance",
        {"QueryResponse": ["Bill"]},
        {"QueryResponse": {"Bill": {"Id": "1"}}},
    ],
)
def test_query_unexpected_body(settings, temp_db, http_session, make_response, connection, body):
    """Test that a JSON body of the wrong shape is a provider error."""
    http_session.get.return_value = make_response(200, body)
    client = AccountingClient(settings, db=temp_db, session=http_session)

    with pytest.raises(ProviderAPIError, match="unexpected body") as exc_info:
        client.query(connection, "Bill")

    assert exc_info.value.status_code == 200
    assert temp_db.list_sync_log()[0].status == "error"
