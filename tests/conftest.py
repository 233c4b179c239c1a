"""Shared pytest fixtures for ledgerlink tests."""

import tempfile
import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ledgerlink.config import Settings
from ledgerlink.database.factories import create_sqlite_database
from ledgerlink.domain.entities import PayeeType
from ledgerlink.domain.reference_data import ReferenceDataService
from ledgerlink.domain.transaction_import import TransactionImportService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def reference_service(temp_db):
    """Create a ReferenceDataService with a temporary database."""
    return ReferenceDataService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a TransactionImportService with a temporary database."""
    return TransactionImportService(temp_db)


@pytest.fixture
def sample_projects(reference_service):
    """Create a default project and two job projects."""
    ids = {
        "misc": reference_service.create_project("000-001", "General / Misc"),
        "smith": reference_service.create_project("125-244", "Smith Kitchen Remodel"),
        "jones": reference_service.create_project("130-100", "Jones Addition"),
    }
    return ids


@pytest.fixture
def sample_payees(temp_db):
    """Create payees to match expenses against."""
    return {
        "home_depot": temp_db.create_payee(
            name="Home Depot", payee_type=PayeeType.MATERIAL_SUPPLIER
        ),
        "abc": temp_db.create_payee(
            name="ABC Plumbing LLC",
            alternate_name="ABC Plumbing",
            payee_type=PayeeType.SUBCONTRACTOR,
        ),
    }


@pytest.fixture
def sample_clients(reference_service):
    """Create clients to match invoices against."""
    return {
        "smith": reference_service.create_client("Jane Smith", company_name="Smith Family Trust"),
    }


@pytest.fixture
def settings():
    """Settings with OAuth client credentials."""
    return Settings(client_id="client-id", client_secret="client-secret", http_timeout=5.0)


@pytest.fixture
def make_response():
    """Build fake requests responses."""

    def _make(status_code=200, body=None):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.json.return_value = body if body is not None else {}
        response.text = str(body)
        return response

    return _make


@pytest.fixture
def http_session():
    """A fake requests session; configure .get/.post per test."""
    return MagicMock()


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
