"""SQLAlchemy models for ledgerlink database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Project(Base):
    """Project model."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    project_number = Column(String, unique=True, nullable=False)
    project_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    expenses = relationship("Expense", back_populates="project")
    revenues = relationship("Revenue", back_populates="project")


class Payee(Base):
    """Payee (vendor) model."""

    __tablename__ = "payees"

    id = Column(Integer, primary_key=True)
    payee_name = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    payee_type = Column(String, default="other", nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    expenses = relationship("Expense", back_populates="payee")


class Client(Base):
    """Client (customer) model."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    client_name = Column(String, nullable=False)
    company_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    revenues = relationship("Revenue", back_populates="client")


class Expense(Base):
    """Expense model."""

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    payee_id = Column(Integer, ForeignKey("payees.id"), nullable=True)
    category = Column(String, nullable=False)
    transaction_type = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    expense_date = Column(Date, nullable=False)
    description = Column(String, nullable=True)
    account_name = Column(String, nullable=True)
    account_full_name = Column(String, nullable=True)
    quickbooks_transaction_id = Column(String, nullable=True, index=True)
    is_planned = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="expenses")
    payee = relationship("Payee", back_populates="expenses")


class Revenue(Base):
    """Project revenue (invoice) model."""

    __tablename__ = "project_revenues"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    invoice_date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    invoice_number = Column(String, nullable=True)
    account_name = Column(String, nullable=True)
    account_full_name = Column(String, nullable=True)
    quickbooks_transaction_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="revenues")
    client = relationship("Client", back_populates="revenues")


class AccountMapping(Base):
    """User-defined account path to category mapping."""

    __tablename__ = "account_mappings"

    id = Column(Integer, primary_key=True)
    qb_account_full_path = Column(String, unique=True, nullable=False)
    app_category = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class QuickBooksConnection(Base):
    """Stored OAuth connection."""

    __tablename__ = "quickbooks_connections"

    id = Column(Integer, primary_key=True)
    realm_id = Column(String, nullable=False)
    access_token = Column(String, nullable=False)
    refresh_token = Column(String, nullable=False)
    token_expires_at = Column(DateTime, nullable=False)
    environment = Column(String, default="sandbox", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


class QuickBooksSyncLog(Base):
    """Append-only audit log of provider API calls."""

    __tablename__ = "quickbooks_sync_log"

    id = Column(Integer, primary_key=True)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=True)
    sync_type = Column(String, nullable=False)
    status = Column(String, nullable=False)
    error_message = Column(String, nullable=True)
    request_payload = Column(JSON, nullable=True)
    response_payload = Column(JSON, nullable=True)
    duration_ms = Column(Integer, nullable=False)
    environment = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
