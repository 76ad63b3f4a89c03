"""Database schema and session helpers for the statement ingest service.

The tables defined here are the persisted contract read by the dashboard and report
collaborators: accounts, statements, transactions and insights.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.models import StatementStatus
from app.core.utils import utcnow

Base = declarative_base()

SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)


class Account(Base):
    """A ledger container owned by a single user."""

    __tablename__ = "accounts"
    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    institution = Column(String, nullable=False)
    type = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Statement(Base):
    """One processing attempt over one uploaded document."""

    __tablename__ = "statements"
    __table_args__ = (UniqueConstraint("content_hash", "attempt", name="uq_statements_content_hash_attempt"),)
    id = Column(String, primary_key=True)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    user_id = Column(String, nullable=False, index=True)
    content_hash = Column(String(64), nullable=False, index=True)
    attempt = Column(Integer, nullable=False, default=1)
    source_file_key = Column(String, nullable=False)
    statement_date = Column(Date, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(String, nullable=False, default=StatementStatus.PROCESSING.value)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class TransactionRecord(Base):
    """An enriched transaction. Rows are written once and never updated."""

    __tablename__ = "transactions"
    __table_args__ = (UniqueConstraint("user_id", "fingerprint", name="uq_transactions_user_fingerprint"),)
    id = Column(String, primary_key=True)
    statement_id = Column(String, ForeignKey("statements.id"), nullable=False, index=True)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    fingerprint = Column(String(64), nullable=False, index=True)
    category = Column(String, nullable=False)
    is_anomaly = Column(Boolean, nullable=False, default=False)
    anomaly_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Insight(Base):
    """A user-facing record derived from an anomalous transaction."""

    __tablename__ = "insights"
    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    related_transaction_id = Column(String, ForeignKey("transactions.id"), nullable=False, unique=True)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


def get_engine(url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine using the configured database URL."""
    if url is None:
        from app.core.settings import get_settings

        url = get_settings().database_url
    return create_engine(url)


def init_db(engine: Engine) -> sessionmaker:
    """Create all tables on the engine and bind the session factory to it."""
    Base.metadata.create_all(engine)
    SessionLocal.configure(bind=engine)
    return SessionLocal


def get_session_factory() -> sessionmaker:
    """Return the bound session factory, initializing the configured database on first use."""
    if SessionLocal.kw.get("bind") is None:
        init_db(get_engine())
    return SessionLocal
