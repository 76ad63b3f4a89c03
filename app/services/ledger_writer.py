"""Persistence of accounts, statements, transactions and insights."""

import uuid
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.db import Account, Insight, Statement, TransactionRecord
from app.core.errors import PersistenceError, StatementConflictError
from app.core.models import EnrichedTransaction, StatementStatus
from app.core.utils import get_logger, utcnow
from app.services.hashing import account_id_for

logger = get_logger("statement-etl.ledger")

DEFAULT_ACCOUNT_NAME = "Primary Checking"
DEFAULT_INSTITUTION = "Unknown Institution"
DEFAULT_ACCOUNT_TYPE = "checking"
INSIGHT_TYPE_ANOMALY = "Anomaly"


def new_id(prefix: str) -> str:
    """Return a random identifier with a type prefix, e.g. ``txn_<hex>``."""
    return f"{prefix}_{uuid.uuid4().hex}"


class LedgerWriter:
    """Writes pipeline results to the relational store using SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize the LedgerWriter with a SQLAlchemy session factory."""
        self.session_factory = session_factory

    def upsert_account(self, user_id: str) -> str:
        """Create the user's default account if absent and return its id."""
        account_id = account_id_for(user_id)
        values = {
            "id": account_id,
            "user_id": user_id,
            "name": DEFAULT_ACCOUNT_NAME,
            "institution": DEFAULT_INSTITUTION,
            "type": DEFAULT_ACCOUNT_TYPE,
            "created_at": utcnow(),
        }
        with self.session_factory() as session:
            dialect = session.get_bind().dialect.name
            if dialect == "sqlite":
                session.execute(sqlite_insert(Account).values(**values).on_conflict_do_nothing(index_elements=["id"]))
            elif dialect == "postgresql":
                session.execute(pg_insert(Account).values(**values).on_conflict_do_nothing(index_elements=["id"]))
            elif session.get(Account, account_id) is None:
                session.add(Account(**values))
            session.commit()
        return account_id

    def find_statement(self, content_hash: str) -> Statement | None:
        """Return the latest statement attempt for a content hash, if any."""
        stmt = (
            select(Statement).where(Statement.content_hash == content_hash).order_by(Statement.attempt.desc()).limit(1)
        )
        with self.session_factory() as session:
            return session.execute(stmt).scalars().first()

    def create_statement(
        self, account_id: str, user_id: str, content_hash: str, source_key: str, attempt: int = 1
    ) -> str:
        """Insert a statement in ``processing`` status and return its id.

        Raises StatementConflictError when another writer already claimed this content hash attempt.
        """
        statement_id = new_id("stmt")
        statement = Statement(
            id=statement_id,
            account_id=account_id,
            user_id=user_id,
            content_hash=content_hash,
            attempt=attempt,
            source_file_key=source_key,
            statement_date=utcnow().date(),
            status=StatementStatus.PROCESSING.value,
        )
        with self.session_factory() as session:
            session.add(statement)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                msg = f"Statement for content hash {content_hash} (attempt {attempt}) already exists"
                raise StatementConflictError(msg, source_key) from exc
        return statement_id

    def existing_fingerprints(self, user_id: str, fingerprints: list[str]) -> set[str]:
        """Return which of the given fingerprints are already stored for the user."""
        if not fingerprints:
            return set()
        stmt = select(TransactionRecord.fingerprint).where(
            TransactionRecord.user_id == user_id,
            TransactionRecord.fingerprint.in_(fingerprints),
        )
        with self.session_factory() as session:
            return set(session.execute(stmt).scalars())

    def _build_rows(
        self, statement_id: str, account_id: str, user_id: str, transactions: list[EnrichedTransaction]
    ) -> tuple[list[TransactionRecord], list[Insight]]:
        records: list[TransactionRecord] = []
        insights: list[Insight] = []
        for txn in transactions:
            txn_id = new_id("txn")
            txn_date = date.fromisoformat(txn.date)
            records.append(
                TransactionRecord(
                    id=txn_id,
                    statement_id=statement_id,
                    account_id=account_id,
                    user_id=user_id,
                    date=txn_date,
                    description=txn.description,
                    amount=txn.amount,
                    fingerprint=txn.fingerprint,
                    category=txn.category,
                    is_anomaly=txn.is_anomaly,
                    anomaly_reason=txn.anomaly_reason,
                )
            )
            if txn.has_insight:
                insights.append(
                    Insight(
                        id=new_id("ins"),
                        user_id=user_id,
                        type=INSIGHT_TYPE_ANOMALY,
                        content=txn.anomaly_reason.strip(),
                        related_transaction_id=txn_id,
                        date=txn_date,
                    )
                )
        return records, insights

    def write_transactions(
        self, statement_id: str, account_id: str, user_id: str, transactions: list[EnrichedTransaction]
    ) -> tuple[int, int]:
        """Insert all transactions and their insights in a single database transaction.

        Returns the number of transactions and insights written. Nothing is written if any row fails.
        """
        if not transactions:
            return 0, 0
        records, insights = self._build_rows(statement_id, account_id, user_id, transactions)
        session: Session = self.session_factory()
        try:
            session.add_all(records)
            session.flush()
            session.add_all(insights)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            msg = f"Failed to write {len(records)} transactions for statement {statement_id}: {exc}"
            raise PersistenceError(msg) from exc
        finally:
            session.close()
        logger.info(f"[ETL] PERSIST: inserted {len(records)} transactions and {len(insights)} insights")
        return len(records), len(insights)

    def finalize_statement(
        self,
        statement_id: str,
        status: StatementStatus,
        period: tuple[date, date] | None = None,
        error: str | None = None,
    ) -> bool:
        """Move a statement out of ``processing``. Returns False if it was already finalized."""
        values: dict[str, object] = {"status": status.value, "completed_at": utcnow()}
        if status is StatementStatus.COMPLETED:
            if period is not None:
                values["start_date"], values["end_date"] = period
        elif status is StatementStatus.ERROR:
            values["error"] = error
        elif status is StatementStatus.PROCESSING:
            msg = "A statement cannot be finalized as processing"
            raise ValueError(msg)
        else:
            msg = f"Unhandled statement status: {status!r}"
            raise ValueError(msg)
        stmt = (
            update(Statement)
            .where(Statement.id == statement_id, Statement.status == StatementStatus.PROCESSING.value)
            .values(**values)
        )
        with self.session_factory() as session:
            result = session.execute(stmt)
            session.commit()
        if result.rowcount == 0:
            logger.warning(f"Statement {statement_id} was not in processing; status left unchanged")
            return False
        logger.info(f"[ETL] FINALIZE: statement {statement_id} -> {status.value}")
        return True

