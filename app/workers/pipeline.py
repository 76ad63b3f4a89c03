"""Statement pipeline orchestration.

One document runs through fetch, hash, parse, normalize, deduplicate, enrich, persist and
finalize. A document whose content hash already has a completed statement is skipped; one
whose latest attempt is still ``processing`` is rejected as a conflict until that attempt is
older than the stale threshold, after which it counts as crashed and is retried. Once
the statement row exists, any failure marks it ``error`` before the exception is re-raised,
so no statement is left in ``processing`` when control returns to the caller. Documents in
a batch are isolated from one another.
"""

import concurrent.futures
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

from app.agents.base import BaseAgent
from app.core.db import Statement
from app.core.errors import StatementConflictError
from app.core.models import (
    DocumentOutcome,
    DocumentRef,
    DocumentResult,
    ParsedTransaction,
    PipelineStage,
    RawDocument,
    StatementStatus,
)
from app.core.utils import get_logger, truncate, utcnow
from app.services.deduplicator import Deduplicator
from app.services.document_parser import DocumentParser
from app.services.hashing import content_hash
from app.services.ledger_writer import LedgerWriter
from app.services.normalizer import normalize_transactions

logger = get_logger("statement-etl.worker")

MAX_ERROR_LEN = 500
DEFAULT_STALE_AFTER_SECONDS = 900


class DocumentStore(Protocol):
    """Object store read capability used by the pipeline."""

    def fetch_document(self, key: str, bucket: str | None = None) -> RawDocument:
        """Return the document bytes and owner for a key."""


def statement_period(transactions: list[ParsedTransaction]) -> tuple[date, date] | None:
    """Return the first and last transaction dates, or None for an empty statement."""
    if not transactions:
        return None
    dates = [date.fromisoformat(txn.date) for txn in transactions]
    return min(dates), max(dates)


class StatementPipeline:
    """Runs uploaded statements through the ingest pipeline."""

    def __init__(
        self,
        store: DocumentStore,
        ledger: LedgerWriter,
        agent: BaseAgent,
        parser: DocumentParser | None = None,
        deduplicator: Deduplicator | None = None,
        max_workers: int = 1,
        stale_after_seconds: int = DEFAULT_STALE_AFTER_SECONDS,
    ) -> None:
        """Wire the pipeline to its object store, ledger and enrichment agent."""
        self.store = store
        self.ledger = ledger
        self.agent = agent
        self.parser = parser or DocumentParser()
        self.deduplicator = deduplicator or Deduplicator(ledger)
        self.max_workers = max(1, max_workers)
        self.stale_after = timedelta(seconds=stale_after_seconds)

    def _is_stale(self, statement: Statement) -> bool:
        created_at: datetime = statement.created_at
        # SQLite hands back naive datetimes
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return utcnow() - created_at >= self.stale_after

    def process_document(self, ref: DocumentRef) -> DocumentResult:
        """Process one document, raising on any document-level failure."""
        return self._process(ref, DocumentResult(key=ref.key, outcome=DocumentOutcome.FAILED, stage=PipelineStage.FETCHED))

    def _process(self, ref: DocumentRef, result: DocumentResult) -> DocumentResult:
        logger.info(f"[ETL] FETCH: starting {ref.key}")
        document = self.store.fetch_document(ref.key, ref.bucket)
        result.stage = PipelineStage.FETCHED

        digest = content_hash(document.data)
        result.content_hash = digest
        result.stage = PipelineStage.HASHED

        existing = self.ledger.find_statement(digest)
        if existing is not None and existing.status == StatementStatus.COMPLETED.value:
            logger.info(f"[ETL] SKIP: {ref.key} with hash {digest} was already processed as {existing.id}")
            result.outcome = DocumentOutcome.SKIPPED
            result.stage = PipelineStage.SKIPPED
            result.statement_id = existing.id
            result.status = StatementStatus.COMPLETED
            return result
        if existing is not None and existing.status == StatementStatus.PROCESSING.value and not self._is_stale(existing):
            msg = f"Statement {existing.id} for content hash {digest} is still processing"
            raise StatementConflictError(msg, ref.key)
        attempt = 1
        if existing is not None:
            attempt = existing.attempt + 1
            logger.info(f"[ETL] RETRY: previous attempt {existing.id} ended in '{existing.status}', starting attempt {attempt}")

        account_id = self.ledger.upsert_account(document.owner_id)
        statement_id = self.ledger.create_statement(account_id, document.owner_id, digest, ref.key, attempt)
        result.statement_id = statement_id
        result.status = StatementStatus.PROCESSING
        result.stage = PipelineStage.STATEMENT_CREATED

        try:
            parsed = self.parser.parse(document.data, ref.key)
            result.parsed_count = len(parsed)
            result.stage = PipelineStage.PARSED

            normalized = normalize_transactions(parsed)
            result.stage = PipelineStage.NORMALIZED

            unique = self.deduplicator.deduplicate(document.owner_id, normalized)
            result.stage = PipelineStage.DEDUPLICATED

            enriched = self.agent.enrich(unique)
            result.stage = PipelineStage.ENRICHED

            inserted, insights = self.ledger.write_transactions(statement_id, account_id, document.owner_id, enriched)
            result.inserted_count = inserted
            result.insight_count = insights
            result.stage = PipelineStage.PERSISTED

            self.ledger.finalize_statement(statement_id, StatementStatus.COMPLETED, period=statement_period(parsed))
        except Exception as exc:
            logger.exception(f"[ETL] ERROR: processing {ref.key} failed at stage '{result.stage}'")
            self._finalize_error(statement_id, exc)
            result.status = StatementStatus.ERROR
            raise
        result.outcome = DocumentOutcome.COMPLETED
        result.status = StatementStatus.COMPLETED
        result.stage = PipelineStage.FINALIZED
        logger.info(f"[ETL] COMPLETE: finished {ref.key} ({result.inserted_count} new of {result.parsed_count} parsed)")
        return result

    def _finalize_error(self, statement_id: str, exc: Exception) -> None:
        try:
            self.ledger.finalize_statement(
                statement_id, StatementStatus.ERROR, error=truncate(f"{type(exc).__name__}: {exc}", MAX_ERROR_LEN)
            )
        except Exception:
            logger.exception(f"Could not mark statement {statement_id} as error")

    def _process_isolated(self, ref: DocumentRef) -> DocumentResult:
        result = DocumentResult(key=ref.key, outcome=DocumentOutcome.FAILED, stage=PipelineStage.FETCHED)
        try:
            return self._process(ref, result)
        except Exception as exc:
            logger.error(f"Failed to process {ref.key}: {exc}")
            result.outcome = DocumentOutcome.FAILED
            result.error = truncate(f"{type(exc).__name__}: {exc}", MAX_ERROR_LEN)
            return result

    def process_batch(self, refs: list[DocumentRef]) -> list[DocumentResult]:
        """Process a batch of documents independently; one failure never aborts its siblings.

        Results are returned in input order. Failed documents carry ``outcome=failed`` and the error.
        """
        logger.info(f"Received batch of {len(refs)} document(s)")
        if self.max_workers == 1 or len(refs) <= 1:
            return [self._process_isolated(ref) for ref in refs]
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self._process_isolated, refs))


def run_batch(pipeline: StatementPipeline, refs: list[DocumentRef]) -> list[DocumentResult]:
    """Top-level function to run a batch through a pipeline (for background tasks)."""
    results = pipeline.process_batch(refs)
    failed = [r.key for r in results if r.outcome is DocumentOutcome.FAILED]
    if failed:
        logger.warning(f"{len(failed)} of {len(results)} document(s) failed: {', '.join(failed)}")
    return results
