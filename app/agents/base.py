"""Base agent abstraction for transaction enrichment agents.

This module defines the abstract base class for all enrichment agents. Subclasses classify a
single batch; the base class splits a document's transactions into batches, optionally runs
them on a thread pool, and reassembles the results by batch index so that output position i
always corresponds to input transaction i.
"""

import concurrent.futures
from abc import ABC, abstractmethod

from app.core.models import EnrichedTransaction, Enrichment, NormalizedTransaction
from app.core.settings import Settings
from app.core.utils import get_logger

logger = get_logger("statement-etl.agent")

DEFAULT_BATCH_SIZE = 10


class BaseAgent(ABC):
    """Abstract base class for all enrichment agents."""

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE, max_workers: int = 1) -> None:
        """Initialize the agent with its batch size and batch concurrency."""
        if batch_size < 1:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self.batch_size = batch_size
        self.max_workers = max(1, max_workers)

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: Settings) -> "BaseAgent":
        """Build the agent from application settings."""

    @abstractmethod
    def enrich_batch(self, batch: list[NormalizedTransaction], batch_label: str = "") -> list[Enrichment]:
        """Classify one batch. Must return exactly one enrichment per input, in order, and never raise."""

    def batches(self, transactions: list[NormalizedTransaction]) -> list[list[NormalizedTransaction]]:
        """Split transactions into consecutive batches of at most ``batch_size``."""
        return [transactions[i : i + self.batch_size] for i in range(0, len(transactions), self.batch_size)]

    def _run_batch(self, index: int, batch: list[NormalizedTransaction], total: int) -> list[Enrichment]:
        enrichments = self.enrich_batch(batch, batch_label=f"[AI BATCH {index + 1}/{total}] ")
        if len(enrichments) != len(batch):
            logger.warning(
                f"[AI BATCH {index + 1}/{total}] agent returned {len(enrichments)} results for {len(batch)} transactions"
            )
            enrichments = (list(enrichments) + [Enrichment()] * len(batch))[: len(batch)]
        return enrichments

    def enrich(self, transactions: list[NormalizedTransaction]) -> list[EnrichedTransaction]:
        """Enrich all transactions, preserving length and order."""
        if not transactions:
            return []
        batches = self.batches(transactions)
        logger.info(f"[ETL] ENRICH: {len(transactions)} transactions in {len(batches)} batch(es)")
        results: list[list[Enrichment] | None] = [None] * len(batches)
        if self.max_workers == 1 or len(batches) == 1:
            for idx, batch in enumerate(batches):
                results[idx] = self._run_batch(idx, batch, len(batches))
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._run_batch, idx, batch, len(batches)): idx for idx, batch in enumerate(batches)
                }
                for future in concurrent.futures.as_completed(futures):
                    results[futures[future]] = future.result()
        enriched: list[EnrichedTransaction] = []
        for batch, enrichments in zip(batches, results, strict=True):
            enriched.extend(EnrichedTransaction.from_parts(txn, e) for txn, e in zip(batch, enrichments, strict=True))
        return enriched


class PassthroughAgent(BaseAgent):
    """Agent that assigns the default enrichment without calling any classifier."""

    @classmethod
    def from_settings(cls, settings: Settings) -> "PassthroughAgent":
        """Build the agent from application settings."""
        return cls(batch_size=settings.enrichment_batch_size)

    def enrich_batch(self, batch: list[NormalizedTransaction], batch_label: str = "") -> list[Enrichment]:
        """Return the default enrichment for every transaction."""
        _ = batch_label
        return [Enrichment() for _ in batch]
