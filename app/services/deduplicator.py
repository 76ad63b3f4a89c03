"""Fingerprint-based transaction deduplication against the persistent store."""

from collections.abc import Iterable
from typing import Protocol

from app.core.models import NormalizedTransaction
from app.core.utils import get_logger

logger = get_logger("statement-etl.dedup")

DEFAULT_CHUNK_SIZE = 500


class FingerprintLookup(Protocol):
    """Batched existence check over persisted fingerprints."""

    def existing_fingerprints(self, user_id: str, fingerprints: list[str]) -> set[str]:
        """Return the subset of fingerprints already stored for the user."""


class Deduplicator:
    """Filters out transactions whose fingerprints have already been persisted."""

    def __init__(self, lookup: FingerprintLookup, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        """Initialize the Deduplicator with a lookup and a per-query parameter limit."""
        if chunk_size < 1:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        self.lookup = lookup
        self.chunk_size = chunk_size

    def _chunks(self, items: list[str]) -> Iterable[list[str]]:
        for start in range(0, len(items), self.chunk_size):
            yield items[start : start + self.chunk_size]

    def find_existing(self, user_id: str, fingerprints: list[str]) -> set[str]:
        """Look up which fingerprints exist, one query per chunk."""
        existing: set[str] = set()
        for chunk in self._chunks(fingerprints):
            existing |= self.lookup.existing_fingerprints(user_id, chunk)
        return existing

    def deduplicate(self, user_id: str, transactions: list[NormalizedTransaction]) -> list[NormalizedTransaction]:
        """Return transactions not yet persisted for the user, in their original order.

        Repeats of a fingerprint within the same document collapse to the first occurrence.
        """
        if not transactions:
            return []
        distinct = list(dict.fromkeys(txn.fingerprint for txn in transactions))
        seen = self.find_existing(user_id, distinct)
        unique: list[NormalizedTransaction] = []
        for txn in transactions:
            if txn.fingerprint in seen:
                continue
            seen.add(txn.fingerprint)
            unique.append(txn)
        logger.info(f"[ETL] DEDUP: {len(unique)} new transactions out of {len(transactions)}")
        return unique
