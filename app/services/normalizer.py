"""Canonicalization of parsed transactions."""

import re

from app.core.models import NormalizedTransaction, ParsedTransaction
from app.services.hashing import fingerprint

_WHITESPACE = re.compile(r"\s+")


def canonical_description(description: str) -> str:
    """Collapse runs of whitespace and trim the ends."""
    return _WHITESPACE.sub(" ", description).strip()


def normalize_transaction(txn: ParsedTransaction) -> NormalizedTransaction:
    """Canonicalize one transaction and attach its fingerprint."""
    description = canonical_description(txn.description)
    return NormalizedTransaction(
        date=txn.date,
        description=description,
        amount=txn.amount,
        fingerprint=fingerprint(txn.date, description, txn.amount),
    )


def normalize_transactions(transactions: list[ParsedTransaction]) -> list[NormalizedTransaction]:
    """Normalize a document's transactions, preserving order."""
    return [normalize_transaction(txn) for txn in transactions]
