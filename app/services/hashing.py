"""Content hashes and transaction fingerprints.

Both digests are plain SHA-256 with no salt, so they are stable across processes and can be
used as natural keys in the store.
"""

import hashlib
import re
from decimal import Decimal

_NON_ALNUM = re.compile(r"[^a-z0-9]")
ACCOUNT_ID_LEN = 16


def content_hash(data: bytes) -> str:
    """Return the hex SHA-256 digest of a document's bytes."""
    return hashlib.sha256(data).hexdigest()


def fingerprint_key(date: str, description: str, amount: Decimal | float | str) -> str:
    """Build the canonical string a transaction fingerprint is derived from."""
    clean_description = _NON_ALNUM.sub("", description.lower())
    magnitude = abs(Decimal(str(amount)))
    return f"{date}|{clean_description}|{magnitude:.2f}"


def fingerprint(date: str, description: str, amount: Decimal | float | str) -> str:
    """Return the dedup fingerprint for a transaction's date, description and amount."""
    return hashlib.sha256(fingerprint_key(date, description, amount).encode("utf-8")).hexdigest()


def account_id_for(user_id: str) -> str:
    """Derive the default account id for a user."""
    digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()
    return f"acc_{digest[:ACCOUNT_ID_LEN]}"
