"""Tests for content hashes, fingerprints and derived account ids."""

import hashlib
from decimal import Decimal

from app.services.hashing import account_id_for, content_hash, fingerprint, fingerprint_key

SHA256_HEX_LEN = 64


def test_content_hash_is_sha256_hex() -> None:
    """Content hash is the plain SHA-256 of the bytes."""
    data = b"%PDF-1.7 statement bytes"
    if content_hash(data) != hashlib.sha256(data).hexdigest():
        msg = "Expected content_hash to equal the SHA-256 hex digest"
        raise AssertionError(msg)
    if len(content_hash(b"")) != SHA256_HEX_LEN:
        msg = "Expected a 64-character digest"
        raise AssertionError(msg)


def test_content_hash_distinguishes_documents() -> None:
    """Different bytes give different hashes; identical bytes give identical hashes."""
    if content_hash(b"a") == content_hash(b"b"):
        msg = "Expected different documents to hash differently"
        raise AssertionError(msg)
    if content_hash(b"same") != content_hash(b"same"):
        msg = "Expected identical documents to hash identically"
        raise AssertionError(msg)


def test_fingerprint_ignores_case_whitespace_and_amount_format() -> None:
    """Equivalent transactions share a fingerprint."""
    first = fingerprint("2024-03-14", "Coffee  Shop", Decimal("4.50"))
    second = fingerprint("2024-03-14", "coffee shop", 4.5)
    if first != second:
        msg = f"Expected equal fingerprints, got {first} and {second}"
        raise AssertionError(msg)


def test_fingerprint_uses_absolute_amount() -> None:
    """A debit and a credit of the same magnitude share a fingerprint."""
    if fingerprint("2024-03-14", "REFUND", "-10.00") != fingerprint("2024-03-14", "REFUND", "10"):
        msg = "Expected fingerprint to use the absolute amount"
        raise AssertionError(msg)


def test_fingerprint_key_format() -> None:
    """The canonical key keeps only lowercase alphanumerics and a two-decimal amount."""
    key = fingerprint_key("2024-03-14", "Coffee-Shop #12", Decimal("-4.5"))
    if key != "2024-03-14|coffeeshop12|4.50":
        msg = f"Unexpected fingerprint key: {key}"
        raise AssertionError(msg)


def test_fingerprint_differs_on_date() -> None:
    """Transactions on different dates do not collide."""
    if fingerprint("2024-03-14", "COFFEE", "4.50") == fingerprint("2024-03-15", "COFFEE", "4.50"):
        msg = "Expected different dates to give different fingerprints"
        raise AssertionError(msg)


def test_account_id_is_derived_and_stable() -> None:
    """Account ids are deterministic per user and distinct across users sharing a prefix."""
    if account_id_for("user-1234-aaaa") != account_id_for("user-1234-aaaa"):
        msg = "Expected a stable account id"
        raise AssertionError(msg)
    if account_id_for("user-1234-aaaa") == account_id_for("user-1234-bbbb"):
        msg = "Expected distinct account ids for distinct users"
        raise AssertionError(msg)
    if not account_id_for("u").startswith("acc_"):
        msg = "Expected the acc_ prefix"
        raise AssertionError(msg)
