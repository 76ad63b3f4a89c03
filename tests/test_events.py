"""Tests for upload notification parsing."""

from app.services.events import refs_from_event


def test_s3_records_are_unquoted_and_filtered() -> None:
    """Only ObjectCreated records are kept; URL-encoded keys are decoded."""
    payload = {
        "Records": [
            {
                "eventName": "s3:ObjectCreated:Put",
                "s3": {
                    "bucket": {"name": "uploads-bucket"},
                    "object": {"key": "user%2Fmarch+2024.pdf", "userMetadata": {"user-id": "u-1"}},
                },
            },
            {"eventName": "s3:ObjectRemoved:Delete", "s3": {"object": {"key": "old.pdf"}}},
            {"eventName": "s3:ObjectCreated:Copy", "s3": {"object": {}}},
        ]
    }
    (ref,) = refs_from_event(payload)
    if (ref.key, ref.bucket, ref.metadata) != ("user/march 2024.pdf", "uploads-bucket", {"user-id": "u-1"}):
        msg = f"Unexpected reference: {ref}"
        raise AssertionError(msg)


def test_plain_batch_preserves_order() -> None:
    """A plain object batch yields references in the order given."""
    refs = refs_from_event({"objects": [{"key": "b.pdf"}, {"key": "a.pdf", "bucket": "other"}, {"size": 3}]})
    if [(r.key, r.bucket) for r in refs] != [("b.pdf", None), ("a.pdf", "other")]:
        msg = f"Unexpected references: {refs}"
        raise AssertionError(msg)


def test_unrelated_payload_has_no_references() -> None:
    """Payloads of any other shape reference nothing."""
    if refs_from_event({"message": "hello"}) != []:
        msg = "Expected no references"
        raise AssertionError(msg)
