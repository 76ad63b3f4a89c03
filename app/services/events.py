"""Translation of upload notifications into document references.

Two payload shapes are accepted: S3 event notifications (as sent by AWS, MinIO and other
S3-compatible stores) and a plain ``{"objects": [{"key": ...}]}`` batch.
"""

from urllib.parse import unquote_plus

from app.core.models import DocumentRef


def _is_object_created(record: dict) -> bool:
    event_name = str(record.get("eventName", "ObjectCreated"))
    return "ObjectCreated" in event_name


def _ref_from_record(record: dict) -> DocumentRef | None:
    s3 = record.get("s3") or {}
    obj = s3.get("object") or {}
    key = obj.get("key")
    if not key:
        return None
    bucket = (s3.get("bucket") or {}).get("name")
    metadata = {str(k): str(v) for k, v in (obj.get("userMetadata") or {}).items()}
    return DocumentRef(key=unquote_plus(key), bucket=bucket, metadata=metadata)


def refs_from_event(payload: dict) -> list[DocumentRef]:
    """Extract document references from an upload notification, preserving order."""
    refs: list[DocumentRef] = []
    for record in payload.get("Records") or []:
        if not isinstance(record, dict) or not _is_object_created(record):
            continue
        ref = _ref_from_record(record)
        if ref is not None:
            refs.append(ref)
    for obj in payload.get("objects") or []:
        if isinstance(obj, dict) and obj.get("key"):
            refs.append(DocumentRef.model_validate(obj))
    return refs
