"""S3FileService provides S3-backed document reads for the pipeline."""

import boto3
from botocore.exceptions import ClientError

from app.core.errors import DocumentNotFoundError, MissingMetadataError
from app.core.models import RawDocument
from app.core.settings import Settings, get_settings
from app.core.utils import get_logger

logger = get_logger("statement-etl.s3")

OWNER_METADATA_KEYS = ("user-id", "userid", "user_id")
NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


def owner_from_metadata(metadata: dict[str, str]) -> str | None:
    """Return the owning-user id from S3 user metadata, if present."""
    lowered = {k.lower(): v for k, v in metadata.items()}
    for name in OWNER_METADATA_KEYS:
        value = (lowered.get(name) or "").strip()
        if value:
            return value
    return None


class S3FileService:
    """Service for S3 document reads."""

    def __init__(self, settings: Settings | None = None, client: object | None = None) -> None:
        """Initialize S3FileService from settings, or with an existing boto3 client."""
        settings = settings or get_settings()
        self.s3 = client or boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
        )
        self.bucket = settings.s3_bucket

    def fetch_document(self, key: str, bucket: str | None = None) -> RawDocument:
        """Download a document and its owner metadata from S3.

        Raises DocumentNotFoundError if the key is absent and MissingMetadataError if the
        object carries no owning-user id.
        """
        try:
            obj = self.s3.get_object(Bucket=bucket or self.bucket, Key=str(key))
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                msg = f"File not found in S3: {key}"
                raise DocumentNotFoundError(msg, key) from exc
            raise
        metadata = {str(k): str(v) for k, v in (obj.get("Metadata") or {}).items()}
        owner_id = owner_from_metadata(metadata)
        if owner_id is None:
            msg = f"Missing user id in S3 metadata for {key}. Aborting."
            raise MissingMetadataError(msg, key)
        data = obj["Body"].read()
        logger.info(f"[ETL] FETCH: downloaded {len(data)} bytes for {key} (owner {owner_id})")
        return RawDocument(key=key, data=data, owner_id=owner_id, metadata=metadata)
