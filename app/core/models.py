"""Pydantic models for the statement ingest pipeline.

This module defines the in-flight types passed between pipeline stages (parsed, normalized
and enriched transactions), the document reference and fetch result types used at the
object-store boundary, and the closed enums for statement status and pipeline outcomes.
"""

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CATEGORY = "Uncategorized"


class StatementStatus(StrEnum):
    """Lifecycle status of a statement row."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class PipelineStage(StrEnum):
    """Stages a document passes through in the pipeline."""

    FETCHED = "fetched"
    HASHED = "hashed"
    SKIPPED = "skipped"
    STATEMENT_CREATED = "statement_created"
    PARSED = "parsed"
    NORMALIZED = "normalized"
    DEDUPLICATED = "deduplicated"
    ENRICHED = "enriched"
    PERSISTED = "persisted"
    FINALIZED = "finalized"


class DocumentOutcome(StrEnum):
    """Result of processing one document reference."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class DocumentRef(BaseModel):
    """Reference to an uploaded document, as delivered by the trigger."""

    key: str
    bucket: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class RawDocument(BaseModel):
    """Bytes and ownership of a fetched document."""

    key: str
    data: bytes
    owner_id: str
    metadata: dict[str, str] = Field(default_factory=dict)


class ParsedTransaction(BaseModel):
    """A transaction line extracted from a document."""

    model_config = ConfigDict(frozen=True)

    date: str
    description: str
    amount: Decimal


class NormalizedTransaction(ParsedTransaction):
    """A parsed transaction with a canonical description and dedup fingerprint."""

    fingerprint: str


class Enrichment(BaseModel):
    """Classifier output for a single transaction."""

    model_config = ConfigDict(frozen=True)

    category: str = DEFAULT_CATEGORY
    is_anomaly: bool = False
    anomaly_reason: str | None = None


class EnrichedTransaction(NormalizedTransaction):
    """A normalized transaction augmented with its enrichment."""

    category: str = DEFAULT_CATEGORY
    is_anomaly: bool = False
    anomaly_reason: str | None = None

    @classmethod
    def from_parts(cls, txn: NormalizedTransaction, enrichment: Enrichment) -> "EnrichedTransaction":
        """Combine a normalized transaction with its enrichment."""
        return cls(**txn.model_dump(), **enrichment.model_dump())

    @property
    def has_insight(self) -> bool:
        """Whether this transaction yields an anomaly insight."""
        return self.is_anomaly and bool(self.anomaly_reason and self.anomaly_reason.strip())


class DocumentResult(BaseModel):
    """Summary of one document's trip through the pipeline."""

    key: str
    outcome: DocumentOutcome
    stage: PipelineStage
    content_hash: str | None = None
    statement_id: str | None = None
    status: StatementStatus | None = None
    parsed_count: int = 0
    inserted_count: int = 0
    insight_count: int = 0
    error: str | None = None
