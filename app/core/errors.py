"""Exception types raised by the statement pipeline.

Every failure that is fatal for a single document derives from ``PipelineError``.
Classifier failures have no type here; the enrichment agent recovers from them itself.
"""


class PipelineError(Exception):
    """Base class for document-level pipeline failures."""

    def __init__(self, message: str, key: str | None = None) -> None:
        """Store the failing document key alongside the message."""
        super().__init__(message)
        self.key = key


class DocumentNotFoundError(PipelineError):
    """The referenced document does not exist in object storage."""


class MissingMetadataError(PipelineError):
    """The stored document carries no owning-user identifier."""


class ParseFailureError(PipelineError):
    """The document could not be read as text."""


class PersistenceError(PipelineError):
    """Writing the document's transactions to the store failed."""


class StatementConflictError(PipelineError):
    """Another attempt already claimed this content hash."""
