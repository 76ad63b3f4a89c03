"""Core package: provides models, database schema, errors, settings, and shared utilities."""

from .errors import PipelineError  # noqa: F401
from .models import DocumentRef, DocumentResult, StatementStatus  # noqa: F401
from .settings import Settings  # noqa: F401
from .utils import get_logger  # noqa: F401
