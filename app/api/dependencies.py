"""FastAPI dependencies for DI (settings, agent, pipeline).

This module provides dependency injection helpers for the enrichment agent and the statement
pipeline, enabling modular and testable API endpoints.
"""

from functools import lru_cache

from app.agents import AgentRegistry, BaseAgent
from app.core.db import get_session_factory
from app.core.settings import get_settings
from app.services.deduplicator import Deduplicator
from app.services.ledger_writer import LedgerWriter
from app.services.s3_file_service import S3FileService
from app.workers.pipeline import StatementPipeline


def get_agent() -> BaseAgent:
    """Provide the configured enrichment agent for dependency injection."""
    return AgentRegistry.create(get_settings())


@lru_cache
def get_pipeline() -> StatementPipeline:
    """Provide a StatementPipeline wired to S3, the database and the enrichment agent."""
    settings = get_settings()
    ledger = LedgerWriter(get_session_factory())
    return StatementPipeline(
        store=S3FileService(settings),
        ledger=ledger,
        agent=get_agent(),
        deduplicator=Deduplicator(ledger, chunk_size=settings.dedup_chunk_size),
        max_workers=settings.pipeline_max_workers,
        stale_after_seconds=settings.statement_stale_after_seconds,
    )
