"""Agents package: provides agent registry, base class, and agent implementations for transaction enrichment."""

from .base import BaseAgent, PassthroughAgent  # noqa: F401
from .enrichment_agent import GroqEnrichmentAgent  # noqa: F401
from .registry import AgentRegistry  # noqa: F401

AgentRegistry.register("groq", GroqEnrichmentAgent)
AgentRegistry.register("passthrough", PassthroughAgent)
