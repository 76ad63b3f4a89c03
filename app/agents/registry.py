"""Agent registry for managing enrichment agent types.

This module provides a registry for agent classes, allowing the enrichment agent to be
selected by name from settings.
"""

from typing import ClassVar

from app.agents.base import BaseAgent
from app.core.settings import Settings


class AgentRegistry:
    """Registry for agent classes."""

    _registry: ClassVar[dict[str, type[BaseAgent]]] = {}

    @classmethod
    def register(cls, name: str, agent_cls: type[BaseAgent]) -> None:
        """Register an agent class with a given name."""
        cls._registry[name] = agent_cls

    @classmethod
    def get(cls, name: str) -> type[BaseAgent]:
        """Retrieve an agent class by name."""
        try:
            return cls._registry[name]
        except KeyError:
            msg = f"Unknown enrichment agent '{name}'. Available: {', '.join(cls.available())}"
            raise KeyError(msg) from None

    @classmethod
    def available(cls) -> list[str]:
        """List all available agent names."""
        return sorted(cls._registry.keys())

    @classmethod
    def create(cls, settings: Settings) -> BaseAgent:
        """Instantiate the agent named by ``settings.enrichment_agent``."""
        return cls.get(settings.enrichment_agent).from_settings(settings)
