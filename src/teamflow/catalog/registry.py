"""
Agent Catalog - Read-only registry of the agents available to workflows.

The catalog is an external collaborator: anything with a ``list_agents()``
method satisfies ``AgentCatalog``. ``StaticAgentCatalog`` is the in-process
implementation, populated once at construction and never mutated.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from teamflow.configuration.models import AgentType
from teamflow.configuration.store import NodeConfigurationStore
from teamflow.errors import AgentNotFoundError

from .models import AgentDefinition


logger = logging.getLogger(__name__)


class AgentCatalog(Protocol):
    """Protocol for agent catalogs."""

    def list_agents(self) -> Sequence[AgentDefinition]:
        """Return every agent definition in the catalog."""
        ...


class StaticAgentCatalog:
    """
    In-memory agent catalog.

    Usage:
        catalog = get_agent_catalog()
        for agent in catalog.list_agents():
            print(agent.name, agent.agent_type)

        seo = catalog.get("agent-seo")
    """

    def __init__(self, agents: Iterable[AgentDefinition]):
        """
        Build the catalog.

        Args:
            agents: Agent definitions; ids must be unique

        Raises:
            ValueError: If two agents share an id
        """
        by_id: Dict[str, AgentDefinition] = {}
        for agent in agents:
            if agent.id in by_id:
                raise ValueError(f"Duplicate agent id in catalog: {agent.id}")
            by_id[agent.id] = agent
        self._agents = MappingProxyType(by_id)
        logger.debug(f"Agent catalog built with {len(by_id)} agents")

    def list_agents(self) -> Tuple[AgentDefinition, ...]:
        """Get all agents in registration order."""
        return tuple(self._agents.values())

    def get(self, agent_id: str) -> AgentDefinition:
        """
        Get an agent by id.

        Raises:
            AgentNotFoundError: If the id is unknown
        """
        try:
            return self._agents[agent_id]
        except KeyError:
            raise AgentNotFoundError(agent_id) from None

    def by_type(self, agent_type: AgentType) -> List[AgentDefinition]:
        """Get all agents with the given capability kind."""
        agent_type = AgentType(agent_type)
        return [a for a in self._agents.values() if a.agent_type == agent_type]

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __iter__(self) -> Iterator[AgentDefinition]:
        return iter(self._agents.values())

    def __len__(self) -> int:
        return len(self._agents)


# (id, agent type, name, description) of the built-in team agents
_BUILTIN_AGENTS: Tuple[Tuple[str, AgentType, str, str], ...] = (
    ("agent-strategy", AgentType.STRATEGY, "Strategy Director",
     "Develops marketing strategy and campaign objectives"),
    ("agent-creative", AgentType.CREATIVE, "Creative Director",
     "Generates content ideas and creative direction"),
    ("agent-copywriter", AgentType.COPYWRITING, "Copywriter",
     "Creates compelling copy for all marketing materials"),
    ("agent-seo", AgentType.SEO, "SEO Expert",
     "Optimizes content for search engines"),
    ("agent-analytics", AgentType.ANALYTICS, "Analytics Manager",
     "Sets up tracking and measures campaign performance"),
    ("agent-content-strategist", AgentType.STRATEGY, "Content Strategist",
     "Plans content themes and editorial calendar"),
    ("agent-writer", AgentType.COPYWRITING, "Content Writer",
     "Creates engaging articles and blog posts"),
    ("agent-editor", AgentType.COPYWRITING, "Content Editor",
     "Reviews and polishes content"),
    ("agent-seo-specialist", AgentType.SEO, "SEO Specialist",
     "Optimizes content for search visibility"),
    ("agent-social-strategist", AgentType.STRATEGY, "Social Strategist",
     "Develops social media strategy and campaign objectives"),
    ("agent-content-creator", AgentType.CREATIVE, "Content Creator",
     "Creates engaging social posts and visuals"),
    ("agent-community-manager", AgentType.SOCIAL, "Community Manager",
     "Handles engagement and community interactions"),
    ("agent-email", AgentType.EMAIL, "Email Marketer",
     "Specialist in email marketing campaigns"),
    ("agent-ads", AgentType.ADS, "Ads Expert",
     "Maximizes the ROI of advertising campaigns"),
)


def build_default_catalog(
    configuration_store: Optional[NodeConfigurationStore] = None,
) -> StaticAgentCatalog:
    """Build the catalog of built-in agents with default configurations."""
    store = configuration_store or NodeConfigurationStore()
    return StaticAgentCatalog(
        AgentDefinition(
            id=agent_id,
            agent_type=agent_type,
            name=name,
            description=description,
            default_configuration=store.get_default_configuration(agent_type),
        )
        for agent_id, agent_type, name, description in _BUILTIN_AGENTS
    )


# Global catalog instance
_catalog: Optional[StaticAgentCatalog] = None


def get_agent_catalog() -> StaticAgentCatalog:
    """Get or create the global agent catalog."""
    global _catalog
    if _catalog is None:
        _catalog = build_default_catalog()
    return _catalog


__all__ = [
    "AgentCatalog",
    "StaticAgentCatalog",
    "build_default_catalog",
    "get_agent_catalog",
]
