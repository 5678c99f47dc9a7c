"""
Agent Catalog - The agents available for building workflows.

This package provides:
- AgentDefinition: Metadata about a catalog agent
- AgentCatalog: Protocol for catalog implementations
- StaticAgentCatalog: Read-only in-memory catalog
"""

from .models import AgentDefinition
from .registry import AgentCatalog, StaticAgentCatalog, build_default_catalog, get_agent_catalog

__all__ = [
    "AgentDefinition",
    "AgentCatalog",
    "StaticAgentCatalog",
    "build_default_catalog",
    "get_agent_catalog",
]
