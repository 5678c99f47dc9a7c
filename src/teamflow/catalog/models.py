"""
Agent Catalog Models - Metadata for agents that can be placed on a workflow.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from teamflow.configuration.models import AgentConfiguration, AgentType


class AgentDefinition(BaseModel):
    """
    An agent offered by the catalog.

    Used to populate the node library and the agent lists of templates.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    # Identity
    id: str = Field(..., description="Unique agent identifier")
    agent_type: AgentType = Field(..., description="Capability kind")

    # Display
    name: str = Field(..., description="Human-readable name")
    description: str = Field("", description="Agent description")

    # Runtime
    default_configuration: AgentConfiguration = Field(
        ..., description="Configuration applied to new nodes for this agent"
    )


__all__ = ["AgentDefinition"]
