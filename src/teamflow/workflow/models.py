"""
Workflow Models - Nodes, edges and the serialisable workflow definition.

Nodes and edges are immutable values; editing a node produces a new one.
The JSON form uses camelCase keys to match the canvas editor.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from teamflow.catalog.models import AgentDefinition
from teamflow.configuration.models import AgentConfiguration, AgentType, BaseAgentConfig
from teamflow.identifiers import generate_edge_id, generate_node_id


_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class NodePosition(BaseModel):
    """Node position in the canvas."""
    model_config = _MODEL_CONFIG

    x: float = 0
    y: float = 0


class Node(BaseModel):
    """
    One agent instance placed on the canvas.

    The configuration's agent type must match the node's agent type.
    """
    model_config = _MODEL_CONFIG

    id: str = Field(..., description="Node ID (unique within workflow)")
    agent_type: AgentType = Field(..., description="Capability kind")
    label: str = Field(..., description="Display name")
    description: str = Field("", description="Display description")
    configuration: AgentConfiguration
    position: NodePosition = Field(default_factory=NodePosition)

    @model_validator(mode="after")
    def check_configuration_type(self) -> "Node":
        if self.configuration.agent_type != self.agent_type.value:
            raise ValueError(
                f"configuration is for '{self.configuration.agent_type}' "
                f"but node agent type is '{self.agent_type.value}'"
            )
        return self

    @classmethod
    def from_agent(
        cls,
        agent: AgentDefinition,
        configuration: Optional[BaseAgentConfig] = None,
        position: Optional[NodePosition] = None,
        node_id: Optional[str] = None,
    ) -> "Node":
        """Create a node for a catalog agent with a fresh id."""
        return cls(
            id=node_id or generate_node_id(),
            agent_type=agent.agent_type,
            label=agent.name,
            description=agent.description,
            configuration=configuration or agent.default_configuration,
            position=position or NodePosition(),
        )


class Edge(BaseModel):
    """
    Directed dependency: the target's input accounts for the source's output.
    """
    model_config = _MODEL_CONFIG

    id: str = Field(default_factory=generate_edge_id, description="Edge ID")
    source_node_id: str = Field(..., description="Upstream node ID")
    target_node_id: str = Field(..., description="Downstream node ID")
    label: Optional[str] = Field(None, description="Display label")


class WorkflowDefinition(BaseModel):
    """
    Serialisable workflow: name plus nodes and edges.

    Loading a definition into a WorkflowGraph re-checks every structural
    invariant.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = Field(None, description="Workflow ID")
    name: str = Field(..., description="Workflow name")
    description: str = Field("", description="Workflow description")
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    template_id: Optional[str] = Field(None, description="Source template, if any")

    def to_json_dict(self) -> Dict[str, Any]:
        """Dump with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


def parse_workflow(data: Dict[str, Any]) -> WorkflowDefinition:
    """Parse workflow JSON into WorkflowDefinition."""
    return WorkflowDefinition.model_validate(data)


__all__ = [
    "NodePosition",
    "Node",
    "Edge",
    "WorkflowDefinition",
    "parse_workflow",
]
