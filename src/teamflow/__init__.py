"""
teamflow - Build and run teams of marketing agents as workflow graphs.

A workflow is a DAG of agent nodes. Nodes are placed from the agent catalog
or seeded from a template, configured per agent type, and run in dependency
order by the execution engine, which records a transcript of the run.
"""

from teamflow.catalog import AgentDefinition, StaticAgentCatalog, get_agent_catalog
from teamflow.configuration import AgentType, NodeConfigurationStore
from teamflow.runtime import (
    CapabilityRegistry,
    ExecutionEngine,
    RemoteCapabilityInvoker,
    RunResult,
    RunState,
    Transcript,
)
from teamflow.workflow import (
    Edge,
    Node,
    NodePosition,
    TemplateLibrary,
    WorkflowGraph,
    get_template_library,
)

__version__ = "0.1.0"

__all__ = [
    "AgentDefinition",
    "AgentType",
    "CapabilityRegistry",
    "Edge",
    "ExecutionEngine",
    "Node",
    "NodeConfigurationStore",
    "NodePosition",
    "RemoteCapabilityInvoker",
    "RunResult",
    "RunState",
    "StaticAgentCatalog",
    "TemplateLibrary",
    "Transcript",
    "WorkflowGraph",
    "get_agent_catalog",
    "get_template_library",
]
