"""
Error taxonomy for teamflow.

Structural and configuration errors are raised synchronously to the caller
and never retried. Capability errors are raised by invokers and recovered by
the execution engine, which records them in the run transcript.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional


class TeamflowError(Exception):
    """Base exception for all teamflow errors."""

    pass


# --- Structural graph errors -------------------------------------------------


class GraphError(TeamflowError):
    """Base exception for workflow graph structure errors."""

    pass


class DuplicateIdError(GraphError):
    """Raised when a node or edge id is already present in the graph."""

    def __init__(self, kind: str, item_id: str, message: Optional[str] = None):
        self.kind = kind
        self.item_id = item_id
        super().__init__(message or f"Duplicate {kind} id: {item_id}")


class DuplicateEdgeError(DuplicateIdError):
    """Raised when an edge between the same two nodes already exists."""

    def __init__(self, source_id: str, target_id: str):
        self.source_id = source_id
        self.target_id = target_id
        super().__init__(
            "edge",
            f"{source_id}->{target_id}",
            f"Edge from {source_id} to {target_id} already exists",
        )


class DanglingEdgeError(GraphError):
    """Raised when an edge references node ids that are not in the graph."""

    def __init__(self, edge_id: str, missing: Iterable[str]):
        self.edge_id = edge_id
        self.missing = list(missing)
        super().__init__(
            f"Edge {edge_id} references unknown node(s): {', '.join(self.missing)}"
        )


class CycleDetectedError(GraphError):
    """Raised when adding an edge would create a cycle."""

    def __init__(self, source_id: str, target_id: str):
        self.source_id = source_id
        self.target_id = target_id
        if source_id == target_id:
            message = f"Self-loop on node {source_id} is not allowed"
        else:
            message = (
                f"Edge {source_id} -> {target_id} would create a cycle: "
                f"{target_id} already reaches {source_id}"
            )
        super().__init__(message)


class CyclicGraphError(GraphError):
    """Raised when a topological order cannot be computed."""

    def __init__(self, remaining: Iterable[str]):
        self.remaining = sorted(remaining)
        super().__init__(f"Workflow has cycles involving: {self.remaining}")


class NodeNotFoundError(GraphError, KeyError):
    """Raised when a node id is not present in the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")

    def __str__(self) -> str:
        return self.args[0]


class EdgeNotFoundError(GraphError, KeyError):
    """Raised when an edge id is not present in the graph."""

    def __init__(self, edge_id: str):
        self.edge_id = edge_id
        super().__init__(f"Edge not found: {edge_id}")

    def __str__(self) -> str:
        return self.args[0]


# --- Configuration errors ----------------------------------------------------


class InvalidConfigurationError(TeamflowError):
    """
    Raised when a node configuration fails validation.

    Attributes:
        agent_type: Agent type the configuration was checked against
        fields: Map of offending field name -> reason
    """

    def __init__(self, agent_type: str, fields: Dict[str, str]):
        self.agent_type = agent_type
        self.fields = dict(fields)
        details = "; ".join(f"{name}: {reason}" for name, reason in self.fields.items())
        super().__init__(f"Invalid {agent_type} configuration ({details})")


# --- Catalog errors ----------------------------------------------------------


class TemplateNotFoundError(TeamflowError, KeyError):
    """Raised when a template id is unknown."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Template not found: {template_id}")

    def __str__(self) -> str:
        return self.args[0]


class AgentNotFoundError(TeamflowError, KeyError):
    """Raised when an agent id is not in the catalog."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}")

    def __str__(self) -> str:
        return self.args[0]


# --- Run errors --------------------------------------------------------------


class RunError(TeamflowError):
    """Base exception for run activation and state errors."""

    pass


class EmptyWorkflowError(RunError):
    """Raised when activating a workflow with no nodes."""

    def __init__(self, workflow_name: str = ""):
        name = f" '{workflow_name}'" if workflow_name else ""
        super().__init__(f"Workflow{name} has no agents; add at least one before activating")


class RunAlreadyInProgressError(RunError):
    """Raised when activating while a run is already in progress."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} is already in progress")


class InvalidRunStateError(RunError):
    """Raised when a run state transition is not permitted."""

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while run state is '{state}'")


# --- Capability errors -------------------------------------------------------


class CapabilityError(TeamflowError):
    """Raised when a node's capability invocation fails."""

    def __init__(self, reason: str, agent_type: Optional[str] = None):
        self.reason = reason
        self.agent_type = agent_type
        super().__init__(reason)


__all__ = [
    "TeamflowError",
    "GraphError",
    "DuplicateIdError",
    "DuplicateEdgeError",
    "DanglingEdgeError",
    "CycleDetectedError",
    "CyclicGraphError",
    "NodeNotFoundError",
    "EdgeNotFoundError",
    "InvalidConfigurationError",
    "TemplateNotFoundError",
    "AgentNotFoundError",
    "RunError",
    "EmptyWorkflowError",
    "RunAlreadyInProgressError",
    "InvalidRunStateError",
    "CapabilityError",
]
