"""
Workflow Graph - Editable DAG of agent nodes.

Holds the nodes and directed edges of one workflow, enforces the structural
invariants on every mutation, and computes a deterministic execution order.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Set, Tuple

from teamflow.config import get_settings
from teamflow.errors import (
    CycleDetectedError,
    CyclicGraphError,
    DanglingEdgeError,
    DuplicateEdgeError,
    DuplicateIdError,
    EdgeNotFoundError,
    NodeNotFoundError,
)
from teamflow.identifiers import generate_edge_id, generate_workflow_id

from .models import Edge, Node, NodePosition, WorkflowDefinition


logger = logging.getLogger(__name__)


def _order_nodes(
    nodes: Mapping[str, Node],
    edges: Mapping[str, Edge],
) -> List[str]:
    """
    Kahn's algorithm with ties broken by node insertion order.

    Raises:
        CyclicGraphError: If not every node can be ordered
    """
    rank = {node_id: index for index, node_id in enumerate(nodes)}
    in_degree: Dict[str, int] = {node_id: 0 for node_id in nodes}
    downstream: Dict[str, List[str]] = {node_id: [] for node_id in nodes}
    for edge in edges.values():
        if edge.source_node_id in rank and edge.target_node_id in rank:
            in_degree[edge.target_node_id] += 1
            downstream[edge.source_node_id].append(edge.target_node_id)

    ready = [(rank[n], n) for n, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    order: List[str] = []

    while ready:
        _, node_id = heapq.heappop(ready)
        order.append(node_id)
        for target in downstream[node_id]:
            in_degree[target] -= 1
            if in_degree[target] == 0:
                heapq.heappush(ready, (rank[target], target))

    if len(order) != len(nodes):
        raise CyclicGraphError(set(nodes) - set(order))

    return order


@dataclass(frozen=True)
class GraphSnapshot:
    """
    Read-only copy of a workflow graph taken for one run.

    Later edits to the source graph are not visible here.
    """
    workflow_id: str
    name: str
    nodes: Mapping[str, Node]
    edges: Tuple[Edge, ...]

    def __len__(self) -> int:
        return len(self.nodes)

    def topological_order(self) -> List[str]:
        """Deterministic node order consistent with edge direction."""
        return _order_nodes(self.nodes, {e.id: e for e in self.edges})

    def predecessors(self, node_id: str) -> List[str]:
        """Direct upstream node ids in node insertion order."""
        sources = {e.source_node_id for e in self.edges if e.target_node_id == node_id}
        return [n for n in self.nodes if n in sources]

    def successors(self, node_id: str) -> List[str]:
        """Direct downstream node ids in node insertion order."""
        targets = {e.target_node_id for e in self.edges if e.source_node_id == node_id}
        return [n for n in self.nodes if n in targets]


class WorkflowGraph:
    """
    Editable workflow graph.

    Nodes and edges keep their insertion order. Every mutation either fully
    applies or raises and leaves the graph unchanged.

    Usage:
        graph = WorkflowGraph(name="Launch")
        graph.add_node(strategy)
        graph.add_node(writer)
        graph.connect(strategy.id, writer.id)
        graph.topological_order()  # [strategy.id, writer.id]
    """

    def __init__(
        self,
        name: Optional[str] = None,
        description: str = "",
        workflow_id: Optional[str] = None,
        template_id: Optional[str] = None,
    ):
        """
        Create an empty workflow.

        Args:
            name: Display name (defaults to settings.default_workflow_name)
            description: Free-text description
            workflow_id: Existing id to keep; a new one is generated if omitted
            template_id: Template the workflow was seeded from, if any
        """
        self.id = workflow_id or generate_workflow_id()
        self.name = name or get_settings().default_workflow_name
        self.description = description
        self.template_id = template_id
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}

    # --- Queries -------------------------------------------------------------

    @property
    def nodes(self) -> List[Node]:
        """Nodes in insertion order."""
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        """Edges in insertion order."""
        return list(self._edges.values())

    @property
    def node_ids(self) -> List[str]:
        return list(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def get_node(self, node_id: str) -> Node:
        """Get node by id."""
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def get_edge(self, edge_id: str) -> Edge:
        """Get edge by id."""
        try:
            return self._edges[edge_id]
        except KeyError:
            raise EdgeNotFoundError(edge_id) from None

    def predecessors(self, node_id: str) -> List[str]:
        """Ids of nodes with an edge into ``node_id``, in node insertion order."""
        self._require_node(node_id)
        sources = {e.source_node_id for e in self._edges.values() if e.target_node_id == node_id}
        return [n for n in self._nodes if n in sources]

    def successors(self, node_id: str) -> List[str]:
        """Ids of nodes with an edge from ``node_id``, in node insertion order."""
        self._require_node(node_id)
        targets = {e.target_node_id for e in self._edges.values() if e.source_node_id == node_id}
        return [n for n in self._nodes if n in targets]

    def descendants(self, node_id: str) -> Set[str]:
        """All node ids reachable from ``node_id`` (excluding itself)."""
        self._require_node(node_id)
        return self._reachable_from(node_id) - {node_id}

    def topological_order(self) -> List[str]:
        """
        Compute the execution order.

        Independent nodes keep their insertion order so repeated calls and
        repeated runs produce the same sequence.

        Raises:
            CyclicGraphError: If the edges contain a cycle
        """
        return _order_nodes(self._nodes, self._edges)

    # --- Mutations -----------------------------------------------------------

    def add_node(self, node: Node) -> Node:
        """
        Add a node.

        Raises:
            DuplicateIdError: If a node with the same id exists
        """
        if node.id in self._nodes:
            raise DuplicateIdError("node", node.id)
        self._nodes[node.id] = node
        logger.debug(f"Node added to {self.id}: {node.id} ({node.agent_type.value})")
        return node

    def update_node(self, node: Node) -> Node:
        """Replace an existing node (same id) with a new version."""
        self._require_node(node.id)
        self._nodes[node.id] = node
        return node

    def move_node(self, node_id: str, x: float, y: float) -> Node:
        """Change a node's canvas position."""
        node = self.get_node(node_id)
        moved = node.model_copy(update={"position": NodePosition(x=x, y=y)})
        self._nodes[node_id] = moved
        return moved

    def remove_node(self, node_id: str) -> Node:
        """
        Remove a node and every edge that references it.

        Returns:
            The removed node
        """
        node = self.get_node(node_id)
        attached = [
            edge_id for edge_id, edge in self._edges.items()
            if node_id in (edge.source_node_id, edge.target_node_id)
        ]
        for edge_id in attached:
            del self._edges[edge_id]
        del self._nodes[node_id]
        logger.debug(f"Node removed from {self.id}: {node_id} ({len(attached)} edges)")
        return node

    def add_edge(self, edge: Edge) -> Edge:
        """
        Add a directed edge.

        Raises:
            DuplicateIdError: If the edge id exists
            DuplicateEdgeError: If the same source -> target edge exists
            DanglingEdgeError: If either endpoint is not in the graph
            CycleDetectedError: If the edge is a self-loop or would close a cycle
        """
        if edge.id in self._edges:
            raise DuplicateIdError("edge", edge.id)

        missing = [
            n for n in (edge.source_node_id, edge.target_node_id) if n not in self._nodes
        ]
        if missing:
            raise DanglingEdgeError(edge.id, dict.fromkeys(missing))

        source, target = edge.source_node_id, edge.target_node_id
        for existing in self._edges.values():
            if existing.source_node_id == source and existing.target_node_id == target:
                raise DuplicateEdgeError(source, target)

        if source == target or source in self._reachable_from(target):
            raise CycleDetectedError(source, target)

        self._edges[edge.id] = edge
        logger.debug(f"Edge added to {self.id}: {source} -> {target}")
        return edge

    def connect(self, source_id: str, target_id: str, label: Optional[str] = None) -> Edge:
        """Add an edge with a generated id."""
        return self.add_edge(
            Edge(
                id=generate_edge_id(),
                source_node_id=source_id,
                target_node_id=target_id,
                label=label,
            )
        )

    def remove_edge(self, edge_id: str) -> Edge:
        """Remove an edge by id."""
        edge = self.get_edge(edge_id)
        del self._edges[edge_id]
        return edge

    def clear(self) -> None:
        """Discard every node and edge."""
        self._nodes.clear()
        self._edges.clear()

    # --- Snapshots and serialisation -----------------------------------------

    def snapshot(self) -> GraphSnapshot:
        """Take a read-only copy for a run."""
        return GraphSnapshot(
            workflow_id=self.id,
            name=self.name,
            nodes=MappingProxyType(dict(self._nodes)),
            edges=tuple(self._edges.values()),
        )

    def to_definition(self) -> WorkflowDefinition:
        """Export as a serialisable definition."""
        return WorkflowDefinition(
            id=self.id,
            name=self.name,
            description=self.description,
            nodes=list(self._nodes.values()),
            edges=list(self._edges.values()),
            template_id=self.template_id,
        )

    @classmethod
    def from_definition(cls, definition: WorkflowDefinition) -> "WorkflowGraph":
        """
        Build a graph from a definition, re-checking every invariant.

        Raises:
            GraphError: If the definition is structurally invalid
        """
        graph = cls(
            name=definition.name,
            description=definition.description,
            workflow_id=definition.id,
            template_id=definition.template_id,
        )
        for node in definition.nodes:
            graph.add_node(node)
        for edge in definition.edges:
            graph.add_edge(edge)
        return graph

    # --- Internals -----------------------------------------------------------

    def _require_node(self, node_id: str) -> None:
        if node_id not in self._nodes:
            raise NodeNotFoundError(node_id)

    def _reachable_from(self, start: str) -> Set[str]:
        """Node ids reachable from ``start`` over existing edges, including it."""
        downstream: Dict[str, List[str]] = {}
        for edge in self._edges.values():
            downstream.setdefault(edge.source_node_id, []).append(edge.target_node_id)

        seen = {start}
        stack = [start]
        while stack:
            for target in downstream.get(stack.pop(), ()):
                if target not in seen:
                    seen.add(target)
                    stack.append(target)
        return seen

    def __repr__(self) -> str:
        return f"WorkflowGraph(id={self.id!r}, name={self.name!r}, nodes={len(self._nodes)}, edges={len(self._edges)})"


__all__ = [
    "GraphSnapshot",
    "WorkflowGraph",
]
