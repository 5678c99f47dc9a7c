"""
Workflow - Agent workflow graphs and the templates that seed them.

This package provides:
- Node, Edge, WorkflowDefinition: Values and serialisable form of a workflow
- WorkflowGraph: Editable DAG with structural invariants
- TemplateLibrary: Prebuilt workflows that instantiate into new graphs
"""

from .models import Edge, Node, NodePosition, WorkflowDefinition, parse_workflow
from .graph import GraphSnapshot, WorkflowGraph
from .templates import (
    ComplexityTier,
    Template,
    TemplateLibrary,
    TemplateSummary,
    get_template_library,
)

__all__ = [
    # Models
    "Edge",
    "Node",
    "NodePosition",
    "WorkflowDefinition",
    "parse_workflow",
    # Graph
    "GraphSnapshot",
    "WorkflowGraph",
    # Templates
    "ComplexityTier",
    "Template",
    "TemplateLibrary",
    "TemplateSummary",
    "get_template_library",
]
