"""Pytest configuration and fixtures."""
import os

import pytest

# Set test environment variables
os.environ["TEAMFLOW_ENV"] = "test"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Clear the cached settings around every test."""
    from teamflow.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def store():
    """Configuration store with default settings."""
    from teamflow.configuration import NodeConfigurationStore

    return NodeConfigurationStore()


@pytest.fixture
def make_node(store):
    """Factory for nodes with default configurations."""
    from teamflow.configuration import AgentType
    from teamflow.workflow import Node

    def _make(node_id, agent_type=AgentType.COPYWRITING, label=None):
        return Node(
            id=node_id,
            agent_type=agent_type,
            label=label or node_id.title(),
            configuration=store.get_default_configuration(agent_type),
        )

    return _make


@pytest.fixture
def chain_graph(make_node):
    """Strategy -> Writer -> SEO workflow."""
    from teamflow.configuration import AgentType
    from teamflow.workflow import WorkflowGraph

    graph = WorkflowGraph(name="Launch")
    graph.add_node(make_node("strategy", AgentType.STRATEGY, "Strategy Director"))
    graph.add_node(make_node("writer", AgentType.COPYWRITING, "Content Writer"))
    graph.add_node(make_node("seo", AgentType.SEO, "SEO Specialist"))
    graph.connect("strategy", "writer")
    graph.connect("writer", "seo")
    return graph


@pytest.fixture
def sample_workflow_json():
    """Workflow definition in its camelCase JSON form."""
    return {
        "id": "wf-1",
        "name": "Newsletter",
        "nodes": [
            {
                "id": "plan",
                "agentType": "strategy",
                "label": "Planner",
                "configuration": {
                    "agentType": "strategy",
                    "mode": "autonomous",
                    "objectives": ["Retention"],
                    "targetAudience": "Subscribers",
                    "timeframe": "Monthly",
                },
                "position": {"x": 100, "y": 200},
            },
            {
                "id": "mail",
                "agentType": "email",
                "label": "Email Writer",
                "configuration": {
                    "agentType": "email",
                    "mode": "semiautonomous",
                    "frequency": "Monthly",
                    "emailType": "Newsletter",
                    "subject": "This month",
                },
            },
        ],
        "edges": [
            {"id": "e1", "sourceNodeId": "plan", "targetNodeId": "mail"},
        ],
    }
