"""Tests for the agent catalog."""
import pytest

from teamflow.catalog import AgentDefinition, StaticAgentCatalog, build_default_catalog, get_agent_catalog
from teamflow.configuration import AgentType
from teamflow.errors import AgentNotFoundError
from teamflow.workflow import Node, NodePosition


class TestStaticAgentCatalog:
    """Test the in-memory catalog."""

    def test_default_catalog_contents(self, store):
        """Test the built-in agents."""
        catalog = build_default_catalog(store)

        assert len(catalog) == 14
        assert "agent-seo" in catalog
        assert {a.agent_type for a in catalog.list_agents()} == set(AgentType)

    def test_defaults_match_agent_type(self, store):
        """Test that each agent carries a configuration for its own type."""
        for agent in build_default_catalog(store):
            assert agent.default_configuration.agent_type == agent.agent_type.value

    def test_get_unknown_agent(self, store):
        """Test that unknown ids raise AgentNotFoundError."""
        catalog = build_default_catalog(store)

        with pytest.raises(AgentNotFoundError):
            catalog.get("agent-podcaster")

    def test_by_type(self, store):
        """Test filtering agents by capability kind."""
        catalog = build_default_catalog(store)

        names = [a.name for a in catalog.by_type(AgentType.COPYWRITING)]

        assert names == ["Copywriter", "Content Writer", "Content Editor"]

    def test_duplicate_ids_rejected(self, store):
        """Test that agent ids must be unique."""
        agent = build_default_catalog(store).get("agent-email")

        with pytest.raises(ValueError):
            StaticAgentCatalog([agent, agent])

    def test_global_catalog(self):
        """Test the process-wide catalog."""
        assert get_agent_catalog() is get_agent_catalog()


class TestNodeFromAgent:
    """Test placing catalog agents as nodes."""

    def test_from_agent(self, store):
        """Test that a node inherits the agent's identity and defaults."""
        agent = build_default_catalog(store).get("agent-seo")

        node = Node.from_agent(agent, position=NodePosition(x=10, y=20))

        assert node.id.startswith("node-")
        assert node.agent_type == AgentType.SEO
        assert node.label == "SEO Expert"
        assert node.configuration == agent.default_configuration
        assert node.position.y == 20

    def test_definition_json_uses_camel_case(self, store):
        """Test the wire form of an agent definition."""
        agent = build_default_catalog(store).get("agent-ads")

        data = agent.model_dump(mode="json", by_alias=True)
        restored = AgentDefinition.model_validate(data)

        assert data["agentType"] == "ads"
        assert data["defaultConfiguration"]["budget"] == 500.0
        assert restored == agent
