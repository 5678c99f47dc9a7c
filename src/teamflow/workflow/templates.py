"""
Template Library - Prebuilt workflows that seed new graphs.

Templates are immutable. Instantiating one builds a brand new WorkflowGraph
with fresh node and edge ids, so two instantiations never share state with
each other or with the template.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from teamflow.configuration.models import AgentType
from teamflow.configuration.store import NodeConfigurationStore
from teamflow.errors import TemplateNotFoundError
from teamflow.identifiers import generate_edge_id, generate_node_id

from .graph import WorkflowGraph
from .models import Edge, Node, NodePosition


logger = logging.getLogger(__name__)

_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _freeze(value: Any) -> Any:
    """Read-only copy: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class ComplexityTier(str, Enum):
    """How demanding a template is to run."""
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class TemplateNode(BaseModel):
    """An agent slot in a template, identified by a template-local key."""
    model_config = _MODEL_CONFIG

    key: str
    agent_type: AgentType
    label: str
    description: str = ""
    configuration: Mapping[str, Any] = Field(
        default_factory=dict,
        validate_default=True,
        description="Overrides applied on top of the agent type's defaults",
    )
    position: NodePosition = Field(default_factory=NodePosition)

    @field_validator("configuration", mode="after")
    @classmethod
    def freeze_overrides(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return _freeze(v)

    def overrides(self) -> Dict[str, Any]:
        """Mutable copy of the configuration overrides."""
        return _thaw(self.configuration)


class TemplateEdge(BaseModel):
    """A dependency between two template nodes, by key."""
    model_config = _MODEL_CONFIG

    source: str
    target: str
    label: Optional[str] = None


class TemplateSummary(BaseModel):
    """Listing entry for a template."""
    model_config = _MODEL_CONFIG

    id: str
    name: str
    description: str
    category: str
    complexity: ComplexityTier
    estimated_time: str


class Template(BaseModel):
    """An immutable, named workflow used as a starting point."""
    model_config = _MODEL_CONFIG

    id: str
    name: str
    description: str
    category: str
    complexity: ComplexityTier
    estimated_time: str
    use_case: str = ""
    tasks: Tuple[str, ...] = ()
    nodes: Tuple[TemplateNode, ...]
    edges: Tuple[TemplateEdge, ...] = ()

    @model_validator(mode="after")
    def check_topology(self) -> "Template":
        keys = [n.key for n in self.nodes]
        if len(set(keys)) != len(keys):
            raise ValueError(f"template {self.id} has duplicate node keys")
        for edge in self.edges:
            if edge.source not in keys or edge.target not in keys:
                raise ValueError(
                    f"template {self.id} edge {edge.source}->{edge.target} references unknown keys"
                )
        return self

    def summary(self) -> TemplateSummary:
        return TemplateSummary(
            id=self.id,
            name=self.name,
            description=self.description,
            category=self.category,
            complexity=self.complexity,
            estimated_time=self.estimated_time,
        )


class TemplateListing:
    """
    Restartable view over template summaries.

    Each iteration builds summaries lazily from the library's templates.
    """

    def __init__(self, templates: Mapping[str, Template]):
        self._templates = templates

    def __iter__(self) -> Iterator[TemplateSummary]:
        return (template.summary() for template in self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)


class TemplateLibrary:
    """
    Read-only registry of workflow templates.

    Usage:
        library = get_template_library()
        for summary in library.list_templates():
            print(summary.name, summary.complexity)

        graph = library.instantiate("content-team")
    """

    def __init__(
        self,
        templates: Iterable[Template],
        configuration_store: Optional[NodeConfigurationStore] = None,
    ):
        """
        Build the library.

        Args:
            templates: Templates to register; ids must be unique
            configuration_store: Store used to build node configurations

        Raises:
            ValueError: If two templates share an id
        """
        by_id: Dict[str, Template] = {}
        for template in templates:
            if template.id in by_id:
                raise ValueError(f"Duplicate template id: {template.id}")
            by_id[template.id] = template
        self._templates = MappingProxyType(by_id)
        self._store = configuration_store or NodeConfigurationStore()

    def list_templates(self) -> TemplateListing:
        """List template summaries in registration order."""
        return TemplateListing(self._templates)

    def get(self, template_id: str) -> Template:
        """
        Get a template by id.

        Raises:
            TemplateNotFoundError: If the id is unknown
        """
        try:
            return self._templates[template_id]
        except KeyError:
            raise TemplateNotFoundError(template_id) from None

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def instantiate(self, template_id: str, name: Optional[str] = None) -> WorkflowGraph:
        """
        Create a new workflow graph from a template.

        Every node and edge gets a freshly generated id; the mapping from
        template keys to node ids is 1:1.

        Raises:
            TemplateNotFoundError: If the id is unknown
            InvalidConfigurationError: If a template override is invalid
        """
        template = self.get(template_id)
        graph = WorkflowGraph(
            name=name or template.name,
            description=template.description,
            template_id=template.id,
        )

        node_ids: Dict[str, str] = {}
        for slot in template.nodes:
            node = Node(
                id=generate_node_id(),
                agent_type=slot.agent_type,
                label=slot.label,
                description=slot.description,
                configuration=self._store.configure(slot.agent_type, slot.overrides()),
                position=slot.position,
            )
            graph.add_node(node)
            node_ids[slot.key] = node.id

        for link in template.edges:
            graph.add_edge(
                Edge(
                    id=generate_edge_id(),
                    source_node_id=node_ids[link.source],
                    target_node_id=node_ids[link.target],
                    label=link.label,
                )
            )

        logger.info(f"Instantiated template '{template.id}' as workflow {graph.id}")
        return graph


def _team_template(
    agents: Tuple[Tuple[str, AgentType, str, str], ...],
    **metadata: Any,
) -> Template:
    """Team template: agents laid out left to right and chained in order."""
    nodes = tuple(
        TemplateNode(
            key=key,
            agent_type=agent_type,
            label=label,
            description=description,
            position=NodePosition(x=250 * index + 100, y=200),
        )
        for index, (key, agent_type, label, description) in enumerate(agents)
    )
    edges = tuple(
        TemplateEdge(source=a.key, target=b.key, label="Connected")
        for a, b in zip(nodes, nodes[1:])
    )
    return Template(nodes=nodes, edges=edges, **metadata)


def _node(key: str, agent_type: AgentType, label: str, x: float, y: float, **overrides: Any) -> TemplateNode:
    return TemplateNode(
        key=key,
        agent_type=agent_type,
        label=label,
        position=NodePosition(x=x, y=y),
        configuration=overrides,
    )


BUILTIN_TEMPLATES: Tuple[Template, ...] = (
    _team_template(
        (
            ("strategy", AgentType.STRATEGY, "Strategy Director",
             "Develops marketing strategy and campaign objectives"),
            ("creative", AgentType.CREATIVE, "Creative Director",
             "Generates content ideas and creative direction"),
            ("copywriter", AgentType.COPYWRITING, "Copywriter",
             "Creates compelling copy for all marketing materials"),
            ("seo", AgentType.SEO, "SEO Expert", "Optimizes content for search engines"),
            ("analytics", AgentType.ANALYTICS, "Analytics Manager",
             "Sets up tracking and measures campaign performance"),
        ),
        id="marketing-team",
        name="Marketing Campaign Team",
        description="A complete team for planning and executing marketing campaigns",
        category="Marketing",
        complexity=ComplexityTier.ADVANCED,
        estimated_time="2-3 days",
        use_case="Full marketing campaign planning and execution",
        tasks=(
            "Define campaign strategy",
            "Create content plan",
            "Produce marketing assets",
            "Optimize for search",
            "Configure analytics",
        ),
    ),
    _team_template(
        (
            ("strategist", AgentType.STRATEGY, "Content Strategist",
             "Plans content themes and editorial calendar"),
            ("writer", AgentType.COPYWRITING, "Content Writer",
             "Creates engaging articles and blog posts"),
            ("editor", AgentType.COPYWRITING, "Content Editor", "Reviews and polishes content"),
            ("seo", AgentType.SEO, "SEO Specialist", "Optimizes content for search visibility"),
        ),
        id="content-team",
        name="Content Production Team",
        description="A team focused on content creation and optimization",
        category="Content",
        complexity=ComplexityTier.INTERMEDIATE,
        estimated_time="1-2 days",
        use_case="Blog and website content production",
        tasks=(
            "Plan content calendar",
            "Draft articles and posts",
            "Edit and optimize content",
            "Implement SEO best practices",
        ),
    ),
    _team_template(
        (
            ("strategist", AgentType.STRATEGY, "Social Strategist",
             "Develops social media strategy and campaign objectives"),
            ("creator", AgentType.CREATIVE, "Content Creator",
             "Creates engaging social posts and visuals"),
            ("community", AgentType.SOCIAL, "Community Manager",
             "Handles engagement and community interactions"),
        ),
        id="social-team",
        name="Social Media Team",
        description="A team dedicated to social media management and engagement",
        category="Social Media",
        complexity=ComplexityTier.BASIC,
        estimated_time="1 day",
        use_case="Social media campaign planning and content creation",
        tasks=(
            "Develop social strategy",
            "Create social content",
            "Plan engagement campaigns",
            "Monitor social performance",
        ),
    ),
    Template(
        id="content-workflow",
        name="Content Creation Workflow",
        description="Create high-quality content with SEO optimization",
        category="Content",
        complexity=ComplexityTier.BASIC,
        estimated_time="~15 minutes",
        nodes=(
            _node("content", AgentType.COPYWRITING, "Content Generator", 300, 200),
            _node("seo", AgentType.SEO, "SEO Optimizer", 500, 200),
        ),
        edges=(TemplateEdge(source="content", target="seo", label="Optimize"),),
    ),
    Template(
        id="social-media-workflow",
        name="Social Media Campaign",
        description="Create a complete social media campaign across platforms",
        category="Marketing",
        complexity=ComplexityTier.INTERMEDIATE,
        estimated_time="~30 minutes",
        nodes=(
            _node("content", AgentType.STRATEGY, "Content Strategy", 300, 200),
            _node("social", AgentType.SOCIAL, "Social Media", 500, 100),
            _node("analytics", AgentType.ANALYTICS, "Analytics", 500, 300),
        ),
        edges=(
            TemplateEdge(source="content", target="social", label="Create Posts"),
            TemplateEdge(source="content", target="analytics", label="Setup Tracking"),
        ),
    ),
    Template(
        id="email-workflow",
        name="Email Marketing Sequence",
        description="Create a sequence of emails for nurturing leads",
        category="Email",
        complexity=ComplexityTier.BASIC,
        estimated_time="~20 minutes",
        nodes=(
            _node("content", AgentType.STRATEGY, "Content Planner", 300, 200),
            _node("email", AgentType.EMAIL, "Email Writer", 500, 200, emailType="Nurture Sequence"),
        ),
        edges=(TemplateEdge(source="content", target="email", label="Write Emails"),),
    ),
    Template(
        id="full-marketing-workflow",
        name="Complete Marketing Campaign",
        description="Comprehensive marketing campaign across multiple channels",
        category="Marketing",
        complexity=ComplexityTier.ADVANCED,
        estimated_time="~1 hour",
        nodes=(
            _node("content", AgentType.STRATEGY, "Content Strategy", 300, 300),
            _node("seo", AgentType.SEO, "SEO Strategy", 500, 150),
            _node("social", AgentType.SOCIAL, "Social Media", 500, 300),
            _node("email", AgentType.EMAIL, "Email Marketing", 500, 450),
            _node("analytics", AgentType.ANALYTICS, "Analytics Setup", 700, 300),
        ),
        edges=(
            TemplateEdge(source="content", target="seo", label="Optimize"),
            TemplateEdge(source="content", target="social", label="Create Posts"),
            TemplateEdge(source="content", target="email", label="Draft Emails"),
            TemplateEdge(source="seo", target="analytics", label="Track Keywords"),
            TemplateEdge(source="social", target="analytics", label="Track Engagement"),
            TemplateEdge(source="email", target="analytics", label="Track Opens/Clicks"),
        ),
    ),
)


# Global library instance
_library: Optional[TemplateLibrary] = None


def get_template_library() -> TemplateLibrary:
    """Get or create the global template library."""
    global _library
    if _library is None:
        _library = TemplateLibrary(BUILTIN_TEMPLATES)
    return _library


__all__ = [
    "BUILTIN_TEMPLATES",
    "ComplexityTier",
    "Template",
    "TemplateEdge",
    "TemplateLibrary",
    "TemplateListing",
    "TemplateNode",
    "TemplateSummary",
    "get_template_library",
]
