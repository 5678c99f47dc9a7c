"""
Configuration Models - Per-agent-type capability parameters.

Each agent type owns a closed configuration record. Together they form a
tagged union (``AgentConfiguration``) discriminated on ``agent_type``.
Wire names are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Callable, Dict, List, Literal, Type, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AgentType(str, Enum):
    """Capability kinds an agent node can have."""
    STRATEGY = "strategy"
    CREATIVE = "creative"
    COPYWRITING = "copywriting"
    SEO = "seo"
    SOCIAL = "social"
    EMAIL = "email"
    ANALYTICS = "analytics"
    ADS = "ads"


AgentMode = Literal["autonomous", "semiautonomous"]


class BaseAgentConfig(BaseModel):
    """
    Fields shared by every agent configuration.

    Validation is strict: values must already be of the declared primitive
    kind, and unknown fields are rejected.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
        extra="forbid",
        frozen=True,
    )

    mode: AgentMode = Field(..., description="Autonomy level of the agent")

    def to_wire(self) -> Dict[str, object]:
        """Dump as a camelCase dict without the type tag."""
        return self.model_dump(by_alias=True, exclude={"agent_type"})


class StrategyConfig(BaseAgentConfig):
    agent_type: Literal["strategy"] = "strategy"
    objectives: List[str]
    target_audience: str
    timeframe: str


class CreativeConfig(BaseAgentConfig):
    agent_type: Literal["creative"] = "creative"
    style: str
    size: str
    format: str


class CopywritingConfig(BaseAgentConfig):
    agent_type: Literal["copywriting"] = "copywriting"
    content_type: str
    tone: str
    length: str


class SeoConfig(BaseAgentConfig):
    agent_type: Literal["seo"] = "seo"
    keywords: List[str]
    target_audience: str
    content_type: str
    optimization_level: int = Field(..., ge=1, le=5)


class SocialConfig(BaseAgentConfig):
    agent_type: Literal["social"] = "social"
    platforms: List[str]
    posting_frequency: str
    content_mix: str


class EmailConfig(BaseAgentConfig):
    agent_type: Literal["email"] = "email"
    frequency: str
    email_type: str
    subject: str


class AnalyticsConfig(BaseAgentConfig):
    agent_type: Literal["analytics"] = "analytics"
    metrics: List[str]
    report_frequency: str


class AdsConfig(BaseAgentConfig):
    agent_type: Literal["ads"] = "ads"
    platform: str
    budget: float = Field(..., ge=0)
    objective: str


AgentConfiguration = Annotated[
    Union[
        StrategyConfig,
        CreativeConfig,
        CopywritingConfig,
        SeoConfig,
        SocialConfig,
        EmailConfig,
        AnalyticsConfig,
        AdsConfig,
    ],
    Field(discriminator="agent_type"),
]


CONFIG_MODELS: Dict[AgentType, Type[BaseAgentConfig]] = {
    AgentType.STRATEGY: StrategyConfig,
    AgentType.CREATIVE: CreativeConfig,
    AgentType.COPYWRITING: CopywritingConfig,
    AgentType.SEO: SeoConfig,
    AgentType.SOCIAL: SocialConfig,
    AgentType.EMAIL: EmailConfig,
    AgentType.ANALYTICS: AnalyticsConfig,
    AgentType.ADS: AdsConfig,
}


def _join(values: List[str]) -> str:
    return ", ".join(values) if values else "none"


_DESCRIBERS: Dict[AgentType, Callable[..., str]] = {
    AgentType.STRATEGY: lambda c: (
        f"objectives {_join(c.objectives)} for {c.target_audience} over {c.timeframe}"
    ),
    AgentType.CREATIVE: lambda c: f"{c.style} style, {c.size} {c.format}",
    AgentType.COPYWRITING: lambda c: f"{c.length} {c.content_type}, {c.tone} tone",
    AgentType.SEO: lambda c: (
        f"{c.content_type} for {c.target_audience}, keywords {_join(c.keywords)}, "
        f"optimization level {c.optimization_level}"
    ),
    AgentType.SOCIAL: lambda c: (
        f"{c.posting_frequency} posts on {_join(c.platforms)} ({c.content_mix})"
    ),
    AgentType.EMAIL: lambda c: f"{c.frequency} {c.email_type}: \"{c.subject}\"",
    AgentType.ANALYTICS: lambda c: f"{c.report_frequency} report on {_join(c.metrics)}",
    AgentType.ADS: lambda c: f"{c.objective} on {c.platform}, budget {c.budget:g}",
}

# Every agent type must have a model and a describer
for _table in (CONFIG_MODELS, _DESCRIBERS):
    _missing = set(AgentType) - set(_table)
    if _missing:
        raise RuntimeError(f"Agent types without an entry: {sorted(m.value for m in _missing)}")


def config_model_for(agent_type: AgentType) -> Type[BaseAgentConfig]:
    """Get the configuration model class for an agent type."""
    return CONFIG_MODELS[AgentType(agent_type)]


def describe_configuration(configuration: BaseAgentConfig) -> str:
    """Render a one-line, human-readable summary of a configuration."""
    agent_type = AgentType(configuration.agent_type)
    return f"{configuration.mode} {agent_type.value} agent: {_DESCRIBERS[agent_type](configuration)}"


__all__ = [
    "AgentType",
    "AgentMode",
    "AgentConfiguration",
    "BaseAgentConfig",
    "StrategyConfig",
    "CreativeConfig",
    "CopywritingConfig",
    "SeoConfig",
    "SocialConfig",
    "EmailConfig",
    "AnalyticsConfig",
    "AdsConfig",
    "CONFIG_MODELS",
    "config_model_for",
    "describe_configuration",
]
