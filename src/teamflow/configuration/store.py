"""
Node Configuration Store - Defaults, validation and atomic updates of
per-node capability parameters.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from teamflow.config import Settings, get_settings
from teamflow.errors import InvalidConfigurationError

from .models import AgentType, BaseAgentConfig, config_model_for


if TYPE_CHECKING:
    from teamflow.workflow.models import Node


logger = logging.getLogger(__name__)

# Agent type used when a default is requested for an unrecognised type
FALLBACK_AGENT_TYPE = AgentType.SOCIAL

DEFAULT_CONFIGURATIONS: Dict[AgentType, Dict[str, Any]] = {
    AgentType.STRATEGY: {
        "mode": "autonomous",
        "objectives": ["Brand Awareness", "Lead Generation"],
        "targetAudience": "Business Professionals",
        "timeframe": "Quarterly",
    },
    AgentType.CREATIVE: {
        "mode": "autonomous",
        "style": "Modern",
        "size": "1024x1024",
        "format": "PNG",
    },
    AgentType.COPYWRITING: {
        "mode": "autonomous",
        "contentType": "Article",
        "tone": "Professional",
        "length": "Medium",
    },
    AgentType.SEO: {
        "mode": "autonomous",
        "keywords": ["marketing", "ai"],
        "targetAudience": "Business Professionals",
        "contentType": "Blog Post",
        "optimizationLevel": 3,
    },
    AgentType.SOCIAL: {
        "mode": "autonomous",
        "platforms": ["Twitter", "LinkedIn"],
        "postingFrequency": "Daily",
        "contentMix": "Text and Images",
    },
    AgentType.EMAIL: {
        "mode": "autonomous",
        "frequency": "Weekly",
        "emailType": "Newsletter",
        "subject": "Weekly Updates",
    },
    AgentType.ANALYTICS: {
        "mode": "autonomous",
        "metrics": ["Clicks", "Conversions", "Engagement"],
        "reportFrequency": "Weekly",
    },
    AgentType.ADS: {
        "mode": "autonomous",
        "platform": "Facebook",
        "budget": 500.0,
        "objective": "Conversions",
    },
}

ConfigurationInput = Union[Mapping[str, Any], BaseAgentConfig]


def _parse_agent_type(agent_type: Union[AgentType, str]) -> Optional[AgentType]:
    try:
        return AgentType(agent_type)
    except ValueError:
        return None


def _errors_by_field(exc: ValidationError) -> Dict[str, str]:
    """Collapse pydantic errors into {field name: reason}."""
    fields: Dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("__root__",)
        name = str(loc[0])
        reason = error.get("msg", "invalid value")
        if len(loc) > 1:
            reason = f"item {loc[1]}: {reason}"
        fields[name] = f"{fields[name]}; {reason}" if name in fields else reason
    return fields


class NodeConfigurationStore:
    """
    Builds and validates agent configurations.

    Usage:
        store = NodeConfigurationStore()
        config = store.get_default_configuration(AgentType.SEO)
        node = store.apply_update(node, {"optimizationLevel": 5})
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        defaults: Optional[Mapping[AgentType, Mapping[str, Any]]] = None,
    ):
        """
        Initialize the store.

        Args:
            settings: Settings to read ``strict_agent_types`` from
            defaults: Override the default configuration per agent type
        """
        self._settings = settings or get_settings()
        self._defaults: Dict[AgentType, Dict[str, Any]] = copy.deepcopy(DEFAULT_CONFIGURATIONS)
        for agent_type, values in (defaults or {}).items():
            self._defaults[AgentType(agent_type)] = dict(values)

    def get_default_configuration(self, agent_type: Union[AgentType, str]) -> BaseAgentConfig:
        """
        Get the default configuration for an agent type.

        Unrecognised agent types get the social-shaped default unless
        ``strict_agent_types`` is enabled.

        Raises:
            InvalidConfigurationError: Unknown type in strict mode
        """
        resolved = _parse_agent_type(agent_type)
        if resolved is None:
            if self._settings.strict_agent_types:
                raise InvalidConfigurationError(
                    str(agent_type), {"agentType": f"unknown agent type '{agent_type}'"}
                )
            logger.warning(
                f"Unknown agent type '{agent_type}', using {FALLBACK_AGENT_TYPE.value} defaults"
            )
            resolved = FALLBACK_AGENT_TYPE
        return self.validate(resolved, copy.deepcopy(self._defaults[resolved]))

    def validate(
        self,
        agent_type: Union[AgentType, str],
        configuration: ConfigurationInput,
    ) -> BaseAgentConfig:
        """
        Validate a configuration against the shape of an agent type.

        Args:
            agent_type: Agent type the configuration belongs to
            configuration: Field values (camelCase or snake_case keys),
                or an already-built configuration model

        Returns:
            Typed configuration model

        Raises:
            InvalidConfigurationError: Lists each missing, mistyped or unknown field
        """
        resolved = _parse_agent_type(agent_type)
        if resolved is None:
            raise InvalidConfigurationError(
                str(agent_type), {"agentType": f"unknown agent type '{agent_type}'"}
            )
        model = config_model_for(resolved)

        if isinstance(configuration, BaseAgentConfig):
            if configuration.agent_type != resolved.value:
                raise InvalidConfigurationError(
                    resolved.value,
                    {"agentType": f"expected '{resolved.value}', got '{configuration.agent_type}'"},
                )
            data = configuration.model_dump(by_alias=True)
        elif not isinstance(configuration, Mapping):
            raise InvalidConfigurationError(
                resolved.value,
                {"configuration": f"expected a mapping, got {type(configuration).__name__}"},
            )
        else:
            data = self._normalize_keys(model, configuration)

        tag = data.pop("agentType", resolved.value)
        if _parse_agent_type(tag) != resolved:
            raise InvalidConfigurationError(
                resolved.value, {"agentType": f"expected '{resolved.value}', got '{tag}'"}
            )

        try:
            return model.model_validate({**data, "agentType": resolved.value})
        except ValidationError as e:
            raise InvalidConfigurationError(resolved.value, _errors_by_field(e)) from e

    def apply_update(self, node: "Node", partial: Mapping[str, Any]) -> "Node":
        """
        Merge a partial configuration into a node.

        The update is atomic: either a new node carrying the merged,
        validated configuration is returned, or an error is raised and
        the given node is unchanged.

        Raises:
            InvalidConfigurationError: If the merged configuration is invalid
        """
        if not isinstance(partial, Mapping):
            raise InvalidConfigurationError(
                node.agent_type.value,
                {"configuration": f"expected a mapping, got {type(partial).__name__}"},
            )
        model = config_model_for(node.agent_type)
        current = node.configuration.model_dump(by_alias=True)
        merged = {**current, **self._normalize_keys(model, partial)}
        configuration = self.validate(node.agent_type, merged)
        logger.debug(f"Configuration updated for node {node.id}: {sorted(partial)}")
        return node.model_copy(update={"configuration": configuration})

    def configure(
        self,
        agent_type: Union[AgentType, str],
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> BaseAgentConfig:
        """Build the default configuration for a type with overrides applied."""
        base = self.get_default_configuration(agent_type)
        if not overrides:
            return base
        merged = {**base.model_dump(by_alias=True), **self._normalize_keys(type(base), overrides)}
        return self.validate(base.agent_type, merged)

    @staticmethod
    def _normalize_keys(model: type, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Rewrite snake_case field names to their camelCase aliases."""
        aliases = {name: field.alias or name for name, field in model.model_fields.items()}
        return {aliases.get(key, key): copy.deepcopy(value) for key, value in values.items()}


__all__ = [
    "DEFAULT_CONFIGURATIONS",
    "FALLBACK_AGENT_TYPE",
    "NodeConfigurationStore",
]
