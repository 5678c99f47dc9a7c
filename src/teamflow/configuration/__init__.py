"""
Node Configuration - Capability parameters attached to workflow nodes.

This package provides:
- AgentType: The closed set of capability kinds
- AgentConfiguration: Tagged union of per-type configuration models
- NodeConfigurationStore: Defaults, validation and atomic updates
"""

from .models import (
    AgentConfiguration,
    AgentType,
    AdsConfig,
    AnalyticsConfig,
    BaseAgentConfig,
    CopywritingConfig,
    CreativeConfig,
    EmailConfig,
    SeoConfig,
    SocialConfig,
    StrategyConfig,
    config_model_for,
    describe_configuration,
)
from .store import DEFAULT_CONFIGURATIONS, NodeConfigurationStore

__all__ = [
    # Models
    "AgentConfiguration",
    "AgentType",
    "AdsConfig",
    "AnalyticsConfig",
    "BaseAgentConfig",
    "CopywritingConfig",
    "CreativeConfig",
    "EmailConfig",
    "SeoConfig",
    "SocialConfig",
    "StrategyConfig",
    "config_model_for",
    "describe_configuration",
    # Store
    "DEFAULT_CONFIGURATIONS",
    "NodeConfigurationStore",
]
