"""
Infrastructure module exports.

Configuration and bootstrap for the channel, queue and integrations.
"""

from .config import InfraConfig, get_config, ChannelBackendType, LLMBackendType
from .bootstrap import InfraBootstrap, bootstrap_infrastructure, get_infra

__all__ = [
    "InfraConfig",
    "get_config",
    "ChannelBackendType",
    "LLMBackendType",
    "InfraBootstrap",
    "bootstrap_infrastructure",
    "get_infra",
]
