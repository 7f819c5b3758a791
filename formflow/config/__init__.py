"""
Configuration management.
"""

from .config import (
    Config,
    get_config,
    reload_config,
    RuleConfig,
    TransitionConfig,
    LogConfig,
)

__all__ = [
    "Config",
    "get_config",
    "reload_config",
    "RuleConfig",
    "TransitionConfig",
    "LogConfig",
]
