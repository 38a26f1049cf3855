"""
Shadow configuration module.
"""

from shadow.config.settings import (
    ModelConfig,
    OutputConfig,
    PermissionConfig,
    RetryConfig,
    ShadowSettings,
    get_settings,
)

__all__ = [
    "ShadowSettings",
    "ModelConfig",
    "RetryConfig",
    "PermissionConfig",
    "OutputConfig",
    "get_settings",
]
