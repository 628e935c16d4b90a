"""Configuration module: application settings and the model catalogue."""

from .config_manager import (
    AppSettings,
    ConfigManager,
    ModelDescriptor,
    ModelsConfig,
    config_manager,
    resolve_env_var,
)

__all__ = [
    "AppSettings",
    "ConfigManager",
    "ModelDescriptor",
    "ModelsConfig",
    "config_manager",
    "resolve_env_var",
]
