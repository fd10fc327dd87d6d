"""Configuration module for EntraLab."""
from .settings import (
    ConfigurationError,
    LabConfig,
    Setting,
    SettingsStore,
    initialize_settings,
    load_settings,
)

__all__ = [
    "ConfigurationError",
    "LabConfig",
    "Setting",
    "SettingsStore",
    "initialize_settings",
    "load_settings",
]
