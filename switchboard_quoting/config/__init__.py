"""Configuration module for the switchboard quoting engine."""

from .settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
