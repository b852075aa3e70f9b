"""Application configuration."""

from learntrack.config.settings import Settings, get_settings


__all__ = ["Settings", "get_settings"]
