"""Core services"""

from .config import ConfigKeys, ConfigService

__all__ = ["ConfigKeys", "ConfigService"]
