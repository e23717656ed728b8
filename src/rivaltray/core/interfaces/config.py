"""Configuration service interface"""

from abc import ABC, abstractmethod
from typing import Any


class IConfigService(ABC):
    """Configuration service interface"""

    @abstractmethod
    def get_setting(self, key: str, default: Any = None) -> Any:
        """Read a setting by dotted key"""
        pass

    @abstractmethod
    def set_setting(self, key: str, value: Any) -> None:
        """Write a setting by dotted key"""
        pass

    @abstractmethod
    def save_config(self) -> bool:
        """Persist the configuration"""
        pass


__all__ = ["IConfigService"]
