"""Configuration service package"""

from .config_defaults import get_default_config
from .config_keys import ConfigKeyGroups, ConfigKeys
from .config_reader import ConfigReader
from .config_service import ConfigService, default_config_path
from .config_validator import ConfigValidator
from .config_writer import ConfigWriter

__all__ = [
    "get_default_config",
    "ConfigReader",
    "ConfigWriter",
    "ConfigValidator",
    "ConfigService",
    "ConfigKeys",
    "ConfigKeyGroups",
    "default_config_path",
]
