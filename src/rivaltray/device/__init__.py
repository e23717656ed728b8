"""Device communication through the external configuration tool"""

from .process_runner import ProcessRunner, resolve_program
from .status_source import (
    DEFAULT_DEVICE_NAME,
    DeviceStatusSource,
    classify_output,
    parse_battery_output,
    parse_device_name,
)

__all__ = [
    "ProcessRunner",
    "resolve_program",
    "DeviceStatusSource",
    "DEFAULT_DEVICE_NAME",
    "classify_output",
    "parse_battery_output",
    "parse_device_name",
]
