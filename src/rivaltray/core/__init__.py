"""Core: value types, the polling loop, setting actions and application wiring"""

from .models import Bucket, CachedIcon, DeviceStatus, IconKey, ThemeStyle

__all__ = [
    "Bucket",
    "CachedIcon",
    "DeviceStatus",
    "IconKey",
    "ThemeStyle",
]
