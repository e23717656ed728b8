"""Value types shared by the polling, icon and tray components"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class Bucket(Enum):
    """Discrete battery icon levels"""

    DISCONNECTED = "disconnected"
    CRITICAL = "critical"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    FULL = "full"
    CHARGING = "charging"

    @property
    def severity(self) -> int:
        """Severity rank of discharge buckets, lowest charge first (-1 otherwise)"""
        return _DISCHARGE_ORDER.index(self) if self in _DISCHARGE_ORDER else -1


_DISCHARGE_ORDER = [Bucket.CRITICAL, Bucket.LOW, Bucket.MEDIUM, Bucket.HIGH, Bucket.FULL]


class ThemeStyle(Enum):
    """Foreground style applied to rendered icons"""

    LIGHT = "light"
    DARK = "dark"
    CUSTOM = "custom"

    @classmethod
    def from_setting(cls, value: str) -> "ThemeStyle":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.LIGHT


@dataclass(frozen=True)
class DeviceStatus:
    """One battery sample. Superseded, never merged, by the next one."""

    connected: bool
    battery_percent: Optional[int] = None
    charging: bool = False
    sampled_at: float = field(default_factory=time.time, compare=False)

    def __post_init__(self):
        if self.battery_percent is not None and not 0 <= self.battery_percent <= 100:
            raise ValueError(f"battery_percent out of range: {self.battery_percent}")

    @classmethod
    def disconnected(cls) -> "DeviceStatus":
        return cls(connected=False)

    @classmethod
    def unknown(cls) -> "DeviceStatus":
        """Connected device whose charge could not be read"""
        return cls(connected=True, battery_percent=None)

    def describe(self) -> str:
        if not self.connected:
            return "Disconnected"
        if self.charging:
            return "Charging"
        if self.battery_percent is None:
            return "Unknown"
        return "Discharging"


@dataclass(frozen=True)
class IconKey:
    """Identity of one rendered tray icon

    Two keys compare equal exactly when they would render the same file,
    so key equality is what gates disk and tray writes.
    """

    bucket: Bucket
    variant: ThemeStyle = ThemeStyle.LIGHT
    accent: str = ""

    @property
    def icon_name(self) -> str:
        """Bare theme icon name (file stem, no extension)"""
        name = f"rivaltray-{self.bucket.value}-{self.variant.value}"
        if self.variant == ThemeStyle.CUSTOM and self.accent:
            name += "-" + self.accent.lstrip("#").lower()
        return name


@dataclass(frozen=True)
class CachedIcon:
    key: IconKey
    file_path: Path
    rendered_at: float = field(default_factory=time.time)


__all__ = ["Bucket", "ThemeStyle", "DeviceStatus", "IconKey", "CachedIcon"]
