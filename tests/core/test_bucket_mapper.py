"""Bucket Mapping Tests

DeviceStatus -> IconKey is a pure function; these tests pin the
thresholds and the precedence of disconnected and charging states.
"""

import pytest

from rivaltray.core.models import Bucket, DeviceStatus, IconKey, ThemeStyle
from rivaltray.icons.bucket_mapper import (
    bucket_for_percent,
    bucket_from_setting,
    map_status,
)


class TestThresholds:
    """Percentage to bucket boundaries"""

    @pytest.mark.parametrize(
        "percent,bucket",
        [
            (0, Bucket.CRITICAL),
            (10, Bucket.CRITICAL),
            (11, Bucket.LOW),
            (30, Bucket.LOW),
            (31, Bucket.MEDIUM),
            (60, Bucket.MEDIUM),
            (61, Bucket.HIGH),
            (90, Bucket.HIGH),
            (91, Bucket.FULL),
            (100, Bucket.FULL),
        ],
    )
    def test_boundaries(self, percent, bucket):
        """Test each boundary value lands in the right bucket"""
        assert bucket_for_percent(percent) == bucket

    def test_every_percentage_maps_to_exactly_one_bucket(self):
        """Test buckets are contiguous and ordered over 0..100"""
        previous = -1
        for percent in range(101):
            severity = bucket_for_percent(percent).severity
            assert severity >= previous
            previous = severity
        assert previous == Bucket.FULL.severity


class TestMapStatus:
    """Status precedence rules"""

    def test_disconnected_wins(self):
        """Test a disconnected device is Disconnected regardless of other fields"""
        status = DeviceStatus(connected=False, battery_percent=80, charging=True)
        assert map_status(status, ThemeStyle.LIGHT).bucket == Bucket.DISCONNECTED

    def test_charging_overrides_percentage(self):
        """Test charging beats the percentage bucket"""
        status = DeviceStatus(connected=True, battery_percent=5, charging=True)
        assert map_status(status, ThemeStyle.LIGHT).bucket == Bucket.CHARGING

    def test_unknown_percentage_uses_fallback(self):
        """Test a connected device with no percentage uses the fallback bucket"""
        status = DeviceStatus.unknown()
        assert map_status(status, ThemeStyle.LIGHT).bucket == Bucket.MEDIUM
        assert map_status(status, ThemeStyle.LIGHT, unknown_bucket=Bucket.LOW).bucket == Bucket.LOW

    def test_style_is_carried_into_key(self):
        """Test the variant follows the requested style"""
        status = DeviceStatus(connected=True, battery_percent=75)
        key = map_status(status, ThemeStyle.DARK)
        assert key == IconKey(Bucket.HIGH, ThemeStyle.DARK)
        assert key.icon_name == "rivaltray-high-dark"

    def test_accent_only_kept_for_custom_style(self):
        """Test accent colour is part of the key only for the custom style"""
        status = DeviceStatus(connected=True, battery_percent=75)
        assert map_status(status, ThemeStyle.LIGHT, accent="#FF0000").accent == ""

        key = map_status(status, ThemeStyle.CUSTOM, accent="#FF0000")
        assert key.accent == "#ff0000"
        assert key.icon_name == "rivaltray-high-custom-ff0000"

    def test_same_inputs_give_equal_keys(self):
        """Test keys from separate samples compare equal when nothing changed"""
        first = map_status(DeviceStatus(connected=True, battery_percent=50), ThemeStyle.LIGHT)
        second = map_status(DeviceStatus(connected=True, battery_percent=45), ThemeStyle.LIGHT)
        assert first == second
        assert hash(first) == hash(second)


class TestDeviceStatus:
    """DeviceStatus validation"""

    def test_rejects_out_of_range_percent(self):
        """Test percentages outside 0..100 are refused"""
        with pytest.raises(ValueError):
            DeviceStatus(connected=True, battery_percent=101)

    def test_describe(self):
        """Test the human readable state"""
        assert DeviceStatus.disconnected().describe() == "Disconnected"
        assert DeviceStatus(connected=True, battery_percent=3, charging=True).describe() == "Charging"
        assert DeviceStatus.unknown().describe() == "Unknown"
        assert DeviceStatus(connected=True, battery_percent=40).describe() == "Discharging"


class TestUnknownBucketSetting:
    def test_parses_bucket_names(self):
        assert bucket_from_setting("low") == Bucket.LOW
        assert bucket_from_setting("FULL") == Bucket.FULL

    def test_invalid_or_charging_falls_back(self):
        """Test charging and garbage are not valid fallbacks"""
        assert bucket_from_setting("charging") == Bucket.MEDIUM
        assert bucket_from_setting("nope", Bucket.HIGH) == Bucket.HIGH
