"""Device Status Source Tests

Parsing of rivalcfg output and the mapping of process outcomes onto
DeviceStatus / SourceError.
"""

import pytest

from mocks import FakeCommandRunner
from mocks.process_mock import battery_output
from rivaltray.core.interfaces.process import CommandOutput
from rivaltray.core.models import DeviceStatus
from rivaltray.device.status_source import (
    BATTERY_ARGS,
    DEFAULT_DEVICE_NAME,
    HELP_ARGS,
    DeviceStatusSource,
    classify_output,
    parse_battery_output,
    parse_charging,
    parse_device_name,
    parse_percent,
)
from rivaltray.utils import SourceError, SourceErrorKind


class TestBatteryParsing:
    """Text parsing of the battery query"""

    def test_percent_with_and_without_space(self):
        assert parse_percent("Discharging [=====] 75 %") == 75
        assert parse_percent("Battery: 42%") == 42

    def test_percent_out_of_range_is_ignored(self):
        """Test values above 100 are not taken as a percentage"""
        assert parse_percent("level 250 %") is None
        assert parse_percent("no numbers here") is None

    def test_discharging_checked_before_charging(self):
        """Test 'Discharging' is not mistaken for 'Charging'"""
        assert parse_charging("Discharging [===] 50 %") is False
        assert parse_charging("Charging [===] 50 %") is True
        assert parse_charging("50 %") is None

    def test_full_output(self):
        assert parse_battery_output("Charging [=========>] 88 %\n") == (88, True)
        assert parse_battery_output("Discharging [==>       ] 20 %\n") == (20, False)

    def test_indicator_without_percent(self):
        """Test a charge indicator alone yields an unknown percentage"""
        assert parse_battery_output("Charging\n") == (None, True)

    def test_unparseable_output(self):
        """Test output without percentage or indicator is a parse failure"""
        with pytest.raises(SourceError) as exc_info:
            parse_battery_output("something unexpected\n")
        assert exc_info.value.kind == SourceErrorKind.PARSE_FAILURE


class TestClassifyOutput:
    """Process outcome -> status or error"""

    def test_success(self):
        result = classify_output("rivalcfg", battery_output(64))
        assert result == DeviceStatus(connected=True, battery_percent=64, charging=False)

    def test_failed_to_start_is_tool_not_found(self):
        result = classify_output("rivalcfg", CommandOutput(failed_to_start=True))
        assert isinstance(result, SourceError)
        assert result.kind == SourceErrorKind.TOOL_NOT_FOUND

    def test_timeout(self):
        result = classify_output("rivalcfg", CommandOutput(timed_out=True))
        assert result.kind == SourceErrorKind.TIMEOUT
        assert result.error_code == "SOURCE_TIMEOUT"

    def test_device_absent_marker(self):
        """Test 'no compatible device' is reported as an absent device"""
        output = CommandOutput(stderr="ERROR: No compatible device found\n", exit_code=1)
        assert classify_output("rivalcfg", output).kind == SourceErrorKind.DEVICE_ABSENT

    def test_absent_marker_wins_over_exit_status(self):
        """Test an absent marker on a zero exit is still absent"""
        output = CommandOutput(stdout="Mouse is off or not connected\n", exit_code=0)
        assert classify_output("rivalcfg", output).kind == SourceErrorKind.DEVICE_ABSENT

    def test_non_zero_exit(self):
        output = CommandOutput(stderr="Traceback ...\n", exit_code=2)
        assert classify_output("rivalcfg", output).kind == SourceErrorKind.COMMAND_FAILED

    def test_crash_without_exit_code(self):
        assert classify_output("rivalcfg", CommandOutput()).kind == SourceErrorKind.COMMAND_FAILED

    def test_parse_failure_keeps_tool_context(self):
        output = CommandOutput(stdout="garbage\n", exit_code=0)
        result = classify_output("rivalcfg", output)
        assert result.kind == SourceErrorKind.PARSE_FAILURE
        assert result.context["tool"] == "rivalcfg"


class TestDeviceStatusSource:
    """Sampling through the command runner"""

    def test_sample_runs_battery_query_once(self):
        """Test one sample is one child process with the configured timeout"""
        runner = FakeCommandRunner([battery_output(90, charging=True)])
        source = DeviceStatusSource(runner, tool="/opt/rivalcfg", timeout_seconds=2)
        results = []

        source.sample(results.append)

        assert len(runner.calls) == 1
        call = runner.calls[0]
        assert call.program == "/opt/rivalcfg"
        assert call.args == BATTERY_ARGS
        assert call.timeout_ms == 2000
        assert results == [DeviceStatus(connected=True, battery_percent=90, charging=True)]

    def test_sample_reports_errors_through_callback(self):
        """Test failures arrive as SourceError values, not exceptions"""
        runner = FakeCommandRunner([CommandOutput(timed_out=True)])
        source = DeviceStatusSource(runner)
        results = []

        source.sample(results.append)

        assert isinstance(results[0], SourceError)
        assert results[0].kind == SourceErrorKind.TIMEOUT


class TestDeviceName:
    HELP = (
        "Usage: rivalcfg [options]\n"
        "\n"
        "SteelSeries Rival 3 Wireless Options:\n"
        "  --sensitivity SENSITIVITY\n"
    )

    def test_parse_name_from_help(self):
        assert parse_device_name(self.HELP) == "SteelSeries Rival 3 Wireless"

    def test_parse_name_missing(self):
        assert parse_device_name("Usage: rivalcfg\n") is None

    def test_query_uses_help_and_falls_back(self):
        runner = FakeCommandRunner(
            [CommandOutput(stdout=self.HELP, exit_code=0), CommandOutput(failed_to_start=True)]
        )
        source = DeviceStatusSource(runner)
        names = []

        source.query_device_name(names.append)
        source.query_device_name(names.append)

        assert runner.calls[0].args == HELP_ARGS
        assert names == ["SteelSeries Rival 3 Wireless", DEFAULT_DEVICE_NAME]
