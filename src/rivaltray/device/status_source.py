"""Device status source - battery and connection state from rivalcfg

Each sample() spawns exactly one ``rivalcfg --battery-level`` child and
normalises its text output into a DeviceStatus or a SourceError. Retry
policy lives in the scheduler, not here.
"""

import re
from typing import Callable, Optional, Tuple, Union

from ..core.interfaces.process import CommandOutput, ICommandRunner
from ..core.models import DeviceStatus
from ..utils import LogCategory, SourceError, SourceErrorKind, app_logger

BATTERY_ARGS = ["--battery-level"]
HELP_ARGS = ["--help"]
DEFAULT_DEVICE_NAME = "SteelSeries Mouse"

_PERCENT_RE = re.compile(r"(?<!\d)(\d{1,3})\s*%")
_ABSENT_MARKERS = (
    "no compatible device",
    "device not found",
    "no device",
    "not connected",
    "device is off",
    "mouse is off",
    "unable to read battery",
)

SampleResult = Union[DeviceStatus, SourceError]
SampleCallback = Callable[[SampleResult], None]


def parse_charging(text: str) -> Optional[bool]:
    """Charge direction from tool output, None if neither word is present

    "Discharging" is checked first because it contains "Charging".
    """
    if "Discharging" in text:
        return False
    if "Charging" in text:
        return True
    return None


def parse_percent(text: str) -> Optional[int]:
    """First 0-100 percentage in the output ("75%" or "75 %")"""
    for match in _PERCENT_RE.finditer(text):
        value = int(match.group(1))
        if 0 <= value <= 100:
            return value
    return None


def reports_device_absent(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in _ABSENT_MARKERS)


def parse_battery_output(stdout: str) -> Tuple[Optional[int], bool]:
    """Parse ``rivalcfg --battery-level`` output

    Returns:
        (percent or None, charging)

    Raises:
        SourceError: PARSE_FAILURE when neither a percentage nor a
            charge indicator is present
    """
    charging = parse_charging(stdout)
    percent = parse_percent(stdout)

    if charging is None and percent is None:
        raise SourceError(
            SourceErrorKind.PARSE_FAILURE,
            "Unexpected battery output",
            context={"stdout": stdout.strip()[:200]},
        )

    return percent, bool(charging)


def parse_device_name(help_output: str) -> Optional[str]:
    """Mouse name from ``rivalcfg --help``: the line ending with "Options:" """
    for line in help_output.splitlines():
        line = line.rstrip()
        if line.endswith("Options:"):
            name = line[: -len("Options:")].strip()
            return name or None
    return None


def classify_output(tool: str, output: CommandOutput) -> SampleResult:
    """Turn one battery-query CommandOutput into a status or an error"""
    if output.failed_to_start:
        return SourceError(
            SourceErrorKind.TOOL_NOT_FOUND,
            f"{tool} could not be started",
            context={"tool": tool, "stderr": output.stderr.strip()},
        )

    if output.timed_out:
        return SourceError(SourceErrorKind.TIMEOUT, f"{tool} did not answer in time", context={"tool": tool})

    combined = f"{output.stdout}\n{output.stderr}"
    if reports_device_absent(combined):
        return SourceError(
            SourceErrorKind.DEVICE_ABSENT,
            "No paired device reported",
            context={"tool": tool, "output": combined.strip()[:200]},
        )

    if not output.success:
        return SourceError(
            SourceErrorKind.COMMAND_FAILED,
            f"{tool} exited with status {output.exit_code}",
            context={"tool": tool, "exit_code": output.exit_code, "stderr": output.stderr.strip()[:200]},
        )

    try:
        percent, charging = parse_battery_output(output.stdout)
    except SourceError as e:
        e.context["tool"] = tool
        return e

    return DeviceStatus(connected=True, battery_percent=percent, charging=charging)


class DeviceStatusSource:
    """Samples the mouse battery through the external tool"""

    def __init__(self, runner: ICommandRunner, tool: str = "rivalcfg", timeout_seconds: float = 3):
        self._runner = runner
        self._tool = tool
        self._timeout_ms = int(timeout_seconds * 1000)

    @property
    def tool(self) -> str:
        return self._tool

    def sample(self, callback: SampleCallback) -> None:
        """Query the battery; callback receives a DeviceStatus or SourceError"""

        def on_output(output: CommandOutput) -> None:
            result = classify_output(self._tool, output)
            if isinstance(result, DeviceStatus):
                app_logger.debug(
                    "Battery sampled",
                    LogCategory.DEVICE,
                    context={
                        "percent": result.battery_percent,
                        "charging": result.charging,
                        "raw": output.stdout.strip(),
                    },
                    component="status_source",
                )
            callback(result)

        self._runner.run(self._tool, BATTERY_ARGS, self._timeout_ms, on_output)

    def query_device_name(self, callback: Callable[[str], None]) -> None:
        """Resolve the mouse name; falls back to a generic name on any failure"""

        def on_output(output: CommandOutput) -> None:
            name = parse_device_name(output.stdout) if output.success else None
            if name is None:
                app_logger.debug(
                    "Could not determine device name",
                    LogCategory.DEVICE,
                    context={"exit_code": output.exit_code, "timed_out": output.timed_out},
                    component="status_source",
                )
            else:
                app_logger.log_device_event("Device identified", {"name": name})
            callback(name or DEFAULT_DEVICE_NAME)

        self._runner.run(self._tool, HELP_ARGS, self._timeout_ms, on_output)
