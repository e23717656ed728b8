"""Error codes, suggestions and serialization of the exception hierarchy"""

import pytest

from rivaltray.utils import (
    ActionError,
    ActionErrorKind,
    CacheError,
    CacheErrorKind,
    ConfigurationError,
    ErrorCategory,
    SourceError,
    SourceErrorKind,
    StartupError,
)


class TestErrorCodes:
    def test_code_derived_from_kind(self):
        assert SourceError(SourceErrorKind.DEVICE_ABSENT, "x").error_code == "SOURCE_DEVICE_ABSENT"
        assert CacheError(CacheErrorKind.DISK_FAILURE, "x").error_code == "CACHE_DISK_FAILURE"
        assert ActionError(ActionErrorKind.BUSY, "x").error_code == "ACTION_BUSY"

    def test_code_without_kind(self):
        assert ConfigurationError("bad key").error_code == "CONFIG_ERROR"

    def test_explicit_code_wins(self):
        error = SourceError(SourceErrorKind.TIMEOUT, "slow", error_code="CUSTOM")
        assert error.error_code == "CUSTOM"

    def test_startup_error_keeps_exit_code(self):
        error = StartupError("no runtime dir", exit_code=2)
        assert error.exit_code == 2
        assert error.category == ErrorCategory.STARTUP


class TestSuggestions:
    """Recovery hints shown in notifications"""

    def test_per_kind_suggestion(self):
        error = SourceError(SourceErrorKind.TOOL_NOT_FOUND, "rivalcfg missing")
        assert "rivalcfg" in error.get_user_message().splitlines()[1]

    def test_kind_without_suggestion(self):
        error = SourceError(SourceErrorKind.COMMAND_FAILED, "exit 1")
        assert error.recovery_suggestions == []
        assert error.get_user_message() == "exit 1"

    def test_explicit_suggestions_override(self):
        error = CacheError(CacheErrorKind.RENDER_FAILURE, "bad svg", recovery_suggestions=["Reinstall"])
        assert error.recovery_suggestions == ["Reinstall"]


class TestToDict:
    def test_fields(self):
        cause = OSError("read-only file system")
        error = CacheError(CacheErrorKind.DISK_FAILURE, "write failed", context={"path": "/run"},
                           original_exception=cause)
        data = error.to_dict()
        assert data["type"] == "CacheError"
        assert data["error_code"] == "CACHE_DISK_FAILURE"
        assert data["category"] == "icon"
        assert data["context"] == {"path": "/run"}
        assert "read-only" in data["cause"]

    def test_context_is_copied(self):
        context = {"path": "/run"}
        error = ConfigurationError("x", context=context)
        error.context["extra"] = 1
        assert context == {"path": "/run"}

    @pytest.mark.parametrize("kind", list(ActionErrorKind))
    def test_every_action_kind_serializes(self, kind):
        assert ActionError(kind, "x").to_dict()["category"] == "action"
