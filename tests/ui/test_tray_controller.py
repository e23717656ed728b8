"""Tray Controller Tests

Publishing contract with the host: the theme path is written before the
icon name, repeated keys cause no writes, and a missing host is tolerated.
"""

import pytest

from mocks import FakeTrayBackend
from rivaltray.core.menu_actions import SetPollingRate, SetSensitivity, SetTheme
from rivaltray.core.models import Bucket, DeviceStatus, IconKey, ThemeStyle
from rivaltray.ui.system_tray.tray_controller import (
    ERROR_ICON_NAME,
    TrayController,
    battery_text,
    build_menu,
)


def make_icon(directory, key: IconKey):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{key.icon_name}.png"
    path.write_bytes(b"png")
    return path


@pytest.fixture
def backend():
    return FakeTrayBackend()


@pytest.fixture
def controller(backend, qapp):
    controller = TrayController(backend)
    assert controller.start()
    yield controller
    controller.stop()


class TestRegistration:
    """Start, stop and headless operation"""

    def test_start_registers(self, controller, backend):
        assert backend.registered
        assert backend.register_count == 1
        assert controller.is_running
        assert not controller.is_headless

    def test_absent_host_runs_headless(self, qapp):
        """Test a missing tray host is not a startup failure"""
        backend = FakeTrayBackend(host_available=False)
        controller = TrayController(backend)

        assert controller.start() is True
        assert controller.is_headless
        assert backend.register_count == 0

    def test_rejected_registration_fails_start(self, qapp):
        backend = FakeTrayBackend()

        def reject(menu, on_menu):
            raise RuntimeError("host refused")

        backend.register = reject
        assert TrayController(backend).start() is False

    def test_stop_unregisters(self, controller, backend):
        assert controller.stop()
        assert not backend.registered
        assert not controller.is_running

    def test_headless_publish_registers_when_host_appears(self, qapp, tmp_path):
        """Test the registration is retried on the next publish"""
        backend = FakeTrayBackend(host_available=False)
        controller = TrayController(backend)
        controller.start()
        key = IconKey(Bucket.HIGH)
        path = make_icon(tmp_path, key)

        assert controller.publish(path, key) is False

        backend.host_available = True
        assert controller.publish(path, key) is True
        assert backend.registered
        assert backend.icon_name == key.icon_name

    def test_lost_host_is_reregistered(self, controller, backend, tmp_path):
        """Test a vanished host is noticed and the icon re-published later"""
        key = IconKey(Bucket.FULL)
        path = make_icon(tmp_path, key)
        controller.publish(path, key)

        backend.host_available = False
        assert controller.publish(path, key) is False
        assert controller.is_headless
        assert not backend.registered

        backend.host_available = True
        assert controller.publish(path, key) is True
        assert backend.register_count == 2
        assert controller.state.icon_name == key.icon_name


class TestPublish:
    """Icon publishing"""

    def test_theme_path_written_before_icon_name(self, controller, backend, tmp_path):
        key = IconKey(Bucket.MEDIUM)
        path = make_icon(tmp_path, key)

        assert controller.publish(path, key)

        assert backend.writes == [("theme", tmp_path), ("icon", key.icon_name)]
        state = controller.state
        assert state.theme_path == tmp_path
        assert state.icon_name == key.icon_name
        assert state.key == key

    def test_icon_name_has_no_path_or_extension(self, controller, backend, tmp_path):
        key = IconKey(Bucket.LOW, ThemeStyle.DARK)
        controller.publish(make_icon(tmp_path, key), key)
        assert backend.icon_name == "rivaltray-low-dark"

    def test_same_key_writes_nothing(self, controller, backend, tmp_path):
        """Test a repeated publish causes no host traffic"""
        key = IconKey(Bucket.HIGH)
        path = make_icon(tmp_path, key)
        controller.publish(path, key)
        writes = controller.state.host_writes

        assert controller.publish(path, key) is False
        assert controller.publish(path, key) is False

        assert controller.state.host_writes == writes
        assert len(backend.writes) == 2

    def test_new_key_in_same_dir_writes_only_name(self, controller, backend, tmp_path):
        first = IconKey(Bucket.HIGH)
        second = IconKey(Bucket.MEDIUM)
        controller.publish(make_icon(tmp_path, first), first)
        controller.publish(make_icon(tmp_path, second), second)

        assert backend.writes[2:] == [("icon", second.icon_name)]

    def test_fallback_file_for_new_key_is_published(self, controller, backend, tmp_path):
        """Test a different key served by an already shown file is still recorded"""
        first = IconKey(Bucket.HIGH)
        path = make_icon(tmp_path, first)
        controller.publish(path, first)

        other = IconKey(Bucket.LOW)
        assert controller.publish(path, other) is True
        assert controller.state.key == other
        assert backend.writes[2:] == [("icon", first.icon_name)]

    def test_unresolvable_name_shows_error_icon(self, controller, backend, tmp_path):
        key = IconKey(Bucket.LOW)
        missing = tmp_path / f"{key.icon_name}.png"

        assert controller.publish(missing, key) is False

        assert backend.icon_name == ERROR_ICON_NAME
        assert controller.state.key is None

    def test_error_state_written_once(self, controller, backend):
        controller.show_error_state()
        controller.show_error_state()
        assert backend.icon_writes() == [ERROR_ICON_NAME]

    def test_recovers_from_error_state(self, controller, backend, tmp_path):
        key = IconKey(Bucket.FULL)
        controller.show_error_state(key)
        assert controller.publish(make_icon(tmp_path, key), key)
        assert backend.icon_name == key.icon_name


class TestLabelsAndNotifications:
    """Menu labels, tooltip and popups"""

    def test_battery_text(self):
        assert battery_text(DeviceStatus(connected=True, battery_percent=42)) == "Battery: 42%"
        assert battery_text(DeviceStatus.disconnected()) == "Battery: --"
        assert battery_text(DeviceStatus.unknown()) == "Battery: --"
        assert battery_text(None) == "Battery: --"

    def test_update_status(self, controller, backend):
        controller.set_device_name("Rival 3 Wireless")
        controller.update_status(DeviceStatus(connected=True, battery_percent=80, charging=True))

        assert backend.labels["device"] == "Rival 3 Wireless"
        assert backend.labels["battery"] == "Battery: 80%"
        assert backend.labels["status"] == "Status: Charging"
        assert backend.tooltip == "Rival 3 Wireless\nBattery: 80%"

    def test_labels_replayed_after_reregistration(self, controller, backend, tmp_path):
        controller.update_status(DeviceStatus(connected=True, battery_percent=30))
        backend.host_available = False
        key = IconKey(Bucket.LOW)
        controller.publish(make_icon(tmp_path, key), key)
        backend.labels.clear()

        backend.host_available = True
        controller.publish(make_icon(tmp_path, key), key)

        assert backend.labels["battery"] == "Battery: 30%"

    def test_notify(self, controller, backend):
        assert controller.notify("Battery low: 5%", critical=True)
        assert backend.messages == [("RivalTray", "Battery low: 5%", True)]

    def test_notify_disabled(self, controller, backend):
        controller.set_notifications_enabled(False)
        assert controller.notify("hello") is False
        assert backend.messages == []


class TestMenu:
    """Menu structure and dispatch"""

    def test_menu_layout(self):
        menu = build_menu("Rival 650")
        labels = [entry.text for entry in menu if entry is not None]

        assert labels[0] == "Rival 650"
        assert "Sensitivity" in labels
        assert "Polling rate" in labels
        assert labels[-1] == "Quit"

    def test_refresh_click(self, controller, backend, qtbot):
        with qtbot.waitSignal(controller.refresh_requested, timeout=1000):
            backend.click("refresh")

    def test_quit_click(self, controller, backend, qtbot):
        with qtbot.waitSignal(controller.quit_requested, timeout=1000):
            backend.click("quit")

    def test_setting_click(self, controller, backend, qtbot):
        with qtbot.waitSignal(controller.setting_requested, timeout=1000) as blocker:
            backend.click("sensitivity", 1600)
        assert blocker.args == [SetSensitivity(1600)]

    def test_theme_click(self, controller, backend, qtbot):
        with qtbot.waitSignal(controller.setting_requested, timeout=1000) as blocker:
            backend.click("theme", "dark")
        assert blocker.args == [SetTheme(ThemeStyle.DARK)]

    def test_every_menu_action_dispatches(self, controller, backend):
        """Test each menu entry maps to a signal or a valid action"""
        received = []
        controller.setting_requested.connect(received.append)
        controller.refresh_requested.connect(lambda: received.append("refresh"))
        controller.quit_requested.connect(lambda: received.append("quit"))

        clickable = []
        for entry in build_menu():
            if entry is None:
                continue
            for item in entry.children or [entry]:
                if item.action_id is not None:
                    clickable.append(item)

        for item in clickable:
            backend.click(item.action_id, item.payload)

        assert len(received) == len(clickable)
        assert SetPollingRate(1000) in received

    def test_invalid_payload_notifies(self, controller, backend):
        received = []
        controller.setting_requested.connect(received.append)

        backend.click("polling_rate", "fast")

        assert received == []
        assert backend.messages and backend.messages[0][2] is True
