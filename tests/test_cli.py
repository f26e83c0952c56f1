from __future__ import annotations

from typer.testing import CliRunner

from pductl import cli
from pductl.core.errors import DeviceSelectionError, OutletResolutionError
from pductl.core.model import (
    AVAILABLE,
    CONTROL_PROTOCOL_STATUS,
    SEQUENCE_DOWN,
    Control,
    DeviceProfile,
    SequenceDirection,
    Snapshot,
)

RACK = DeviceProfile(name="rack-a", host="10.0.0.20", username="user", password="12345")


def _snapshot() -> Snapshot:
    return Snapshot(
        statistics={
            CONTROL_PROTOCOL_STATUS: AVAILABLE,
            "Controllable outlets#Server - 1": "1",
            "Fan - 4": "On",
            SEQUENCE_DOWN: "",
        },
        controls=[
            Control.switch("Controllable outlets#Server - 1", "1"),
            Control.button(SEQUENCE_DOWN),
        ],
    )


class FakeService:
    def __init__(self) -> None:
        self.load_warnings = ()
        self.calls = []

    def list_profiles(self):
        return [RACK]

    def resolve_profile(self, device_hint=None, *, host=None, port=None, username=None, password=None):
        self.calls.append(("resolve", device_hint, host, port, username, password))
        return RACK

    def status(self, profile):
        return _snapshot()

    def set_outlet(self, profile, slot, on):
        self.calls.append(("outlet", slot, on))
        return _snapshot()

    def run_sequence(self, profile, direction):
        self.calls.append(("sequence", direction))
        return _snapshot()


runner = CliRunner()


def test_devices_command(monkeypatch):
    monkeypatch.setattr(cli, "PduService", FakeService)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "rack-a: 10.0.0.20:60000 (user user)" in result.stdout


def test_devices_command_without_profiles(monkeypatch):
    class EmptyService(FakeService):
        def list_profiles(self):
            return []

    monkeypatch.setattr(cli, "PduService", EmptyService)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "No device profiles configured" in result.stdout


def test_status_command(monkeypatch):
    monkeypatch.setattr(cli, "PduService", FakeService)
    result = runner.invoke(cli.app, ["status", "--device", "rack"])
    assert result.exit_code == 0
    assert "Target: rack-a (10.0.0.20:60000)" in result.stdout
    assert f"{CONTROL_PROTOCOL_STATUS}: {AVAILABLE}" in result.stdout
    assert "Controllable outlets#Server - 1: 1" in result.stdout
    assert "Fan - 4: On" in result.stdout
    assert f"Available: {SEQUENCE_DOWN}" in result.stdout


def test_outlet_command(monkeypatch):
    service = FakeService()
    monkeypatch.setattr(cli, "PduService", lambda: service)
    result = runner.invoke(cli.app, ["outlet", "1", "ON", "--host", "10.0.0.20", "--password", "pw"])
    assert result.exit_code == 0
    assert "Sent outlet 1=on to rack-a" in result.stdout
    assert ("resolve", None, "10.0.0.20", None, None, "pw") in service.calls
    assert ("outlet", 1, True) in service.calls


def test_outlet_command_rejects_unknown_state(monkeypatch):
    monkeypatch.setattr(cli, "PduService", FakeService)
    result = runner.invoke(cli.app, ["outlet", "1", "toggle"])
    assert result.exit_code == 2
    assert "state must be one of: on, off" in result.stderr


def test_sequence_command(monkeypatch):
    service = FakeService()
    monkeypatch.setattr(cli, "PduService", lambda: service)
    result = runner.invoke(cli.app, ["sequence", "down"])
    assert result.exit_code == 0
    assert "Started sequence down on rack-a" in result.stdout
    assert ("sequence", SequenceDirection.DOWN) in service.calls


def test_sequence_command_rejects_unknown_direction(monkeypatch):
    monkeypatch.setattr(cli, "PduService", FakeService)
    result = runner.invoke(cli.app, ["sequence", "sideways"])
    assert result.exit_code == 2


def test_outlet_command_error_is_clean(monkeypatch):
    class FailingService(FakeService):
        def set_outlet(self, profile, slot, on):
            raise OutletResolutionError("Outlet 4 ('Fan - 4') is not controllable")

    monkeypatch.setattr(cli, "PduService", FailingService)
    result = runner.invoke(cli.app, ["outlet", "4", "off"])
    assert result.exit_code == 1
    assert "Error: Outlet 4 ('Fan - 4') is not controllable" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_status_command_selection_error_is_clean(monkeypatch):
    class FailingService(FakeService):
        def resolve_profile(self, device_hint=None, **overrides):
            raise DeviceSelectionError("No device profile found matching 'lab'")

    monkeypatch.setattr(cli, "PduService", FailingService)
    result = runner.invoke(cli.app, ["status", "--device", "lab"])
    assert result.exit_code == 1
    assert "Error: No device profile found matching 'lab'" in result.stderr


def test_load_warning_is_printed(monkeypatch):
    class WarnService(FakeService):
        def __init__(self) -> None:
            super().__init__()
            self.load_warnings = ("devices.yaml stores plain-text passwords and is readable by other users",)

    monkeypatch.setattr(cli, "PduService", WarnService)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "Warning: devices.yaml stores plain-text passwords" in result.stderr
