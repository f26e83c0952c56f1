"""Pytest fixtures shared across pductl tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from pductl.core import frame


@dataclass
class FakeOutlet:
    name: str
    controllable: bool = True
    on: bool = False


@dataclass
class FakePdu:
    """In-memory stand-in for the device, answering frames the way the firmware does."""

    outlets: dict[int, FakeOutlet] = field(default_factory=dict)
    slots: int = 4
    accept_login: bool = True
    connected: bool = False
    logged_in: bool = False
    fail_with: Exception | None = None
    connects: int = 0
    sent: list[bytes] = field(default_factory=list)

    # Transport protocol
    def send(self, request: bytes) -> bytes:
        if self.fail_with is not None:
            raise self.fail_with
        if not self.connected:
            self.connected = True
            self.connects += 1
        self.sent.append(request)
        return self._answer(request)

    def disconnect(self) -> None:
        self.connected = False
        self.logged_in = False

    def is_connected(self) -> bool:
        return self.connected

    # Helpers for assertions
    def commands(self) -> list[int]:
        return [f[3] for f in self.sent]

    def _answer(self, request: bytes) -> bytes:
        command, subcommand, payload = request[3], request[4], request[5:-2]
        if command == 0x02:
            self.logged_in = self.accept_login
            return frame.encode(0x02, 0x01, bytes([0x01 if self.accept_login else 0x00]))
        if command == 0x01:
            return frame.encode(0x01, 0x01 if self.logged_in else 0x00)
        if command == 0x22:
            codes = []
            for slot in range(1, self.slots + 1):
                outlet = self.outlets.get(slot)
                if outlet is None:
                    codes.append(0x58)
                else:
                    codes.append(0x43 if outlet.controllable else 0x4E)
            return frame.encode(0x22, 0x02, bytes(codes))
        if command == 0x21:
            slot = payload[0]
            outlet = self.outlets.get(slot)
            name = outlet.name if outlet else ""
            return frame.encode(0x21, 0x02, bytes([slot]) + name.encode("latin-1"))
        if command == 0x20 and subcommand == 0x02:
            slot = payload[0]
            state = 1 if self.outlets[slot].on else 0
            return frame.encode(0x20, 0x02, bytes([slot, state]) + b"0000")
        if command == 0x20 and subcommand == 0x01:
            slot, state = payload[0], payload[1]
            outlet = self.outlets[slot]
            if outlet.controllable:
                outlet.on = state == 1
            return frame.encode(0x20, 0x10, bytes([slot, 1 if outlet.on else 0]) + b"0000")
        if command == 0x36:
            direction = payload[0]
            for outlet in self.outlets.values():
                if outlet.controllable:
                    outlet.on = direction == 0x01
            return frame.encode(0x36, 0x01, bytes([0x01]))
        raise AssertionError(f"Unexpected request: {request.hex()}")


@pytest.fixture
def pdu() -> FakePdu:
    return FakePdu(
        outlets={
            1: FakeOutlet("Server(A)", controllable=True, on=False),
            2: FakeOutlet("Switch", controllable=True, on=True),
            4: FakeOutlet("Fan", controllable=False, on=True),
        }
    )


@pytest.fixture
def make_outlet() -> type[FakeOutlet]:
    return FakeOutlet


@pytest.fixture(autouse=True)
def config_sandbox(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("PDUCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
