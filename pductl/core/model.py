"""Core data models used across scanner, coordinator, service, and CLI."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum

CONTROL_PROTOCOL_STATUS = "ControlProtocolStatus"
AVAILABLE = "AVAILABLE"
UNAVAILABLE = "UNAVAILABLE"

SEQUENCE_UP = "Sequence up"
SEQUENCE_DOWN = "Sequence down"
CONTROLLABLE_PREFIX = "Controllable outlets#"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SlotState(IntEnum):
    ABSENT = 0x58
    CONTROLLABLE = 0x43
    FIXED = 0x4E
    UNKNOWN = -1

    @classmethod
    def from_byte(cls, value: int) -> SlotState:
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class OutletState(IntEnum):
    OFF = 0x00
    ON = 0x01
    CYCLE = 0x02
    NOT_CONTROLLABLE = 0x03


class SequenceDirection(IntEnum):
    UP = 0x01
    DOWN = 0x03

    @property
    def button(self) -> str:
        return SEQUENCE_UP if self is SequenceDirection.UP else SEQUENCE_DOWN

    @property
    def opposite(self) -> SequenceDirection:
        return SequenceDirection.DOWN if self is SequenceDirection.UP else SequenceDirection.UP


class ControlKind(str, Enum):
    SWITCH = "switch"
    BUTTON = "button"


@dataclass(frozen=True)
class SlotStatus:
    slot: int
    state: SlotState


@dataclass(frozen=True)
class Outlet:
    slot: int
    name: str
    controllable: bool
    on: bool

    @property
    def display_name(self) -> str:
        prefix = CONTROLLABLE_PREFIX if self.controllable else ""
        return f"{prefix}{self.name} - {self.slot}"

    @property
    def display_value(self) -> str:
        if self.controllable:
            return "1" if self.on else "0"
        return "On" if self.on else "Off"


@dataclass
class Control:
    name: str
    kind: ControlKind
    value: str
    timestamp: datetime = field(default_factory=_now)
    label_on: str | None = None
    label_off: str | None = None
    label: str | None = None
    label_pressed: str | None = None
    grace_period: int | None = None

    @classmethod
    def switch(cls, name: str, value: str) -> Control:
        return cls(name=name, kind=ControlKind.SWITCH, value=value, label_on="On", label_off="Off")

    @classmethod
    def button(cls, name: str) -> Control:
        return cls(
            name=name,
            kind=ControlKind.BUTTON,
            value="",
            label="Launch",
            label_pressed="Processing...",
            grace_period=0,
        )


@dataclass(frozen=True)
class ScanResult:
    outlets: tuple[Outlet, ...]

    @property
    def statistics(self) -> dict[str, str]:
        return {outlet.display_name: outlet.display_value for outlet in self.outlets}

    @property
    def controls(self) -> list[Control]:
        return [
            Control.switch(outlet.display_name, outlet.display_value)
            for outlet in self.outlets
            if outlet.controllable
        ]


class Snapshot:
    """Last-known device state handed out to pollers.

    Updated field by field so that a partial update never drops unrelated
    entries. Every read and write goes through the internal lock, so copies are
    never torn by a concurrent merge.
    """

    def __init__(
        self,
        statistics: dict[str, str] | None = None,
        controls: list[Control] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._statistics: dict[str, str] = dict(statistics or {})
        self._controls: list[Control] = list(controls or [])

    @property
    def statistics(self) -> dict[str, str]:
        with self._lock:
            return dict(self._statistics)

    @property
    def controls(self) -> list[Control]:
        with self._lock:
            return [copy.copy(control) for control in self._controls]

    def copy(self) -> Snapshot:
        with self._lock:
            return Snapshot(self._statistics, [copy.copy(control) for control in self._controls])

    def get(self, name: str) -> str | None:
        with self._lock:
            return self._statistics.get(name)

    def control(self, name: str) -> Control | None:
        with self._lock:
            for control in self._controls:
                if control.name == name:
                    return copy.copy(control)
            return None

    def put(self, name: str, value: str) -> None:
        with self._lock:
            self._statistics[name] = value

    def add_control(self, new: Control) -> None:
        with self._lock:
            for existing in self._controls:
                if existing.name == new.name:
                    existing.value = new.value
                    return
            self._controls.append(new)

    def set_control_value(self, name: str, value: str) -> None:
        with self._lock:
            for control in self._controls:
                if control.name == name:
                    control.value = value
                    control.timestamp = _now()

    def remove_control(self, name: str) -> None:
        with self._lock:
            self._controls = [c for c in self._controls if c.name != name]

    def merge(self, result: ScanResult) -> None:
        with self._lock:
            self._statistics.update(result.statistics)
            for control in result.controls:
                self.add_control(control)
            self.sync_sequence_buttons()

    def set_protocol_status(self, available: bool) -> None:
        self.put(CONTROL_PROTOCOL_STATUS, AVAILABLE if available else UNAVAILABLE)

    def mark_unavailable(self) -> None:
        with self._lock:
            self._statistics[CONTROL_PROTOCOL_STATUS] = UNAVAILABLE
            self._controls.clear()

    def outlet_counts(self) -> tuple[int, int]:
        """Return (on, off) counts of controllable outlets."""
        with self._lock:
            values = [v for k, v in self._statistics.items() if k.startswith(CONTROLLABLE_PREFIX)]
            return values.count("1"), values.count("0")

    def replace_sequence_button(self, old: str, new: str) -> None:
        with self._lock:
            self._statistics.pop(old, None)
            self.remove_control(old)
            self._statistics[new] = ""
            self.add_control(Control.button(new))

    def sync_sequence_buttons(self) -> None:
        with self._lock:
            on, off = self.outlet_counts()
            if on + off == 0:
                wanted: tuple[str, ...] = ()
            elif on == 0:
                wanted = (SEQUENCE_UP,)
            elif off == 0:
                wanted = (SEQUENCE_DOWN,)
            else:
                wanted = (SEQUENCE_UP, SEQUENCE_DOWN)

            for name in (SEQUENCE_UP, SEQUENCE_DOWN):
                if name in wanted:
                    self._statistics[name] = ""
                    self.add_control(Control.button(name))
                else:
                    self._statistics.pop(name, None)
                    self.remove_control(name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self.statistics == other.statistics and self.controls == other.controls

    def __repr__(self) -> str:
        return f"Snapshot(statistics={self.statistics!r}, controls={self.controls!r})"


@dataclass(frozen=True)
class DeviceProfile:
    name: str
    host: str
    port: int = 60000
    username: str = ""
    password: str = ""
    timeout_s: float = 5.0
    cooldown_s: float = 5.0
