"""Service layer used by CLI and future UI frontends."""

from __future__ import annotations

import re
from collections.abc import Callable

from pductl.core.config import config_path, load_profiles
from pductl.core.coordinator import ControlCoordinator
from pductl.core.errors import DeviceSelectionError, OutletResolutionError
from pductl.core.model import ControlKind, DeviceProfile, SequenceDirection, Snapshot
from pductl.transports.base import Transport
from pductl.transports.tcp import TCPTransport

TransportFactory = Callable[[DeviceProfile], Transport]
_SLOT_SUFFIX_RE = re.compile(r" - (\d+)$")


def _tcp_transport(profile: DeviceProfile) -> Transport:
    return TCPTransport(profile.host, profile.port, timeout_s=profile.timeout_s)


class PduService:
    def __init__(
        self,
        *,
        profiles: dict[str, DeviceProfile] | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        if profiles is None:
            loaded = load_profiles()
            self.profiles = loaded.profiles
            self.load_warnings = loaded.warnings
        else:
            self.profiles = dict(profiles)
            self.load_warnings = ()
        self.transport_factory = transport_factory or _tcp_transport

    def list_profiles(self) -> list[DeviceProfile]:
        return sorted(self.profiles.values(), key=lambda p: p.name)

    def resolve_profile(
        self,
        device_hint: str | None = None,
        *,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> DeviceProfile:
        if host:
            base = DeviceProfile(name=host, host=host)
        else:
            base = self._select_profile(device_hint)

        return DeviceProfile(
            name=base.name,
            host=base.host,
            port=port or base.port,
            username=username if username is not None else base.username,
            password=password if password is not None else base.password,
            timeout_s=base.timeout_s,
            cooldown_s=base.cooldown_s,
        )

    def _select_profile(self, device_hint: str | None) -> DeviceProfile:
        if not self.profiles:
            raise DeviceSelectionError(
                f"No device profiles configured in {config_path()}. Use --host to target a device directly."
            )

        candidates = self.list_profiles()
        if device_hint:
            exact = self.profiles.get(device_hint)
            if exact is not None:
                return exact
            hint = device_hint.lower()
            candidates = [p for p in candidates if hint in p.name.lower() or hint in p.host.lower()]
            if not candidates:
                raise DeviceSelectionError(f"No device profile found matching '{device_hint}'")

        if len(candidates) > 1:
            names = ", ".join(f"{p.name} ({p.host})" for p in candidates)
            raise DeviceSelectionError(
                f"Multiple device profiles match: {names}. Use --device to choose one."
            )
        return candidates[0]

    def open(self, profile: DeviceProfile) -> ControlCoordinator:
        return ControlCoordinator(
            self.transport_factory(profile),
            profile.username,
            profile.password,
            cooldown_s=profile.cooldown_s,
        )

    def status(self, profile: DeviceProfile) -> Snapshot:
        with self.open(profile) as coordinator:
            return coordinator.refresh()

    def set_outlet(self, profile: DeviceProfile, slot: int, on: bool) -> Snapshot:
        with self.open(profile) as coordinator:
            snapshot = coordinator.refresh()
            name = outlet_control_name(snapshot, slot)
            coordinator.control_property(name, "1" if on else "0")
            return coordinator.get_statistics()

    def run_sequence(self, profile: DeviceProfile, direction: SequenceDirection) -> Snapshot:
        with self.open(profile) as coordinator:
            coordinator.refresh()
            coordinator.control_property(direction.button)
            return coordinator.get_statistics()


def outlet_control_name(snapshot: Snapshot, slot: int) -> str:
    for control in snapshot.controls:
        if control.kind is not ControlKind.SWITCH:
            continue
        match = _SLOT_SUFFIX_RE.search(control.name)
        if match and int(match.group(1)) == slot:
            return control.name

    for name in snapshot.statistics:
        match = _SLOT_SUFFIX_RE.search(name)
        if match and int(match.group(1)) == slot:
            raise OutletResolutionError(f"Outlet {slot} ('{name}') is not controllable")
    raise OutletResolutionError(f"Outlet {slot} was not reported by the device")
