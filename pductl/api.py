"""Stable public API for building tooling on top of pductl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from pductl.core.coordinator import ControlCoordinator
from pductl.core.errors import (
    CommandRejectedError,
    ConfigLoadError,
    ConfigValidationError,
    DeviceSelectionError,
    InvalidControlError,
    OutletResolutionError,
    PductlError,
    ProtocolError,
    SessionError,
    TransportConnectError,
    TransportError,
    TransportSendError,
    TransportTimeoutError,
)
from pductl.core.model import (
    AVAILABLE,
    CONTROL_PROTOCOL_STATUS,
    SEQUENCE_DOWN,
    SEQUENCE_UP,
    UNAVAILABLE,
    Control,
    ControlKind,
    DeviceProfile,
    SequenceDirection,
    Snapshot,
)
from pductl.core.service import PduService, TransportFactory
from pductl.transports.base import Transport

__all__ = [
    "PductlError",
    "CommandRejectedError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceSelectionError",
    "InvalidControlError",
    "OutletResolutionError",
    "ProtocolError",
    "SessionError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "TransportTimeoutError",
    "AVAILABLE",
    "CONTROL_PROTOCOL_STATUS",
    "SEQUENCE_DOWN",
    "SEQUENCE_UP",
    "UNAVAILABLE",
    "Control",
    "ControlKind",
    "ControlCoordinator",
    "DeviceProfile",
    "SequenceDirection",
    "Snapshot",
    "Transport",
    "Client",
]


class Client:
    """Public client for interacting with pductl core capabilities.

    A `Client` instance wraps device profile loading and the per-device
    control coordinator behind a stable API intended for third-party tools
    (monitoring adapters/services/scripts). Long-running pollers should keep
    the coordinator returned by `connect()`; the other methods open and close
    a session per call.
    """

    def __init__(
        self,
        *,
        profiles: dict[str, DeviceProfile] | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._service = PduService(profiles=profiles, transport_factory=transport_factory)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_profiles(self) -> list[DeviceProfile]:
        return self._service.list_profiles()

    def resolve_profile(self, device_hint: str | None = None, **overrides) -> DeviceProfile:
        return self._service.resolve_profile(device_hint, **overrides)

    def connect(self, device_hint: str | None = None, **overrides) -> ControlCoordinator:
        return self._service.open(self.resolve_profile(device_hint, **overrides))

    def status(self, device_hint: str | None = None, **overrides) -> Snapshot:
        return self._service.status(self.resolve_profile(device_hint, **overrides))

    def set_outlet(self, slot: int, on: bool, device_hint: str | None = None, **overrides) -> Snapshot:
        return self._service.set_outlet(self.resolve_profile(device_hint, **overrides), slot, on)

    def run_sequence(
        self,
        direction: SequenceDirection,
        device_hint: str | None = None,
        **overrides,
    ) -> Snapshot:
        return self._service.run_sequence(self.resolve_profile(device_hint, **overrides), direction)
