"""Serializes control actions and background polling against one device session.

The device protocol allows a single outstanding command, so every device
conversation (ping, login and the operation itself) runs under one lock. Polls
never block on the device: a scan is queued on a single worker and its results
land in the snapshot for the next poll. For a few seconds after a control
action, polls are served from the snapshot without touching the device.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from functools import partial

from pductl.core import commands, reconcile
from pductl.core.errors import InvalidControlError, PductlError, TransportTimeoutError
from pductl.core.model import (
    SEQUENCE_DOWN,
    SEQUENCE_UP,
    OutletState,
    SequenceDirection,
    Snapshot,
)
from pductl.core.scanner import scan_outlets
from pductl.core.session import ProtocolSession
from pductl.transports.base import Transport

CONTROLS_COOLDOWN_S = 5.0
_OUTLET_PROPERTY_RE = re.compile(r"^(?P<name>.+?) - (?P<slot>\d+)$")
LOGGER = logging.getLogger(__name__)


@dataclass
class DeviceSession:
    """Everything that lives as long as the connection to one device."""

    transport: Transport
    protocol: ProtocolSession
    snapshot: Snapshot = field(default_factory=Snapshot)
    last_control_at: float | None = None
    last_error: Exception | None = None


@dataclass
class _ScanTask:
    future: Future
    cancelled: threading.Event

    def cancel(self) -> None:
        self.cancelled.set()
        self.future.cancel()


class ControlCoordinator:
    def __init__(
        self,
        transport: Transport,
        username: str,
        password: str,
        *,
        cooldown_s: float = CONTROLS_COOLDOWN_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.device = DeviceSession(
            transport=transport,
            protocol=ProtocolSession(transport, username, password),
        )
        self.cooldown_s = cooldown_s
        self._clock = clock
        # Device conversations. Held for the whole ping/login/operation round-trip.
        self._lock = threading.RLock()
        # Scan bookkeeping (_executor, _scan, device.last_error). Never held while
        # waiting on the device lock.
        self._tasks_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._scan: _ScanTask | None = None

    def __enter__(self) -> ControlCoordinator:
        return self

    def __exit__(self, *_: object) -> None:
        self.shutdown()

    def in_cooldown(self) -> bool:
        last = self.device.last_control_at
        return last is not None and self._clock() - last < self.cooldown_s

    def get_statistics(self) -> Snapshot:
        """Return the last-known snapshot and queue a scan for the next poll."""
        snapshot = self.device.snapshot
        if self.in_cooldown():
            LOGGER.debug("Device is occupied by control operations. Skipping monitoring statistics retrieval.")
            return snapshot.copy()

        with self._tasks_lock:
            # Captured before queueing so the new scan only shows up on the next poll.
            current = snapshot.copy()
            error, self.device.last_error = self.device.last_error, None

            if self._scan is not None and not self._scan.future.done():
                LOGGER.debug("Previous scan is still pending, cancelling it")
                self._scan.cancel()
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pductl-scan")

            cancelled = threading.Event()
            self._scan = _ScanTask(self._executor.submit(self._collect, cancelled), cancelled)

        if error is not None:
            raise error
        return current

    def refresh(self) -> Snapshot:
        """Scan the device in the calling thread and return the updated snapshot."""
        self._collect(threading.Event())
        with self._tasks_lock:
            error, self.device.last_error = self.device.last_error, None
        if error is not None:
            raise error
        return self.device.snapshot.copy()

    def wait_for_scan(self, timeout: float | None = None) -> bool:
        with self._tasks_lock:
            scan = self._scan
        if scan is None:
            return True
        try:
            scan.future.exception(timeout=timeout)
        except FutureTimeoutError:
            return False
        except CancelledError:
            pass
        return True

    def _collect(self, cancelled: threading.Event) -> None:
        with self._lock:
            if cancelled.is_set():
                LOGGER.debug("Scan cancelled before it reached the device")
                return
            snapshot = self.device.snapshot
            error: Exception | None = None
            try:
                LOGGER.debug("Device is not occupied by control operations. Retrieving monitoring statistics.")
                self.device.protocol.ensure_alive()
                result = scan_outlets(self.device.protocol)
                snapshot.merge(result)
                snapshot.set_protocol_status(available=True)
            except TransportTimeoutError as exc:
                LOGGER.warning("Connection timed out: unable to connect to the device, TCP protocol is occupied. (%s)", exc)
                snapshot.mark_unavailable()
            except Exception as exc:
                # Surfaced to the next poll.
                LOGGER.debug("Exception while collecting device data", exc_info=True)
                error = exc
            finally:
                self.device.protocol.disconnect()
            with self._tasks_lock:
                self.device.last_error = error

    def control_property(self, name: str, value: str | None = None) -> None:
        LOGGER.debug("Received controllable property '%s' with value '%s'", name, value)
        action = self._resolve_control(name, value)
        if action is None:
            return
        try:
            with self._lock:
                self.device.protocol.ensure_alive()
                action()
        finally:
            self._release_channel()

    def control_properties(self, properties: Iterable[tuple[str, str | None]]) -> None:
        properties = list(properties)
        if not properties:
            raise InvalidControlError("Controllable properties cannot be empty")
        for name, value in properties:
            self.control_property(name, value)

    def _resolve_control(self, name: str, value: str | None) -> Callable[[], None] | None:
        """Map a property name and value onto the device operation, or None to ignore it."""
        if name == SEQUENCE_UP:
            return partial(self._run_sequence, SequenceDirection.UP)
        if name == SEQUENCE_DOWN:
            return partial(self._run_sequence, SequenceDirection.DOWN)

        match = _OUTLET_PROPERTY_RE.match(name)
        if match is None:
            LOGGER.warning("Ignoring unknown controllable property '%s'", name)
            return None
        slot = int(match.group("slot"))
        if not 1 <= slot <= commands.MAX_SLOT:
            raise InvalidControlError(
                f"Outlet slot {slot} in '{name}' is outside 1..{commands.MAX_SLOT}"
            )
        if value not in ("0", "1"):
            LOGGER.debug("Ignoring value '%s' for outlet property '%s'", value, name)
            return None
        return partial(self._write_outlet, name, slot, value)

    def _run_sequence(self, direction: SequenceDirection) -> None:
        response = self.device.protocol.exchange(commands.build_sequence(direction))
        self._mark_control()
        if commands.parse_sequence(response, direction):
            LOGGER.info("%s started", direction.button)
            reconcile.apply_sequence(self.device.snapshot, direction)
        else:
            LOGGER.warning("%s was not accepted by the device (%s)", direction.button, response.hex())

    def _write_outlet(self, name: str, slot: int, value: str) -> None:
        requested = OutletState.ON if value == "1" else OutletState.OFF
        response = self.device.protocol.exchange(commands.build_outlet_write(slot, requested))
        self._mark_control()
        actual = commands.parse_outlet_write(response, requested)
        reconcile.apply_outlet_write(self.device.snapshot, name, value, str(actual))

    def _mark_control(self) -> None:
        self.device.last_control_at = self._clock()

    def _cancel_scan(self) -> None:
        with self._tasks_lock:
            if self._scan is not None:
                self._scan.cancel()
                self._scan = None
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    def _release_channel(self) -> None:
        self._cancel_scan()
        with self._lock:
            self.device.protocol.disconnect()

    def shutdown(self) -> None:
        try:
            self._release_channel()
        except (PductlError, OSError):
            LOGGER.warning("Unable to end the TCP connection.", exc_info=True)
