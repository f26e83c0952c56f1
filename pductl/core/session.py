"""Login/ping session handling on top of a transport.

The device pings its client periodically and drops the connection after three
unanswered pings. No keep-alive thread is run here: every operation probes with
a ping first and logs in again when the probe fails.
"""

from __future__ import annotations

import logging
from enum import Enum

from pductl.core import commands
from pductl.core.errors import CommandRejectedError, ProtocolError, SessionError
from pductl.core.frame import match_error_reply
from pductl.transports.base import Transport

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


class ProtocolSession:
    def __init__(self, transport: Transport, username: str, password: str) -> None:
        self.transport = transport
        self._username = username
        self._password = password
        self._authenticated = False

    @property
    def state(self) -> SessionState:
        if not self.transport.is_connected():
            return SessionState.DISCONNECTED
        if self._authenticated:
            return SessionState.AUTHENTICATED
        return SessionState.CONNECTED

    def exchange(self, request: bytes) -> bytes:
        LOGGER.debug("TX %s", request.hex())
        response = self.transport.send(request)
        LOGGER.debug("RX %s", response.hex() if response else "<empty>")
        if not response:
            raise ProtocolError(f"Empty response to request {request.hex()}")
        reason = match_error_reply(response)
        if reason is not None:
            raise CommandRejectedError(reason)
        return response

    def ping(self) -> bool:
        if not self.transport.is_connected():
            LOGGER.debug("Socket connection is not active.")
            self._authenticated = False
            return False
        try:
            alive = commands.parse_ping(self.exchange(commands.build_ping()))
        except CommandRejectedError as exc:
            LOGGER.debug("Ping rejected: %s", exc.reason)
            alive = False
        self._authenticated = alive
        return alive

    def login(self) -> bool:
        if self.transport.is_connected():
            self.disconnect()
        try:
            response = self.exchange(commands.build_login(self._username, self._password))
        except CommandRejectedError as exc:
            raise SessionError(f"TCP login failed: {exc.reason}") from exc
        accepted = commands.parse_login(response)
        LOGGER.debug("TCP login finished with response code %d", response[5])
        self._authenticated = accepted
        return accepted

    def ensure_alive(self) -> None:
        if self.ping():
            return
        LOGGER.debug("Logging in on an invalid ping response.")
        if not self.login():
            raise SessionError("Unable to refresh TCP session. Login rejected.")

    def disconnect(self) -> None:
        self._authenticated = False
        self.transport.disconnect()
