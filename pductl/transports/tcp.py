"""Persistent TCP transport implementation using Python sockets."""

from __future__ import annotations

import errno
import logging
import socket

from pductl.core.errors import (
    TransportConnectError,
    TransportSendError,
    TransportTimeoutError,
)
from pductl.core.frame import HEAD

RECV_BUFFER_SIZE = 1024
LOGGER = logging.getLogger(__name__)


class TCPTransport:
    """Keeps one socket open across requests until disconnect() is called.

    A response is complete once HEAD, LEN and LEN + 2 trailing bytes
    (checksum and tail) have arrived.
    """

    def __init__(self, host: str, port: int, *, timeout_s: float = 5.0) -> None:
        self.host = host
        self.port = port
        self.timeout_s = timeout_s
        self._socket: socket.socket | None = None
        self._buffer = bytearray()

    def is_connected(self) -> bool:
        return self._socket is not None

    def connect(self) -> socket.socket:
        if self._socket is not None:
            return self._socket
        LOGGER.debug("Connecting to %s:%d", self.host, self.port)
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout_s)
        except TimeoutError as exc:
            raise TransportTimeoutError(
                f"Connection timed out: {self.host}:{self.port} did not answer within {self.timeout_s}s"
            ) from exc
        except OSError as exc:
            if exc.errno == errno.ETIMEDOUT:
                raise TransportTimeoutError(f"Connection timed out: {self.host}:{self.port}") from exc
            raise TransportConnectError(f"TCP connect failed for {self.host}:{self.port}: {exc}") from exc
        self._socket = sock
        self._buffer.clear()
        return sock

    def disconnect(self) -> None:
        if self._socket is None:
            return
        LOGGER.debug("Closing connection to %s:%d", self.host, self.port)
        try:
            self._socket.close()
        finally:
            self._socket = None
            self._buffer.clear()

    def send(self, frame: bytes) -> bytes:
        sock = self.connect()
        try:
            sock.sendall(frame)
        except OSError as exc:
            self.disconnect()
            raise TransportSendError(f"TCP send failed: {exc}") from exc
        return self._receive_frame(sock)

    def _receive_frame(self, sock: socket.socket) -> bytes:
        while True:
            start = self._buffer.find(bytes([HEAD]))
            if start < 0:
                self._buffer.clear()
            elif start > 0:
                LOGGER.debug("Discarding %d stray bytes: %s", start, self._buffer[:start].hex())
                del self._buffer[:start]
            if len(self._buffer) >= 2:
                total = self._buffer[1] + 4
                if len(self._buffer) >= total:
                    response = bytes(self._buffer[:total])
                    del self._buffer[:total]
                    return response

            try:
                chunk = sock.recv(RECV_BUFFER_SIZE)
            except TimeoutError as exc:
                # Only connect timeouts mean the protocol is occupied; a silent
                # peer on an open socket is a failed exchange.
                self.disconnect()
                raise TransportSendError(f"No response within {self.timeout_s}s") from exc
            except OSError as exc:
                self.disconnect()
                raise TransportSendError(f"TCP receive failed: {exc}") from exc
            if not chunk:
                self.disconnect()
                raise TransportSendError("Connection closed by remote host")
            self._buffer.extend(chunk)
