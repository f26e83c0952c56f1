"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    def send(self, frame: bytes) -> bytes:
        """Send a request frame, connecting if needed, and return the response frame."""

    def disconnect(self) -> None:
        """Close the connection; a later send reconnects."""

    def is_connected(self) -> bool:
        """Report whether a connection is currently open."""
