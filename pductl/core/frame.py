"""Checksum-framed envelope used by the PDU control protocol.

Frame layout: [HEAD, LEN, DEST, CMD, SUBCMD, <payload...>, CHECKSUM, TAIL]

LEN counts DEST through the last payload byte. CHECKSUM is the sum of every
preceding byte (HEAD included) masked with 0x7F, so it never collides with
HEAD or TAIL.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from pductl.core.errors import ProtocolError

HEAD = 0xFE
TAIL = 0xFF
DESTINATION = 0x00
SUBCOMMAND_SET = 0x01
SUBCOMMAND_GET = 0x02
CHECKSUM_MASK = 0x7F

# HEAD, LEN, DEST, CMD, SUBCMD + CHECKSUM, TAIL
ENVELOPE_SIZE = 7


def checksum(data: Iterable[int]) -> int:
    return sum(data) & CHECKSUM_MASK


def encode(
    command: int,
    subcommand: int,
    payload: bytes = b"",
    *,
    destination: int = DESTINATION,
) -> bytes:
    body = bytearray([HEAD, 3 + len(payload), destination, command, subcommand])
    body.extend(payload)
    body.append(checksum(body))
    body.append(TAIL)
    return bytes(body)


def verify_checksum(raw: bytes) -> bool:
    """Return True when the byte before TAIL matches the running checksum."""
    if len(raw) < 3:
        return False
    return raw[-2] == checksum(raw[:-2])


@dataclass(frozen=True)
class Frame:
    length: int
    destination: int
    command: int
    subcommand: int
    payload: bytes
    checksum: int
    raw: bytes


def decode(raw: bytes) -> Frame:
    require_length(raw, ENVELOPE_SIZE, context="frame")
    if raw[0] != HEAD:
        raise ProtocolError(f"Frame must start with 0x{HEAD:02X}, got 0x{raw[0]:02X}")
    if raw[-1] != TAIL:
        raise ProtocolError(f"Frame must end with 0x{TAIL:02X}, got 0x{raw[-1]:02X}")
    return Frame(
        length=raw[1],
        destination=raw[2],
        command=raw[3],
        subcommand=raw[4],
        payload=bytes(raw[5:-2]),
        checksum=raw[-2],
        raw=bytes(raw),
    )


def require_length(raw: bytes, minimum: int, *, context: str) -> None:
    if len(raw) < minimum:
        raise ProtocolError(
            f"{context} response too short: expected at least {minimum} bytes, got {len(raw)} ({raw.hex()})"
        )


def _error_reply(code: int) -> bytes:
    # FE 04 00 10 10 <code> <checksum> FF
    return encode(0x10, 0x10, bytes([code]))


ERROR_REPLIES: dict[bytes, str] = {
    _error_reply(0x01): "bad CRC",
    _error_reply(0x02): "bad length",
    _error_reply(0x03): "bad escape",
    _error_reply(0x04): "previous command invalid",
    _error_reply(0x05): "previous subcommand invalid",
    _error_reply(0x06): "previous byte count invalid",
    _error_reply(0x07): "invalid data bytes",
    _error_reply(0x08): "bad credentials",
    _error_reply(0x10): "unknown",
    _error_reply(0x11): "access denied",
}


def match_error_reply(raw: bytes) -> str | None:
    return ERROR_REPLIES.get(bytes(raw))
