"""Command catalog: request builders and response parsers for every supported operation.

All functions here are pure. Parsers validate the response length before
reading fixed offsets and raise ProtocolError instead of indexing past the end.
"""

from __future__ import annotations

import re

from pductl.core import frame
from pductl.core.errors import SessionError
from pductl.core.model import OutletState, SequenceDirection, SlotState, SlotStatus

COMMAND_PING = 0x01
COMMAND_LOGIN = 0x02
COMMAND_POWER_OUTLET = 0x20
COMMAND_OUTLET_NAME = 0x21
COMMAND_BULK_STATUS = 0x22
COMMAND_SEQUENCE = 0x36

SUBCOMMAND_PING = 0x10
WRITE_ACK = 0x10
ZERO_DELAY = b"0000"
MAX_SLOT = 16

_NAME_STRIP_RE = re.compile(r"[^A-Za-z0-9()\[\]]")


def _check_slot(slot: int) -> None:
    if not 1 <= slot <= MAX_SLOT:
        raise ValueError(f"Outlet slot must be within 1..{MAX_SLOT}, got {slot}")


def build_login(username: str, password: str) -> bytes:
    try:
        data = f"{username}|{password}".encode("ascii")
    except UnicodeEncodeError as exc:
        raise SessionError("TCP login failed: username and password must be ASCII") from exc
    return frame.encode(COMMAND_LOGIN, frame.SUBCOMMAND_SET, data)


def build_ping() -> bytes:
    return frame.encode(COMMAND_PING, SUBCOMMAND_PING)


def build_bulk_status() -> bytes:
    return frame.encode(COMMAND_BULK_STATUS, frame.SUBCOMMAND_GET)


def build_outlet_name(slot: int) -> bytes:
    _check_slot(slot)
    return frame.encode(COMMAND_OUTLET_NAME, frame.SUBCOMMAND_GET, bytes([slot]))


def build_outlet_status(slot: int) -> bytes:
    _check_slot(slot)
    return frame.encode(COMMAND_POWER_OUTLET, frame.SUBCOMMAND_GET, bytes([slot]))


def build_outlet_write(slot: int, state: OutletState | int) -> bytes:
    _check_slot(slot)
    state = OutletState(state)
    return frame.encode(COMMAND_POWER_OUTLET, frame.SUBCOMMAND_SET, bytes([slot, state]) + ZERO_DELAY)


def build_sequence(direction: SequenceDirection | int) -> bytes:
    direction = SequenceDirection(direction)
    return frame.encode(COMMAND_SEQUENCE, frame.SUBCOMMAND_SET, bytes([direction]) + ZERO_DELAY)


def parse_login(response: bytes) -> bool:
    # Envelope: 5 bytes in front, 2 at the end; byte 5 is the verdict.
    if len(response) < 6:
        raise SessionError(f"TCP login failed: short response ({response.hex()})")
    return response[5] == 0x01


def parse_ping(response: bytes) -> bool:
    if len(response) < 5:
        return False
    return response[3] == 0x01 and response[4] == 0x01


def parse_bulk_status(response: bytes) -> list[SlotStatus]:
    frame.require_length(response, 7, context="outlet status")
    data = response[5:-2]
    return [SlotStatus(slot=i, state=SlotState.from_byte(b)) for i, b in enumerate(data, start=1)]


def filter_outlet_name(text: str) -> str:
    return _NAME_STRIP_RE.sub("", text)


def parse_outlet_name(response: bytes) -> str:
    frame.require_length(response, 4, context="outlet name")
    if response[3] != COMMAND_OUTLET_NAME:
        return ""
    return filter_outlet_name(response[6:-2].decode("latin-1"))


def parse_outlet_status(response: bytes) -> int:
    frame.require_length(response, 7, context="single outlet status")
    return response[len(response) - 7]


def parse_outlet_write(response: bytes, requested: OutletState | int) -> int:
    frame.require_length(response, 5, context="outlet write")
    if response[4] != WRITE_ACK:
        return int(requested)
    frame.require_length(response, 7, context="outlet write")
    return response[6]


def parse_sequence(response: bytes, direction: SequenceDirection | int) -> bool:
    if int(direction) not in (SequenceDirection.UP, SequenceDirection.DOWN):
        return False
    frame.require_length(response, 6, context="sequence")
    return response[5] != 0x00
