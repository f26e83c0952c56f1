"""Outlet inventory scan: bulk status, then name and state per present slot."""

from __future__ import annotations

import logging

from pductl.core import commands
from pductl.core.model import Outlet, ScanResult, SlotState
from pductl.core.session import ProtocolSession

LOGGER = logging.getLogger(__name__)


def fetch_outlet_name(session: ProtocolSession, slot: int) -> str:
    response = session.exchange(commands.build_outlet_name(slot))
    name = commands.parse_outlet_name(response)
    if not name and response[3] != commands.COMMAND_OUTLET_NAME:
        LOGGER.debug(
            "Invalid response for outlet name request: 0x%02X expected, got 0x%02X",
            commands.COMMAND_OUTLET_NAME,
            response[3],
        )
    return name


def fetch_outlet_status(session: ProtocolSession, slot: int) -> int:
    return commands.parse_outlet_status(session.exchange(commands.build_outlet_status(slot)))


def scan_outlets(session: ProtocolSession) -> ScanResult:
    LOGGER.debug("Fetching outlet information")
    slots = commands.parse_bulk_status(session.exchange(commands.build_bulk_status()))

    outlets: list[Outlet] = []
    for status in slots:
        if status.state is SlotState.ABSENT:
            LOGGER.debug("Outlet #%d does not exist", status.slot)
            continue
        if status.state is SlotState.UNKNOWN:
            continue

        name = fetch_outlet_name(session, status.slot)
        if not name:
            continue
        on = fetch_outlet_status(session, status.slot) == 1
        outlets.append(
            Outlet(
                slot=status.slot,
                name=name,
                controllable=status.state is SlotState.CONTROLLABLE,
                on=on,
            )
        )

    LOGGER.debug(
        "Scan found %d outlets (%d controllable)",
        len(outlets),
        sum(1 for o in outlets if o.controllable),
    )
    return ScanResult(outlets=tuple(outlets))
