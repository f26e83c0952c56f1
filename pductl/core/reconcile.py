"""Patch the snapshot after a confirmed control action.

Changes made here are eventually consistent with the next full scan, which
overwrites the same fields from fresh device data.
"""

from __future__ import annotations

import logging

from pductl.core.model import CONTROLLABLE_PREFIX, SequenceDirection, Snapshot

LOGGER = logging.getLogger(__name__)


def apply_outlet_write(snapshot: Snapshot, name: str, requested: str, actual: str) -> bool:
    LOGGER.info(
        "Updating local outlet control state: outlet '%s' requested '%s', actual '%s'",
        name,
        requested,
        actual,
    )
    if requested != actual:
        return False
    snapshot.put(name, actual)
    snapshot.set_control_value(name, actual)
    snapshot.sync_sequence_buttons()
    return True


def apply_sequence(snapshot: Snapshot, direction: SequenceDirection) -> None:
    new_value, old_value = ("1", "0") if direction is SequenceDirection.UP else ("0", "1")
    LOGGER.debug("Replacing '%s' button with '%s'", direction.button, direction.opposite.button)

    for name, value in snapshot.statistics.items():
        if name.startswith(CONTROLLABLE_PREFIX) and value == old_value:
            snapshot.put(name, new_value)
    # Fresh timestamps let the caller notice the change before the next scan.
    for control in snapshot.controls:
        if control.name.startswith(CONTROLLABLE_PREFIX):
            snapshot.set_control_value(control.name, new_value)

    snapshot.replace_sequence_button(direction.button, direction.opposite.button)
