from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from pductl.core import reconcile
from pductl.core.model import (
    SEQUENCE_DOWN,
    SEQUENCE_UP,
    Control,
    SequenceDirection,
    Snapshot,
)

OUTLET_1 = "Controllable outlets#Server - 1"
OUTLET_2 = "Controllable outlets#Switch - 2"
EPOCH = datetime(2020, 1, 1, tzinfo=timezone.utc)


def _snapshot(value_1: str, value_2: str) -> Snapshot:
    snapshot = Snapshot(
        statistics={OUTLET_1: value_1, OUTLET_2: value_2, "Fan - 4": "On"},
        controls=[
            replace(Control.switch(OUTLET_1, value_1), timestamp=EPOCH),
            replace(Control.switch(OUTLET_2, value_2), timestamp=EPOCH),
        ],
    )
    snapshot.sync_sequence_buttons()
    return snapshot


def test_confirmed_write_updates_outlet_and_buttons() -> None:
    snapshot = _snapshot("0", "1")

    assert reconcile.apply_outlet_write(snapshot, OUTLET_1, "1", "1")

    assert snapshot.get(OUTLET_1) == "1"
    assert snapshot.control(OUTLET_1).value == "1"
    assert snapshot.control(SEQUENCE_UP) is None
    assert snapshot.control(SEQUENCE_DOWN) is not None
    assert SEQUENCE_UP not in snapshot.statistics


def test_turning_one_outlet_off_restores_sequence_up() -> None:
    snapshot = _snapshot("1", "1")
    assert snapshot.control(SEQUENCE_UP) is None

    reconcile.apply_outlet_write(snapshot, OUTLET_2, "0", "0")

    assert snapshot.control(SEQUENCE_UP) is not None
    assert snapshot.control(SEQUENCE_DOWN) is not None


def test_mismatched_write_leaves_snapshot_untouched() -> None:
    snapshot = _snapshot("0", "1")
    before = snapshot.copy()

    assert not reconcile.apply_outlet_write(snapshot, OUTLET_1, "1", "3")

    assert snapshot == before


def test_sequence_up_switches_every_outlet_on() -> None:
    snapshot = _snapshot("0", "0")

    reconcile.apply_sequence(snapshot, SequenceDirection.UP)

    assert snapshot.get(OUTLET_1) == "1"
    assert snapshot.get(OUTLET_2) == "1"
    assert snapshot.get("Fan - 4") == "On"
    assert snapshot.control(SEQUENCE_UP) is None
    assert snapshot.control(SEQUENCE_DOWN) is not None
    assert SEQUENCE_DOWN in snapshot.statistics
    for name in (OUTLET_1, OUTLET_2):
        control = snapshot.control(name)
        assert control.value == "1"
        assert control.timestamp > EPOCH


def test_sequence_down_switches_every_outlet_off() -> None:
    snapshot = _snapshot("1", "0")

    reconcile.apply_sequence(snapshot, SequenceDirection.DOWN)

    assert snapshot.get(OUTLET_1) == "0"
    assert snapshot.get(OUTLET_2) == "0"
    assert snapshot.control(SEQUENCE_DOWN) is None
    assert snapshot.control(SEQUENCE_UP) is not None
