from __future__ import annotations

import pytest

from rrsp.record import AddStatus, GetStatus, Record
from rrsp.store import RecordStore


def test_add_then_get():
    store = RecordStore()
    assert store.try_add(Record.add(7, "Ann", 30)) is AddStatus.ADDED
    assert store.try_get(7).name == "Ann"
    assert len(store) == 1


def test_add_existing_keeps_first():
    store = RecordStore()
    store.try_add(Record.add(7, "Ann", 30))
    assert store.try_add(Record.add(7, "Bob", 40)) is AddStatus.ALREADY_EXISTS
    assert store.try_get(7).name == "Ann"


def test_get_missing():
    assert RecordStore().try_get(99) is None


def test_apply_builds_replies():
    store = RecordStore()
    assert store.apply(Record.add(7, "Ann", 30)) == Record(command=AddStatus.ADDED)
    assert store.apply(Record.retrieve(7)) == Record(command=GetStatus.FOUND, id=7, name="Ann", age=30)
    assert store.apply(Record.retrieve(99)) == Record(command=GetStatus.NOT_FOUND, id=99)


def test_apply_unknown_command():
    with pytest.raises(ValueError):
        RecordStore().apply(Record(command=5, id=1))
