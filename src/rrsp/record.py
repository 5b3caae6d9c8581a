from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .constants import (
    ADD_FAILURE,
    ADD_SUCCESS,
    CMD_ADD,
    CMD_RETRIEVE,
    NAME_LEN,
    RECORD_FORMAT,
    RET_FAILURE,
    RET_SUCCESS,
)
from .errors import FormatError

RECORD_STRUCT = struct.Struct(RECORD_FORMAT)


class Command(enum.IntEnum):
    ADD = CMD_ADD
    RETRIEVE = CMD_RETRIEVE


class AddStatus(enum.IntEnum):
    ADDED = ADD_SUCCESS
    ALREADY_EXISTS = ADD_FAILURE


class GetStatus(enum.IntEnum):
    FOUND = RET_SUCCESS
    NOT_FOUND = RET_FAILURE


@dataclass(frozen=True, slots=True)
class Record:
    """The request/reply body carried by DATA frames.

    On replies ``command`` holds an ``AddStatus`` or ``GetStatus`` value
    instead of a ``Command``. Names are UTF-8; bytes that are not valid
    UTF-8 are carried as surrogate escapes so they encode back unchanged.
    """

    command: int
    id: int = 0
    name: str = ""
    age: int = 0

    def to_bytes(self) -> bytes:
        name = self.name.encode("utf-8", errors="surrogateescape")
        if len(name) > NAME_LEN:
            raise ValueError(f"name longer than {NAME_LEN} bytes: {self.name!r}")
        try:
            return RECORD_STRUCT.pack(self.command, self.id, name, self.age)
        except struct.error as exc:
            raise ValueError(f"record field out of range: {exc}") from None

    @staticmethod
    def from_bytes(raw: bytes) -> "Record":
        if len(raw) != RECORD_STRUCT.size:
            raise FormatError(f"record must be {RECORD_STRUCT.size} bytes, got {len(raw)}")
        command, rec_id, name, age = RECORD_STRUCT.unpack(raw)
        return Record(
            command=command,
            id=rec_id,
            name=name.rstrip(b"\x00").decode("utf-8", errors="surrogateescape"),
            age=age,
        )

    @staticmethod
    def add(rec_id: int, name: str, age: int) -> "Record":
        return Record(command=Command.ADD, id=rec_id, name=name, age=age)

    @staticmethod
    def retrieve(rec_id: int) -> "Record":
        return Record(command=Command.RETRIEVE, id=rec_id)
