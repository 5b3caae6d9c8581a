from __future__ import annotations

from .connection import Connection
from .constants import NAME_LEN
from .record import AddStatus, GetStatus, Record


def _check_id(rec_id: int) -> None:
    if rec_id == 0:
        raise ValueError("id must be a non-zero integer")


class RecordClient:
    """add/retrieve on top of an established connection."""

    def __init__(self, conn: Connection):
        self.conn = conn

    def add(self, rec_id: int, name: str, age: int) -> AddStatus:
        _check_id(rec_id)
        if len(name.encode("utf-8", errors="surrogateescape")) > NAME_LEN:
            raise ValueError(f"name must be at most {NAME_LEN} bytes")
        reply = self.conn.execute(Record.add(rec_id, name, age))
        return AddStatus(reply.command)

    def retrieve(self, rec_id: int) -> Record | None:
        _check_id(rec_id)
        reply = self.conn.execute(Record.retrieve(rec_id))
        if GetStatus(reply.command) is GetStatus.NOT_FOUND:
            return None
        return reply
