from __future__ import annotations

import logging
import threading

from .record import AddStatus, Command, GetStatus, Record

logger = logging.getLogger(__name__)


class RecordStore:
    """In-memory records keyed by id; safe to share between threads."""

    def __init__(self) -> None:
        self._records: dict[int, Record] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def try_add(self, record: Record) -> AddStatus:
        with self._lock:
            if record.id in self._records:
                logger.info("record id %d exists", record.id)
                return AddStatus.ALREADY_EXISTS
            self._records[record.id] = record
        logger.info("added record id=%d name=%r age=%d", record.id, record.name, record.age)
        return AddStatus.ADDED

    def try_get(self, rec_id: int) -> Record | None:
        with self._lock:
            return self._records.get(rec_id)

    def apply(self, request: Record) -> Record:
        """Run *request* against the store and build the reply record."""
        if request.command == Command.ADD:
            return Record(command=self.try_add(request))
        if request.command == Command.RETRIEVE:
            found = self.try_get(request.id)
            if found is None:
                logger.info("record id %d not found", request.id)
                return Record(command=GetStatus.NOT_FOUND, id=request.id)
            return Record(command=GetStatus.FOUND, id=found.id, name=found.name, age=found.age)
        raise ValueError(f"unknown command: {request.command}")
