"""Reliable Record Store Protocol (RRSP)

A tiny remote record store reached over UDP through a stop-and-wait ARQ
transport:
- fixed-width, network-order frames (SYN / DATA / ACK / FIN)
- one outstanding request per connection, identified by its sequence number
- retransmission on a single per-attempt timer, bounded attempts
- replies accepted only from the registered peer and only for the sequence
  just sent

The server mirrors the state machine per client and answers retransmitted
requests from a reply cache, so a duplicate never reaches the store twice.
"""

from .connection import Connection
from .errors import ConnectFailed, FormatError, Timeout
from .record import AddStatus, Command, GetStatus, Record

__all__ = [
    "AddStatus",
    "Command",
    "ConnectFailed",
    "Connection",
    "FormatError",
    "GetStatus",
    "Record",
    "Timeout",
]
