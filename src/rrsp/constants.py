from __future__ import annotations

HEADER_FORMAT = "!II"  # type, seq
RECORD_FORMAT = "!ii32si"  # command, id, name, age
NAME_LEN = 32

SYN = 0
DATA = 1
ACK = 2
FIN = 3

# request commands
CMD_ADD = 0
CMD_RETRIEVE = 1

# reply status, carried in the command field
ADD_SUCCESS = 0
ADD_FAILURE = 1
RET_SUCCESS = 0
RET_FAILURE = 1

SEQ_MODULUS = 1 << 32

MAX_ATTEMPTS = 5
DEFAULT_TIMEOUT_MS = 3000
MAX_DATAGRAM = 65535

# server sessions with no traffic for this long are dropped
SESSION_IDLE_S = 600.0

PORT_MIN = 1024
PORT_MAX = 65535
