"""Runtime defaults, overridable through environment variables.

The CLI uses these as argument defaults, so an operator can point every
subcommand at a different server or slow the retry timer down without
repeating flags:

    export RRSP_HOST=10.0.0.5
    export RRSP_TIMEOUT_MS=500
"""

from __future__ import annotations

import os

from .constants import DEFAULT_TIMEOUT_MS, MAX_ATTEMPTS, SESSION_IDLE_S

# RRSP_HOST: address the client connects to and the server binds to.
DEFAULT_HOST: str = os.getenv("RRSP_HOST", "127.0.0.1")

# RRSP_PORT: UDP port of the record server.
DEFAULT_PORT: int = int(os.getenv("RRSP_PORT", "50505"))

# RRSP_TIMEOUT_MS: per-attempt retransmission timeout.
TIMEOUT_MS: int = int(os.getenv("RRSP_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS)))

# RRSP_MAX_ATTEMPTS: sends per exchange (and per handshake) before giving up.
ATTEMPTS: int = int(os.getenv("RRSP_MAX_ATTEMPTS", str(MAX_ATTEMPTS)))

# RRSP_SESSION_IDLE_S: seconds of silence after which the server forgets a client.
SESSION_IDLE: float = float(os.getenv("RRSP_SESSION_IDLE_S", str(SESSION_IDLE_S)))

# RRSP_LOG_LEVEL: root log level used by the CLI.
LOG_LEVEL: str = os.getenv("RRSP_LOG_LEVEL", "INFO").upper()
