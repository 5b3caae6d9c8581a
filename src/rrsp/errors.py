from __future__ import annotations


class RrspError(Exception):
    """Base class for transport failures."""


class ConnectFailed(RrspError):
    """The handshake got no reply within the attempt limit."""


class Timeout(RrspError):
    """An exchange got no valid reply within the attempt limit.

    The connection's sequence number is left untouched, so re-issuing the
    same request is safe.
    """


class ConnectionClosed(RrspError):
    pass


class FormatError(RrspError, ValueError):
    """A datagram does not have the shape of any valid frame."""
