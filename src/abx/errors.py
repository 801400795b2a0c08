from __future__ import annotations


class AbxError(Exception):
    pass


class ConnectError(AbxError):
    """The feed could not be reached within the connect budget."""


class TransportError(AbxError):
    """The connection failed mid-session; the session may be retried."""


class RecordError(AbxError):
    pass


class FramingError(RecordError):
    """The stream ended partway through a record."""


class DecodeError(RecordError):
    pass


class SessionAborted(AbxError):
    """Every session attempt failed."""
