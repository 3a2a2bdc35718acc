"""Error types for profile lookup, transport resolution and printer sessions."""


class PrinterError(Exception):
    """Base exception for all printing errors."""

    reason = "printer_error"


class ProfileNotFound(PrinterError):
    """No stored profile matches the lookup."""

    reason = "not_found"


class InvalidConfiguration(PrinterError):
    """Profile is missing a field its transport requires, or holds a bad value."""

    reason = "invalid_configuration"


class UnsupportedTransport(PrinterError):
    """Profile names a transport kind outside USB/NETWORK."""

    reason = "unsupported_transport"


class SessionError(PrinterError):
    """Failure while talking to a physical printer."""


class ConnectionTimeout(SessionError):
    """Connection was not established within the timeout."""

    reason = "connection_timeout"


class Unreachable(SessionError):
    """Connection refused, host unreachable or device absent."""

    reason = "unreachable"


class NotResponding(SessionError):
    """Connected, but the device did not answer the status probe."""

    reason = "not_responding"


class TransmissionError(SessionError):
    """I/O failure while sending the command stream."""

    reason = "transmission_error"
