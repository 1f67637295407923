"""Exception hierarchy for the DICT client.

Callers can catch ``DictError`` to handle everything raised by dictq, or the
concrete subclasses to tell recoverable rejections from fatal stream faults.
"""

from __future__ import annotations

from typing import Optional


class DictError(Exception):
    """Base class for all dictq errors."""


class ConfigError(DictError):
    """Settings could not be loaded or parsed."""


class QueryPlanError(DictError):
    """A batch query file failed to load or validate."""


class TransportError(DictError):
    """I/O fault or unexpected closure of the stream.

    Fatal to the exchange in flight; the connection should be discarded.
    Closing the socket from another thread surfaces as this error on the
    thread blocked in a read.
    """


class ProtocolViolation(DictError):
    """The server sent syntactically invalid or out-of-protocol data.

    Fatal to the exchange in flight; the stream position is unknown afterwards.
    """


_REJECTION_TEXT = {
    500: "Syntax error, command not recognized",
    501: "Syntax error, illegal parameters",
    502: "Command not implemented",
    550: "Invalid database",
    551: "Invalid strategy",
}


class CommandRejected(DictError):
    """A well-formed, protocol-defined error status.

    Recoverable: the exchange completed cleanly and the connection can be
    reused for another command.
    """

    def __init__(self, code: int, text: str = "") -> None:
        self.code = code
        self.text = text
        desc = _REJECTION_TEXT.get(code, "Command rejected")
        msg = f"{code} {desc}"
        if text:
            msg += f" ({text})"
        super().__init__(msg)


class ConnectionRefused(DictError):
    """The greeting handshake failed or the server could not be reached."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
