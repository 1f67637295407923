"""Line framing for the DICT wire format.

Grammar (RFC 2229 §2.2, §2.4):
- every line ends with CRLF; a bare LF is tolerated on input
- a multi-line block ends with a line consisting of a single ``.``
- a text line starting with ``.`` is sent with the dot doubled
"""

from __future__ import annotations

from typing import BinaryIO, List, Optional

from dictq.errors import ProtocolViolation, TransportError

ENCODING = "utf-8"
MAX_LINE = 8192  # RFC 2229 caps lines at 1024 octets; be generous
TERMINATOR = "."


class LineSource:
    """Blocking line reader over a binary stream (e.g. ``sock.makefile("rb")``).

    The wrapped reader must be the one reader used for the whole connection:
    whatever it has buffered past the current line stays there for the next
    exchange.
    """

    def __init__(self, reader: BinaryIO) -> None:
        self._reader = reader

    def read_line(self) -> Optional[str]:
        """Return one line without its terminator, or ``None`` at end of stream."""
        try:
            raw = self._reader.readline(MAX_LINE + 2)
        except (OSError, ValueError) as e:
            # ValueError: read on a reader closed by another thread
            raise TransportError(f"Read failed: {e}") from e
        if not raw:
            return None
        if not raw.endswith(b"\n"):
            if len(raw) >= MAX_LINE + 2:
                raise ProtocolViolation(f"Line exceeds {MAX_LINE} bytes")
            raise TransportError("Stream closed in the middle of a line")
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        try:
            return raw.decode(ENCODING)
        except UnicodeDecodeError as e:
            raise ProtocolViolation(f"Line is not valid {ENCODING}: {raw!r}") from e


def unstuff(line: str) -> str:
    """Undo dot-stuffing on one text line."""
    if line.startswith(".."):
        return line[1:]
    return line


def stuff(line: str) -> str:
    if line.startswith("."):
        return "." + line
    return line


def read_body(source: LineSource) -> List[str]:
    """Read a multi-line block up to and including its ``.`` terminator.

    Returns the unescaped text lines. End of stream before the terminator is a
    truncated response, never a short result.
    """
    lines: List[str] = []
    while True:
        line = source.read_line()
        if line is None:
            raise ProtocolViolation(f"Truncated response: stream ended after {len(lines)} body lines")
        if line == TERMINATOR:
            return lines
        lines.append(unstuff(line))


def read_raw_block(source: LineSource) -> List[str]:
    """Like ``read_body`` but keeps lines as sent, terminator included."""
    lines: List[str] = []
    while True:
        line = source.read_line()
        if line is None:
            raise ProtocolViolation(f"Truncated response: stream ended after {len(lines)} body lines")
        lines.append(line)
        if line == TERMINATOR:
            return lines


def encode_line(line: str) -> bytes:
    if "\r" in line or "\n" in line:
        raise ValueError(f"Line must not contain CR or LF: {line!r}")
    return (line + "\r\n").encode(ENCODING)
