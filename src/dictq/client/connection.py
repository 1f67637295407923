from __future__ import annotations

import logging
import socket
from typing import List, Optional

from dictq.client.engine import DatabaseArg, ResponseEngine, StrategyArg
from dictq.config import DEFAULT_PORT
from dictq.errors import ConnectionRefused, DictError
from dictq.model import ALL_DATABASES, DEFAULT_STRATEGY, Database, Definition, Match, MatchingStrategy
from dictq.protocol.lines import LineSource
from dictq.protocol.status import is_greeting_refusal, parse_status
from dictq.reporting.transcript import ExchangeRecorder

logger = logging.getLogger(__name__)


class DictConnection:
    """An open DICT session: a socket plus the engine that owns its stream."""

    def __init__(self, sock: socket.socket, engine: ResponseEngine, *, banner: str = "") -> None:
        self._sock = sock
        self.engine = engine
        self.banner = banner

    def list_databases(self) -> List[Database]:
        return self.engine.list_databases()

    def list_strategies(self) -> List[MatchingStrategy]:
        return self.engine.list_strategies()

    def match(self, word: str, strategy: StrategyArg = DEFAULT_STRATEGY, database: DatabaseArg = ALL_DATABASES) -> List[str]:
        return self.engine.match(word, strategy, database)

    def match_entries(
        self, word: str, strategy: StrategyArg = DEFAULT_STRATEGY, database: DatabaseArg = ALL_DATABASES
    ) -> List[Match]:
        return self.engine.match_entries(word, strategy, database)

    def define(self, word: str, database: DatabaseArg = ALL_DATABASES) -> List[Definition]:
        return self.engine.define(word, database)

    def abort(self) -> None:
        """Shut the socket down without taking the engine lock.

        A thread blocked in an exchange wakes up with TransportError or
        ProtocolViolation. Use ``close`` afterwards to release everything.
        """
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def close(self) -> None:
        """Best-effort QUIT and socket close. Never raises."""
        self.engine.close()
        try:
            self._sock.close()
        except OSError:
            pass
        logger.debug("Connection closed")

    def __enter__(self) -> "DictConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def connect(
    host: str,
    port: int = DEFAULT_PORT,
    *,
    connect_timeout_s: Optional[float] = 10.0,
    recorder: Optional[ExchangeRecorder] = None,
) -> DictConnection:
    """Open a TCP connection and perform the greeting handshake.

    The timeout applies to connecting and the greeting only; afterwards the
    socket is blocking and exchanges wait indefinitely.

    Raises:
        ConnectionRefused: host unreachable, or greeting 420/421/5xx or malformed.
    """
    try:
        sock = socket.create_connection((host, port), timeout=connect_timeout_s)
    except OSError as e:
        raise ConnectionRefused(f"Cannot connect to {host}:{port}: {e}") from e

    reader = sock.makefile("rb")
    writer = sock.makefile("wb")
    try:
        greeting = parse_status(LineSource(reader).read_line())
    except DictError as e:
        _close_all(sock, reader, writer)
        raise ConnectionRefused(f"Bad greeting from {host}:{port}: {e}") from e

    if is_greeting_refusal(greeting):
        _close_all(sock, reader, writer)
        raise ConnectionRefused(f"Server refused connection: {greeting.code} {greeting.text}", code=greeting.code)

    sock.settimeout(None)
    logger.info("Connected to %s:%d (%s)", host, port, greeting.text)
    engine = ResponseEngine(reader, writer, recorder=recorder)
    return DictConnection(sock, engine, banner=greeting.text)


def _close_all(sock: socket.socket, *streams) -> None:
    for s in (*streams, sock):
        try:
            s.close()
        except OSError:
            pass
