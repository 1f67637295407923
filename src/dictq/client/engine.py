from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Callable, List, Mapping, Optional, Union

from dictq.errors import CommandRejected, DictError, ProtocolViolation, TransportError
from dictq.model import (
    ALL_DATABASES,
    DEFAULT_STRATEGY,
    Database,
    Definition,
    Match,
    MatchingStrategy,
)
from dictq.protocol import commands
from dictq.protocol.decoders import (
    decode_databases,
    decode_definitions,
    decode_match_entries,
    decode_matches,
    decode_strategies,
)
from dictq.protocol.lines import LineSource, encode_line, read_body, read_raw_block
from dictq.protocol.status import (
    DEFINE_OUTCOMES,
    MATCH_OUTCOMES,
    SHOW_DB_OUTCOMES,
    SHOW_STRATEGIES_OUTCOMES,
    DefineCode,
    Outcome,
    StatusLine,
    classify,
    parse_status,
)
from dictq.reporting.transcript import ExchangeEvent, ExchangeRecorder

logger = logging.getLogger(__name__)

DatabaseArg = Union[Database, str]
StrategyArg = Union[MatchingStrategy, str]


class ExchangeState(str, Enum):
    IDLE = "idle"
    COMMAND_SENT = "command_sent"
    STATUS_RECEIVED = "status_received"
    BODY_RECEIVED = "body_received"
    SUMMARY_RECEIVED = "summary_received"


@dataclass
class _Reply:
    status: Optional[StatusLine] = None
    outcome: Outcome = Outcome.BODY
    lines: List[str] = field(default_factory=list)


def _name(value: Union[Database, MatchingStrategy, str]) -> str:
    return value if isinstance(value, str) else value.name


class ResponseEngine:
    """Drives request/response exchanges over one already-open DICT stream.

    ``reader`` is the connection's buffered binary reader and ``writer`` a
    binary writer; both are owned by the engine from here on. Every public
    operation holds the engine lock from writing its command until the reply
    (summary line included) is consumed, so at most one exchange is in flight.
    No operation times out on its own.
    """

    def __init__(
        self,
        reader: BinaryIO,
        writer: BinaryIO,
        *,
        recorder: Optional[ExchangeRecorder] = None,
    ) -> None:
        self._source = LineSource(reader)
        self._reader = reader
        self._writer = writer
        self._recorder = recorder
        self._lock = threading.Lock()
        self._state = ExchangeState.IDLE
        self._closed = False

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- wire helpers (lock held) ----

    def _send(self, command: str) -> None:
        if self._closed:
            raise TransportError("Connection is closed")
        logger.debug("C: %s", command)
        try:
            self._writer.write(encode_line(command))
            self._writer.flush()
        except (OSError, ValueError) as e:
            raise TransportError(f"Write failed: {e}") from e
        self._state = ExchangeState.COMMAND_SENT

    def _read_status(self) -> StatusLine:
        line = self._source.read_line()
        logger.debug("S: %s", line)
        return parse_status(line)

    def _read_summary(self) -> StatusLine:
        summary = self._read_status()
        if summary.status_class != 2:
            raise ProtocolViolation(f"Expected a completion status after the body, got {summary.code} {summary.text!r}")
        self._state = ExchangeState.SUMMARY_RECEIVED
        return summary

    def _simple_reply(self, reply: _Reply, table: Mapping[int, Outcome], command: str) -> None:
        """Status line, then (for a body outcome) a dot-terminated block and a summary."""
        status = self._read_status()
        reply.status = status
        self._state = ExchangeState.STATUS_RECEIVED
        reply.outcome = classify(status, table, command=command)
        if reply.outcome is Outcome.REJECTED:
            raise CommandRejected(status.code, status.text)
        if reply.outcome is Outcome.EMPTY:
            return
        reply.lines = read_body(self._source)
        self._state = ExchangeState.BODY_RECEIVED
        self._read_summary()

    def _exchange(self, command: str, handler: Callable[[_Reply], None], decode: Callable[[List[str]], list]) -> list:
        with self._lock:
            t0 = time.monotonic()
            reply = _Reply()
            result: list = []
            outcome = "ok"
            message = ""
            try:
                self._send(command)
                handler(reply)
                result = decode(reply.lines) if reply.outcome is Outcome.BODY else []
                if reply.outcome is Outcome.EMPTY:
                    outcome = "empty"
                return result
            except CommandRejected as e:
                outcome, message = "rejected", str(e)
                raise
            except ProtocolViolation as e:
                outcome, message = "protocol_violation", str(e)
                raise
            except TransportError as e:
                outcome, message = "transport_error", str(e)
                raise
            finally:
                # the state the exchange ended in goes to the transcript
                reached = self._state
                self._state = ExchangeState.IDLE
                if self._recorder is not None:
                    self._recorder.log(
                        ExchangeEvent.make(
                            command=command,
                            status_code=reply.status.code if reply.status else None,
                            outcome=outcome,
                            duration_ms=int((time.monotonic() - t0) * 1000),
                            body_lines=len(reply.lines),
                            results=len(result),
                            message=message,
                            reached_state=reached.value,
                        )
                    )

    # ---- public operations ----

    def list_databases(self) -> List[Database]:
        """``SHOW DB``. An empty list means the server has no databases (554)."""

        def handler(reply: _Reply) -> None:
            self._simple_reply(reply, SHOW_DB_OUTCOMES, commands.SHOW_DB)

        return self._exchange(commands.SHOW_DB, handler, decode_databases)

    def list_strategies(self) -> List[MatchingStrategy]:
        """``SHOW STRATEGIES``, deduplicated by strategy name in server order."""

        def handler(reply: _Reply) -> None:
            self._simple_reply(reply, SHOW_STRATEGIES_OUTCOMES, commands.SHOW_STRATEGIES)
            # "111 0 strategies available": the block is still sent and consumed
            if reply.outcome is Outcome.BODY and reply.status is not None and reply.status.count == 0:
                reply.outcome = Outcome.EMPTY

        return self._exchange(commands.SHOW_STRATEGIES, handler, decode_strategies)

    def match(
        self,
        word: str,
        strategy: StrategyArg = DEFAULT_STRATEGY,
        database: DatabaseArg = ALL_DATABASES,
    ) -> List[str]:
        """Words matching ``word`` under ``strategy``, in server order without duplicates.

        Raises CommandRejected for an unknown database (550) or strategy (551).
        """
        command = commands.match(_name(database), _name(strategy), word)

        def handler(reply: _Reply) -> None:
            self._simple_reply(reply, MATCH_OUTCOMES, command)

        return self._exchange(command, handler, decode_matches)

    def match_entries(
        self,
        word: str,
        strategy: StrategyArg = DEFAULT_STRATEGY,
        database: DatabaseArg = ALL_DATABASES,
    ) -> List[Match]:
        command = commands.match(_name(database), _name(strategy), word)

        def handler(reply: _Reply) -> None:
            self._simple_reply(reply, MATCH_OUTCOMES, command)

        return self._exchange(command, handler, decode_match_entries)

    def define(self, word: str, database: DatabaseArg = ALL_DATABASES) -> List[Definition]:
        """All definitions of ``word``; several when ``database`` is ``*`` or ``!``.

        Wire shape after ``150 n definitions retrieved``: per definition a
        ``151`` header and a dot-terminated text block, then ``250 ok``.
        """
        command = commands.define(_name(database), word)

        def handler(reply: _Reply) -> None:
            status = self._read_status()
            reply.status = status
            self._state = ExchangeState.STATUS_RECEIVED
            reply.outcome = classify(status, DEFINE_OUTCOMES, command=command)
            if reply.outcome is Outcome.REJECTED:
                raise CommandRejected(status.code, status.text)
            if reply.outcome is Outcome.EMPTY:
                return
            got = 0
            while True:
                line = self._source.read_line()
                logger.debug("S: %s", line)
                if line is None:
                    raise ProtocolViolation("Truncated response: stream ended inside a definition list")
                header = parse_status(line)
                if header.code == DefineCode.DEFINITION_FOLLOWS:
                    reply.lines.append(line)
                    reply.lines.extend(read_raw_block(self._source))
                    got += 1
                    continue
                if header.status_class == 2:
                    self._state = ExchangeState.SUMMARY_RECEIVED
                    break
                raise ProtocolViolation(f"Unexpected status {header.code} inside a definition list")
            expected = status.count
            if expected is not None and expected != got:
                logger.debug("Server announced %d definitions, sent %d", expected, got)

        return self._exchange(command, handler, decode_definitions)

    def close(self) -> None:
        """Send ``QUIT`` and release the stream. Never raises."""
        with self._lock:
            if self._closed:
                return
            try:
                self._send(commands.QUIT)
                line = self._source.read_line()
                logger.debug("S: %s", line)
            except DictError as e:
                logger.debug("Ignoring error during QUIT: %s", e)
            finally:
                self._closed = True
                self._state = ExchangeState.IDLE
                for stream in (self._writer, self._reader):
                    try:
                        stream.close()
                    except (OSError, ValueError):
                        pass
