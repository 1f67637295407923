from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Mapping, Optional

from dictq.errors import ProtocolViolation

_STATUS_RE = re.compile(r"^([0-9]{3}) (.*)$")
_COUNT_RE = re.compile(r"^\s*([0-9]+)\b")


@dataclass(frozen=True)
class StatusLine:
    code: int
    status_class: int
    text: str

    @property
    def count(self) -> Optional[int]:
        """Leading integer of the text, e.g. ``3`` for ``110 3 databases present``."""
        m = _COUNT_RE.match(self.text)
        return int(m.group(1)) if m else None


def parse_status(line: Optional[str]) -> StatusLine:
    """Parse ``<3-digit code> <text>``.

    ``None`` (end of stream) or an empty line where a status was expected is a
    protocol violation, as is anything not starting with three digits and a
    space.
    """
    if not line:
        raise ProtocolViolation("Expected a status line, got end of stream or empty line")
    m = _STATUS_RE.match(line)
    if m is None:
        raise ProtocolViolation(f"Malformed status line: {line!r}")
    code = int(m.group(1))
    if code < 100 or code > 599:
        raise ProtocolViolation(f"Status code out of range: {code}")
    return StatusLine(code=code, status_class=code // 100, text=m.group(2))


# ==== Status codes (RFC 2229 §3) ====


class GreetingCode(IntEnum):
    BANNER = 220
    SERVER_TEMPORARILY_UNAVAILABLE = 420
    SERVER_SHUTTING_DOWN = 421


class ShowDbCode(IntEnum):
    DATABASES_PRESENT = 110
    NO_DATABASES_PRESENT = 554


class ShowStrategiesCode(IntEnum):
    STRATEGIES_AVAILABLE = 111
    ILLEGAL_PARAMETERS = 501
    NO_STRATEGIES_AVAILABLE = 555


class MatchCode(IntEnum):
    MATCHES_FOUND = 152
    INVALID_DATABASE = 550
    INVALID_STRATEGY = 551
    NO_MATCH = 552


class DefineCode(IntEnum):
    DEFINITIONS_RETRIEVED = 150
    DEFINITION_FOLLOWS = 151
    INVALID_DATABASE = 550
    NO_MATCH = 552


OK = 250
CLOSING_CONNECTION = 221


class Outcome(str, Enum):
    BODY = "body"
    EMPTY = "empty"
    REJECTED = "rejected"


SHOW_DB_OUTCOMES: Dict[int, Outcome] = {
    ShowDbCode.DATABASES_PRESENT: Outcome.BODY,
    ShowDbCode.NO_DATABASES_PRESENT: Outcome.EMPTY,
}

SHOW_STRATEGIES_OUTCOMES: Dict[int, Outcome] = {
    ShowStrategiesCode.STRATEGIES_AVAILABLE: Outcome.BODY,
    ShowStrategiesCode.NO_STRATEGIES_AVAILABLE: Outcome.EMPTY,
    ShowStrategiesCode.ILLEGAL_PARAMETERS: Outcome.EMPTY,
}

MATCH_OUTCOMES: Dict[int, Outcome] = {
    MatchCode.MATCHES_FOUND: Outcome.BODY,
    MatchCode.NO_MATCH: Outcome.EMPTY,
    MatchCode.INVALID_DATABASE: Outcome.REJECTED,
    MatchCode.INVALID_STRATEGY: Outcome.REJECTED,
}

DEFINE_OUTCOMES: Dict[int, Outcome] = {
    DefineCode.DEFINITIONS_RETRIEVED: Outcome.BODY,
    DefineCode.NO_MATCH: Outcome.EMPTY,
    DefineCode.INVALID_DATABASE: Outcome.REJECTED,
}


def classify(status: StatusLine, table: Mapping[int, Outcome], *, command: str) -> Outcome:
    """Look the code up in a command's table; anything unlisted is a violation."""
    outcome = table.get(status.code)
    if outcome is None:
        raise ProtocolViolation(f"Unexpected status {status.code} for {command}: {status.text!r}")
    return outcome


def is_greeting_refusal(status: StatusLine) -> bool:
    return status.status_class == 5 or status.code in (
        GreetingCode.SERVER_TEMPORARILY_UNAVAILABLE,
        GreetingCode.SERVER_SHUTTING_DOWN,
    )
