from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from dictq.errors import ProtocolViolation
from dictq.model import Database, Definition, Match, MatchingStrategy
from dictq.protocol.lines import TERMINATOR, unstuff

# <name> "<description>", separated by the first run of spaces/tabs
_NAME_QUOTED_RE = re.compile(r'^(\S+)[ \t]+"(.*)"[ \t]*$')
_TOKEN_RE = re.compile(r'"((?:[^"\\]|\\.)*)"|(\S+)')
_ESCAPE_RE = re.compile(r"\\(.)")

DEFINITION_HEADER = "151"


def split_name_quoted(line: str) -> Tuple[str, str]:
    m = _NAME_QUOTED_RE.match(line)
    if m is None:
        raise ProtocolViolation(f'Expected <name> "<text>", got {line!r}')
    return m.group(1), _ESCAPE_RE.sub(r"\1", m.group(2))


def decode_databases(lines: Iterable[str]) -> List[Database]:
    return [Database(name, desc) for name, desc in map(split_name_quoted, lines)]


def decode_strategies(lines: Iterable[str]) -> List[MatchingStrategy]:
    """Strategies in server order; a repeated name keeps its first entry."""
    seen = {}
    for name, desc in map(split_name_quoted, lines):
        strategy = MatchingStrategy(name, desc)
        seen.setdefault(strategy, strategy)
    return list(seen)


def decode_match_entries(lines: Iterable[str]) -> List[Match]:
    out = dict.fromkeys(Match(db, word) for db, word in map(split_name_quoted, lines))
    return list(out)


def decode_matches(lines: Iterable[str]) -> List[str]:
    """Matched words in server order with later duplicates dropped."""
    return list(dict.fromkeys(word for _, word in map(split_name_quoted, lines)))


def tokenize(line: str) -> List[str]:
    """Split a line into bare and double-quoted tokens (quotes removed)."""
    out: List[str] = []
    for quoted, bare in _TOKEN_RE.findall(line):
        out.append(_ESCAPE_RE.sub(r"\1", quoted) if bare == "" else bare)
    return out


def _parse_header(line: str) -> Tuple[str, str]:
    tokens = tokenize(line)
    if len(tokens) < 3 or tokens[0] != DEFINITION_HEADER:
        raise ProtocolViolation(f'Expected 151 "<word>" <database> header, got {line!r}')
    return tokens[1], tokens[2]


def decode_definitions(lines: Iterable[str]) -> List[Definition]:
    """Decode the wire lines of a DEFINE reply between ``150`` and the summary.

    Each definition is a ``151`` header, its text lines as sent (still
    dot-stuffed), and a lone ``.`` closing that definition. The closing line is
    dropped and the text joined with ``\\n``. A trailing definition with no
    closing line is finalized the same way.
    """
    out: List[Definition] = []
    header: Optional[Tuple[str, str]] = None
    text: List[str] = []

    for line in lines:
        if header is None:
            header = _parse_header(line)
            text = []
            continue
        if line == TERMINATOR:
            out.append(Definition(header[0], header[1], "\n".join(text)))
            header = None
            continue
        text.append(unstuff(line))

    if header is not None:
        out.append(Definition(header[0], header[1], "\n".join(text)))
    return out
