from __future__ import annotations

import re

SHOW_DB = "SHOW DB"
SHOW_STRATEGIES = "SHOW STRATEGIES"
QUIT = "QUIT"

_ATOM_RE = re.compile(r'^[^\s"\'\\]+$')


def quote(text: str) -> str:
    """Wrap ``text`` as a DICT quoted string, escaping ``\\`` and ``"``."""
    if "\r" in text or "\n" in text:
        raise ValueError(f"Argument must not contain CR or LF: {text!r}")
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def is_atom(name: str) -> bool:
    return _ATOM_RE.match(name) is not None


def atom(name: str, *, what: str) -> str:
    """Validate a bare protocol token such as a database or strategy name."""
    if not is_atom(name):
        raise ValueError(f"Invalid {what} name: {name!r}")
    return name


def match(database: str, strategy: str, word: str) -> str:
    return f"MATCH {atom(database, what='database')} {atom(strategy, what='strategy')} {quote(word)}"


def define(database: str, word: str) -> str:
    return f"DEFINE {atom(database, what='database')} {quote(word)}"
