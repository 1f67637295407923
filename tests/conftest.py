from __future__ import annotations

import io
from typing import Iterator, List

import pytest

from dictq.client.engine import ResponseEngine
from dictq.server.corpus import ServerCorpus, parse_corpus
from dictq.server.server import DictServer, start_in_thread


CORPUS = {
    "databases": [
        {"name": "wn", "description": "WordNet (r) 3.0 (2006)"},
        {"name": "foldoc", "description": "The Free On-line Dictionary of Computing"},
        {"name": "jargon", "description": "The Jargon File"},
    ],
    "strategies": [
        {"name": "exact", "description": "Match headwords exactly"},
        {"name": "prefix", "description": "Match prefixes"},
    ],
    "definitions": {
        "wn": {"dog": "dog\n  n 1: a domesticated canine\n", "dogma": "dogma\n  n 1: a doctrine\n"},
        "foldoc": {"daemon": "daemon\n\n  A background program.\n", "dot": "dot\n.\n.. two dots\n"},
        "jargon": {"daemon": "daemon /day'mn/\n  Lies dormant.\n"},
    },
}


def make_corpus(**overrides) -> ServerCorpus:
    raw = dict(CORPUS)
    raw.update(overrides)
    return parse_corpus(raw)


def scripted_engine(lines: List[str], recorder=None):
    """Engine over canned server output; returns (engine, reader, writer)."""
    reader = io.BytesIO("".join(ln + "\r\n" for ln in lines).encode("utf-8"))
    writer = io.BytesIO()
    return ResponseEngine(reader, writer, recorder=recorder), reader, writer


def sent(writer: io.BytesIO) -> List[str]:
    return writer.getvalue().decode("utf-8").split("\r\n")[:-1]


@pytest.fixture
def server_factory() -> Iterator:
    servers: List[DictServer] = []

    def _start(**overrides) -> DictServer:
        server = DictServer("127.0.0.1", 0, corpus=make_corpus(**overrides))
        start_in_thread(server)
        servers.append(server)
        return server

    yield _start
    for s in servers:
        s.stop()


@pytest.fixture
def server(server_factory) -> DictServer:
    return server_factory()
