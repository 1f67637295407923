import select
import socket
import threading
import time

import pytest

from dictq.client.connection import connect
from dictq.client.engine import ResponseEngine
from dictq.errors import CommandRejected, ConnectionRefused, ProtocolViolation, TransportError
from dictq.model import Database, Definition, Match


def _connect(server):
    return connect("127.0.0.1", server.port, connect_timeout_s=2.0)


def test_listing_against_simulator(server):
    with _connect(server) as conn:
        assert conn.banner.startswith("dictq simulator")
        assert [d.name for d in conn.list_databases()] == ["wn", "foldoc", "jargon"]
        assert [s.name for s in conn.list_strategies()] == ["exact", "prefix"]


def test_match_and_define(server):
    with _connect(server) as conn:
        assert conn.match("dog", "prefix", "*") == ["dog", "dogma"]
        assert conn.match_entries("daemon", "exact", "*") == [Match("foldoc", "daemon"), Match("jargon", "daemon")]
        assert conn.match("zzz", "prefix") == []

        defs = conn.define("daemon", Database.all())
        assert [d.database_name for d in defs] == ["foldoc", "jargon"]
        assert defs[0].body == "daemon\n\n  A background program."

        first = conn.define("daemon", Database.first_match())
        assert [d.database_name for d in first] == ["foldoc"]


def test_dot_lines_survive_the_wire(server):
    with _connect(server) as conn:
        assert conn.define("dot", "foldoc") == [Definition("dot", "foldoc", "dot\n.\n.. two dots")]


def test_rejections_leave_connection_usable(server):
    with _connect(server) as conn:
        with pytest.raises(CommandRejected) as ei:
            conn.match("dog", "prefix", "nosuchdb")
        assert ei.value.code == 550
        with pytest.raises(CommandRejected) as ei:
            conn.match("dog", "soundex", "wn")
        assert ei.value.code == 551
        with pytest.raises(CommandRejected) as ei:
            conn.define("dog", "nosuchdb")
        assert ei.value.code == 550
        assert conn.define("dog", "wn")[0].word == "dog"


def test_empty_server(server_factory):
    server = server_factory(databases=[], strategies=[], definitions={})
    with _connect(server) as conn:
        assert conn.list_databases() == []
        assert conn.list_strategies() == []
        assert conn.define("dog") == []


def test_slow_server_does_not_truncate_bodies(server_factory):
    server = server_factory(faults={"line_delay_s": 0.02})
    with _connect(server) as conn:
        defs = conn.define("daemon")
        assert len(defs) == 2
        assert conn.list_databases()[-1].name == "jargon"


def test_server_dropping_mid_body(server_factory):
    server = server_factory(faults={"drop_after_lines": 3})
    with _connect(server) as conn:
        with pytest.raises((ProtocolViolation, TransportError)):
            conn.list_databases()


def test_greeting_refusal(server_factory):
    server = server_factory(faults={"greeting": "421 Server shutting down"})
    with pytest.raises(ConnectionRefused) as ei:
        _connect(server)
    assert ei.value.code == 421


def test_unreachable_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    with pytest.raises(ConnectionRefused):
        connect("127.0.0.1", port, connect_timeout_s=1.0)


def test_abort_unblocks_waiting_exchange():
    # a server that greets and then never answers
    listener = socket.socket()
    listener.bind(("127.0.0.1", 0))
    listener.listen()
    port = listener.getsockname()[1]
    accepted = []

    def _serve():
        conn, _ = listener.accept()
        accepted.append(conn)
        conn.sendall(b"220 silent\r\n")

    t = threading.Thread(target=_serve, daemon=True)
    t.start()
    conn = connect("127.0.0.1", port, connect_timeout_s=2.0)
    errors = []

    def _call():
        try:
            conn.list_databases()
        except (TransportError, ProtocolViolation) as e:
            errors.append(e)

    caller = threading.Thread(target=_call, daemon=True)
    caller.start()
    time.sleep(0.2)
    conn.abort()
    caller.join(5.0)
    assert not caller.is_alive()
    assert len(errors) == 1
    conn.close()
    for c in accepted:
        c.close()
    listener.close()


def test_back_to_back_exchanges_never_interleave():
    client_sock, server_sock = socket.socketpair()
    overlaps = []
    handled = []

    def _read_command():
        # byte at a time, so select() sees anything sent after this line
        buf = b""
        while not buf.endswith(b"\n"):
            ch = server_sock.recv(1)
            if not ch:
                return None
            buf += ch
        return buf

    def _serve():
        with server_sock:
            while True:
                line = _read_command()
                if line is None:
                    return
                handled.append(line.strip())
                reply = [b"110 2 databases present", b'wn "WordNet"', b'jargon "Jargon"', b".", b"250 ok"]
                for chunk in reply:
                    # nothing else may arrive while this reply is still being written
                    ready, _, _ = select.select([server_sock], [], [], 0)
                    if ready:
                        overlaps.append(line)
                    server_sock.sendall(chunk + b"\r\n")
                    time.sleep(0.005)

    srv = threading.Thread(target=_serve, daemon=True)
    srv.start()

    engine = ResponseEngine(client_sock.makefile("rb"), client_sock.makefile("wb"))
    results = []

    def _worker():
        for _ in range(5):
            results.append(engine.list_databases())

    workers = [threading.Thread(target=_worker) for _ in range(3)]
    for w in workers:
        w.start()
    for w in workers:
        w.join(10.0)

    assert len(results) == 15
    assert all([d.name for d in r] == ["wn", "jargon"] for r in results)
    assert len(handled) == 15
    assert overlaps == []
    engine.close()
    client_sock.close()


def test_quoted_headword_reads_the_same_from_match_and_define(server_factory):
    server = server_factory(
        databases=[{"name": "wn", "description": 'WordNet "3.0"'}],
        definitions={"wn": {'say "hi"': "say hi\n  a greeting"}},
    )
    with _connect(server) as conn:
        assert conn.list_databases()[0].description == 'WordNet "3.0"'
        assert conn.match('say "hi"', "exact", "wn") == ['say "hi"']
        assert conn.define('say "hi"', "wn")[0].word == 'say "hi"'
