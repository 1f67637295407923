import io

import pytest

from dictq.errors import ProtocolViolation, TransportError
from dictq.protocol.lines import MAX_LINE, LineSource, encode_line, read_body, stuff, unstuff
from dictq.protocol.status import StatusLine, parse_status


def _source(data: bytes) -> LineSource:
    return LineSource(io.BytesIO(data))


class _BrokenReader:
    def readline(self, size=-1):
        raise ConnectionResetError("reset by peer")


def test_parse_status_fields():
    s = parse_status("110 3 databases present")
    assert s == StatusLine(code=110, status_class=1, text="3 databases present")
    assert s.count == 3
    assert parse_status("250 ok").count is None


@pytest.mark.parametrize("line", [None, "", "25 ok", "2500 ok", "abc def", "250", "250\tok", " 250 ok", "099 low", "600 high", "٢٥٠ ok"])
def test_parse_status_rejects(line):
    with pytest.raises(ProtocolViolation):
        parse_status(line)


def test_read_line_strips_crlf_and_bare_lf():
    src = _source(b"one\r\ntwo\n")
    assert src.read_line() == "one"
    assert src.read_line() == "two"
    assert src.read_line() is None


def test_partial_line_at_eof_is_transport_error():
    src = _source(b"250 o")
    with pytest.raises(TransportError):
        src.read_line()


def test_io_fault_is_transport_error():
    with pytest.raises(TransportError):
        LineSource(_BrokenReader()).read_line()


def test_overlong_line_is_violation():
    src = _source(b"x" * (MAX_LINE + 10) + b"\r\n")
    with pytest.raises(ProtocolViolation):
        src.read_line()


def test_read_body_unstuffs_every_line_and_stops_at_terminator():
    src = _source(b"line1\r\n..dotline\r\nplain\r\n..escaped\r\n.\r\n250 ok\r\n")
    assert read_body(src) == ["line1", ".dotline", "plain", ".escaped"]
    # the summary line is left for the caller
    assert src.read_line() == "250 ok"


def test_read_body_truncated_stream_is_violation():
    src = _source(b'wn "WordNet"\r\nfoldoc "FOLDOC"\r\n')
    with pytest.raises(ProtocolViolation):
        read_body(src)


def test_dot_stuffing_round_trip():
    assert stuff(".escaped") == "..escaped"
    assert unstuff(stuff(".escaped")) == ".escaped"
    assert stuff("plain") == "plain"


def test_encode_line_rejects_embedded_newlines():
    assert encode_line("SHOW DB") == b"SHOW DB\r\n"
    with pytest.raises(ValueError):
        encode_line("SHOW DB\r\nQUIT")
