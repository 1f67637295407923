from pathlib import Path

import pytest

from dictq.cli.common import EXIT_REFUSED, EXIT_REJECTED
from dictq.cli.main import main
from dictq.cli.run_query import main as run_query


def _args(server):
    return ["--host", "127.0.0.1", "--port", str(server.port)]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DICTQ_TRANSCRIPT_DIR", raising=False)


def test_define_prints_bodies(server, capsys):
    assert run_query(["define", "dog", "--db", "wn", *_args(server)]) == 0
    out = capsys.readouterr().out
    assert "--- dog [wn]" in out
    assert "a domesticated canine" in out


def test_match_entries(server, capsys):
    assert run_query(["match", "daemon", "--entries", *_args(server)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["foldoc  daemon", "jargon  daemon"]


def test_rejected_exit_code(server, capsys):
    assert run_query(["define", "dog", "--db", "nosuchdb", *_args(server)]) == EXIT_REJECTED
    assert "CommandRejected" in capsys.readouterr().err


def test_refused_exit_code(server_factory, capsys):
    server = server_factory(faults={"greeting": "530 Access denied"})
    assert run_query(["databases", *_args(server)]) == EXIT_REFUSED


def test_transcript_dir_from_env(server, monkeypatch, tmp_path: Path):
    monkeypatch.setenv("DICTQ_TRANSCRIPT_DIR", str(tmp_path / "tx"))
    assert run_query(["strategies", *_args(server)]) == 0
    assert "SHOW STRATEGIES" in (tmp_path / "tx" / "exchanges.jsonl").read_text(encoding="utf-8")


def test_top_level_dispatch(server, capsys):
    with pytest.raises(SystemExit) as ei:
        main(["databases", *_args(server)])
    assert ei.value.code == 0
    assert "foldoc" in capsys.readouterr().out
