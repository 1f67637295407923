from __future__ import annotations

import argparse
import sys

QUERY_OPS = {
    "databases": "List databases on the server",
    "strategies": "List matching strategies",
    "match": "List words matching a pattern",
    "define": "Look up definitions of a word",
}
OTHER_CMDS = {
    "batch": "Run a YAML file of queries on one connection",
    "serve": "Run the local DICT server simulator",
}


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dictq",
        description="DICT (RFC 2229) protocol client",
        epilog="Run 'dictq <command> -h' for command options.",
    )
    sub = p.add_subparsers(dest="cmd", required=True)
    for name, help_ in {**QUERY_OPS, **OTHER_CMDS}.items():
        sub.add_parser(name, help=help_)
    return p


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    cmd = argv[0] if argv else ""

    if cmd in QUERY_OPS:
        from dictq.cli.run_query import main as _m

        raise SystemExit(_m(argv))

    if cmd == "batch":
        from dictq.cli.run_batch import main as _m

        raise SystemExit(_m(argv[1:]))

    if cmd == "serve":
        from dictq.cli.run_server import main as _m

        raise SystemExit(_m(argv[1:]))

    # help, or an argparse error for unknown commands
    _parser().parse_args(argv)
    raise SystemExit(2)


if __name__ == "__main__":
    main()
