from __future__ import annotations

import argparse
import sys
from typing import List

from dictq.cli.common import EXIT_OK, add_server_args, exit_code_for, open_connection, setup_logging
from dictq.config import load_settings
from dictq.errors import DictError
from dictq.model import ALL_DATABASES, DEFAULT_STRATEGY


def _print_pairs(rows: List[tuple]) -> None:
    width = max((len(name) for name, _ in rows), default=0)
    for name, desc in rows:
        print(f"{name.ljust(width)}  {desc}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dictq", description="Query a DICT (RFC 2229) server.")
    sub = p.add_subparsers(dest="op", required=True)

    p_db = sub.add_parser("databases", help="List databases on the server")
    add_server_args(p_db)

    p_st = sub.add_parser("strategies", help="List matching strategies")
    add_server_args(p_st)

    p_m = sub.add_parser("match", help="List words matching a pattern")
    p_m.add_argument("word")
    p_m.add_argument("--strategy", default=DEFAULT_STRATEGY)
    p_m.add_argument("--db", default=ALL_DATABASES, help="'*' = all, '!' = first with a match")
    p_m.add_argument("--entries", action="store_true", help="Show the database of each match")
    add_server_args(p_m)

    p_d = sub.add_parser("define", help="Look up definitions of a word")
    p_d.add_argument("word")
    p_d.add_argument("--db", default=ALL_DATABASES, help="'*' = all, '!' = first with a definition")
    add_server_args(p_d)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        s = load_settings()
        setup_logging(s.log_level)
        with open_connection(args, s) as conn:
            if args.op == "databases":
                _print_pairs([(d.name, d.description) for d in conn.list_databases()])
            elif args.op == "strategies":
                _print_pairs([(st.name, st.description) for st in conn.list_strategies()])
            elif args.op == "match":
                if args.entries:
                    _print_pairs([(m.database, m.word) for m in conn.match_entries(args.word, args.strategy, args.db)])
                else:
                    for word in conn.match(args.word, args.strategy, args.db):
                        print(word)
            elif args.op == "define":
                defs = conn.define(args.word, args.db)
                if not defs:
                    print(f"[dictq] no definitions for {args.word!r}")
                for d in defs:
                    print(f"--- {d.word} [{d.database_name}]")
                    print(d.body)
    except ValueError as e:
        print(f"[dictq] {e}", file=sys.stderr)
        return 2
    except DictError as e:
        print(f"[dictq] {type(e).__name__}: {e}", file=sys.stderr)
        return exit_code_for(e)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
