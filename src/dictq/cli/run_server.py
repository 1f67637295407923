from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dictq.config import load_settings
from dictq.errors import DictError
from dictq.server.server import DictServer


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="dictq serve", description="Run the local DICT server simulator.")
    p.add_argument("--corpus", default="", help="Corpus YAML (default: DICTQ_SERVER_CORPUS or packaged)")
    args = p.parse_args(argv)

    try:
        s = load_settings()
        server = DictServer(s.server_host, s.server_port, corpus_path=Path(args.corpus) if args.corpus else None)
    except DictError as e:
        print(f"[server] {e}", file=sys.stderr)
        return 2
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("[server] KeyboardInterrupt -> stopping")
        server.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
