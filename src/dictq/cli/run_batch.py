from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dictq.cli.common import EXIT_OK, EXIT_REJECTED, add_server_args, exit_code_for, open_connection, setup_logging
from dictq.common.time import utc_ts_compact
from dictq.config import load_settings
from dictq.errors import DictError
from dictq.runner.query_loader import load_batch
from dictq.runner.runner import BatchRunner, write_summary


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="dictq batch", description="Run a YAML file of DICT queries on one connection.")
    p.add_argument("--plan", required=True, help="Path to query YAML")
    p.add_argument("--out", default="", help="Results JSON (default: runs/<timestamp>/results.json)")
    add_server_args(p)
    args = p.parse_args(argv)

    try:
        s = load_settings()
        setup_logging(s.log_level)
        batch = load_batch(Path(args.plan))
        with open_connection(args, s) as conn:
            summary = BatchRunner(conn).run_batch(batch)
    except DictError as e:
        print(f"[dictq] {type(e).__name__}: {e}", file=sys.stderr)
        return exit_code_for(e)

    out = Path(args.out) if args.out else Path("runs") / utc_ts_compact() / "results.json"
    write_summary(out, summary)
    print(f"[dictq] {len(summary.results)} queries, all_ok={summary.all_ok}; wrote {out}")
    return EXIT_OK if summary.all_ok else EXIT_REJECTED


if __name__ == "__main__":
    raise SystemExit(main())
