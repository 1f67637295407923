from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from dictq.client.connection import DictConnection
from dictq.errors import CommandRejected
from dictq.runner.query_loader import Batch, QuerySpec


@dataclass(frozen=True)
class QueryResult:
    id: str
    op: str
    ok: bool
    error_code: Optional[int]
    message: str
    results: List[Any]
    duration_ms: int


@dataclass
class BatchSummary:
    name: str
    all_ok: bool
    results: List[QueryResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "all_ok": self.all_ok,
            "results": [asdict(r) for r in self.results],
        }


def _plain(value: Any) -> Any:
    return asdict(value) if is_dataclass(value) else value


class BatchRunner:
    """Runs a batch of queries over one connection.

    A CommandRejected is recorded against its query and the batch goes on;
    transport and protocol failures leave the stream unusable and propagate.
    """

    def __init__(self, conn: DictConnection) -> None:
        self.conn = conn

    def _execute(self, q: QuerySpec) -> List[Any]:
        if q.op == "databases":
            return self.conn.list_databases()
        if q.op == "strategies":
            return self.conn.list_strategies()
        if q.op == "match":
            return self.conn.match_entries(q.word or "", q.strategy, q.database)
        if q.op == "define":
            return self.conn.define(q.word or "", q.database)
        raise ValueError(f"Unknown op: {q.op}")

    def run_query(self, q: QuerySpec) -> QueryResult:
        t0 = time.monotonic()
        try:
            values = self._execute(q)
        except CommandRejected as e:
            dt_ms = int((time.monotonic() - t0) * 1000)
            return QueryResult(q.id, q.op, False, e.code, str(e), [], dt_ms)
        dt_ms = int((time.monotonic() - t0) * 1000)
        msg = "OK" if values else "No results"
        return QueryResult(q.id, q.op, True, None, msg, [_plain(v) for v in values], dt_ms)

    def run_batch(self, batch: Batch) -> BatchSummary:
        results = [self.run_query(q) for q in batch.queries]
        return BatchSummary(name=batch.name, all_ok=all(r.ok for r in results), results=results)


def write_summary(path: Path, summary: BatchSummary) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
