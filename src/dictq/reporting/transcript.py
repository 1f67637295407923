from __future__ import annotations

import csv
import json
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from dictq.common.time import utc_now_iso

TRANSCRIPT_SCHEMA_VERSION = 1

# Stable CSV column order (append-only evolution: only add new columns at the end)
CSV_COLUMNS: List[str] = [
    "schema_version",
    "timestamp",
    "command",
    "status_code",
    "outcome",
    "body_lines",
    "results",
    "duration_ms",
    "message",
    "reached_state",
]


@dataclass(frozen=True)
class ExchangeEvent:
    schema_version: int
    timestamp: str
    command: str
    # first status line of the reply; None if the exchange failed before it
    status_code: Optional[int]
    # ok | empty | rejected | protocol_violation | transport_error
    outcome: str
    body_lines: int
    results: int
    duration_ms: int
    message: str
    # last ExchangeState value before the engine went back to idle
    reached_state: str = ""

    @staticmethod
    def make(
        *,
        command: str,
        status_code: Optional[int],
        outcome: str,
        duration_ms: int,
        body_lines: int = 0,
        results: int = 0,
        message: str = "",
        reached_state: str = "",
    ) -> "ExchangeEvent":
        return ExchangeEvent(
            schema_version=TRANSCRIPT_SCHEMA_VERSION,
            timestamp=utc_now_iso(),
            command=command,
            status_code=status_code,
            outcome=outcome,
            body_lines=int(body_lines),
            results=int(results),
            duration_ms=int(duration_ms),
            message=message,
            reached_state=reached_state,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ExchangeRecorder(Protocol):
    def log(self, ev: ExchangeEvent) -> None: ...


class TranscriptLogger:
    """Append-only logger: one JSONL row per exchange + mirrored CSV row."""

    def __init__(self, out_dir: Path) -> None:
        self.out_dir = out_dir
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.jsonl_path = self.out_dir / "exchanges.jsonl"
        self.csv_path = self.out_dir / "exchanges.csv"
        self._lock = threading.Lock()

        if not self.csv_path.exists():
            with self.csv_path.open("w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
                writer.writeheader()

    def log(self, ev: ExchangeEvent) -> None:
        row = ev.to_dict()
        with self._lock:
            with self.jsonl_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(row, ensure_ascii=False) + "\n")

            with self.csv_path.open("a", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
                writer.writerow({k: row.get(k, "") for k in CSV_COLUMNS})


class MemoryRecorder:
    """Keeps events in a list; handy for tests and the batch runner."""

    def __init__(self) -> None:
        self.events: List[ExchangeEvent] = []

    def log(self, ev: ExchangeEvent) -> None:
        self.events.append(ev)
