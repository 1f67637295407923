from __future__ import annotations

import argparse
import logging
from typing import Optional

from dictq.client.connection import DictConnection, connect
from dictq.config import Settings
from dictq.errors import (
    CommandRejected,
    ConfigError,
    ConnectionRefused,
    DictError,
    QueryPlanError,
)
from dictq.reporting.transcript import TranscriptLogger

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_USAGE = 2
EXIT_REFUSED = 3
EXIT_STREAM = 4


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def add_server_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--host", default="", help="DICT server host (default: DICTQ_HOST)")
    p.add_argument("--port", type=int, default=0, help="DICT server port (default: DICTQ_PORT)")


def open_connection(args: argparse.Namespace, s: Settings) -> DictConnection:
    recorder: Optional[TranscriptLogger] = None
    if s.transcript_dir is not None:
        recorder = TranscriptLogger(s.transcript_dir)
    return connect(
        args.host or s.host,
        args.port or s.port,
        connect_timeout_s=s.connect_timeout_s,
        recorder=recorder,
    )


def exit_code_for(err: DictError) -> int:
    if isinstance(err, CommandRejected):
        return EXIT_REJECTED
    if isinstance(err, (ConfigError, QueryPlanError)):
        return EXIT_USAGE
    if isinstance(err, ConnectionRefused):
        return EXIT_REFUSED
    # TransportError, ProtocolViolation
    return EXIT_STREAM
