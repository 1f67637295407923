from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from dictq.errors import ConfigError

DEFAULT_PORT = 2628


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    connect_timeout_s: float
    log_level: str
    transcript_dir: Optional[Path]
    server_host: str
    server_port: int


def _int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def load_settings() -> Settings:
    load_dotenv(override=False)

    host = os.getenv("DICTQ_HOST", "dict.org")
    port = _int("DICTQ_PORT", str(DEFAULT_PORT))
    connect_timeout_s = _float("DICTQ_CONNECT_TIMEOUT_S", "10.0")
    log_level = os.getenv("DICTQ_LOG_LEVEL", "WARNING").upper()
    transcript = os.getenv("DICTQ_TRANSCRIPT_DIR", "").strip()
    server_host = os.getenv("DICTQ_SERVER_HOST", "127.0.0.1")
    server_port = _int("DICTQ_SERVER_PORT", str(DEFAULT_PORT))

    return Settings(
        host=host,
        port=port,
        connect_timeout_s=connect_timeout_s,
        log_level=log_level,
        transcript_dir=Path(transcript) if transcript else None,
        server_host=server_host,
        server_port=server_port,
    )
