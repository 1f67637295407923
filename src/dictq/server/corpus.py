from __future__ import annotations

import importlib.resources as importlib_resources
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from dictq.errors import ConfigError


class DatabaseEntry(BaseModel):
    name: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def _bare_token(cls, v: str) -> str:
        if not v or any(c.isspace() or c in "\"'\\" for c in v) or v in ("*", "!"):
            raise ValueError(f"bad database name: {v!r}")
        return v


class StrategyEntry(BaseModel):
    name: str
    description: str = ""


class Faults(BaseModel):
    # seconds slept between reply lines; exercises framing on slow links
    line_delay_s: float = Field(ge=0.0, le=5.0, default=0.0)
    # close the connection after this many reply lines of any one reply
    drop_after_lines: Optional[int] = Field(ge=0, default=None)
    # replaces the 220 banner, e.g. "421 Server shutting down"
    greeting: Optional[str] = None


class ServerCorpus(BaseModel):
    databases: List[DatabaseEntry] = Field(default_factory=list)
    strategies: List[StrategyEntry] = Field(default_factory=list)
    default_strategy: str = "exact"
    # database name -> headword -> definition text
    definitions: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    faults: Faults = Field(default_factory=Faults)

    @model_validator(mode="after")
    def _known_databases(self) -> "ServerCorpus":
        names = [d.name for d in self.databases]
        if len(names) != len(set(names)):
            raise ValueError("duplicate database names found")
        unknown = set(self.definitions) - set(names)
        if unknown:
            raise ValueError(f"definitions reference unknown databases: {sorted(unknown)}")
        return self


def parse_corpus(raw: Dict[str, Any], *, source: str = "<dict>") -> ServerCorpus:
    try:
        return ServerCorpus.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid server corpus: {source}\n{e}") from e


def load_corpus(path: Optional[Path] = None) -> ServerCorpus:
    """Load the simulator corpus.

    Order:
    1) Explicit path arg (if exists)
    2) DICTQ_SERVER_CORPUS env var (if set + exists)
    3) Packaged default (dictq/resources/server_corpus.yaml)
    """
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Corpus file not found: {path}")
        return parse_corpus(yaml.safe_load(path.read_text(encoding="utf-8")) or {}, source=str(path))

    env_path = os.getenv("DICTQ_SERVER_CORPUS", "").strip()
    if env_path:
        p = Path(env_path)
        if p.exists():
            return parse_corpus(yaml.safe_load(p.read_text(encoding="utf-8")) or {}, source=str(p))

    try:
        txt = importlib_resources.files("dictq").joinpath("resources/server_corpus.yaml").read_text(encoding="utf-8")
    except (OSError, ModuleNotFoundError):
        return ServerCorpus()
    return parse_corpus(yaml.safe_load(txt) or {}, source="dictq/resources/server_corpus.yaml")
