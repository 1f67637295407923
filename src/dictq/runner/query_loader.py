from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from dictq.errors import QueryPlanError
from dictq.runner.query_schema import QueryPlan


@dataclass(frozen=True)
class QuerySpec:
    id: str
    op: str
    word: Optional[str]
    database: str
    strategy: str


@dataclass(frozen=True)
class Batch:
    name: str
    queries: List[QuerySpec]


def load_batch(path: Path) -> Batch:
    """Load + validate a batch query file.

    Validation:
    - Pydantic schema validation (required keys, op names, word present)
    - Unique query IDs
    """
    if not path.exists():
        raise QueryPlanError(f"Query file not found: {path}")
    try:
        raw: Dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise QueryPlanError(f"Invalid YAML in query file: {path}\n{e}") from e

    try:
        parsed = QueryPlan.model_validate(raw)
    except ValidationError as e:
        # Re-raise with a cleaner message for CLI usage
        raise QueryPlanError(f"Invalid query file: {path}\n{e}") from e

    queries = [
        QuerySpec(id=q.id, op=q.op, word=q.word, database=q.database, strategy=q.strategy)
        for q in parsed.queries
    ]
    return Batch(name=parsed.session.name, queries=queries)
