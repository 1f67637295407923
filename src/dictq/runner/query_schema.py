from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from dictq.protocol.commands import is_atom

Op = Literal["databases", "strategies", "match", "define"]


class SessionMeta(BaseModel):
    name: str = "batch"


class Query(BaseModel):
    id: str
    op: Op
    word: Optional[str] = None
    database: str = "*"
    strategy: str = "."

    @field_validator("word")
    @classmethod
    def _single_line(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and ("\r" in v or "\n" in v):
            raise ValueError("word must be a single line")
        return v

    @field_validator("database", "strategy")
    @classmethod
    def _bare_token(cls, v: str) -> str:
        if not is_atom(v):
            raise ValueError(f"must be a single bare token, got {v!r}")
        return v

    @model_validator(mode="after")
    def _word_required(self) -> "Query":
        if self.op in ("match", "define") and not self.word:
            raise ValueError(f"query {self.id}: op '{self.op}' requires a word")
        return self


class QueryPlan(BaseModel):
    session: SessionMeta = Field(default_factory=SessionMeta)
    queries: List[Query] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_ids(self) -> "QueryPlan":
        ids = [q.id for q in self.queries]
        if len(ids) != len(set(ids)):
            raise ValueError("duplicate query.id values found")
        return self
