from __future__ import annotations

from dataclasses import dataclass, field

ALL_DATABASES = "*"
FIRST_MATCH = "!"
DEFAULT_STRATEGY = "."


@dataclass(frozen=True)
class Database:
    name: str
    description: str = ""

    @staticmethod
    def all() -> "Database":
        """Pseudo-database: search every database on the server."""
        return Database(ALL_DATABASES, "All databases")

    @staticmethod
    def first_match() -> "Database":
        """Pseudo-database: stop at the first database with a result."""
        return Database(FIRST_MATCH, "First matching database")


@dataclass(frozen=True)
class MatchingStrategy:
    # identity is the name; description is informational only
    name: str
    description: str = field(default="", compare=False)


@dataclass(frozen=True)
class Match:
    database: str
    word: str


@dataclass(frozen=True)
class Definition:
    word: str
    database_name: str
    body: str
