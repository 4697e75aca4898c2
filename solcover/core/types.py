"""Shared enums and schemas used across the instrumentation and collection phases.

Everything in here is persisted between phases (the metadata file written at
instrumentation time is read back by the collector, possibly in another
process), so these are pydantic models rather than dataclasses. The
field names that reach the coverage report follow the istanbul JSON format.
"""

from __future__ import annotations

import enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class CoverageType(str, enum.Enum):
    """Kind of coverage entity a probe reports on."""

    STATEMENT = "statement"
    FUNCTION = "function"
    BRANCH = "branch"


# ── Locations ────────────────────────────────────────────────────────────────


class Position(BaseModel):
    """1-based line, 0-based (byte) column."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int


class Range(BaseModel):
    """Source range; ``end`` points one past the last byte."""

    model_config = ConfigDict(frozen=True)

    start: Position
    end: Position


class FunctionMapping(BaseModel):
    """istanbul ``fnMap`` entry."""

    name: str
    decl: Range
    loc: Range
    line: int


class BranchMapping(BaseModel):
    """istanbul ``branchMap`` entry. ``locations[i]`` is branch slot ``i``."""

    type: str = "if"
    loc: Range
    locations: list[Range] = Field(default_factory=list)
    line: int


# ── Instrumentation metadata ─────────────────────────────────────────────────


class Instrumentation(BaseModel):
    """What a single probe hash stands for."""

    type: CoverageType
    id: int
    target: str
    branch: int | None = None


class TargetSkeleton(BaseModel):
    """Coverage-map skeleton of one instrumented file."""

    path: str
    functions: list[FunctionMapping] = Field(default_factory=list)
    branches: list[BranchMapping] = Field(default_factory=list)
    statements: list[Range] = Field(default_factory=list)


class InstrumentationMetadata(BaseModel):
    """Aggregated result of an instrumentation pass (the "metadata file")."""

    targets: dict[str, TargetSkeleton] = Field(default_factory=dict)
    instrumentations: dict[str, Instrumentation] = Field(default_factory=dict)

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: str | Path) -> "InstrumentationMetadata":
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))


# ── Coverage report ──────────────────────────────────────────────────────────


class FileCoverage(BaseModel):
    """Per-file coverage in istanbul ``coverage-final.json`` shape."""

    model_config = ConfigDict(populate_by_name=True)

    path: str
    statement_map: dict[str, Range] = Field(default_factory=dict, alias="statementMap")
    fn_map: dict[str, FunctionMapping] = Field(default_factory=dict, alias="fnMap")
    branch_map: dict[str, BranchMapping] = Field(default_factory=dict, alias="branchMap")
    s: dict[str, int] = Field(default_factory=dict)
    f: dict[str, int] = Field(default_factory=dict)
    b: dict[str, list[int]] = Field(default_factory=dict)


CoverageReport = dict[str, FileCoverage]

HitRecord = dict[str, int]
