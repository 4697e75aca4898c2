"""Pending source insertions, keyed by byte offset in the parse state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from solcover.core.types import CoverageType


class BlockDelimiter(str, Enum):
    OPEN = "{"
    CLOSE = "}"


@dataclass(frozen=True)
class BlockDelimiterInjection:
    """Brace inserted to turn a single-statement body into a block."""
    delimiter: BlockDelimiter


@dataclass(frozen=True)
class HashMethodInjection:
    """Per-contract no-op method that receives probe hashes."""
    contract: str


@dataclass(frozen=True)
class StatementInjection:
    contract: str
    id: int

    coverage_type = CoverageType.STATEMENT


@dataclass(frozen=True)
class FunctionInjection:
    contract: str
    id: int

    coverage_type = CoverageType.FUNCTION


@dataclass(frozen=True)
class BranchInjection:
    contract: str
    id: int
    branch: int

    coverage_type = CoverageType.BRANCH


ProbeInjection = Union[StatementInjection, FunctionInjection, BranchInjection]

Injection = Union[
    BlockDelimiterInjection,
    HashMethodInjection,
    StatementInjection,
    FunctionInjection,
    BranchInjection,
]
