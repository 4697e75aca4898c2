"""Per-file accumulator shared by every step of the AST walk.

The parser never composes return values; each visitor appends coverage
entries and injections to the one :class:`ParseState` of the file being
instrumented. Ids are list indices, so they are 0-based and monotonic per
category in visiting order.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from solcover.core.source import SourceIndex, SourceLocation
from solcover.core.types import BranchMapping, FunctionMapping, Range
from solcover.instrumentation.injections import (
    BlockDelimiter,
    BlockDelimiterInjection,
    BranchInjection,
    FunctionInjection,
    Injection,
    StatementInjection,
)

# solc leaves the terminating semicolon out of some statement ranges
_TRAILING_SEMICOLON = re.compile(rb"\s*;")

_CLOSE = BlockDelimiterInjection(BlockDelimiter.CLOSE)


@dataclass
class ParseResult:
    """Coverage-map skeleton plus the injections needed to realise it."""
    source: str
    injections: dict[int, list[Injection]]
    functions: list[FunctionMapping]
    branches: list[BranchMapping]
    statements: list[Range]

    @property
    def injection_count(self) -> int:
        return sum(len(items) for items in self.injections.values())


@dataclass
class ParseState:
    source: str
    contract: str | None = None
    branch: int | None = None
    injections: dict[int, list[Injection]] = field(default_factory=dict)
    functions: list[FunctionMapping] = field(default_factory=list)
    branches: list[BranchMapping] = field(default_factory=list)
    statements: list[Range] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.index = SourceIndex(self.source)

    # ── Injections ───────────────────────────────────────────────────

    def create_injection(self, offset: int, injection: Injection) -> None:
        """Queue ``injection`` at ``offset``.

        Injections sharing an offset end up in the text in reverse queue
        order, so closing braces are kept at the tail of the queue: a probe
        that starts right after a wrapped body must land outside its block.
        """
        pending = self.injections.setdefault(offset, [])
        if injection == _CLOSE:
            pending.append(injection)
            return
        position = len(pending)
        while position and pending[position - 1] == _CLOSE:
            position -= 1
        pending.insert(position, injection)

    def ensure_block(self, node: dict[str, Any]) -> None:
        """Wrap a non-block control-flow body in braces."""
        if node.get("nodeType") == "Block":
            return
        loc = SourceLocation.of(node)
        self.create_injection(loc.start, BlockDelimiterInjection(BlockDelimiter.OPEN))
        self.create_injection(self._statement_stop(loc), _CLOSE)

    def _statement_stop(self, loc: SourceLocation) -> int:
        stop = loc.stop
        if stop > 0 and self.index.data[stop - 1:stop] in (b";", b"}"):
            return stop
        match = _TRAILING_SEMICOLON.match(self.index.data, stop)
        return match.end() if match else stop

    # ── Coverage entries ─────────────────────────────────────────────

    def register_statement(self, node: dict[str, Any]) -> int:
        loc = SourceLocation.of(node)
        self.statements.append(self.index.range(loc.start, loc.stop))
        statement_id = len(self.statements) - 1
        self.create_injection(loc.start, StatementInjection(self._contract(), statement_id))
        return statement_id

    def register_function(self, node: dict[str, Any]) -> int:
        loc = SourceLocation.of(node)
        body = SourceLocation.of(node["body"])
        decl = self.index.range(loc.start, body.start)
        self.functions.append(FunctionMapping(
            name=node.get("name") or node.get("kind", ""),
            decl=decl,
            loc=self.index.range(loc.start, loc.stop),
            line=decl.start.line,
        ))
        function_id = len(self.functions) - 1
        self.create_injection(body.start + 1, FunctionInjection(self._contract(), function_id))
        return function_id

    def register_branch(self, node: dict[str, Any]) -> int:
        head = self.index.position(SourceLocation.of(node).start)
        self.branches.append(BranchMapping(
            type="if",
            loc=Range(start=head, end=head),
            locations=[],
            line=head.line,
        ))
        return len(self.branches) - 1

    def register_branch_location(self, node: dict[str, Any]) -> int:
        if self.branch is None:
            raise RuntimeError("Branch location registered outside of a branch")
        loc = SourceLocation.of(node)
        locations = self.branches[self.branch].locations
        locations.append(self.index.range(loc.start, loc.stop))
        slot = len(locations) - 1
        offset = loc.start + 1 if node.get("nodeType") == "Block" else loc.start
        self.create_injection(offset, BranchInjection(self._contract(), self.branch, slot))
        return slot

    @contextmanager
    def branch_scope(self, node: dict[str, Any]) -> Iterator[int]:
        """Open a new branch for ``node``; the enclosing one is restored on exit."""
        saved = self.branch
        self.branch = self.register_branch(node)
        try:
            yield self.branch
        finally:
            self.branch = saved

    def _contract(self) -> str:
        return self.contract or ""

    def result(self) -> ParseResult:
        return ParseResult(
            source=self.source,
            injections=self.injections,
            functions=self.functions,
            branches=self.branches,
            statements=self.statements,
        )
