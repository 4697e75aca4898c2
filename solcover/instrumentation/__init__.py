"""Build-time side of solcover: Solidity source instrumentation.

  - AST walk producing the coverage skeleton and injection points
  - Source rewriting with probe calls
  - Multi-file orchestration and metadata aggregation
"""

from solcover.instrumentation.injector import InstrumentationTarget, apply_injections, inject
from solcover.instrumentation.orchestrator import (
    InstrumentationResult,
    aggregate,
    instrument,
    instrument_file,
    write_instrumented,
)
from solcover.instrumentation.parser import parse, parse_source
from solcover.instrumentation.registrar import ParseResult, ParseState

__all__ = [
    "InstrumentationResult",
    "InstrumentationTarget",
    "ParseResult",
    "ParseState",
    "aggregate",
    "apply_injections",
    "inject",
    "instrument",
    "instrument_file",
    "parse",
    "parse_source",
    "write_instrumented",
]
