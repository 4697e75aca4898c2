"""Shared fixtures for the solcover test suite.

The parser consumes solc's compact JSON AST. Rather than requiring a solc
binary, fixtures build the relevant subset of that AST by hand; ``src``
attributes are computed from the fixture source so byte offsets are exact.
"""

from __future__ import annotations

import re
from typing import Any

import pytest

from solcover.core.config import get_settings
from solcover.core.types import (
    BranchMapping,
    CoverageType,
    FunctionMapping,
    Instrumentation,
    InstrumentationMetadata,
    Position,
    Range,
    TargetSkeleton,
)


# ── AST construction ─────────────────────────────────────────────────────────


class AstBuilder:
    """Build solc-style AST nodes by locating snippets in a source."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.data = source.encode("utf-8")

    def offset(self, snippet: str, after: str | None = None) -> int:
        start = self.data.index(after.encode("utf-8")) if after else 0
        return self.data.index(snippet.encode("utf-8"), start)

    def node(
        self,
        node_type: str,
        start: str,
        end: str | None = None,
        *,
        after: str | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        """Node spanning from ``start`` to the end of the next ``end`` (or ``start`` itself)."""
        offset = self.offset(start, after)
        if end is None:
            stop = offset + len(start.encode("utf-8"))
        else:
            encoded = end.encode("utf-8")
            stop = self.data.index(encoded, offset + 1) + len(encoded)
        return {"nodeType": node_type, "src": f"{offset}:{stop - offset}:0", **fields}

    def unit(self, *nodes: dict[str, Any]) -> dict[str, Any]:
        return {"nodeType": "SourceUnit", "src": f"0:{len(self.data)}:0", "nodes": list(nodes)}

    def pragma(self) -> dict[str, Any]:
        return self.node("PragmaDirective", "pragma solidity ^0.8.0;")

    def contract(self, name: str, *members: dict[str, Any], kind: str = "contract", bases=None) -> dict[str, Any]:
        start = f"{kind} {name}"
        offset = self.offset(start)
        stop = self.data.rindex(b"}") + 1
        return {
            "nodeType": "ContractDefinition",
            "src": f"{offset}:{stop - offset}:0",
            "name": name,
            "contractKind": kind,
            "baseContracts": bases or [],
            "nodes": list(members),
        }

    @staticmethod
    def span(node_type: str, offset: int, text: str, **fields: Any) -> dict[str, Any]:
        return {"nodeType": node_type, "src": f"{offset}:{len(text.encode('utf-8'))}:0", **fields}

    def assignment(self, text: str, after: str | None = None, right: dict[str, Any] | None = None) -> dict[str, Any]:
        """``ExpressionStatement`` wrapping an ``Assignment`` (solc leaves out the ';')."""
        offset = self.offset(text, after)
        lhs, rhs = text.split(" = ", 1)
        rhs_offset = offset + len(lhs.encode("utf-8")) + 3
        assignment = self.span(
            "Assignment",
            offset,
            text,
            operator="=",
            leftHandSide=self.span("Identifier", offset, lhs),
            rightHandSide=right or self.span("Literal", rhs_offset, rhs),
        )
        return self.span("ExpressionStatement", offset, text, expression=assignment)


_HASH_METHOD = re.compile(r"function c_[0-9a-f]{8}\(bytes32 c_c_[0-9a-f]{8}\) private pure \{\}")
_PROBE = re.compile(r"c_[0-9a-f]{8}\(0x[0-9a-f]{64}\); /\* (\w+) ([\d:]+) \*/")


def normalize(text: str) -> str:
    """Replace random probe hashes with stable placeholders."""
    return _PROBE.sub(r"<\1 \2>", _HASH_METHOD.sub("<hash-method>", text))


# ── Fixture sources ──────────────────────────────────────────────────────────


SOURCE_A = """pragma solidity ^0.8.0;

contract A {
    function f() public {
        uint x = 1;
    }
}
"""

SOURCE_B = """pragma solidity ^0.8.0;

contract B {
    uint x;

    function g(bool a) public {
        if (a) {
            x = 1;
        } else {
            x = 2;
        }
    }
}
"""

SOURCE_C = """pragma solidity ^0.8.0;

contract C {
    uint x;

    function h(bool a) public {
        if (a) x = 1;
    }
}
"""

SOURCE_INTERFACE = """pragma solidity ^0.8.0;

interface I {
    function f() external;
}
"""


def _function(b: AstBuilder, name: str, end: str, statements: list[dict[str, Any]], **fields: Any) -> dict[str, Any]:
    header = f"function {name}("
    return b.node(
        "FunctionDefinition",
        header,
        end,
        name=name,
        kind="function",
        modifiers=fields.pop("modifiers", []),
        body=b.node("Block", "{", end, after=header, statements=statements),
        **fields,
    )


def ast_a() -> dict[str, Any]:
    b = AstBuilder(SOURCE_A)
    declaration = b.node("VariableDeclarationStatement", "uint x = 1")
    return b.unit(b.pragma(), b.contract("A", _function(b, "f", "\n    }", [declaration])))


def ast_b() -> dict[str, Any]:
    b = AstBuilder(SOURCE_B)
    branch = b.node(
        "IfStatement",
        "if (a)",
        "x = 2;\n        }",
        condition=b.node("Identifier", "a", after="if ("),
        trueBody=b.node("Block", "{", "}", after="if (a)", statements=[b.assignment("x = 1")]),
        falseBody=b.node("Block", "{", "}", after="else", statements=[b.assignment("x = 2")]),
    )
    return b.unit(
        b.pragma(),
        b.contract(
            "B",
            b.node("VariableDeclaration", "uint x;", name="x", stateVariable=True),
            _function(b, "g", "        }\n    }", [branch]),
        ),
    )


def ast_c() -> dict[str, Any]:
    b = AstBuilder(SOURCE_C)
    branch = b.node(
        "IfStatement",
        "if (a) x = 1",
        condition=b.node("Identifier", "a", after="if ("),
        trueBody=b.assignment("x = 1", after="if (a)"),
    )
    return b.unit(
        b.pragma(),
        b.contract(
            "C",
            b.node("VariableDeclaration", "uint x;", name="x", stateVariable=True),
            _function(b, "h", "\n    }", [branch]),
        ),
    )


def ast_interface() -> dict[str, Any]:
    b = AstBuilder(SOURCE_INTERFACE)
    declaration = b.node("FunctionDefinition", "function f() external;", name="f", kind="function", body=None)
    return b.unit(b.pragma(), b.contract("I", declaration, kind="interface"))


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def ast_builder():
    """``AstBuilder`` class, for tests that assemble their own AST."""
    return AstBuilder


@pytest.fixture(name="normalize")
def normalize_fixture():
    return normalize


@pytest.fixture
def scenario_a() -> tuple[str, dict[str, Any]]:
    return SOURCE_A, ast_a()


@pytest.fixture
def scenario_b() -> tuple[str, dict[str, Any]]:
    return SOURCE_B, ast_b()


@pytest.fixture
def scenario_c() -> tuple[str, dict[str, Any]]:
    return SOURCE_C, ast_c()


@pytest.fixture
def scenario_interface() -> tuple[str, dict[str, Any]]:
    return SOURCE_INTERFACE, ast_interface()


@pytest.fixture
def sample_metadata() -> InstrumentationMetadata:
    """Metadata for one file with one statement, one function and one two-way branch."""
    def rng(line: int) -> Range:
        return Range(start=Position(line=line, column=4), end=Position(line=line, column=20))

    return InstrumentationMetadata(
        targets={
            "A.sol": TargetSkeleton(
                path="A.sol",
                statements=[rng(5)],
                functions=[FunctionMapping(name="f", decl=rng(4), loc=rng(4), line=4)],
                branches=[BranchMapping(loc=rng(6), locations=[rng(6), rng(8)], line=6)],
            ),
        },
        instrumentations={
            "0x01a1": Instrumentation(type=CoverageType.STATEMENT, id=0, target="A.sol"),
            "0x02b2": Instrumentation(type=CoverageType.FUNCTION, id=0, target="A.sol"),
            "0x03c3": Instrumentation(type=CoverageType.BRANCH, id=0, target="A.sol", branch=0),
            "0x04d4": Instrumentation(type=CoverageType.BRANCH, id=0, target="A.sol", branch=1),
        },
    )
