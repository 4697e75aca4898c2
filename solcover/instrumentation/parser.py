"""Coverage parser — finds every coverable construct in a Solidity AST.

Walks the compact JSON AST produced by solc and records, per file:
  - statement, function and branch coverage entries (the istanbul skeleton)
  - the byte offsets at which probes, hash methods and braces must be inserted

Any node kind not listed here aborts the whole file with
:class:`UnsupportedNodeError`; instrumenting a file half-way would produce
metadata that disagrees with the compiled bytecode.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from solcover.core.errors import UnsupportedNodeError
from solcover.core.source import SourceLocation
from solcover.instrumentation.injections import HashMethodInjection
from solcover.instrumentation.registrar import ParseResult, ParseState

logger = logging.getLogger(__name__)


# Node kinds that never hold executable code of their own.
_PASSIVE_NODES = frozenset({
    # declarations
    "PragmaDirective",
    "ImportDirective",
    "VariableDeclaration",
    "EventDefinition",
    "ErrorDefinition",
    "StructDefinition",
    "EnumDefinition",
    "UsingForDirective",
    "UserDefinedValueTypeDefinition",
    "ModifierInvocation",
    "InheritanceSpecifier",
    "PlaceholderStatement",
    # type names
    "ElementaryTypeName",
    "UserDefinedTypeName",
    "ArrayTypeName",
    "Mapping",
    "FunctionTypeName",
    "IdentifierPath",
    # operand expressions (reached as call targets)
    "Identifier",
    "MemberAccess",
    "IndexAccess",
    "IndexRangeAccess",
    "Literal",
    "TupleExpression",
    "ElementaryTypeNameExpression",
    "FunctionCallOptions",
    "Conditional",
})

_LEAF_STATEMENTS = frozenset({
    "Return",
    "VariableDeclarationStatement",
    "UnaryOperation",
    "InlineAssembly",
    "Continue",
    "Break",
    "EmitStatement",
    "RevertStatement",
})


class SolidityCoverageParser:
    """Walk a solc AST and fill a :class:`ParseState`."""

    def __init__(self) -> None:
        self._visitors: dict[str, Callable[[ParseState, dict[str, Any]], None]] = {
            "SourceUnit": self._visit_source_unit,
            "ContractDefinition": self._visit_contract,
            "FunctionDefinition": self._visit_function,
            "ModifierDefinition": self._visit_modifier,
            "Block": self._visit_block,
            "UncheckedBlock": self._visit_block,
            "IfStatement": self._visit_if,
            "ForStatement": self._visit_loop,
            "WhileStatement": self._visit_loop,
            "DoWhileStatement": self._visit_loop,
            "TryStatement": self._visit_try,
            "NewExpression": self._visit_new,
            "FunctionCall": self._visit_function_call,
            "ExpressionStatement": self._visit_expression_statement,
            "BinaryOperation": self._visit_binary_operation,
            "Assignment": self._visit_binary_operation,
        }

    def parse(self, source: str, ast: dict[str, Any]) -> ParseResult:
        state = ParseState(source=source)
        self.visit(state, ast)
        return state.result()

    def visit(self, state: ParseState, node: dict[str, Any]) -> None:
        node_type = node.get("nodeType", "")
        visitor = self._visitors.get(node_type)
        if visitor is not None:
            visitor(state, node)
        elif node_type in _LEAF_STATEMENTS:
            state.register_statement(node)
        elif node_type not in _PASSIVE_NODES:
            raise UnsupportedNodeError(node_type, node.get("src", ""))

    # ── Structure ────────────────────────────────────────────────────

    def _visit_source_unit(self, state: ParseState, node: dict[str, Any]) -> None:
        for child in node.get("nodes", []):
            self.visit(state, child)

    def _visit_contract(self, state: ParseState, node: dict[str, Any]) -> None:
        # Interfaces don't have any relevant instrumentation.
        if node.get("contractKind") == "interface":
            return

        # Base constructor arguments may contain string literals with "{",
        # so the body brace is searched for after the last base specifier.
        start = 0
        for base in node.get("baseContracts") or []:
            start = max(start, SourceLocation.of(base).end)
        if not start:
            start = SourceLocation.of(node).start

        brace = state.index.find("{", start)
        state.contract = node.get("name", "")
        state.create_injection(brace + 1, HashMethodInjection(state.contract))

        for child in node.get("nodes", []):
            self.visit(state, child)

        state.contract = None

    def _visit_function(self, state: ParseState, node: dict[str, Any]) -> None:
        # Unimplemented (abstract / interface-like) and free functions are
        # skipped: the latter cannot reach a contract's hash method.
        if not node.get("body") or state.contract is None:
            return

        for modifier in node.get("modifiers") or []:
            self.visit(state, modifier)

        state.register_function(node)
        self.visit(state, node["body"])

    def _visit_modifier(self, state: ParseState, node: dict[str, Any]) -> None:
        if not node.get("body"):
            return

        state.register_function(node)
        self.visit(state, node["body"])

    def _visit_block(self, state: ParseState, node: dict[str, Any]) -> None:
        for statement in node.get("statements", []):
            self.visit(state, statement)

    # ── Control flow ─────────────────────────────────────────────────

    def _visit_if(self, state: ParseState, node: dict[str, Any]) -> None:
        with state.branch_scope(node):
            true_body = node["trueBody"]
            self.visit(state, true_body)
            state.register_branch_location(true_body)
            state.ensure_block(true_body)

            false_body = node.get("falseBody")
            if not false_body:
                return

            if false_body.get("nodeType") == "IfStatement":
                if false_body.get("falseBody"):
                    # else-if-else chain: a branch of its own
                    self.visit(state, false_body)
                else:
                    # Only the body is walked so the synthetic else of a
                    # trailing else-if isn't counted twice.
                    nested = false_body["trueBody"]
                    self.visit(state, nested)
                    state.ensure_block(nested)
            else:
                self.visit(state, false_body)

            state.register_branch_location(false_body)
            state.ensure_block(false_body)

    def _visit_loop(self, state: ParseState, node: dict[str, Any]) -> None:
        body = node["body"]
        self.visit(state, body)
        state.ensure_block(body)

    def _visit_try(self, state: ParseState, node: dict[str, Any]) -> None:
        # The first clause is the success block, the rest are catch clauses.
        for clause in node.get("clauses", []):
            self.visit(state, clause["block"])

    # ── Expressions ──────────────────────────────────────────────────

    def _visit_new(self, state: ParseState, node: dict[str, Any]) -> None:
        self.visit(state, node["typeName"])

    def _visit_function_call(self, state: ParseState, node: dict[str, Any]) -> None:
        callee = node["expression"]
        # A chained call is one statement; only the outermost call counts.
        if callee.get("nodeType") != "FunctionCall":
            state.register_statement(node)
        self.visit(state, callee)

    def _visit_expression_statement(self, state: ParseState, node: dict[str, Any]) -> None:
        expression = node.get("expression")
        if not expression:
            return
        if expression.get("nodeType") == "Conditional":
            # A ternary statement counts once; its arms get no probes.
            state.register_statement(expression)
            _warn_ternary(state, expression)
            return
        self.visit(state, expression)

    def _visit_binary_operation(self, state: ParseState, node: dict[str, Any]) -> None:
        state.register_statement(node)

        right = node.get("rightExpression") or node.get("rightHandSide") or {}
        if right.get("nodeType") == "Conditional":
            _warn_ternary(state, node)


def _warn_ternary(state: ParseState, node: dict[str, Any]) -> None:
    line = state.index.position(SourceLocation.of(node).start).line
    logger.warning(
        "Instrumentation for ternary statements is currently not supported: %s:%d",
        state.contract, line,
        extra={"contract": state.contract, "node_type": "Conditional"},
    )


def parse(source: str, ast: dict[str, Any]) -> ParseResult:
    """Parse one file's AST into its coverage skeleton and injections."""
    return SolidityCoverageParser().parse(source, ast)


def parse_source(source: str, path: str = "Contract.sol") -> ParseResult:
    """Parse ``source`` with solc, then walk the resulting AST."""
    from solcover.ingestion.solidity_compiler import SolidityCompiler

    asts = SolidityCompiler().parse_sources({path: source})
    return parse(source, asts[path])
