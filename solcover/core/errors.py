"""Exception hierarchy for the solcover engine."""

from __future__ import annotations

from typing import Any


class CoverageError(Exception):
    """Base exception for all solcover errors."""


class UnsupportedNodeError(CoverageError):
    """An AST node kind the parser does not know how to instrument.

    Fatal for the whole file: no partial instrumentation is produced.
    """

    def __init__(self, node_type: str, src: str = "", target: str | None = None) -> None:
        self.node_type = node_type
        self.src = src
        self.target = target
        where = f" in {target}" if target else ""
        at = f" at {src}" if src else ""
        super().__init__(f"Unexpected AST node type {node_type!r}{at}{where}")

    def with_target(self, target: str) -> "UnsupportedNodeError":
        """Return a copy of this error annotated with the source file path."""
        return UnsupportedNodeError(self.node_type, self.src, target)


class StaleMetadataError(CoverageError):
    """A recorded hit hash that the instrumentation metadata does not know.

    Usually means hits were collected against probes from a different
    instrumentation pass than the metadata file being used.
    """

    def __init__(self, probe_hash: str) -> None:
        self.probe_hash = probe_hash
        super().__init__(f"Hit for unknown instrumentation hash {probe_hash}")


class CompilationError(CoverageError):
    """solc reported errors while parsing or compiling sources."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("\n".join(errors) or "Compilation failed")


class TraceFetchError(CoverageError):
    """The JSON-RPC node failed to return an execution trace."""

    def __init__(self, message: str, response: Any = None) -> None:
        super().__init__(message)
        self.response = response
